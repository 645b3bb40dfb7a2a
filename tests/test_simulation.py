"""Tests for the simulation driver."""

import json

import numpy as np
import pytest

import adm1.simulation as simulation
from adm1.exceptions import IntegrationError, InvalidConfigurationError
from adm1.integrators import STABILITY_LIMITS
from adm1.mass_balance import ADM1System
from adm1.reactor import ReactorConfig
from adm1.simulation import (
    RunPhase,
    SimulationConfig,
    calculate_steady_state,
    default_time_step,
    run_simulation,
    run_to_steady_state,
)
from adm1.state import ADM1State, default_initial_state


def _assert_physical(result):
    assert np.all(result.final_state.to_array() >= 0.0)
    assert np.all(np.isfinite(result.final_state.to_array()))
    assert 4.0 <= result.effluent_quality.pH <= 9.0
    assert result.gas_production.methane >= 0.0
    assert 0.0 <= result.gas_production.methane_content <= 100.0
    for point in result.time_series:
        assert np.all(np.isfinite(point.derivatives))


def test_euler_short_run(reactor, dilute_influent):
    config = SimulationConfig(end_time=0.005, time_step=5e-7, output_interval=0.00125, solver="euler")
    result = run_simulation(config, reactor, dilute_influent)

    assert result.phase is RunPhase.COMPLETED
    assert result.computation.total_steps == 10000
    assert result.computation.reached_end
    assert result.computation.final_time == pytest.approx(0.005)
    assert [round(p.time, 6) for p in result.time_series] == [0.0, 0.00125, 0.0025, 0.00375, 0.005]
    assert not result.diagnostics.errors
    assert not any("stability limit" in w for w in result.diagnostics.warnings)
    _assert_physical(result)


def test_rk4_short_run(reactor, dilute_influent):
    config = SimulationConfig(end_time=0.0025, time_step=5e-7, output_interval=0.0025, solver="rk4")
    result = run_simulation(config, reactor, dilute_influent)
    assert result.computation.samples == 2
    assert result.computation.rhs_evaluations >= 4 * 5000
    _assert_physical(result)


@pytest.mark.parametrize("solver", ["euler", "rk4"])
def test_explicit_solvers_match_bdf_at_default_step(reactor, primary_sludge, solver):
    window = 0.01
    reference = run_simulation(
        SimulationConfig(end_time=window, time_step=window, output_interval=window, solver="bdf"),
        reactor, primary_sludge,
    )
    dt = default_time_step(solver, reactor)
    result = run_simulation(
        SimulationConfig(end_time=window, time_step=dt, output_interval=window, solver=solver),
        reactor, primary_sludge,
    )

    assert not any("stability limit" in w for w in result.diagnostics.warnings)
    assert result.effluent_quality.pH == pytest.approx(reference.effluent_quality.pH, abs=5e-3)
    for name in ("S_IC", "S_ac", "S_h2"):
        assert getattr(result.final_state, name) == pytest.approx(getattr(reference.final_state, name), rel=1e-2)


@pytest.mark.slow
def test_bdf_primary_sludge_fifty_days(reactor, primary_sludge):
    config = SimulationConfig(end_time=50.0, time_step=0.5, output_interval=5.0, solver="bdf")
    result = run_simulation(config, reactor, primary_sludge)

    assert not result.diagnostics.errors
    assert len(result.time_series) == 11
    _assert_physical(result)
    assert result.gas_production.methane > 0.0
    assert result.performance.COD_removal <= 100.0
    assert result.performance.organic_loading_rate == pytest.approx(
        primary_sludge.total_cod * reactor.Q_in / 1000.0 / reactor.V_liq
    )


@pytest.mark.parametrize("kwargs", [
    {"time_step": 0.0},
    {"output_interval": -1.0},
    {"start_time": 5.0, "end_time": 5.0},
    {"solver": "leapfrog"},
    {"max_steps": 0},
    {"S_cat": -1.0},
    {"ph_method": "bisection"},
])
def test_invalid_configuration_raises_before_stepping(reactor, dilute_influent, kwargs):
    with pytest.raises(InvalidConfigurationError):
        run_simulation(SimulationConfig(**kwargs), reactor, dilute_influent)


def test_step_ceiling_truncates_with_warning(reactor, dilute_influent):
    config = SimulationConfig(end_time=1.0, time_step=5e-4, solver="euler", max_steps=10)
    result = run_simulation(config, reactor, dilute_influent)
    assert result.computation.total_steps == 10
    assert not result.computation.reached_end
    assert result.computation.final_time == pytest.approx(0.005)
    assert any("limited to 10 steps" in w for w in result.diagnostics.warnings)


def test_environment_step_ceiling(monkeypatch, reactor, dilute_influent):
    monkeypatch.setenv("ADM1_MAX_STEPS", "4")
    config = SimulationConfig(end_time=1.0, time_step=5e-4, solver="euler")
    result = run_simulation(config, reactor, dilute_influent)
    assert result.computation.total_steps == 4


def test_large_explicit_step_is_flagged(reactor, dilute_influent):
    config = SimulationConfig(end_time=0.02, time_step=0.01, solver="euler")
    result = run_simulation(config, reactor, dilute_influent)
    assert any("stability limit" in w for w in result.diagnostics.warnings)


def test_transfer_limited_step_is_unstable_for_hydrogen_uptake(reactor, primary_sludge):
    # A step sized for gas-liquid transfer alone overshoots hydrogen uptake
    config = SimulationConfig(end_time=0.02, time_step=6.3e-4, output_interval=0.02, solver="euler")
    result = run_simulation(config, reactor, primary_sludge)
    warnings = result.diagnostics.warnings
    assert any("stability limit" in w for w in warnings)
    unstable = [w for w in warnings if w.startswith("Unstable euler integration")]
    assert len(unstable) == 1
    assert "S_h2" in unstable[0]


def test_bdf_is_the_default_solver(reactor, dilute_influent):
    config = SimulationConfig(end_time=0.2)
    assert config.solver == "bdf"
    result = run_simulation(config, reactor, dilute_influent)
    assert not any("stability limit" in w for w in result.diagnostics.warnings)
    assert not any(w.startswith("Unstable") for w in result.diagnostics.warnings)


def test_integration_failure_is_reported_not_raised(monkeypatch, reactor, dilute_influent):
    def failing(rhs, t, y, dt):
        raise IntegrationError("solver gave up")

    monkeypatch.setattr(simulation, "get_integrator", lambda name: failing)
    result = run_simulation(SimulationConfig(end_time=1.0, time_step=0.1), reactor, dilute_influent)
    assert result.phase is RunPhase.COMPLETED
    assert result.diagnostics.errors == ["solver gave up"]
    assert result.computation.total_steps == 0
    assert not result.computation.reached_end


def test_non_finite_values_stop_the_run(monkeypatch, reactor, dilute_influent):
    monkeypatch.setattr(simulation, "get_integrator", lambda name: lambda rhs, t, y, dt: y * np.nan)
    result = run_simulation(SimulationConfig(end_time=1.0, time_step=0.1), reactor, dilute_influent)
    assert any("non-finite" in e for e in result.diagnostics.errors)
    assert np.all(np.isfinite(result.final_state.to_array()))


def test_default_time_steps(reactor):
    assert default_time_step("bdf", reactor) == pytest.approx(1.0)
    assert default_time_step("bdf", ReactorConfig.from_hrt(100.0, 5.0)) == pytest.approx(0.25)
    euler = default_time_step("euler", reactor)
    rk4 = default_time_step("rk4", reactor)
    assert 0 < euler < rk4 < 1e-5

    # Hydrogen uptake sets the explicit limit, not gas-liquid transfer
    kinetic = ADM1System(reactor, ADM1State()).kinetic
    hydrogen_uptake = kinetic.k_m_h2 * default_initial_state().X_h2 / kinetic.K_S_h2
    assert euler == pytest.approx(1.0 / (hydrogen_uptake + 1.0 / reactor.hrt))
    assert rk4 == pytest.approx(0.5 * STABILITY_LIMITS["rk4"] / (hydrogen_uptake + 1.0 / reactor.hrt))


def test_default_time_step_scales_with_hydrogen_biomass(reactor):
    state = default_initial_state()
    state.X_h2 *= 4.0
    assert default_time_step("euler", reactor, initial_state=state) == pytest.approx(
        default_time_step("euler", reactor) / 4.0, rel=1e-3
    )


def test_result_serialises_to_json(reactor, dilute_influent):
    config = SimulationConfig(end_time=0.01, time_step=5e-4, output_interval=0.005, solver="euler")
    result = run_simulation(config, reactor, dilute_influent)
    data = result.to_dict()
    assert data["phase"] == "completed"
    assert len(data["final_process_rates"]) == 19
    assert set(data["time_series"][0]["state"]) == set(ADM1State().to_dict())
    json.dumps(data)
    assert "time_series" not in result.to_dict(include_time_series=False)


def test_run_to_steady_state_samples_once_per_hrt(dilute_influent):
    reactor = ReactorConfig.from_hrt(V_liq=100.0, hrt=2.0)
    result = run_to_steady_state(dilute_influent, reactor, hrt_multiple=2.0, solver="bdf")
    assert [round(p.time, 6) for p in result.time_series] == [0.0, 2.0, 4.0]
    assert result.config.time_step == pytest.approx(0.1)
    assert result.steady_state.max_variation >= 0.0
    _assert_physical(result)


def test_calculate_steady_state_returns_final_state(dilute_influent):
    reactor = ReactorConfig.from_hrt(V_liq=100.0, hrt=2.0)
    state = calculate_steady_state(dilute_influent, reactor, hrt_multiple=1.0, solver="bdf")
    assert isinstance(state, ADM1State)
    assert state.X_ac > 0


def test_invalid_hrt_multiple(reactor, dilute_influent):
    with pytest.raises(InvalidConfigurationError):
        run_to_steady_state(dilute_influent, reactor, hrt_multiple=0.0)
