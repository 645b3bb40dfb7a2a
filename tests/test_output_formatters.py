"""Tests for the tool response formatters."""

import pytest

from adm1.simulation import SimulationConfig, run_simulation
from adm1.state import ADM1State
from utils.output_formatters import (
    calculate_vfa_alkalinity,
    format_inhibition_output,
    format_performance_output,
    format_simulation_summary,
    format_timeseries_output,
)


@pytest.fixture
def short_result(reactor, dilute_influent):
    config = SimulationConfig(end_time=0.05, time_step=5e-4, output_interval=5e-4, solver="bdf")
    return run_simulation(config, reactor, dilute_influent)


def test_vfa_alkalinity_ratio():
    metrics = calculate_vfa_alkalinity(ADM1State(S_ac=106.7), alkalinity_meq_l=2.0, pH=7.0)
    assert metrics["vfa_mg_hac_l"] == pytest.approx(100.0)
    assert metrics["alkalinity_mg_caco3_l"] == pytest.approx(100.0)
    assert metrics["vfa_alk_ratio"] == pytest.approx(1.0)


def test_vfa_alkalinity_without_alkalinity():
    metrics = calculate_vfa_alkalinity(ADM1State(S_ac=10.0), alkalinity_meq_l=0.0, pH=5.0)
    assert metrics["vfa_alk_ratio"] == 0


def test_timeseries_downsampling_keeps_last_point(short_result):
    assert len(short_result.time_series) == 101
    series = format_timeseries_output(short_result, max_points=10)
    assert len(series["time_d"]) == 11
    assert series["time_d"][0] == 0.0
    assert series["time_d"][-1] == pytest.approx(0.05)
    assert all(len(values) == 11 for values in series.values())


def test_timeseries_without_downsampling(short_result):
    series = format_timeseries_output(short_result, max_points=500)
    assert len(series["time_d"]) == 101


def test_performance_sections(short_result, dilute_influent):
    out = format_performance_output(short_result, dilute_influent)
    assert set(out) == {"influent", "effluent", "biogas", "performance"}
    assert out["influent"]["cod_mg_l"] == pytest.approx(dilute_influent.total_cod)
    assert out["performance"]["specific_methane_yield_L_kg_cod"] == pytest.approx(
        out["performance"]["specific_methane_yield_m3_kg_cod"] * 1000
    )


def test_inhibition_percentages(short_result):
    out = format_inhibition_output(short_result)
    assert 0.0 <= out["overall_methanogen_health_percent"] <= 100.0
    for section in ("pH_inhibition", "hydrogen_inhibition"):
        assert all(0.0 <= v <= 100.0 for v in out[section].values())


def test_summary_contains_all_sections(short_result, dilute_influent):
    summary = format_simulation_summary(short_result, dilute_influent, max_points=20)
    assert set(summary) == {"performance", "inhibition", "time_series", "steady_state", "diagnostics", "computation"}
    assert summary["computation"]["solver"] == "bdf"
    assert summary["computation"]["total_steps"] == 100
