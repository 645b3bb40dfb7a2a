"""End-to-end tests of the MCP tool functions against the shared design state."""

import asyncio
import json

import pytest

from adm1.parameters import ADM1Parameters
from adm1.temperature import correct_kinetic_temperature
from core.state import design_state
from tools.basis_of_design import characterize_influent, configure_digester, load_adm1_state
from tools.process_health import assess_process_health
from tools.sensitivity import run_sensitivity_analysis
from tools.simulation import calculate_steady_state, get_timeseries_data, simulate_digester
from tools.state_management import get_design_state, reset_design

QUICK_BDF = {"end_time_days": 2, "solver": "bdf", "time_step_days": 0.5}


def run(coro):
    return asyncio.run(coro)


@pytest.fixture
def configured():
    result = run(configure_digester(V_liq=100.0, hrt_days=5.0, temperature_c=35.0))
    assert result["status"] == "success"
    result = run(characterize_influent("mixed_sludge", {"cod_mg_l": 8000, "tkn_mg_l": 400}))
    assert result["status"] == "success"
    return result


def test_configure_digester_from_hrt():
    result = run(configure_digester(V_liq=1000.0, hrt_days=20.0))
    assert result["status"] == "success"
    assert result["reactor"]["Q_in"] == pytest.approx(50.0)
    assert result["reactor"]["V_gas"] == pytest.approx(100.0)
    assert result["derived_parameters"]["temperature_regime"] == "mesophilic"
    assert design_state.reactor.hrt == pytest.approx(20.0)


def test_configure_digester_warnings_and_errors():
    short = run(configure_digester(V_liq=100.0, Q_in=25.0, temperature_c=15.0))
    assert short["status"] == "success"
    assert len(short["validation"]["warnings"]) == 2
    assert run(configure_digester(V_liq=100.0))["status"] == "error"
    assert run(configure_digester(V_liq=-1.0, hrt_days=10.0))["status"] == "error"


def test_characterize_requires_reactor():
    result = run(characterize_influent("primary_sludge"))
    assert result["status"] == "error"
    assert "configure_digester" in result["message"]


def test_characterize_fractionates_measurements(configured):
    influent = configured["adm1_influent"]
    assert sum(influent[k] for k in ("S_su", "S_aa", "S_fa", "S_I", "X_c", "X_ch", "X_pr", "X_li", "X_I")) \
        == pytest.approx(8000.0)
    assert influent["S_IN"] == pytest.approx(400.0 * 0.18 / 14.0)
    assert configured["derived_parameters"]["organic_loading_rate_kg_cod_m3_d"] == pytest.approx(1.6)
    assert design_state.substrate_type == "mixed_sludge"


def test_characterize_alkalinity_in_meq():
    run(configure_digester(V_liq=100.0, hrt_days=20.0))
    result = run(characterize_influent("primary_sludge", {"alkalinity_meq_l": 80}))
    assert result["conventional"]["alkalinity"] == pytest.approx(4000.0)
    assert result["adm1_influent"]["S_IC"] == pytest.approx(80.0)


def test_characterize_rejects_unknown_substrate():
    run(configure_digester(V_liq=100.0, hrt_days=20.0))
    result = run(characterize_influent("moon_dust"))
    assert result["status"] == "error"
    assert "primary_sludge" in result["valid_types"]


def test_explicit_adm1_state():
    run(configure_digester(V_liq=100.0, hrt_days=20.0))
    result = run(characterize_influent(adm1_state={"S_su": 500.0, "X_c": 2000.0}))
    assert result["status"] == "success"
    assert design_state.adm1_influent.X_c == 2000.0
    bad = run(characterize_influent(adm1_state={"S_su": -1.0}))
    assert bad["status"] == "error"
    text = run(characterize_influent(adm1_state=json.dumps({"S_su": "abc", "X_c": None})))
    assert text["status"] == "error"
    assert text["message"] == "Invalid ADM1 state"
    assert text["validation"]["non_numeric_values"] == ["S_su", "X_c"]


def test_load_adm1_state(tmp_path):
    run(configure_digester(V_liq=100.0, hrt_days=20.0))
    path = tmp_path / "adm1_state.json"
    path.write_text(json.dumps({"S_su": 100.0, "X_pr": 900.0}))
    result = run(load_adm1_state(str(path)))
    assert result["status"] == "success"
    assert design_state.adm1_influent.X_pr == 900.0
    missing = run(load_adm1_state(str(tmp_path / "missing.json")))
    assert missing["status"] == "error"


def test_simulation_requires_configuration():
    result = run(simulate_digester(QUICK_BDF))
    assert result["success"] is False
    assert "configure_digester" in result["message"]


def test_simulation_rejects_bad_settings(configured):
    result = run(simulate_digester({"solver": "verlet"}))
    assert result["success"] is False
    assert "Invalid simulation settings" in result["message"]
    result = run(simulate_digester(QUICK_BDF, initial_state={"S_nonsense": 1.0}))
    assert result["success"] is False


def test_simulation_workflow(configured):
    result = run(simulate_digester(json.dumps(QUICK_BDF)))
    assert result["success"] is True
    assert result["phase"] == "completed"
    assert {"performance", "inhibition", "time_series", "diagnostics"} <= set(result)
    assert result["computation"]["total_steps"] == 4
    assert design_state.simulation_results["kind"] == "dynamic"

    series = run(get_timeseries_data(max_points=2))
    assert series["success"] is True
    assert series["recorded_points"] == 3
    assert series["time_series"]["time_d"][-1] == pytest.approx(2.0)

    health = run(assess_process_health())
    assert health["success"] is True
    assert len(health["process_rates"]["rates"]) == 19
    assert set(health["methanogens"]) == {"acetoclastic", "hydrogenotrophic", "concentrations"}

    state = run(get_design_state())
    assert state["completion_status"]["simulation"] is True
    assert state["completion_status"]["sensitivity_analysis"] is False
    assert "last_simulation_summary" in state


def test_full_detail_response(configured):
    result = run(simulate_digester(QUICK_BDF, detail_level="full"))
    assert result["success"] is True
    assert len(result["results"]["time_series"]) == 3
    json.dumps(result)


def test_steady_state_tool(configured):
    result = run(calculate_steady_state(hrt_multiple=1.0, solver="bdf", time_step_days=0.5))
    assert result["success"] is True
    assert "steady_state_composition" in result
    assert design_state.simulation_results["kind"] == "steady_state"


def test_health_uses_configured_temperature_coefficients():
    run(configure_digester(V_liq=100.0, hrt_days=5.0, temperature_c=25.0))
    run(characterize_influent("mixed_sludge", {"cod_mg_l": 8000, "tkn_mg_l": 400}))
    params = ADM1Parameters().with_overrides(temp_coeffs={"E_a_k_m_ac": 80000.0, "E_a_k_m_h2": 10000.0})
    design_state.parameters = params
    assert run(simulate_digester(QUICK_BDF))["success"] is True

    methanogens = run(assess_process_health())["methanogens"]
    expected = correct_kinetic_temperature(params.kinetic, 25.0, params.temp_coeffs)
    default = correct_kinetic_temperature(params.kinetic, 25.0)
    assert methanogens["acetoclastic"]["max_uptake_rate_per_d"] == pytest.approx(expected.k_m_ac)
    assert methanogens["hydrogenotrophic"]["max_uptake_rate_per_d"] == pytest.approx(expected.k_m_h2)
    assert expected.k_m_ac < default.k_m_ac


def test_analysis_tools_need_a_simulation():
    assert run(assess_process_health())["success"] is False
    assert run(get_timeseries_data())["success"] is False


def test_sensitivity_tool(configured):
    result = run(run_sensitivity_analysis(
        "V_liq", min_percent=-10.0, max_percent=10.0, steps=3, hrt_multiple=1.0, solver="bdf", max_workers=1
    ))
    assert result["success"] is True
    assert len(result["points"]) == 3
    assert "V_liq" in design_state.sensitivity_results
    bad = run(run_sensitivity_analysis("colour", steps=3, hrt_multiple=1.0, solver="bdf"))
    assert bad["success"] is False


def test_reset_and_next_steps():
    fresh = run(get_design_state())
    assert fresh["overall_progress"] == "0%"
    assert "configure_digester" in fresh["next_steps"][0]
    run(configure_digester(V_liq=100.0, hrt_days=20.0))
    assert "characterize_influent" in run(get_design_state())["next_steps"][0]
    result = run(reset_design())
    assert result["status"] == "success"
    assert design_state.reactor is None
