"""
Output formatters for simulation results.
Builds token-efficient summaries of a SimulationResult for tool responses.
"""

from typing import Any, Dict, List

from adm1.state import ADM1State

# Acetic acid equivalents of the VFA COD [g COD per g HAc]
COD_PER_G_ACETIC_ACID = 1.067


def calculate_vfa_alkalinity(state: ADM1State, alkalinity_meq_l: float, pH: float) -> Dict[str, float]:
    """
    Calculate VFA/Alkalinity ratio of a liquid state.

    Args:
        state: Liquid composition (VFA in g COD/m3)
        alkalinity_meq_l: Alkalinity in meq/L (= mol eq/m3)
        pH: Liquid pH

    Returns:
        Dict with VFA and alkalinity metrics; the ratio is mg HAc per mg CaCO3
    """
    vfa_mg_l = state.total_vfa
    vfa_hac_mg_l = vfa_mg_l / COD_PER_G_ACETIC_ACID
    alkalinity_mg_caco3 = alkalinity_meq_l * 50.0

    vfa_alk_ratio = vfa_hac_mg_l / alkalinity_mg_caco3 if alkalinity_mg_caco3 > 0 else 0

    return {
        'vfa_mg_cod_l': vfa_mg_l,
        'vfa_mg_hac_l': vfa_hac_mg_l,
        'alkalinity_meq_l': alkalinity_meq_l,
        'alkalinity_mg_caco3_l': alkalinity_mg_caco3,
        'vfa_alk_ratio': vfa_alk_ratio,
        'pH': pH
    }


def format_performance_output(result, influent: ADM1State) -> Dict[str, Any]:
    """
    Format performance metrics for token-efficient output.

    Args:
        result: SimulationResult
        influent: ADM1 influent state the run was fed with

    Returns:
        Dict with influent, effluent, biogas and performance sections
    """
    eff = result.effluent_quality
    gas = result.gas_production
    perf = result.performance
    eff_vfa_alk = calculate_vfa_alkalinity(result.final_state, eff.alkalinity, eff.pH)

    return {
        'influent': {
            'cod_mg_l': influent.total_cod,
            'soluble_cod_mg_l': influent.soluble_cod,
            'vfa_mg_cod_l': influent.total_vfa,
            'flow_m3_d': result.reactor.Q_in,
        },
        'effluent': {
            'cod_mg_l': eff.COD_total,
            'soluble_cod_mg_l': eff.COD_soluble,
            'pH': eff.pH,
            'vfa_mg_cod_l': eff.VFA_total,
            'acetate_mg_cod_l': eff.VFA_acetate,
            'propionate_mg_cod_l': eff.VFA_propionate,
            'alkalinity_meq_l': eff.alkalinity,
            'alkalinity_mg_caco3_l': eff.alkalinity_mg_CaCO3_L,
            'vfa_alk_ratio': eff_vfa_alk['vfa_alk_ratio'],
            'nh4_n_mg_l': eff.NH4_N,
            'tkn_mg_l': eff.TKN,
        },
        'biogas': {
            'total_nm3_d': gas.total_biogas,
            'ch4_nm3_d': gas.methane,
            'co2_nm3_d': gas.CO2,
            'ch4_percent': gas.methane_content,
            'energy_kwh_d': gas.energy_potential,
        },
        'performance': {
            'cod_removal_percent': perf.COD_removal,
            'vs_destruction_percent': perf.VS_destruction,
            'specific_methane_yield_m3_kg_cod': gas.specific_methane,
            'specific_methane_yield_L_kg_cod': gas.specific_methane * 1000,  # Convert m3 to L
            'specific_gas_yield_m3_kg_cod_fed': perf.specific_gas_yield,
            'olr_kg_cod_m3_d': perf.organic_loading_rate,
            'volumetric_gas_rate_m3_m3_d': perf.volumetric_gas_rate,
        }
    }


def format_inhibition_output(result) -> Dict[str, Any]:
    """
    Format inhibition factors of the final state.

    Factors are 1 for no inhibition and 0 for complete inhibition; the
    percentages reported here are the inhibited share (1 - I) * 100.
    """
    factors = result.final_inhibition_factors
    diagnostics = result.diagnostics

    def pct(name):
        return round((1.0 - factors.get(name, 1.0)) * 100, 2)

    limiting = sorted(factors, key=factors.get)[:3]
    methanogen_health = min(factors.get('I_pH_ac', 1.0) * factors.get('I_nh3', 1.0) * factors.get('I_IN', 1.0),
                            factors.get('I_pH_h2', 1.0) * factors.get('I_IN', 1.0))

    return {
        'overall_methanogen_health_percent': round(methanogen_health * 100, 2),
        'limiting_factors': [f for f in limiting if factors[f] < 0.9],
        'status': diagnostics.inhibition_status,
        'pH_inhibition': {
            'acidogens_percent': pct('I_pH_aa'),
            'acetoclastic_percent': pct('I_pH_ac'),
            'hydrogenotrophic_percent': pct('I_pH_h2'),
        },
        'ammonia_inhibition': {
            'acetoclastic_percent': pct('I_nh3'),
            'nh4_n_mg_l': result.effluent_quality.NH4_N,
        },
        'hydrogen_inhibition': {
            'lcfa_percent': pct('I_h2_fa'),
            'c4_percent': pct('I_h2_c4'),
            'propionate_percent': pct('I_h2_pro'),
        },
        'nitrogen_limitation_percent': pct('I_IN'),
    }


def format_timeseries_output(result, max_points: int = 100) -> Dict[str, List[float]]:
    """
    Downsample the recorded time series to about ``max_points`` entries.

    The final sample is always kept.
    """
    series = result.time_series
    if not series:
        return {'time_d': []}
    step = max(1, -(-len(series) // max(max_points, 1)))
    picked = series[::step]
    if picked[-1] is not series[-1]:
        picked.append(series[-1])

    return {
        'time_d': [tp.time for tp in picked],
        'pH': [tp.pH for tp in picked],
        'vfa_mg_cod_l': [tp.VFA_total for tp in picked],
        'alkalinity_meq_l': [tp.alkalinity for tp in picked],
        'ch4_nm3_d': [tp.gas_production.Q_ch4_STP for tp in picked],
        'ch4_percent': [tp.gas_production.ch4_percentage for tp in picked],
        'cod_mg_l': [tp.state.total_cod for tp in picked],
    }


def format_simulation_summary(result, influent: ADM1State, max_points: int = 100) -> Dict[str, Any]:
    """Combined summary used by the simulation tools."""
    steady = result.steady_state
    comp = result.computation
    return {
        'performance': format_performance_output(result, influent),
        'inhibition': format_inhibition_output(result),
        'time_series': format_timeseries_output(result, max_points),
        'steady_state': {
            'reached': steady.reached,
            'max_variation': steady.max_variation,
        },
        'diagnostics': result.diagnostics.to_dict(),
        'computation': {
            'solver': result.config.solver,
            'time_step_d': result.config.time_step,
            'total_steps': comp.total_steps,
            'execution_time_ms': comp.execution_time_ms,
            'reached_end': comp.reached_end,
            'final_time_d': comp.final_time,
        },
    }
