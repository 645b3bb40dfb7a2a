"""
Optional analysis tool: Process health diagnostics.

Provides detailed analysis of individual process rates, limiting factors,
and inhibition status of the last simulated state. Useful for diagnosing
performance issues.
"""

import logging
from typing import Dict, Any, List

from adm1.acid_base import calculate_free_ammonia
from adm1.diagnostics import classify_ph_stability, get_inhibition_status
from adm1.inhibition import monod
from adm1.parameters import N_G_PER_MOL
from adm1.process_rates import ProcessRate
from adm1.temperature import correct_kinetic_temperature, correct_physicochemical_temperature
from core.state import design_state

logger = logging.getLogger(__name__)


async def assess_process_health() -> Dict[str, Any]:
    """
    Analyze health of biological processes in the anaerobic digester.

    Examines process rates, limiting substrates, and inhibition factors
    for key microbial groups. Requires a cached simulation result.

    Returns
    -------
    dict
        Process health diagnostics including:
        - Process rates for all 19 processes
        - Health of acidogens, acetogens and methanogens
        - Inhibition summary (pH, free ammonia, hydrogen, nitrogen limitation)
        - Warnings raised during the run

    Examples
    --------
    Diagnose methanogenic inhibition:

    >>> result = await assess_process_health()
    >>> print(result["methanogens"]["acetoclastic"]["inhibition"]["NH3"])
    """
    try:
        # Check if simulation has been run
        if design_state.last_simulation is None:
            return {
                "success": False,
                "message": "No simulation results available. Run simulate_digester or calculate_steady_state first."
            }

        sim = design_state.last_simulation
        state = sim.final_state.to_dict()
        factors = sim.final_inhibition_factors
        pH = sim.effluent_quality.pH

        logger.info("Analyzing process health and inhibition status")

        params = design_state.parameters
        kinetic = correct_kinetic_temperature(params.kinetic, sim.reactor.temperature, params.temp_coeffs)
        physchem = correct_physicochemical_temperature(params.physchem, sim.reactor.temperature)
        S_nh3 = calculate_free_ammonia(state["S_IN"], pH, physchem.K_a_IN)

        acidogens = analyze_acidogen_health(state, factors, kinetic)
        acetogens = analyze_acetogen_health(state, factors, kinetic)
        methanogens = analyze_methanogen_health(state, factors, kinetic, S_nh3)

        inhibition_summary = {
            "pH": pH,
            "pH_status": classify_ph_stability(pH),
            "NH3_mg_N_L": S_nh3 * N_G_PER_MOL,
            "NH3_inhibition": {"factor": factors["I_nh3"], "status": get_inhibition_status(factors["I_nh3"])},
            "H2_inhibition_propionate": {
                "factor": factors["I_h2_pro"], "status": get_inhibition_status(factors["I_h2_pro"])
            },
            "nitrogen_limitation": {"factor": factors["I_IN"], "status": get_inhibition_status(factors["I_IN"])},
            "overall_status": sim.diagnostics.inhibition_status,
        }

        return {
            "success": True,
            "acidogens": acidogens,
            "acetogens": acetogens,
            "methanogens": methanogens,
            "inhibition_summary": inhibition_summary,
            "limiting_factors": identify_limiting_factors(factors),
            "process_rates": {
                "description": "Rates for all 19 processes (g COD/m3/d)",
                "rates": [r.to_dict() for r in sim.final_process_rates],
                "dominant": _dominant_processes(sim.final_process_rates),
            },
            "warnings": list(sim.diagnostics.warnings),
        }

    except Exception as e:
        logger.error(f"Error analyzing process health: {str(e)}", exc_info=True)
        return {
            "success": False,
            "message": f"Analysis failed: {str(e)}"
        }


def _dominant_processes(rates: List[ProcessRate], top: int = 5) -> List[str]:
    return [r.name for r in sorted(rates, key=lambda r: r.rate, reverse=True)[:top]]


def analyze_acidogen_health(state: Dict[str, float], factors: Dict[str, float], kinetic) -> Dict[str, Any]:
    """Analyze acidogenic bacteria (fermenters) health."""
    X_su = state['X_su']  # Sugar degraders
    X_aa = state['X_aa']  # Amino acid degraders
    I_total = factors['I_pH_aa'] * factors['I_IN']

    return {
        "biomass": {
            "X_su_mg_COD_L": X_su,
            "X_aa_mg_COD_L": X_aa
        },
        "substrates": {
            "S_su_mg_COD_L": state['S_su'],
            "S_aa_mg_COD_L": state['S_aa']
        },
        "substrate_saturation": {
            "sugars": monod(state['S_su'], kinetic.K_S_su),
            "amino_acids": monod(state['S_aa'], kinetic.K_S_aa)
        },
        "inhibition": {
            "pH": {"factor": factors['I_pH_aa'], "status": get_inhibition_status(factors['I_pH_aa'])},
            "total": {"factor": I_total, "status": get_inhibition_status(I_total)}
        },
        "status": "OK" if X_su > 10 and X_aa > 10 else "LOW_BIOMASS"
    }


def analyze_acetogen_health(state: Dict[str, float], factors: Dict[str, float], kinetic) -> Dict[str, Any]:
    """Analyze acetogenic bacteria (LCFA, C4 and propionate degraders)."""
    X_pro = state['X_pro']  # Propionate degraders

    return {
        "biomass": {
            "X_fa_mg_COD_L": state['X_fa'],
            "X_c4_mg_COD_L": state['X_c4'],
            "X_pro_mg_COD_L": X_pro
        },
        "substrates": {
            "S_fa_mg_COD_L": state['S_fa'],
            "S_va_mg_COD_L": state['S_va'],
            "S_bu_mg_COD_L": state['S_bu'],
            "S_pro_mg_COD_L": state['S_pro']
        },
        "substrate_saturation": {
            "lcfa": monod(state['S_fa'], kinetic.K_S_fa),
            "propionate": monod(state['S_pro'], kinetic.K_S_pro)
        },
        "inhibition": {
            "H2_lcfa": {"factor": factors['I_h2_fa'], "status": get_inhibition_status(factors['I_h2_fa'])},
            "H2_c4": {"factor": factors['I_h2_c4'], "status": get_inhibition_status(factors['I_h2_c4'])},
            "H2_propionate": {"factor": factors['I_h2_pro'], "status": get_inhibition_status(factors['I_h2_pro'])}
        },
        "status": "OK" if X_pro > 10 else "LOW_BIOMASS",
        "notes": "Propionate degraders most sensitive to H2 inhibition"
    }


def analyze_methanogen_health(
    state: Dict[str, float],
    factors: Dict[str, float],
    kinetic,
    S_nh3: float
) -> Dict[str, Any]:
    """Analyze methanogenic archaea health and inhibition."""
    X_ac = state['X_ac']  # Acetoclastic methanogens
    X_h2 = state['X_h2']  # Hydrogenotrophic methanogens

    # Overall inhibition (product of all factors)
    I_total_ac = factors['I_pH_ac'] * factors['I_IN'] * factors['I_nh3']
    I_total_h2 = factors['I_pH_h2'] * factors['I_IN']

    return {
        "acetoclastic": {
            "biomass_mg_COD_L": X_ac,
            "substrate_mg_COD_L": state['S_ac'],
            "substrate_saturation": monod(state['S_ac'], kinetic.K_S_ac),
            "max_uptake_rate_per_d": kinetic.k_m_ac,
            "inhibition": {
                "NH3": {"factor": factors['I_nh3'], "status": get_inhibition_status(factors['I_nh3'])},
                "pH": {"factor": factors['I_pH_ac'], "status": get_inhibition_status(factors['I_pH_ac'])},
                "total": {"factor": I_total_ac, "status": get_inhibition_status(I_total_ac)}
            },
            "status": "OK" if I_total_ac > 0.5 else "INHIBITED"
        },
        "hydrogenotrophic": {
            "biomass_mg_COD_L": X_h2,
            "substrate_ug_COD_L": state['S_h2'] * 1000,
            "substrate_saturation": monod(state['S_h2'], kinetic.K_S_h2),
            "max_uptake_rate_per_d": kinetic.k_m_h2,
            "inhibition": {
                "pH": {"factor": factors['I_pH_h2'], "status": get_inhibition_status(factors['I_pH_h2'])},
                "total": {"factor": I_total_h2, "status": get_inhibition_status(I_total_h2)}
            },
            "status": "OK" if I_total_h2 > 0.5 else "INHIBITED"
        },
        "concentrations": {
            "TAN_mg_N_L": state['S_IN'] * N_G_PER_MOL,
            "NH3_mg_N_L": S_nh3 * N_G_PER_MOL
        }
    }


def identify_limiting_factors(factors: Dict[str, float], threshold: float = 0.9) -> List[Dict[str, Any]]:
    """Inhibition terms below ``threshold``, strongest first."""
    limiting = [
        {"factor": name, "value": value, "status": get_inhibition_status(value)}
        for name, value in factors.items()
        if value < threshold
    ]
    return sorted(limiting, key=lambda item: item["value"])
