"""Tool for one-at-a-time sensitivity analysis of the configured digester."""

import logging
from functools import partial
from typing import Dict, Any, Optional

import anyio.to_thread

from adm1.sensitivity import SensitivityRange, analyze_parameter
from core.state import design_state

logger = logging.getLogger(__name__)


async def run_sensitivity_analysis(
    parameter: str,
    min_percent: float = -20.0,
    max_percent: float = 20.0,
    steps: int = 5,
    hrt_multiple: float = 5.0,
    solver: Optional[str] = None,
    max_workers: Optional[int] = None
) -> Dict[str, Any]:
    """
    Vary one input around its baseline and report the steady-state response.

    Args:
        parameter: Kinetic parameter (e.g. "k_m_ac", "K_S_pro"), reactor
                   setting ("V_liq", "V_gas", "Q_in", "temperature") or
                   "influent_strength"
        min_percent: Lower bound of the variation (%)
        max_percent: Upper bound of the variation (%)
        steps: Number of evaluated points, including both bounds
        hrt_multiple: HRTs simulated per point
        solver: Integrator, ADM1_DEFAULT_SOLVER when omitted
        max_workers: Process pool size, ADM1_SENSITIVITY_WORKERS when omitted

    Returns:
        Dictionary containing:
        - success: True or False
        - parameter, baseline_value, baseline_outputs
        - points: Input value and outputs per point
        - elasticities: % output change per % input change
        - most_sensitive_output
    """
    try:
        if design_state.reactor is None or design_state.adm1_influent is None:
            return {
                "success": False,
                "message": "Configure the digester and characterise the influent first."
            }

        sweep = SensitivityRange(min=min_percent, max=max_percent, steps=steps, type="percentage")
        result = await anyio.to_thread.run_sync(
            partial(
                analyze_parameter,
                parameter,
                design_state.adm1_influent,
                design_state.reactor,
                design_state.parameters,
                sweep=sweep,
                max_workers=max_workers,
                hrt_multiple=hrt_multiple,
                solver=solver,
            )
        )
        data = result.to_dict()
        design_state.sensitivity_results[parameter] = {
            "elasticities": data["elasticities"],
            "most_sensitive_output": data["most_sensitive_output"],
        }

        return {
            "success": True,
            **data,
            "message": f"Evaluated {len(result.points)} points for {parameter}"
        }

    except ValueError as e:
        return {"success": False, "message": f"Invalid sensitivity request: {str(e)}"}
    except Exception as e:
        logger.error(f"Error in run_sensitivity_analysis: {str(e)}", exc_info=True)
        return {
            "success": False,
            "message": f"Sensitivity analysis failed: {str(e)}"
        }
