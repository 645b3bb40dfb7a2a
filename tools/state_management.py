"""Tools for managing design state."""

import logging
from typing import Dict, Any, List
from core.state import design_state

logger = logging.getLogger(__name__)


async def get_design_state() -> Dict[str, Any]:
    """
    Get the current state of the digester simulation session.

    Returns:
        Dictionary containing:
        - reactor: Digester configuration (if configured)
        - conventional_influent / adm1_influent: Feed characterisation
        - simulation_results: Summary of the last simulation (if available)
        - sensitivity_results: Elasticities per analysed parameter
        - completion_status: Status of each session stage
    """
    try:
        # Determine completion status
        completion_status = {
            "reactor_configuration": design_state.reactor is not None,
            "influent_characterization": design_state.adm1_influent is not None,
            "simulation": len(design_state.simulation_results) > 0,
            "sensitivity_analysis": len(design_state.sensitivity_results) > 0
        }

        # Calculate overall progress
        completed = sum(1 for v in completion_status.values() if v)
        total = len(completion_status)
        progress = f"{int(100 * completed / total)}%"

        next_steps = get_next_steps(completion_status)

        return {
            "status": "success",
            **design_state.to_dict(),
            "completion_status": completion_status,
            "overall_progress": progress,
            "next_steps": next_steps
        }

    except Exception as e:
        logger.error(f"Error in get_design_state: {str(e)}", exc_info=True)
        return {
            "status": "error",
            "message": f"Failed to retrieve design state: {str(e)}"
        }


async def reset_design() -> Dict[str, Any]:
    """
    Reset the digester simulation session.

    Clears the reactor, influent and all cached results.

    Returns:
        Confirmation of reset operation
    """
    try:
        design_state.reset()

        return {
            "status": "success",
            "message": "Design state has been reset",
            "state": design_state.to_dict()
        }

    except Exception as e:
        logger.error(f"Error in reset_design: {str(e)}", exc_info=True)
        return {
            "status": "error",
            "message": f"Failed to reset design state: {str(e)}"
        }


def get_next_steps(completion_status: Dict[str, bool]) -> List[str]:
    """Determine next steps based on completion status."""
    next_steps = []

    if not completion_status["reactor_configuration"]:
        next_steps.append("Use configure_digester to set volume, HRT and temperature")
    elif not completion_status["influent_characterization"]:
        next_steps.append("Use characterize_influent to fractionate the feed into ADM1 components")
    elif not completion_status["simulation"]:
        next_steps.append("Use simulate_digester or calculate_steady_state to run ADM1")
    elif not completion_status["sensitivity_analysis"]:
        next_steps.append("Use assess_process_health or run_sensitivity_analysis to analyse the results")
    else:
        next_steps.append("Session complete! Review results with get_design_state")

    return next_steps
