"""
Dynamic and steady-state ADM1 simulation tools.

Runs execute in a worker thread so that long integrations do not block the
MCP event loop.
"""

import datetime
import logging
from functools import partial
from typing import Dict, Any, Optional

import anyio.to_thread
from pydantic import ValidationError

from adm1.simulation import SimulationConfig, default_time_step, run_simulation, run_to_steady_state
from adm1.state import ADM1State
from core.models import AnyDict, SimulationSettings
from core.state import design_state
from core.utils import coerce_to_dict, to_json_safe
from utils.output_formatters import format_simulation_summary, format_timeseries_output

logger = logging.getLogger(__name__)


def _check_prerequisites() -> Optional[Dict[str, Any]]:
    if design_state.reactor is None:
        return {
            "success": False,
            "message": "Digester not configured. Run configure_digester first."
        }
    if design_state.adm1_influent is None:
        return {
            "success": False,
            "message": "No ADM1 influent found. Run characterize_influent first."
        }
    return None


def _store_result(result, kind: str) -> Dict[str, Any]:
    """Cache the full result and keep a summary in the design state."""
    summary = format_simulation_summary(result, design_state.adm1_influent)
    design_state.last_simulation = result
    design_state.simulation_results = {
        "kind": kind,
        "timestamp": datetime.datetime.now().isoformat(timespec="seconds"),
        "phase": result.phase.value,
        "performance": summary["performance"],
        "steady_state": summary["steady_state"],
        "diagnostics": summary["diagnostics"],
    }
    return summary


def _respond(result, summary: Dict[str, Any], detail_level: str) -> Dict[str, Any]:
    response = {
        "success": not result.diagnostics.errors,
        "phase": result.phase.value,
    }
    if detail_level == "full":
        response["results"] = result.to_dict(include_time_series=True)
    else:
        response.update(summary)
    if result.diagnostics.errors:
        response["message"] = "Simulation stopped early: " + "; ".join(result.diagnostics.errors)
    elif result.diagnostics.warnings:
        response["message"] = f"Simulation completed with {len(result.diagnostics.warnings)} warning(s)"
    else:
        response["message"] = "Simulation completed"
    return to_json_safe(response)


async def simulate_digester(
    settings: Optional[AnyDict] = None,
    initial_state: Optional[AnyDict] = None,
    detail_level: str = "summary"
) -> Dict[str, Any]:
    """
    Run a dynamic ADM1 simulation of the configured digester.

    Parameters
    ----------
    settings : dict or None, optional
        Simulation settings: end_time_days, time_step_days,
        output_interval_days, solver ("euler", "rk4", "bdf"), ph_method,
        cation_mol_m3, anion_mol_m3, max_steps
    initial_state : dict or None, optional
        Initial liquid state; a typical seeded digester when omitted
    detail_level : str, optional
        "summary" for KPIs and a downsampled time series, "full" for every
        recorded time point (default "summary")

    Returns
    -------
    dict
        - success: False when the run stopped on non-finite values
        - performance, inhibition, time_series, steady_state, diagnostics
        - message: Status message
    """
    try:
        missing = _check_prerequisites()
        if missing:
            return missing

        try:
            sim = SimulationSettings(**(coerce_to_dict(settings) or {}))
        except ValidationError as e:
            return {"success": False, "message": f"Invalid simulation settings: {str(e)}"}

        reactor = design_state.reactor
        initial = coerce_to_dict(initial_state)
        start = ADM1State.from_dict(initial) if initial else None
        dt = sim.time_step_days or default_time_step(sim.solver, reactor, design_state.parameters, start)
        config_kwargs = dict(
            end_time=sim.end_time_days,
            time_step=dt,
            output_interval=sim.output_interval_days,
            solver=sim.solver,
            S_cat=sim.cation_mol_m3,
            S_an=sim.anion_mol_m3,
            ph_method=sim.ph_method,
            max_steps=sim.max_steps,
        )
        if start is not None:
            config_kwargs["initial_state"] = start
        config = SimulationConfig(**config_kwargs)

        logger.info(f"Starting {sim.solver} simulation over {sim.end_time_days} d (dt={dt:.3g} d)")
        result = await anyio.to_thread.run_sync(
            partial(run_simulation, config, reactor, design_state.adm1_influent, design_state.parameters)
        )
        summary = _store_result(result, "dynamic")
        return _respond(result, summary, detail_level)

    except ValueError as e:
        return {"success": False, "message": f"Invalid configuration: {str(e)}"}
    except Exception as e:
        logger.error(f"Error in simulate_digester: {str(e)}", exc_info=True)
        return {
            "success": False,
            "message": f"Simulation failed: {str(e)}"
        }


async def calculate_steady_state(
    hrt_multiple: float = 5.0,
    solver: Optional[str] = None,
    time_step_days: Optional[float] = None,
    detail_level: str = "summary"
) -> Dict[str, Any]:
    """
    Approximate the steady state of the configured digester.

    The digester is run from a typical seeded state for ``hrt_multiple``
    hydraulic retention times and sampled once per HRT; the final state is
    reported together with the relative change over the last HRT.

    Args:
        hrt_multiple: Number of HRTs to simulate (default 5)
        solver: Integrator, ADM1_DEFAULT_SOLVER when omitted
        time_step_days: Integration step, solver default when omitted
        detail_level: "summary" or "full"

    Returns:
        Dictionary with the steady-state liquid composition, performance
        summary and convergence information
    """
    try:
        missing = _check_prerequisites()
        if missing:
            return missing

        result = await anyio.to_thread.run_sync(
            partial(
                run_to_steady_state,
                design_state.adm1_influent,
                design_state.reactor,
                design_state.parameters,
                hrt_multiple,
                time_step_days,
                solver,
            )
        )
        summary = _store_result(result, "steady_state")
        response = _respond(result, summary, detail_level)
        response["steady_state_composition"] = result.final_state.to_dict()
        if not result.steady_state.reached:
            response["message"] = (
                f"Not at steady state after {hrt_multiple} HRTs "
                f"(max relative change {result.steady_state.max_variation:.3g}); increase hrt_multiple"
            )
        return response

    except ValueError as e:
        return {"success": False, "message": f"Invalid configuration: {str(e)}"}
    except Exception as e:
        logger.error(f"Error in calculate_steady_state: {str(e)}", exc_info=True)
        return {
            "success": False,
            "message": f"Steady-state calculation failed: {str(e)}"
        }


async def get_timeseries_data(max_points: int = 200) -> Dict[str, Any]:
    """
    Retrieve the time series of the last simulation.

    Args:
        max_points: Approximate number of samples to return

    Returns:
        Dictionary with time_d, pH, VFA, alkalinity, methane and COD series
    """
    if design_state.last_simulation is None:
        return {
            "success": False,
            "message": "No simulation results available. Run simulate_digester first."
        }
    series = format_timeseries_output(design_state.last_simulation, max_points)
    return {
        "success": True,
        "n_points": len(series["time_d"]),
        "recorded_points": len(design_state.last_simulation.time_series),
        "time_series": series
    }
