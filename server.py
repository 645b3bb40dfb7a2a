#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
ADM1 Digester Simulation MCP Server

A modular MCP server for dynamic simulation of anaerobic digesters with the
IWA Anaerobic Digestion Model No. 1 (24 liquid and 3 gas states).
Provides tools for:
- Digester configuration and influent fractionation
- Dynamic simulation (Euler, RK4, BDF) and steady-state estimation
- Process health and inhibition diagnostics
- One-at-a-time sensitivity analysis
"""

import logging
from contextlib import asynccontextmanager

from fastmcp import FastMCP

from core.config import get_settings

# Configure logging BEFORE any code that uses logger
logging.basicConfig(level=getattr(logging, get_settings().log_level, logging.INFO))
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(server):
    """Lifespan context manager; the engine needs no warmup."""
    settings = get_settings()
    logger.info(f"FastMCP lifespan started (default solver {settings.default_solver})")
    yield


# Create FastMCP instance with lifespan
mcp = FastMCP("ADM1 Digester Simulation Server", lifespan=lifespan)

# ==============================================================================
# LAZY IMPORTS: Tools are imported only when called to keep startup fast
# ==============================================================================

@mcp.tool()
async def configure_digester(
    V_liq: float,
    hrt_days: float = None,
    Q_in: float = None,
    V_gas: float = None,
    temperature_c: float = 35.0,
    pressure_bar: float = None
):
    """
    Configure digester volume, flow (or HRT), headspace and temperature.

    Args:
        V_liq: Liquid volume (m³)
        hrt_days: Hydraulic retention time (days), alternative to Q_in
        Q_in: Feed flow (m³/day)
        V_gas: Headspace volume (m³), default 10% of V_liq
        temperature_c: Operating temperature (°C)
        pressure_bar: Headspace pressure (bar)
    """
    from tools.basis_of_design import configure_digester as _impl
    return await _impl(V_liq, hrt_days, Q_in, V_gas, temperature_c, pressure_bar)

@mcp.tool()
async def characterize_influent(
    substrate_type: str = "primary_sludge",
    current_values: dict = None,
    adm1_state: dict = None
):
    """
    Fractionate the feed into ADM1 components.

    Args:
        substrate_type: primary_sludge, waste_activated_sludge, mixed_sludge,
                        food_waste, cattle_manure, pig_manure, chicken_manure,
                        energy_crops or custom
        current_values: Measurements (cod_mg_l, tkn_mg_l, nh4_n_mg_l,
                        alkalinity_mg_l_caco3, vs_mg_l, ph)
        adm1_state: Explicit ADM1 influent components instead of fractionation
    """
    from tools.basis_of_design import characterize_influent as _impl
    return await _impl(substrate_type, current_values, adm1_state)

@mcp.tool()
async def load_adm1_state(file_path: str = "./adm1_state.json"):
    """
    Load an ADM1 influent state from a JSON file into the design state.

    Args:
        file_path: Path to JSON file with ADM1 components (default: ./adm1_state.json)
    """
    from tools.basis_of_design import load_adm1_state as _impl
    return await _impl(file_path)

@mcp.tool()
async def simulate_digester(settings: dict = None, initial_state: dict = None, detail_level: str = "summary"):
    """
    Run a dynamic ADM1 simulation of the configured digester.

    Args:
        settings: end_time_days, time_step_days, output_interval_days,
                  solver ("euler", "rk4", "bdf"), ph_method, cation_mol_m3,
                  anion_mol_m3, max_steps
        initial_state: Initial liquid state (typical seeded digester if omitted)
        detail_level: "summary" or "full"
    """
    from tools.simulation import simulate_digester as _impl
    return await _impl(settings, initial_state, detail_level)

@mcp.tool()
async def calculate_steady_state(
    hrt_multiple: float = 5.0,
    solver: str = None,
    time_step_days: float = None,
    detail_level: str = "summary"
):
    """
    Approximate the steady state by simulating several hydraulic retention times.

    Args:
        hrt_multiple: Number of HRTs to simulate (default 5)
        solver: "euler", "rk4" or "bdf" (ADM1_DEFAULT_SOLVER if omitted)
        time_step_days: Integration step (solver default if omitted)
        detail_level: "summary" or "full"
    """
    from tools.simulation import calculate_steady_state as _impl
    return await _impl(hrt_multiple, solver, time_step_days, detail_level)

@mcp.tool()
async def get_timeseries_data(max_points: int = 200):
    """Retrieve the downsampled time series of the last simulation."""
    from tools.simulation import get_timeseries_data as _impl
    return await _impl(max_points)

@mcp.tool()
async def assess_process_health():
    """Analyze microbial group health, inhibition and process rates of the last simulation."""
    from tools.process_health import assess_process_health as _impl
    return await _impl()

@mcp.tool()
async def run_sensitivity_analysis(
    parameter: str,
    min_percent: float = -20.0,
    max_percent: float = 20.0,
    steps: int = 5,
    hrt_multiple: float = 5.0,
    solver: str = None,
    max_workers: int = None
):
    """
    Vary one kinetic parameter, reactor setting or the influent strength.

    Args:
        parameter: e.g. "k_m_ac", "K_S_pro", "V_liq", "Q_in", "temperature",
                   "influent_strength"
        min_percent: Lower bound of the variation (%)
        max_percent: Upper bound of the variation (%)
        steps: Number of points
        hrt_multiple: HRTs simulated per point
        solver: Integrator for each point
        max_workers: Process pool size
    """
    from tools.sensitivity import run_sensitivity_analysis as _impl
    return await _impl(parameter, min_percent, max_percent, steps, hrt_multiple, solver, max_workers)

@mcp.tool()
async def get_design_state():
    """Get current design state with completion status and next steps."""
    from tools.state_management import get_design_state as _impl
    return await _impl()

@mcp.tool()
async def reset_design():
    """Reset design state to start a new session."""
    from tools.state_management import reset_design as _impl
    return await _impl()


def main():
    """Run the MCP server."""
    settings = get_settings()
    logger.info("="*60)
    logger.info("ADM1 Digester Simulation MCP Server")
    logger.info("="*60)
    logger.info("")
    logger.info("Registered tools (10 total):")
    logger.info("  Configuration:")
    logger.info("    1. configure_digester - Set volume, HRT, headspace and temperature")
    logger.info("    2. characterize_influent - Fractionate feed into ADM1 components")
    logger.info("    3. load_adm1_state - Load ADM1 influent from JSON file")
    logger.info("  Simulation:")
    logger.info("    4. simulate_digester - Dynamic ADM1 simulation")
    logger.info("    5. calculate_steady_state - Run several HRTs to steady state")
    logger.info("    6. get_timeseries_data - Time series of the last simulation")
    logger.info("  Analysis:")
    logger.info("    7. assess_process_health - Inhibition and process rate diagnostics")
    logger.info("    8. run_sensitivity_analysis - One-at-a-time parameter sweep")
    logger.info("  Session:")
    logger.info("    9. get_design_state - View current state and next steps")
    logger.info("   10. reset_design - Reset state for a new session")
    logger.info("")
    logger.info(f"Default solver: {settings.default_solver}, step ceiling: {settings.max_steps}, "
                f"sensitivity workers: {settings.sensitivity_workers}")
    logger.info("Starting server...")
    logger.info("="*60)

    mcp.run()


if __name__ == "__main__":
    main()
