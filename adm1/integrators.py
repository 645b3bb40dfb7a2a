"""
Time integrators for the ADM1 system.

Each integrator advances ``y`` from ``t`` to ``t + dt`` given a right-hand
side ``rhs(t, y)``. Explicit methods are cheap but limited by the stiffest
mode, normally hydrogen uptake (``k_m_h2 * X_h2 / K_S_h2 * dt`` must stay
below their stability bound, so steps are of order 1e-6 d); ``bdf`` delegates
to scipy's implicit BDF solver for each step.
"""

import logging
from typing import Callable, Dict

import numpy as np
from scipy.integrate import solve_ivp

from adm1.exceptions import IntegrationError, InvalidConfigurationError

logger = logging.getLogger(__name__)

RHS = Callable[[float, np.ndarray], np.ndarray]
Integrator = Callable[[RHS, float, np.ndarray, float], np.ndarray]

# Largest stable k*dt on the negative real axis
STABILITY_LIMITS = {
    "euler": 2.0,
    "rk4": 2.785,
    "bdf": float("inf"),
}


def euler_step(rhs: RHS, t: float, y: np.ndarray, dt: float) -> np.ndarray:
    return y + dt * rhs(t, y)


def rk4_step(rhs: RHS, t: float, y: np.ndarray, dt: float) -> np.ndarray:
    k1 = rhs(t, y)
    k2 = rhs(t + dt / 2, y + dt / 2 * k1)
    k3 = rhs(t + dt / 2, y + dt / 2 * k2)
    k4 = rhs(t + dt, y + dt * k3)
    return y + dt / 6 * (k1 + 2 * k2 + 2 * k3 + k4)


def bdf_step(rhs: RHS, t: float, y: np.ndarray, dt: float, rtol: float = 1e-5, atol: float = 1e-9) -> np.ndarray:
    sol = solve_ivp(rhs, (t, t + dt), y, method="BDF", rtol=rtol, atol=atol)
    if not sol.success:
        raise IntegrationError(f"BDF step from t={t:.4f} failed: {sol.message}")
    return sol.y[:, -1]


INTEGRATORS: Dict[str, Integrator] = {
    "euler": euler_step,
    "rk4": rk4_step,
    "bdf": bdf_step,
}


def get_integrator(name: str) -> Integrator:
    try:
        return INTEGRATORS[name]
    except KeyError:
        raise InvalidConfigurationError(
            f"Unknown solver '{name}', expected one of {sorted(INTEGRATORS)}"
        ) from None


def max_stable_time_step(name: str, stiffest_rate: float) -> float:
    """Largest time step the named integrator tolerates for a given rate [1/d]."""
    if stiffest_rate <= 0:
        return float("inf")
    return STABILITY_LIMITS.get(name, float("inf")) / stiffest_rate
