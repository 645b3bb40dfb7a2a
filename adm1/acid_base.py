"""
Acid-base equilibrium of the digester liquor.

pH is found from the electroneutrality condition

    [H+] + [NH4+] + S_cat - [OH-] - [HCO3-] - [Ac-] - [Pr-] - [Bu-] - [Va-] - S_an = 0

solved for [H+] in kmol/m3. The default solver is Newton-Raphson written as
a small state machine (iterate, check, rescue); Brent's method from scipy is
available as an alternative with the same result contract.
"""

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Tuple

from scipy.optimize import brenth

from adm1.exceptions import InvalidConfigurationError
from adm1.parameters import (
    COD_PER_MOL_AC,
    COD_PER_MOL_BU,
    COD_PER_MOL_PRO,
    COD_PER_MOL_VA,
    PhysicoChemicalParameters,
)
from adm1.state import ADM1State

logger = logging.getLogger(__name__)

SOLVER_METHODS = ("newton", "brent")
NEUTRAL_PH = 7.0


@dataclass(frozen=True)
class ChargeBalance:
    """Totals entering the charge balance [kmol/m3]."""

    va: float
    bu: float
    pro: float
    ac: float
    ic: float
    IN: float
    cat: float = 0.0
    an: float = 0.0

    @classmethod
    def from_state(cls, state: ADM1State, S_cat: float = 0.0, S_an: float = 0.0) -> "ChargeBalance":
        """
        Convert engine units to kmol/m3.

        ``S_cat`` and ``S_an`` are background strong ions in mol/m3.
        """
        return cls(
            va=max(0.0, state.S_va) / (COD_PER_MOL_VA * 1000.0),
            bu=max(0.0, state.S_bu) / (COD_PER_MOL_BU * 1000.0),
            pro=max(0.0, state.S_pro) / (COD_PER_MOL_PRO * 1000.0),
            ac=max(0.0, state.S_ac) / (COD_PER_MOL_AC * 1000.0),
            ic=max(0.0, state.S_IC) / 1000.0,
            IN=max(0.0, state.S_IN) / 1000.0,
            cat=max(0.0, S_cat) / 1000.0,
            an=max(0.0, S_an) / 1000.0,
        )

    def residual(self, H: float, p: PhysicoChemicalParameters) -> Tuple[float, float]:
        """Charge imbalance at ``H`` and its analytic derivative d/dH."""
        va = self.va * p.K_a_va / (p.K_a_va + H)
        bu = self.bu * p.K_a_bu / (p.K_a_bu + H)
        pro = self.pro * p.K_a_pro / (p.K_a_pro + H)
        ac = self.ac * p.K_a_ac / (p.K_a_ac + H)
        hco3 = self.ic * p.K_a_co2 / (p.K_a_co2 + H)
        nh4 = self.IN * H / (p.K_a_IN + H)
        oh = p.K_w / H

        res = H + nh4 + self.cat - oh - hco3 - ac - pro - bu - va - self.an

        deriv = (
            1.0
            + self.IN * p.K_a_IN / (p.K_a_IN + H) ** 2
            + p.K_w / (H * H)
            + self.ic * p.K_a_co2 / (p.K_a_co2 + H) ** 2
            + self.ac * p.K_a_ac / (p.K_a_ac + H) ** 2
            + self.pro * p.K_a_pro / (p.K_a_pro + H) ** 2
            + self.bu * p.K_a_bu / (p.K_a_bu + H) ** 2
            + self.va * p.K_a_va / (p.K_a_va + H) ** 2
        )
        return res, deriv


@dataclass(frozen=True)
class PHResult:
    pH: float
    converged: bool
    iterations: int
    residual: float
    rescues: int = 0


class _Phase(Enum):
    ITERATE = "iterate"
    CHECK = "check"
    RESCUE = "rescue"
    DONE = "done"


class PHSolver:
    """
    Charge-balance pH solver.

    Parameters
    ----------
    max_iter : int
        Iteration limit for either method.
    tol : float
        Absolute charge-balance residual [kmol/m3] treated as converged.
    ph_initial : float
        Newton starting point.
    ph_min, ph_max : float
        Output clamp; also the bracket for Brent's method.
    method : str
        ``"newton"`` or ``"brent"``.

    Notes
    -----
    When a Newton step would give a non-positive [H+], the rescue step moves pH
    halfway toward 7, or up by one unit when already at or above 7. The
    residual increases with [H+], so the root lies above the current pH.
    Non-convergence is not an error: the best estimate is returned with
    ``converged=False``.
    """

    def __init__(
        self,
        max_iter: int = 100,
        tol: float = 1e-12,
        ph_initial: float = 7.0,
        ph_min: float = 4.0,
        ph_max: float = 9.0,
        method: str = "newton",
    ):
        if max_iter < 1:
            raise InvalidConfigurationError("max_iter must be at least 1")
        if tol <= 0:
            raise InvalidConfigurationError("tol must be positive")
        if not ph_min < ph_max:
            raise InvalidConfigurationError("ph_min must be below ph_max")
        if method not in SOLVER_METHODS:
            raise InvalidConfigurationError(f"Unknown pH solver method '{method}', expected one of {SOLVER_METHODS}")
        self.max_iter = max_iter
        self.tol = tol
        self.ph_initial = ph_initial
        self.ph_min = ph_min
        self.ph_max = ph_max
        self.method = method

    def _clamp(self, pH: float) -> float:
        return max(self.ph_min, min(self.ph_max, pH))

    def solve(self, balance: ChargeBalance, params: PhysicoChemicalParameters) -> PHResult:
        if self.method == "brent":
            return self._solve_brent(balance, params)
        return self._solve_newton(balance, params)

    def _solve_newton(self, balance: ChargeBalance, params: PhysicoChemicalParameters) -> PHResult:
        pH = self.ph_initial
        best_pH, best_res = pH, math.inf
        iterations = 0
        rescues = 0
        converged = False
        residual = deriv = H_new = 0.0
        phase = _Phase.ITERATE

        while phase is not _Phase.DONE:
            if phase is _Phase.ITERATE:
                H = 10.0 ** (-pH)
                residual, deriv = balance.residual(H, params)
                if abs(residual) < abs(best_res):
                    best_pH, best_res = pH, residual
                if abs(residual) < self.tol:
                    converged = True
                    phase = _Phase.DONE
                    continue
                if iterations >= self.max_iter:
                    phase = _Phase.DONE
                    continue
                iterations += 1
                H_new = H - residual / deriv
                phase = _Phase.CHECK
            elif phase is _Phase.CHECK:
                if H_new > 0 and math.isfinite(H_new):
                    pH = -math.log10(H_new)
                    phase = _Phase.ITERATE
                else:
                    phase = _Phase.RESCUE
            elif phase is _Phase.RESCUE:
                rescues += 1
                averaged = (pH + NEUTRAL_PH) / 2.0
                pH = averaged if averaged > pH else pH + 1.0
                phase = _Phase.ITERATE

        if not converged:
            logger.debug(
                f"Newton pH solve did not converge in {self.max_iter} iterations "
                f"(best residual {best_res:.3e} at pH {best_pH:.3f})"
            )
        final_pH = pH if converged else best_pH
        return PHResult(
            pH=self._clamp(final_pH),
            converged=converged,
            iterations=iterations,
            residual=residual if converged else best_res,
            rescues=rescues,
        )

    def _solve_brent(self, balance: ChargeBalance, params: PhysicoChemicalParameters) -> PHResult:
        def f(pH):
            return balance.residual(10.0 ** (-pH), params)[0]

        f_low, f_high = f(self.ph_min), f(self.ph_max)
        if f_low * f_high > 0:
            # Root outside the bracket: the residual falls with pH, so a
            # positive residual at ph_max means the root lies above it.
            edge = self.ph_max if f_high > 0 else self.ph_min
            return PHResult(pH=edge, converged=False, iterations=0, residual=min(f_low, f_high, key=abs))

        root, info = brenth(
            f, self.ph_min, self.ph_max, xtol=1e-12, maxiter=self.max_iter, full_output=True, disp=False
        )
        return PHResult(
            pH=self._clamp(root),
            converged=bool(info.converged),
            iterations=int(info.iterations),
            residual=f(root),
        )


def calculate_ph(
    state: ADM1State,
    params: PhysicoChemicalParameters,
    S_cat: float = 0.0,
    S_an: float = 0.0,
    solver: PHSolver = None,
) -> PHResult:
    """Solve the charge balance of ``state``; background ions in mol/m3."""
    solver = solver or PHSolver()
    return solver.solve(ChargeBalance.from_state(state, S_cat, S_an), params)


def calculate_free_ammonia(S_IN: float, pH: float, K_a_IN: float) -> float:
    """Un-ionised ammonia, in the units of ``S_IN``."""
    H = 10.0 ** (-pH)
    return max(0.0, S_IN) * K_a_IN / (K_a_IN + H)


def calculate_dissolved_co2(S_IC: float, pH: float, K_a_co2: float) -> float:
    """Dissolved CO2 share of total inorganic carbon, in the units of ``S_IC``."""
    H = 10.0 ** (-pH)
    return max(0.0, S_IC) * H / (K_a_co2 + H)


def calculate_alkalinity(state: ADM1State, pH: float, params: PhysicoChemicalParameters) -> float:
    """
    Total alkalinity [mol eq/m3]: bicarbonate plus free ammonia minus VFA anions.

    Multiply by 50 for g CaCO3/m3.
    """
    H = 10.0 ** (-pH)
    hco3 = max(0.0, state.S_IC) * params.K_a_co2 / (params.K_a_co2 + H)
    nh3 = calculate_free_ammonia(state.S_IN, pH, params.K_a_IN)
    vfa = (
        max(0.0, state.S_ac) / COD_PER_MOL_AC * params.K_a_ac / (params.K_a_ac + H)
        + max(0.0, state.S_pro) / COD_PER_MOL_PRO * params.K_a_pro / (params.K_a_pro + H)
        + max(0.0, state.S_bu) / COD_PER_MOL_BU * params.K_a_bu / (params.K_a_bu + H)
        + max(0.0, state.S_va) / COD_PER_MOL_VA * params.K_a_va / (params.K_a_va + H)
    )
    return hco3 + nh3 - vfa
