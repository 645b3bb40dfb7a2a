"""Evaluation of the 19 ADM1 biochemical process rates."""

from dataclasses import dataclass
from typing import Dict, List, Tuple

import numpy as np

from adm1.inhibition import InhibitionFactors, inhibition_factors, monod
from adm1.parameters import KineticParameters
from adm1.state import ADM1State
from adm1.stoichiometry import N_PROCESSES, PROCESSES

# Guards the valerate/butyrate split when both pools are empty
C4_SPLIT_EPSILON = 1e-10


@dataclass(frozen=True)
class ProcessRate:
    process: str
    name: str
    rate: float
    rate_equation: str

    def to_dict(self) -> Dict[str, object]:
        return {
            "process": self.process,
            "name": self.name,
            "rate": self.rate,
            "rate_equation": self.rate_equation,
        }


def rhos_adm1(state: ADM1State, kinetic: KineticParameters, factors: InhibitionFactors) -> np.ndarray:
    """
    Process rate vector [g COD/(m3 d)] for given inhibition factors.

    Parameters
    ----------
    state : ADM1State
        Liquid state; negative entries are treated as zero.
    kinetic : KineticParameters
        Temperature-corrected kinetics.
    factors : InhibitionFactors
        Pre-computed inhibition terms.

    Returns
    -------
    numpy.ndarray
        19 non-negative rates in process order.
    """
    s = state
    k = kinetic
    X = {name: max(0.0, getattr(s, name)) for name in (
        "X_c", "X_ch", "X_pr", "X_li", "X_su", "X_aa", "X_fa", "X_c4", "X_pro", "X_ac", "X_h2",
    )}
    S_va, S_bu = max(0.0, s.S_va), max(0.0, s.S_bu)
    c4_total = S_va + S_bu + C4_SPLIT_EPSILON

    I_acidogens = factors.acidogens
    I_acetogens = factors.acetogens

    rhos = np.zeros(N_PROCESSES)
    rhos[0] = k.k_dis * X["X_c"]
    rhos[1] = k.k_hyd_ch * X["X_ch"]
    rhos[2] = k.k_hyd_pr * X["X_pr"]
    rhos[3] = k.k_hyd_li * X["X_li"]
    rhos[4] = k.k_m_su * monod(s.S_su, k.K_S_su) * X["X_su"] * I_acidogens
    rhos[5] = k.k_m_aa * monod(s.S_aa, k.K_S_aa) * X["X_aa"] * I_acidogens
    rhos[6] = k.k_m_fa * monod(s.S_fa, k.K_S_fa) * X["X_fa"] * I_acetogens * factors.I_h2_fa
    rhos[7] = k.k_m_c4 * monod(S_va, k.K_S_c4) * X["X_c4"] * I_acetogens * factors.I_h2_c4 * S_va / c4_total
    rhos[8] = k.k_m_c4 * monod(S_bu, k.K_S_c4) * X["X_c4"] * I_acetogens * factors.I_h2_c4 * S_bu / c4_total
    rhos[9] = k.k_m_pro * monod(s.S_pro, k.K_S_pro) * X["X_pro"] * I_acetogens * factors.I_h2_pro
    rhos[10] = k.k_m_ac * monod(s.S_ac, k.K_S_ac) * X["X_ac"] * factors.acetoclastic_methanogens
    rhos[11] = k.k_m_h2 * monod(s.S_h2, k.K_S_h2) * X["X_h2"] * factors.hydrogenotrophic_methanogens
    for i, biomass in enumerate(("X_su", "X_aa", "X_fa", "X_c4", "X_pro", "X_ac", "X_h2"), start=12):
        rhos[i] = k.k_dec * X[biomass]
    return rhos


def describe_rates(rhos: np.ndarray) -> List[ProcessRate]:
    """Attach identifiers and rate expressions to a rate vector."""
    return [
        ProcessRate(process=pid, name=name, rate=float(r), rate_equation=f"{expr} = {r:.3e}")
        for (pid, name, expr), r in zip(PROCESSES, rhos)
    ]


def calculate_process_rates(
    state: ADM1State,
    kinetic: KineticParameters,
    pH: float,
    S_nh3: float,
) -> Tuple[np.ndarray, List[ProcessRate]]:
    """
    Compute the 19 process rates and their human-readable records.

    ``S_nh3`` is the free ammonia concentration in the units of ``S_IN``.
    """
    factors = inhibition_factors(pH, state.S_h2, state.S_IN, S_nh3, kinetic)
    rhos = rhos_adm1(state, kinetic, factors)
    return rhos, describe_rates(rhos)
