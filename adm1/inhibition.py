"""
Switching and inhibition functions for ADM1 kinetics.

All functions are stateless and tolerate zero or negative inputs by
clamping instead of raising.
"""

from dataclasses import dataclass, asdict
from typing import Dict

from adm1.parameters import KineticParameters

HILL_EXPONENT = 3


def monod(S: float, K: float) -> float:
    """Monod saturation S/(K+S); zero for non-positive S or K."""
    if S <= 0 or K <= 0:
        return 0.0
    return S / (K + S)


def non_competitive_inhibition(I: float, K: float) -> float:
    """K/(K+I) with I clamped at zero; zero for non-positive K."""
    if K <= 0:
        return 0.0
    return K / (K + max(0.0, I))


def ph_inhibition_lower(pH: float, pH_UL: float, pH_LL: float) -> float:
    """
    Lower-bound pH inhibition for acid-forming organisms.

    1 at or above ``pH_UL``, 0 at or below ``pH_LL`` and a Hill curve
    (exponent 3) centred on the midpoint of the bounds in between.
    """
    if pH >= pH_UL:
        return 1.0
    if pH <= pH_LL:
        return 0.0
    K = 10.0 ** (-(pH_UL + pH_LL) / 2.0)
    H = 10.0 ** (-pH)
    Kn = K ** HILL_EXPONENT
    return Kn / (Kn + H ** HILL_EXPONENT)


def ph_inhibition_range(pH: float, pH_UL: float, pH_LL: float) -> float:
    """
    Two-sided pH inhibition for acetogens and methanogens.

    Zero at and outside the bounds; inside, the product of a rising and a
    falling Hill sigmoid. The peak sits between the bounds and is below 1.
    """
    if pH <= pH_LL or pH >= pH_UL:
        return 0.0
    lower = 1.0 / (1.0 + 10.0 ** (HILL_EXPONENT * (pH_LL - pH)))
    upper = 1.0 / (1.0 + 10.0 ** (HILL_EXPONENT * (pH - pH_UL)))
    return lower * upper


def hydrogen_inhibition(S_h2: float, K_I_h2: float) -> float:
    return non_competitive_inhibition(S_h2, K_I_h2)


def free_ammonia_inhibition(S_nh3: float, K_I_nh3: float) -> float:
    return non_competitive_inhibition(S_nh3, K_I_nh3)


def nitrogen_limitation(S_IN: float, K_S_IN: float) -> float:
    return monod(S_IN, K_S_IN)


@dataclass(frozen=True)
class InhibitionFactors:
    """Individual inhibition terms at one instant (1 = uninhibited)."""

    I_pH_aa: float
    I_pH_ac: float
    I_pH_h2: float
    I_h2_fa: float
    I_h2_c4: float
    I_h2_pro: float
    I_nh3: float
    I_IN: float

    @property
    def acidogens(self) -> float:
        return self.I_pH_aa * self.I_IN

    @property
    def acetogens(self) -> float:
        return self.I_pH_ac * self.I_IN

    @property
    def acetoclastic_methanogens(self) -> float:
        return self.I_pH_ac * self.I_IN * self.I_nh3

    @property
    def hydrogenotrophic_methanogens(self) -> float:
        return self.I_pH_h2 * self.I_IN

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


def inhibition_factors(
    pH: float,
    S_h2: float,
    S_IN: float,
    S_nh3: float,
    kinetic: KineticParameters,
) -> InhibitionFactors:
    """Evaluate every inhibition term for the current liquid conditions."""
    return InhibitionFactors(
        I_pH_aa=ph_inhibition_lower(pH, kinetic.pH_UL_aa, kinetic.pH_LL_aa),
        I_pH_ac=ph_inhibition_range(pH, kinetic.pH_UL_ac, kinetic.pH_LL_ac),
        I_pH_h2=ph_inhibition_range(pH, kinetic.pH_UL_h2, kinetic.pH_LL_h2),
        I_h2_fa=hydrogen_inhibition(S_h2, kinetic.K_I_h2_fa),
        I_h2_c4=hydrogen_inhibition(S_h2, kinetic.K_I_h2_c4),
        I_h2_pro=hydrogen_inhibition(S_h2, kinetic.K_I_h2_pro),
        I_nh3=free_ammonia_inhibition(S_nh3, kinetic.K_I_nh3),
        I_IN=nitrogen_limitation(S_IN, kinetic.K_S_IN),
    )
