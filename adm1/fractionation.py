"""
Influent characterisation for ADM1.

Maps conventional wastewater measurements (COD, TKN, alkalinity, ...) onto
the 24-component state using fixed COD and nitrogen fractions. Fresh feed
carries no active biomass and no volatile fatty acids.
"""

import logging
import math
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Tuple

from adm1.exceptions import InvalidConfigurationError
from adm1.parameters import CACO3_G_PER_EQ, N_G_PER_MOL
from adm1.state import STATE_ORDER, ADM1State
from core.utils import to_float

logger = logging.getLogger(__name__)

FRACTION_SUM_TOLERANCE = 1e-3
TRACE_DISSOLVED_GAS = 1e-8  # g COD/m3


class SubstrateType(str, Enum):
    PRIMARY_SLUDGE = "primary_sludge"
    WASTE_ACTIVATED_SLUDGE = "waste_activated_sludge"
    MIXED_SLUDGE = "mixed_sludge"
    FOOD_WASTE = "food_waste"
    CATTLE_MANURE = "cattle_manure"
    PIG_MANURE = "pig_manure"
    CHICKEN_MANURE = "chicken_manure"
    ENERGY_CROPS = "energy_crops"
    CUSTOM = "custom"


@dataclass(frozen=True)
class ConventionalInfluent:
    """
    Bulk influent measurements.

    Q [m3/d], COD/VS/TS [g/m3], TKN/NH4_N [g N/m3], alkalinity
    [g CaCO3/m3], pH [-], temperature [degC].
    """

    Q: float
    COD: float
    TKN: float
    alkalinity: float
    NH4_N: float = 0.0
    VS: float = 0.0
    TS: float = 0.0
    pH: float = 7.0
    temperature: float = 35.0

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


@dataclass(frozen=True)
class Fractionation:
    """COD fractions (sum to 1) and TKN fractions (sum to 1)."""

    f_S_su: float
    f_S_aa: float
    f_S_fa: float
    f_S_I: float
    f_X_c: float
    f_X_ch: float
    f_X_pr: float
    f_X_li: float
    f_X_I: float
    f_S_IN: float
    f_S_Norg: float
    f_X_Norg: float

    @property
    def cod_sum(self) -> float:
        return (self.f_S_su + self.f_S_aa + self.f_S_fa + self.f_S_I + self.f_X_c
                + self.f_X_ch + self.f_X_pr + self.f_X_li + self.f_X_I)

    @property
    def nitrogen_sum(self) -> float:
        return self.f_S_IN + self.f_S_Norg + self.f_X_Norg

    def validate(self) -> None:
        negative = [k for k, v in asdict(self).items() if v < 0]
        if negative:
            raise InvalidConfigurationError(f"Negative fraction(s): {', '.join(negative)}")
        if abs(self.cod_sum - 1.0) > FRACTION_SUM_TOLERANCE:
            raise InvalidConfigurationError(f"COD fractions must sum to 1.0, got {self.cod_sum:.4f}")
        if abs(self.nitrogen_sum - 1.0) > FRACTION_SUM_TOLERANCE:
            raise InvalidConfigurationError(f"Nitrogen fractions must sum to 1.0, got {self.nitrogen_sum:.4f}")

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


def _f(su, aa, fa, sI, xc, ch, pr, li, xI, IN, Norg_s, Norg_x) -> Fractionation:
    return Fractionation(su, aa, fa, sI, xc, ch, pr, li, xI, IN, Norg_s, Norg_x)


DEFAULT_FRACTIONATIONS: Dict[SubstrateType, Fractionation] = {
    SubstrateType.PRIMARY_SLUDGE: _f(0.05, 0.03, 0.02, 0.05, 0.40, 0.10, 0.15, 0.10, 0.10, 0.20, 0.10, 0.70),
    SubstrateType.WASTE_ACTIVATED_SLUDGE: _f(0.02, 0.02, 0.01, 0.05, 0.50, 0.08, 0.20, 0.07, 0.05, 0.15, 0.05, 0.80),
    SubstrateType.MIXED_SLUDGE: _f(0.04, 0.03, 0.02, 0.05, 0.45, 0.09, 0.17, 0.08, 0.07, 0.18, 0.07, 0.75),
    SubstrateType.FOOD_WASTE: _f(0.15, 0.10, 0.05, 0.02, 0.20, 0.20, 0.15, 0.10, 0.03, 0.10, 0.15, 0.75),
    SubstrateType.CATTLE_MANURE: _f(0.03, 0.02, 0.02, 0.08, 0.30, 0.25, 0.10, 0.05, 0.15, 0.25, 0.10, 0.65),
    SubstrateType.PIG_MANURE: _f(0.05, 0.04, 0.03, 0.05, 0.35, 0.15, 0.15, 0.08, 0.10, 0.30, 0.10, 0.60),
    SubstrateType.CHICKEN_MANURE: _f(0.04, 0.05, 0.02, 0.04, 0.40, 0.12, 0.18, 0.05, 0.10, 0.35, 0.10, 0.55),
    SubstrateType.ENERGY_CROPS: _f(0.08, 0.02, 0.01, 0.03, 0.30, 0.35, 0.08, 0.05, 0.08, 0.05, 0.10, 0.85),
    SubstrateType.CUSTOM: _f(0.05, 0.03, 0.02, 0.05, 0.35, 0.15, 0.15, 0.10, 0.10, 0.20, 0.10, 0.70),
}


@dataclass(frozen=True)
class SubstrateCharacteristics:
    name: str
    COD_typical: float  # g COD/m3
    VS_typical: float  # g/m3
    TKN_typical: float  # g N/m3
    C_N_ratio: float
    methane_potential: float  # Nm3 CH4/kg VS
    HRT_typical: Tuple[float, float]  # d

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["HRT_typical"] = list(self.HRT_typical)
        return data


SUBSTRATE_CHARACTERISTICS: Dict[SubstrateType, SubstrateCharacteristics] = {
    SubstrateType.PRIMARY_SLUDGE: SubstrateCharacteristics("Primary Sludge", 40000, 25000, 1500, 15, 0.35, (15, 20)),
    SubstrateType.WASTE_ACTIVATED_SLUDGE: SubstrateCharacteristics(
        "Waste Activated Sludge", 30000, 22000, 2500, 8, 0.25, (20, 25)),
    SubstrateType.MIXED_SLUDGE: SubstrateCharacteristics("Mixed Sludge", 35000, 23000, 2000, 12, 0.30, (15, 22)),
    SubstrateType.FOOD_WASTE: SubstrateCharacteristics("Food Waste", 120000, 100000, 5000, 18, 0.45, (20, 30)),
    SubstrateType.CATTLE_MANURE: SubstrateCharacteristics("Cattle Manure", 60000, 45000, 2800, 20, 0.25, (20, 30)),
    SubstrateType.PIG_MANURE: SubstrateCharacteristics("Pig Manure", 50000, 35000, 4500, 12, 0.30, (15, 25)),
    SubstrateType.CHICKEN_MANURE: SubstrateCharacteristics("Chicken Manure", 80000, 55000, 8000, 8, 0.35, (20, 30)),
    SubstrateType.ENERGY_CROPS: SubstrateCharacteristics(
        "Energy Crops (Maize)", 150000, 120000, 3000, 40, 0.40, (25, 40)),
    SubstrateType.CUSTOM: SubstrateCharacteristics("Custom Substrate", 50000, 35000, 2000, 15, 0.30, (15, 30)),
}

# g CaCO3/m3, used when no measurement is given
DEFAULT_ALKALINITY_MG_CACO3_L = 3000.0


def get_fractionation(substrate) -> Fractionation:
    try:
        return DEFAULT_FRACTIONATIONS[SubstrateType(substrate)]
    except ValueError:
        valid = ", ".join(s.value for s in SubstrateType)
        raise InvalidConfigurationError(f"Unknown substrate type '{substrate}'. Valid types: {valid}") from None


def fractionate_influent(conventional: ConventionalInfluent, fractionation: Fractionation) -> ADM1State:
    """
    Convert conventional measurements into an ADM1 influent state.

    Parameters
    ----------
    conventional : ConventionalInfluent
        Bulk measurements of the feed.
    fractionation : Fractionation
        COD and nitrogen fractions, e.g. from ``DEFAULT_FRACTIONATIONS``.

    Returns
    -------
    ADM1State
        COD routed by fraction; ``S_IN = TKN*f_S_IN/14`` [mol N/m3];
        ``S_IC = alkalinity/50`` [mol/m3]; trace dissolved H2 and CH4;
        zero biomass and zero VFA.
    """
    fractionation.validate()
    if conventional.COD < 0 or conventional.TKN < 0 or conventional.alkalinity < 0:
        raise InvalidConfigurationError("COD, TKN and alkalinity must be non-negative")

    cod = conventional.COD
    f = fractionation
    logger.debug(f"Fractionating COD {cod:.0f} g/m3, TKN {conventional.TKN:.0f} g N/m3")
    return ADM1State(
        S_su=cod * f.f_S_su,
        S_aa=cod * f.f_S_aa,
        S_fa=cod * f.f_S_fa,
        S_h2=TRACE_DISSOLVED_GAS,
        S_ch4=TRACE_DISSOLVED_GAS,
        S_IC=conventional.alkalinity / CACO3_G_PER_EQ,
        S_IN=conventional.TKN * f.f_S_IN / N_G_PER_MOL,
        S_I=cod * f.f_S_I,
        X_c=cod * f.f_X_c,
        X_ch=cod * f.f_X_ch,
        X_pr=cod * f.f_X_pr,
        X_li=cod * f.f_X_li,
        X_I=cod * f.f_X_I,
    )


def conventional_influent_for(substrate, Q: float, alkalinity: float = DEFAULT_ALKALINITY_MG_CACO3_L,
                              temperature: float = 35.0) -> ConventionalInfluent:
    """Typical bulk characteristics of a preset substrate at flow ``Q``."""
    f = get_fractionation(substrate)
    chars = SUBSTRATE_CHARACTERISTICS[SubstrateType(substrate)]
    return ConventionalInfluent(
        Q=Q,
        COD=chars.COD_typical,
        VS=chars.VS_typical,
        TKN=chars.TKN_typical,
        NH4_N=chars.TKN_typical * f.f_S_IN,
        alkalinity=alkalinity,
        temperature=temperature,
    )


def validate_adm1_state(adm1_state: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Check a component dictionary for completeness, type and sign.

    Values may be numbers or numeric strings; anything else (null, text,
    NaN) is listed under ``non_numeric_values`` and makes the state invalid.

    Returns
    -------
    dict
        ``valid``, ``missing_components``, ``non_numeric_values``,
        ``negative_values``, ``unknown_components`` and ``warnings``.
    """
    values = {c: to_float(v) for c, v in adm1_state.items()}
    non_numeric = [c for c in STATE_ORDER if c in values and (values[c] is None or not math.isfinite(values[c]))]
    numeric = {c: v for c, v in values.items() if c not in non_numeric}
    result = {
        "valid": True,
        "warnings": [],
        "missing_components": [c for c in STATE_ORDER if c not in adm1_state],
        "non_numeric_values": non_numeric,
        "negative_values": [c for c in STATE_ORDER if (numeric.get(c) or 0.0) < 0],
        "unknown_components": sorted(set(adm1_state) - set(STATE_ORDER)),
    }
    biomass = sum(numeric.get(c) or 0.0 for c in ("X_su", "X_aa", "X_fa", "X_c4", "X_pro", "X_ac", "X_h2"))
    if biomass == 0:
        result["warnings"].append("No active biomass; suitable as influent, not as an initial reactor state")
    if result["missing_components"]:
        result["warnings"].append(f"Missing components default to zero: {', '.join(result['missing_components'])}")
    if result["non_numeric_values"] or result["negative_values"] or result["unknown_components"]:
        result["valid"] = False
    return result
