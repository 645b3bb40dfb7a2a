"""Qualitative classification of digester conditions from fixed threshold tables."""

from dataclasses import dataclass, field
from typing import Any, Dict, List

# (lower, upper, label), first match wins
PH_STABILITY_BANDS = (
    (6.8, 7.4, "stable"),
    (6.5, 7.8, "marginal"),
)
# Total VFA [g COD/m3]: (exclusive upper limit, label)
VFA_ACCUMULATION_BANDS = (
    (500.0, "low"),
    (2000.0, "moderate"),
)
# Inhibition factor: (exclusive lower limit, label)
INHIBITION_BANDS = (
    (0.9, "NONE"),
    (0.7, "MILD"),
    (0.5, "MODERATE"),
    (0.3, "SEVERE"),
)


def classify_ph_stability(pH: float) -> str:
    for low, high, label in PH_STABILITY_BANDS:
        if low <= pH <= high:
            return label
    return "unstable"


def classify_vfa_accumulation(vfa_total: float) -> str:
    for limit, label in VFA_ACCUMULATION_BANDS:
        if vfa_total < limit:
            return label
    return "high"


def get_inhibition_status(inhibition_factor: float) -> str:
    """Classify inhibition severity based on factor."""
    for limit, label in INHIBITION_BANDS:
        if inhibition_factor > limit:
            return label
    return "CRITICAL"


@dataclass
class Diagnostics:
    pH_stability: str = "stable"
    VFA_accumulation: str = "low"
    inhibition_status: str = "Normal"
    inhibition_levels: Dict[str, str] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "warnings": list(self.warnings),
            "errors": list(self.errors),
            "pH_stability": self.pH_stability,
            "VFA_accumulation": self.VFA_accumulation,
            "inhibition_status": self.inhibition_status,
            "inhibition_levels": dict(self.inhibition_levels),
        }


def assess(pH: float, vfa_total: float, inhibition: Dict[str, float]) -> Diagnostics:
    """
    Build the qualitative part of a diagnostics record.

    ``inhibition_status`` is "Normal" only when pH is stable and VFA low;
    ``inhibition_levels`` grades each individual factor.
    """
    ph_band = classify_ph_stability(pH)
    vfa_band = classify_vfa_accumulation(vfa_total)
    return Diagnostics(
        pH_stability=ph_band,
        VFA_accumulation=vfa_band,
        inhibition_status="Normal" if ph_band == "stable" and vfa_band == "low" else "Check conditions",
        inhibition_levels={name: get_inhibition_status(value) for name, value in inhibition.items()},
    )
