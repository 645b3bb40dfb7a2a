"""
One-at-a-time sensitivity analysis of steady-state digester performance.

A single kinetic coefficient, reactor setting or the influent strength is
varied over a range around its baseline; every point is an independent
steady-state run, so points may be evaluated in a process pool.
"""

import dataclasses
import logging
from concurrent.futures import ProcessPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import numpy as np

from adm1.exceptions import InvalidConfigurationError
from adm1.parameters import ADM1Parameters, KineticParameters
from adm1.reactor import ReactorConfig
from adm1.simulation import run_to_steady_state
from adm1.state import COD_COMPONENTS, ADM1State
from core.config import get_settings

logger = logging.getLogger(__name__)

REACTOR_PARAMETERS = ("V_liq", "V_gas", "Q_in", "temperature")
INFLUENT_STRENGTH = "influent_strength"
OUTPUTS = ("methane_Nm3_d", "methane_content", "COD_removal", "pH", "VFA_total")

_KINETIC_FIELDS = {f.name for f in dataclasses.fields(KineticParameters)}


@dataclass(frozen=True)
class SensitivityRange:
    """Variation range; ``percentage`` ranges are relative to the baseline."""

    min: float = -20.0
    max: float = 20.0
    steps: int = 5
    type: str = "percentage"

    def validate(self) -> None:
        if self.steps < 2:
            raise InvalidConfigurationError("A sensitivity range needs at least 2 steps")
        if self.max <= self.min:
            raise InvalidConfigurationError("Sensitivity range max must exceed min")
        if self.type not in ("percentage", "absolute"):
            raise InvalidConfigurationError(f"Unknown range type '{self.type}'")


@dataclass
class SensitivityPoint:
    input_variation: float
    input_value: float
    outputs: Dict[str, float]


@dataclass
class SensitivityResult:
    parameter: str
    baseline_value: float
    baseline_outputs: Dict[str, float]
    points: List[SensitivityPoint] = field(default_factory=list)
    elasticities: Dict[str, float] = field(default_factory=dict)

    @property
    def most_sensitive_output(self) -> Optional[str]:
        if not self.elasticities:
            return None
        return max(self.elasticities, key=lambda k: abs(self.elasticities[k]))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "parameter": self.parameter,
            "baseline_value": self.baseline_value,
            "baseline_outputs": dict(self.baseline_outputs),
            "points": [dataclasses.asdict(p) for p in self.points],
            "elasticities": dict(self.elasticities),
            "most_sensitive_output": self.most_sensitive_output,
        }


def generate_variations(base_value: float, sweep: SensitivityRange) -> List[Tuple[float, float]]:
    """(variation, value) pairs; non-positive values are replaced by 1% of baseline."""
    sweep.validate()
    results = []
    for variation in np.linspace(sweep.min, sweep.max, sweep.steps):
        if sweep.type == "percentage":
            value = base_value * (1 + variation / 100.0)
        else:
            value = base_value + variation
        if value <= 0:
            value = base_value * 0.01
        results.append((float(variation), float(value)))
    return results


def calculate_elasticity(points: List[SensitivityPoint], output: str, baseline_value: float) -> float:
    """
    Percent change of ``output`` per percent change of the input, from the
    points on either side of the baseline.
    """
    if len(points) < 2 or baseline_value == 0:
        return 0.0
    baseline_idx = next((i for i, p in enumerate(points) if abs(p.input_variation) < 1e-3), 0)
    left = max(baseline_idx - 1, 0)
    right = min(baseline_idx + 1, len(points) - 1)
    if left == right:
        return 0.0
    delta_input = points[right].input_variation - points[left].input_variation
    if abs(delta_input) < 1e-3:
        return 0.0
    delta_output = (points[right].outputs[output] - points[left].outputs[output]) / baseline_value * 100.0
    return delta_output / delta_input


def baseline_value_of(parameter: str, reactor: ReactorConfig, params: ADM1Parameters) -> float:
    if parameter in _KINETIC_FIELDS:
        return getattr(params.kinetic, parameter)
    if parameter in REACTOR_PARAMETERS:
        return getattr(reactor, parameter)
    if parameter == INFLUENT_STRENGTH:
        return 1.0
    raise InvalidConfigurationError(
        f"Cannot vary '{parameter}': expected a kinetic parameter, one of {REACTOR_PARAMETERS} "
        f"or '{INFLUENT_STRENGTH}'"
    )


def apply_variation(
    parameter: str,
    value: float,
    influent: ADM1State,
    reactor: ReactorConfig,
    params: ADM1Parameters,
) -> Tuple[ADM1State, ReactorConfig, ADM1Parameters]:
    """Return new (influent, reactor, params) with one input replaced."""
    if parameter in _KINETIC_FIELDS:
        return influent, reactor, params.with_overrides(kinetic={parameter: value})
    if parameter in REACTOR_PARAMETERS:
        return influent, dataclasses.replace(reactor, **{parameter: value}), params
    if parameter == INFLUENT_STRENGTH:
        scaled = influent.to_dict()
        for name in COD_COMPONENTS:
            scaled[name] *= value
        return ADM1State.from_dict(scaled), reactor, params
    raise InvalidConfigurationError(f"Cannot vary '{parameter}'")


def steady_state_outputs(
    influent: ADM1State,
    reactor: ReactorConfig,
    params: ADM1Parameters,
    hrt_multiple: float = 5.0,
    time_step: float = None,
    solver: str = None,
) -> Dict[str, float]:
    result = run_to_steady_state(influent, reactor, params, hrt_multiple, time_step, solver)
    return {
        "methane_Nm3_d": result.gas_production.methane,
        "methane_content": result.gas_production.methane_content,
        "COD_removal": result.performance.COD_removal,
        "pH": result.effluent_quality.pH,
        "VFA_total": result.effluent_quality.VFA_total,
    }


def _evaluate_point(args) -> Dict[str, float]:
    parameter, value, influent, reactor, params, hrt_multiple, time_step, solver = args
    varied = apply_variation(parameter, value, influent, reactor, params)
    return steady_state_outputs(*varied, hrt_multiple=hrt_multiple, time_step=time_step, solver=solver)


def analyze_parameter(
    parameter: str,
    influent: ADM1State,
    reactor: ReactorConfig,
    params: ADM1Parameters = None,
    sweep: SensitivityRange = None,
    max_workers: int = None,
    hrt_multiple: float = 5.0,
    time_step: float = None,
    solver: str = None,
) -> SensitivityResult:
    """
    Sweep one input and record the steady-state response.

    Parameters
    ----------
    parameter : str
        Kinetic coefficient name (e.g. ``"k_m_ac"``), a reactor setting
        (``"V_liq"``, ``"V_gas"``, ``"Q_in"``, ``"temperature"``) or
        ``"influent_strength"`` (multiplier on all influent COD).
    influent, reactor, params
        Baseline case.
    sweep : SensitivityRange, optional
        Defaults to -20% .. +20% in 5 steps.
    max_workers : int, optional
        Process pool size; ``ADM1_SENSITIVITY_WORKERS`` when omitted. 1 runs
        serially in the calling process.

    Returns
    -------
    SensitivityResult
    """
    params = params or ADM1Parameters()
    sweep = sweep or SensitivityRange()
    base = baseline_value_of(parameter, reactor, params)
    variations = generate_variations(base, sweep)
    workers = max_workers or get_settings().sensitivity_workers

    logger.info(f"Sensitivity of {parameter} (baseline {base:g}): {len(variations)} points, {workers} worker(s)")
    jobs = [
        (parameter, value, influent, reactor, params, hrt_multiple, time_step, solver)
        for _, value in variations
    ]
    if workers > 1:
        with ProcessPoolExecutor(max_workers=workers) as pool:
            outputs = list(pool.map(_evaluate_point, jobs))
    else:
        outputs = [_evaluate_point(job) for job in jobs]

    points = [
        SensitivityPoint(input_variation=variation, input_value=value, outputs=out)
        for (variation, value), out in zip(variations, outputs)
    ]
    baseline_point = next((p for p in points if abs(p.input_variation) < 1e-3), None)
    if baseline_point is not None:
        baseline_outputs = baseline_point.outputs
    else:
        baseline_outputs = steady_state_outputs(influent, reactor, params, hrt_multiple, time_step, solver)

    result = SensitivityResult(parameter=parameter, baseline_value=base, baseline_outputs=baseline_outputs,
                               points=points)
    for output in OUTPUTS:
        result.elasticities[output] = calculate_elasticity(points, output, baseline_outputs[output])
    return result
