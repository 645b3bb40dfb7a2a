"""
ADM1 liquid state and headspace gas phase records.

The 24 liquid components are held as named fields. ``STATE_ORDER`` is the
one canonical ordering and is only consulted at the array/dict boundary,
which is also where negative values are clamped to zero.
"""

import dataclasses
from dataclasses import dataclass
from typing import Dict, Iterable, Mapping

import numpy as np

STATE_ORDER = (
    "S_su", "S_aa", "S_fa", "S_va", "S_bu", "S_pro", "S_ac", "S_h2",
    "S_ch4", "S_IC", "S_IN", "S_I",
    "X_c", "X_ch", "X_pr", "X_li", "X_su", "X_aa", "X_fa", "X_c4",
    "X_pro", "X_ac", "X_h2", "X_I",
)
STATE_INDEX = {name: i for i, name in enumerate(STATE_ORDER)}
N_STATES = len(STATE_ORDER)

SOLUBLE_COMPONENTS = STATE_ORDER[:12]
PARTICULATE_COMPONENTS = STATE_ORDER[12:]
BIOMASS_COMPONENTS = ("X_su", "X_aa", "X_fa", "X_c4", "X_pro", "X_ac", "X_h2")
VFA_COMPONENTS = ("S_va", "S_bu", "S_pro", "S_ac")
# Components measured as COD (everything except inorganic C and N)
COD_COMPONENTS = tuple(n for n in STATE_ORDER if n not in ("S_IC", "S_IN"))

GAS_ORDER = ("S_gas_h2", "S_gas_ch4", "S_gas_co2")
N_GAS = len(GAS_ORDER)


def _clamped(values: Iterable[float], expected: int, kind: str) -> np.ndarray:
    arr = np.asarray(list(values) if not isinstance(values, np.ndarray) else values, dtype=float)
    if arr.shape != (expected,):
        raise ValueError(f"{kind} array must have {expected} elements, got shape {arr.shape}")
    return np.where(arr > 0.0, arr, 0.0)


@dataclass
class ADM1State:
    """ADM1 liquid-phase state [g COD/m3; S_IC mol C/m3; S_IN mol N/m3]."""

    S_su: float = 0.0
    S_aa: float = 0.0
    S_fa: float = 0.0
    S_va: float = 0.0
    S_bu: float = 0.0
    S_pro: float = 0.0
    S_ac: float = 0.0
    S_h2: float = 0.0
    S_ch4: float = 0.0
    S_IC: float = 0.0
    S_IN: float = 0.0
    S_I: float = 0.0
    X_c: float = 0.0
    X_ch: float = 0.0
    X_pr: float = 0.0
    X_li: float = 0.0
    X_su: float = 0.0
    X_aa: float = 0.0
    X_fa: float = 0.0
    X_c4: float = 0.0
    X_pro: float = 0.0
    X_ac: float = 0.0
    X_h2: float = 0.0
    X_I: float = 0.0

    def to_array(self) -> np.ndarray:
        return np.array([getattr(self, name) for name in STATE_ORDER], dtype=float)

    @classmethod
    def from_array(cls, values: Iterable[float]) -> "ADM1State":
        """Build a state from a 24-element array; negative entries become zero."""
        arr = _clamped(values, N_STATES, "State")
        return cls(*(float(v) for v in arr))

    def to_dict(self) -> Dict[str, float]:
        return {name: getattr(self, name) for name in STATE_ORDER}

    @classmethod
    def from_dict(cls, data: Mapping[str, float]) -> "ADM1State":
        unknown = sorted(set(data) - set(STATE_ORDER))
        if unknown:
            raise ValueError(f"Unknown ADM1 component(s): {', '.join(unknown)}")
        return cls.from_array([float(data.get(name, 0.0) or 0.0) for name in STATE_ORDER])

    def copy(self) -> "ADM1State":
        return dataclasses.replace(self)

    @property
    def total_cod(self) -> float:
        return sum(getattr(self, n) for n in COD_COMPONENTS if n not in ("S_h2", "S_ch4"))

    @property
    def soluble_cod(self) -> float:
        return sum(getattr(self, n) for n in SOLUBLE_COMPONENTS if n not in ("S_h2", "S_ch4", "S_IC", "S_IN"))

    @property
    def total_vfa(self) -> float:
        return self.S_va + self.S_bu + self.S_pro + self.S_ac


@dataclass
class GasPhase:
    """Headspace concentrations [kmol/m3]."""

    S_gas_h2: float = 0.0
    S_gas_ch4: float = 0.0
    S_gas_co2: float = 0.0

    def to_array(self) -> np.ndarray:
        return np.array([self.S_gas_h2, self.S_gas_ch4, self.S_gas_co2], dtype=float)

    @classmethod
    def from_array(cls, values: Iterable[float]) -> "GasPhase":
        arr = _clamped(values, N_GAS, "Gas phase")
        return cls(*(float(v) for v in arr))

    def to_dict(self) -> Dict[str, float]:
        return {name: getattr(self, name) for name in GAS_ORDER}

    @classmethod
    def from_dict(cls, data: Mapping[str, float]) -> "GasPhase":
        unknown = sorted(set(data) - set(GAS_ORDER))
        if unknown:
            raise ValueError(f"Unknown gas phase component(s): {', '.join(unknown)}")
        return cls.from_array([float(data.get(name, 0.0) or 0.0) for name in GAS_ORDER])


def default_initial_state() -> ADM1State:
    """Start-up state of a mesophilic digester with an established biomass."""
    return ADM1State(
        S_su=10.0, S_aa=5.0, S_fa=5.0, S_va=5.0, S_bu=5.0, S_pro=5.0, S_ac=20.0,
        S_h2=1e-8, S_ch4=5e-5, S_IC=40.0, S_IN=40.0, S_I=50.0,
        X_c=100.0, X_ch=50.0, X_pr=50.0, X_li=50.0,
        X_su=400.0, X_aa=200.0, X_fa=100.0, X_c4=200.0, X_pro=100.0,
        X_ac=300.0, X_h2=200.0, X_I=100.0,
    )


def default_initial_gas_phase() -> GasPhase:
    # ~0.65 bar CH4 and ~0.35 bar CO2 at 35 degC
    return GasPhase(S_gas_h2=4e-7, S_gas_ch4=0.0254, S_gas_co2=0.0137)
