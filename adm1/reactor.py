"""CSTR digester configuration."""

from dataclasses import asdict, dataclass
from typing import Any, Dict

from adm1.exceptions import InvalidConfigurationError
from adm1.parameters import P_ATM, T_ZERO_C


@dataclass(frozen=True)
class ReactorConfig:
    """
    Continuously stirred digester with a headspace.

    Attributes
    ----------
    V_liq : float
        Liquid volume [m3].
    V_gas : float
        Headspace volume [m3].
    Q_in : float
        Influent flow [m3/d].
    temperature : float
        Operating temperature [degC].
    pressure : float
        Headspace pressure [bar].
    """

    V_liq: float
    V_gas: float
    Q_in: float
    temperature: float = 35.0
    pressure: float = P_ATM

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        problems = []
        if not self.V_liq > 0:
            problems.append(f"V_liq must be positive (got {self.V_liq})")
        if not self.V_gas > 0:
            problems.append(f"V_gas must be positive (got {self.V_gas})")
        if not self.Q_in > 0:
            problems.append(f"Q_in must be positive (got {self.Q_in})")
        if not self.temperature + T_ZERO_C > 0:
            problems.append(f"temperature must be above absolute zero (got {self.temperature} degC)")
        if not self.pressure > 0:
            problems.append(f"pressure must be positive (got {self.pressure})")
        if problems:
            raise InvalidConfigurationError("; ".join(problems))

    @property
    def hrt(self) -> float:
        """Hydraulic retention time [d]."""
        return self.V_liq / self.Q_in

    @classmethod
    def from_hrt(cls, V_liq: float, hrt: float, V_gas: float = None, **kwargs) -> "ReactorConfig":
        """Size the inflow for a target HRT; headspace defaults to 10% of V_liq."""
        if not hrt > 0:
            raise InvalidConfigurationError(f"HRT must be positive (got {hrt})")
        return cls(V_liq=V_liq, V_gas=V_gas if V_gas is not None else 0.1 * V_liq, Q_in=V_liq / hrt, **kwargs)

    def to_dict(self) -> Dict[str, Any]:
        return {**asdict(self), "HRT": self.hrt}
