"""Runtime settings read from the environment."""

import logging
import os
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EngineSettings:
    log_level: str = "INFO"
    default_solver: str = "bdf"
    max_steps: int = 2_000_000
    sensitivity_workers: int = 1


def _int_env(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning(f"Ignoring non-integer {name}={raw!r}, using {default}")
        return default
    if value < 1:
        logger.warning(f"Ignoring non-positive {name}={raw!r}, using {default}")
        return default
    return value


def get_settings() -> EngineSettings:
    """Read settings fresh from the environment on every call."""
    return EngineSettings(
        log_level=os.environ.get("ADM1_LOG_LEVEL", "INFO").upper(),
        default_solver=os.environ.get("ADM1_DEFAULT_SOLVER", "bdf").lower(),
        max_steps=_int_env("ADM1_MAX_STEPS", 2_000_000),
        sensitivity_workers=_int_env("ADM1_SENSITIVITY_WORKERS", 1),
    )
