"""Input and output coercion helpers for the MCP tools."""

import json
import math
from typing import Any, Dict, Optional, Union

import numpy as np


def to_float(value: Union[float, int, str, None]) -> Optional[float]:
    """
    Convert a measurement to float.

    Args:
        value: Number or numeric string from a tool argument

    Returns:
        Float value or None if conversion fails
    """
    if value is None:
        return None
    try:
        return float(value)
    except (ValueError, TypeError):
        return None


def coerce_to_dict(value: Optional[Any]) -> Optional[Dict[str, Any]]:
    """Coerce tool inputs to a plain dict.

    Supports:
    - dict
    - JSON object string
    - Pydantic RootModel with `.root`
    """
    if value is None:
        return None
    if isinstance(value, dict):
        return value
    if isinstance(value, str):
        try:
            parsed = json.loads(value)
        except json.JSONDecodeError:
            return None
        return parsed if isinstance(parsed, dict) else None
    # Pydantic v2 RootModel
    if hasattr(value, "root") and isinstance(getattr(value, "root"), dict):
        return getattr(value, "root")
    return None


def to_json_safe(value: Any) -> Any:
    """
    Recursively convert numpy scalars and arrays to Python types.

    Non-finite floats become None so responses stay valid JSON.
    """
    if isinstance(value, dict):
        return {str(k): to_json_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_json_safe(v) for v in value]
    if isinstance(value, np.ndarray):
        return [to_json_safe(v) for v in value.tolist()]
    if isinstance(value, np.generic):
        value = value.item()
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return value
