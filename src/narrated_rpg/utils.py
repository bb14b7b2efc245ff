"""Shared utility functions for the combat engine."""
from __future__ import annotations

import json
import math


def safe_json(value, default=None):
    """Deserialize a JSON string if needed, or return default.

    Handles saved combat snapshots that may arrive as JSON strings,
    plain dicts, or None.
    """
    if value is None:
        return default if default is not None else {}
    if isinstance(value, str):
        try:
            return json.loads(value)
        except (json.JSONDecodeError, TypeError):
            return default if default is not None else {}
    return value


def num(value, default: float = 0) -> float:
    """Coerce a possibly-missing numeric input to a finite number."""
    if value is None or isinstance(value, bool):
        return default
    try:
        result = float(value)
    except (TypeError, ValueError):
        return default
    if math.isnan(result) or math.isinf(result):
        return default
    return result


def int_num(value, default: int = 0) -> int:
    """Like :func:`num` but floors to an int."""
    return int(math.floor(num(value, default)))


def clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))
