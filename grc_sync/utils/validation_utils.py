"""
Value helpers shared by the validation rule evaluator and the quality scorer.

Records arrive as loosely-typed JSON objects, so presence, truthiness and
numeric parsing are defined here once.
"""

import math
import re
from typing import Any, Dict, Optional

# Longest numeric prefix of a string, the way browsers' parseFloat reads it
_FLOAT_PREFIX = re.compile(r"^[+-]?(?:Infinity|(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")


def is_truthy(value: Any) -> bool:
    """
    Truthiness of a JSON value as rule payloads expect it.

    Only null, false, zero, NaN and the empty string are false. Arrays and
    objects are true even when empty.
    """
    if value is None or isinstance(value, bool):
        return bool(value)
    if isinstance(value, (int, float)):
        return value != 0 and not math.isnan(value)
    if isinstance(value, str):
        return value != ""
    return True


def is_blank(value: Any) -> bool:
    """True for null or empty-string values."""
    return value is None or value == ""


def to_text(value: Any) -> str:
    """Render a JSON value as text before pattern matching."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def parse_float(value: Any) -> Optional[float]:
    """
    Parse a number the lenient way: numbers pass through, strings are read up
    to the end of their leading numeric prefix (``"12abc"`` -> 12.0).

    Returns:
        The parsed value, or None if the value is not numeric
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return None if isinstance(value, float) and math.isnan(value) else float(value)
    if not isinstance(value, str):
        return None

    match = _FLOAT_PREFIX.match(value.strip())
    if not match:
        return None
    return float(match.group(0).replace("Infinity", "inf"))


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves rounded up (2.5 -> 3, -2.5 -> -2)."""
    return int(math.floor(value + 0.5))


def completeness_ratio(record: Dict[str, Any]) -> float:
    """Share of a record's fields holding a non-blank value, 0.0 for an empty record."""
    if not record:
        return 0.0
    filled = sum(1 for value in record.values() if not is_blank(value))
    return filled / len(record)
