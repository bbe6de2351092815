"""
Utilities module.
Contains common helpers shared across services.
"""

from .date_utils import get_current_timestamp, parse_datetime, to_isoformat
from .validation_utils import (
    completeness_ratio,
    is_blank,
    is_truthy,
    parse_float,
    round_half_up,
    to_text,
)

__all__ = [
    "get_current_timestamp",
    "parse_datetime",
    "to_isoformat",
    "completeness_ratio",
    "is_blank",
    "is_truthy",
    "parse_float",
    "round_half_up",
    "to_text",
]
