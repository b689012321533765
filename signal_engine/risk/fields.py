"""Numeric coercion for snapshot payload fields.

Snapshot numbers are clamped later in the scoring pipeline, where a NaN
would silently saturate a score, so every field is checked here instead.
"""

import math
from typing import Any

from signal_engine.errors import InvalidInputError


def finite_float(value: Any, field: str) -> float:
    """Convert *value* to a finite float or raise ``InvalidInputError`` naming *field*."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise InvalidInputError(f"{field} is not numeric ({value!r})") from None
    if not math.isfinite(number):
        raise InvalidInputError(f"{field} is not finite ({value!r})")
    return number


def finite_int(value: Any, field: str) -> int:
    return int(finite_float(value, field))
