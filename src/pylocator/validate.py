"""Coordinate validation and defensive number parsing.

Every producer runs its candidate coordinates through
:func:`is_valid_coordinate` before a fix is built; invalid candidates are
discarded, never stored.
"""

from __future__ import annotations

import math
from typing import Any


def safe_float(value: Any) -> float | None:
    """Parse *value* as a finite float, returning ``None`` on failure."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if value in ("", "--"):
            return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(result) or math.isinf(result):
        return None
    return result


def is_valid_coordinate(latitude: Any, longitude: Any) -> bool:
    """Return ``True`` when the pair is a plausible WGS-84 position.

    Rejects NaN, out-of-range values and the exact ``(0, 0)`` pair, which
    misbehaving providers return in place of "no data". Never raises.
    """
    try:
        lat = float(latitude)
        lng = float(longitude)
    except (TypeError, ValueError, OverflowError):
        return False
    if math.isnan(lat) or math.isnan(lng):
        return False
    if not -90.0 <= lat <= 90.0:
        return False
    if not -180.0 <= lng <= 180.0:
        return False
    return not (lat == 0.0 and lng == 0.0)


def parse_coordinate(latitude: Any, longitude: Any) -> tuple[float, float] | None:
    """Parse and validate a pair, returning ``(lat, lng)`` or ``None``."""
    lat = safe_float(latitude)
    lng = safe_float(longitude)
    if lat is None or lng is None:
        return None
    if not is_valid_coordinate(lat, lng):
        return None
    return lat, lng
