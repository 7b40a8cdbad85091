"""Manual override: a point the user picked explicitly (e.g. a map click)."""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from pylocator.exceptions import InvalidCoordinatesError
from pylocator.models.fix import FixSource, LocationFix
from pylocator.validate import parse_coordinate


def _utcnow() -> datetime:
    return datetime.now(UTC)


def manual_fix(
    latitude: Any,
    longitude: Any,
    *,
    clock: Callable[[], datetime] = _utcnow,
) -> LocationFix:
    """Build a ``manual`` fix from a user-chosen point.

    This is the only producer allowed to tag a fix ``manual``.

    Raises
    ------
    InvalidCoordinatesError
        If the pair fails coordinate validation.
    """
    coords = parse_coordinate(latitude, longitude)
    if coords is None:
        raise InvalidCoordinatesError(latitude, longitude)
    return LocationFix(
        latitude=coords[0],
        longitude=coords[1],
        source=FixSource.MANUAL,
        acquired_at=clock(),
    )
