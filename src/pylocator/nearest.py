"""Nearest-center selection for a resolved position.

Consumers only need ``latitude``/``longitude``; fix source and accuracy
are ignored here.
"""

from __future__ import annotations

from collections.abc import Iterable
from math import asin, cos, radians, sin, sqrt
from typing import Any, Protocol, TypeVar

from pylocator.validate import is_valid_coordinate

EARTH_RADIUS_M = 6_371_000


class HasCoordinates(Protocol):
    @property
    def latitude(self) -> float: ...

    @property
    def longitude(self) -> float: ...


TCenter = TypeVar("TCenter")


def haversine_m(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Compute great-circle distance in meters between two points."""
    phi1 = radians(lat1)
    phi2 = radians(lat2)
    dphi = phi2 - phi1
    dlambda = radians(lng2 - lng1)

    h = sin(dphi / 2) ** 2 + cos(phi1) * cos(phi2) * sin(dlambda / 2) ** 2
    return 2 * EARTH_RADIUS_M * asin(sqrt(min(1.0, h)))


def _coords_of(item: Any) -> tuple[Any, Any]:
    if isinstance(item, dict):
        return item.get("latitude"), item.get("longitude")
    return getattr(item, "latitude", None), getattr(item, "longitude", None)


def select_nearest(point: HasCoordinates, centers: Iterable[TCenter]) -> TCenter | None:
    """Return the center closest to *point*, or ``None`` when there is none.

    Centers may be objects or dicts exposing ``latitude``/``longitude``;
    centers with invalid coordinates are skipped.
    """
    best: TCenter | None = None
    best_distance = float("inf")
    for center in centers:
        lat, lng = _coords_of(center)
        if not is_valid_coordinate(lat, lng):
            continue
        distance = haversine_m(point.latitude, point.longitude, float(lat), float(lng))
        if distance < best_distance:
            best = center
            best_distance = distance
    return best
