from __future__ import annotations

from dataclasses import dataclass

import pytest

from pylocator.manual import manual_fix
from pylocator.nearest import haversine_m, select_nearest


@dataclass
class _Center:
    name: str
    latitude: float
    longitude: float


def test_haversine_known_distance() -> None:
    # Miami Beach to downtown Miami, roughly 7 km.
    distance = haversine_m(25.7907, -80.1300, 25.7617, -80.1918)
    assert distance == pytest.approx(7_000, rel=0.15)
    assert haversine_m(10.0, 10.0, 10.0, 10.0) == 0.0


def test_select_nearest_uses_great_circle_distance() -> None:
    point = manual_fix(60.0, 0.0)
    centers = [
        _Center("east", 60.0, 1.5),  # ~83 km at this latitude
        _Center("north", 61.0, 0.0),  # ~111 km
    ]
    # Planar degree distance would pick "north" (1.0 < 1.5).
    nearest = select_nearest(point, centers)
    assert nearest is not None
    assert nearest.name == "east"


def test_select_nearest_skips_invalid_centers_and_accepts_dicts() -> None:
    point = manual_fix(25.76, -80.19)
    centers = [
        {"name": "broken", "latitude": 0.0, "longitude": 0.0},
        {"name": "south-beach", "latitude": 25.78, "longitude": -80.13},
        {"name": "no-coords"},
    ]
    nearest = select_nearest(point, centers)
    assert nearest is not None
    assert nearest["name"] == "south-beach"


def test_select_nearest_empty() -> None:
    assert select_nearest(manual_fix(1.0, 1.0), []) is None
