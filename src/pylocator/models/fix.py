"""Location fix model."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from pylocator.validate import is_valid_coordinate


class FixSource(StrEnum):
    """Which acquisition path produced a fix."""

    GPS = "gps"
    MOBILE = "mobile"
    IP = "ip"
    MANUAL = "manual"


# Sources allowed to carry no accuracy figure.
_ACCURACY_OPTIONAL = frozenset({FixSource.MANUAL, FixSource.MOBILE})


class LocationFix(BaseModel):
    """A single resolved geographic point with provenance.

    Parameters
    ----------
    latitude : float
        WGS-84 latitude in degrees.
    longitude : float
        WGS-84 longitude in degrees.
    source : FixSource
        Producer of the fix. Set by the producing component, never inferred.
    accuracy_meters : float or None
        Reported (gps) or estimated (ip) radius. Only meaningful when
        comparing providers of the same source.
    accuracy_estimated : bool
        ``True`` when ``accuracy_meters`` is a heuristic guess rather than
        a figure reported by the provider or sensor.
    provider : str or None
        IP provider name, for ``ip`` fixes.
    acquired_at : datetime
        When the fix was produced (UTC).
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    latitude: float
    longitude: float
    source: FixSource
    accuracy_meters: float | None = None
    accuracy_estimated: bool = False
    provider: str | None = None
    acquired_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @field_validator("acquired_at")
    @classmethod
    def _ensure_tz_aware(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value

    @field_validator("accuracy_meters")
    @classmethod
    def _non_negative_accuracy(cls, value: float | None) -> float | None:
        if value is not None and value < 0:
            raise ValueError("accuracy_meters must not be negative")
        return value

    @model_validator(mode="after")
    def _check_invariants(self) -> LocationFix:
        if not is_valid_coordinate(self.latitude, self.longitude):
            raise ValueError(f"invalid coordinates ({self.latitude}, {self.longitude})")
        if self.accuracy_meters is None and self.source not in _ACCURACY_OPTIONAL:
            raise ValueError(f"{self.source} fixes require accuracy_meters")
        return self

    @property
    def coordinates(self) -> tuple[float, float]:
        return self.latitude, self.longitude
