"""Device geolocation sensor boundary.

The sensor is consumed as an async operation returning a typed
:class:`SensorResult`, never as nested success/error callbacks.
:class:`CallbackSensorAdapter` wraps callback-style position APIs into
that contract.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol
from urllib.parse import urlsplit

from pylocator._constants import (
    GEO_PERMISSION_DENIED,
    GEO_POSITION_UNAVAILABLE,
    GEO_TIMEOUT,
    LOOPBACK_HOSTS,
)
from pylocator.models.attempt import AttemptOutcome
from pylocator.validate import safe_float

_logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class PositionOptions:
    """Sensor request options. Durations are in seconds."""

    enable_high_accuracy: bool
    timeout: float
    maximum_age: float = 0.0

    def as_geolocation_options(self) -> dict[str, Any]:
        """Millisecond option dict in the shape of the W3C Geolocation API."""
        return {
            "enableHighAccuracy": self.enable_high_accuracy,
            "timeout": int(self.timeout * 1000),
            "maximumAge": int(self.maximum_age * 1000),
        }


@dataclass(frozen=True, slots=True)
class SensorReading:
    latitude: float
    longitude: float
    accuracy: float


@dataclass(frozen=True, slots=True)
class SensorResult:
    """Typed completion of a single sensor request."""

    outcome: AttemptOutcome
    reading: SensorReading | None = None
    message: str = ""

    @classmethod
    def success(cls, latitude: float, longitude: float, accuracy: float) -> SensorResult:
        return cls(AttemptOutcome.SUCCESS, SensorReading(latitude, longitude, accuracy))

    @classmethod
    def failure(cls, outcome: AttemptOutcome, message: str = "") -> SensorResult:
        return cls(outcome, None, message)


class GeolocationSensor(Protocol):
    async def get_current_position(self, options: PositionOptions) -> SensorResult:
        ...


_ERROR_CODE_OUTCOMES: dict[int, AttemptOutcome] = {
    GEO_PERMISSION_DENIED: AttemptOutcome.PERMISSION_DENIED,
    GEO_POSITION_UNAVAILABLE: AttemptOutcome.POSITION_UNAVAILABLE,
    GEO_TIMEOUT: AttemptOutcome.TIMEOUT,
}


def outcome_for_error_code(code: Any) -> AttemptOutcome:
    """Map a W3C ``GeolocationPositionError.code`` to an attempt outcome."""
    parsed = safe_float(code)
    if parsed is None:
        return AttemptOutcome.ERROR
    return _ERROR_CODE_OUTCOMES.get(int(parsed), AttemptOutcome.ERROR)


def _reading_from_position(position: Any) -> SensorReading | None:
    """Accept ``{coords: {...}}`` or a flat ``{latitude, longitude, accuracy}``."""
    if not isinstance(position, dict):
        return None
    coords = position.get("coords")
    data: dict[str, Any] = coords if isinstance(coords, dict) else position
    lat = safe_float(data.get("latitude"))
    lng = safe_float(data.get("longitude"))
    accuracy = safe_float(data.get("accuracy"))
    if lat is None or lng is None or accuracy is None:
        return None
    return SensorReading(lat, lng, accuracy)


RequestPosition = Callable[
    [Callable[[Any], None], Callable[[Any], None], dict[str, Any]],
    None,
]


class CallbackSensorAdapter:
    """Adapt a ``request(on_success, on_error, options)`` API to :class:`GeolocationSensor`.

    ``on_success`` receives a position dict; ``on_error`` receives an error
    dict with a W3C ``code`` (or the bare code). Callbacks may fire from any
    thread. Only the first callback per request counts; later ones are
    ignored.
    """

    def __init__(self, request: RequestPosition) -> None:
        self._request = request

    async def get_current_position(self, options: PositionOptions) -> SensorResult:
        loop = asyncio.get_running_loop()
        future: asyncio.Future[SensorResult] = loop.create_future()

        def _settle(result: SensorResult) -> None:
            if not future.done():
                future.set_result(result)

        def on_success(position: Any) -> None:
            reading = _reading_from_position(position)
            if reading is None:
                result = SensorResult.failure(AttemptOutcome.POSITION_UNAVAILABLE, "malformed position")
            else:
                result = SensorResult(AttemptOutcome.SUCCESS, reading)
            loop.call_soon_threadsafe(_settle, result)

        def on_error(error: Any) -> None:
            code = error.get("code") if isinstance(error, dict) else error
            message = str(error.get("message", "")) if isinstance(error, dict) else ""
            loop.call_soon_threadsafe(_settle, SensorResult.failure(outcome_for_error_code(code), message))

        try:
            self._request(on_success, on_error, options.as_geolocation_options())
        except Exception as exc:
            _logger.debug("Position request raised", exc_info=True)
            return SensorResult.failure(AttemptOutcome.ERROR, str(exc))

        return await future


def is_secure_origin(url: str) -> bool:
    """Return whether a page origin counts as a secure context.

    HTTPS is secure; plain HTTP is only secure on loopback hosts.
    """
    try:
        parts = urlsplit(url)
    except ValueError:
        return False
    scheme = parts.scheme.lower()
    if scheme == "https":
        return True
    if scheme != "http":
        return False
    host = (parts.hostname or "").lower()
    return host in LOOPBACK_HOSTS or host.startswith("127.")
