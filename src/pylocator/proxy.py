"""Mobile-proxy acquisition.

A backend endpoint relays a GPS position captured on the user's phone:

    GET <mobile_proxy_url> -> {"success": bool, "data": {"latitude", "longitude"}, "message": str}

Single request, no retries. Anything other than a well-formed success
becomes a :class:`ResolutionFailure` carrying the upstream message.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from pylocator._transport import Transport
from pylocator.exceptions import LocatorTransportError
from pylocator.models.fix import FixSource, LocationFix
from pylocator.models.status import FailureReason, ResolutionFailure
from pylocator.validate import parse_coordinate, safe_float

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class ProxyCoordinates(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    latitude: float | None = None
    longitude: float | None = None

    @field_validator("latitude", "longitude", mode="before")
    @classmethod
    def _coerce_floats(cls, value: Any) -> float | None:
        return safe_float(value)


class ProxyResponse(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    success: bool = False
    data: ProxyCoordinates | None = None
    message: str = Field(default="")

    @field_validator("message", mode="before")
    @classmethod
    def _coerce_message(cls, value: Any) -> str:
        return "" if value is None else str(value)


class MobileProxy:
    """Ask the backend for the position reported by the user's phone."""

    def __init__(
        self,
        transport: Transport,
        url: str,
        *,
        timeout: float = 10.0,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._transport = transport
        self._url = url
        self._timeout = timeout
        self._clock = clock

    async def acquire(self) -> LocationFix | ResolutionFailure:
        try:
            async with asyncio.timeout(self._timeout):
                payload = await self._transport.get_json(self._url)
        except TimeoutError:
            _logger.debug("Mobile proxy timed out after %.1fs", self._timeout)
            return ResolutionFailure(reason=FailureReason.PROXY_UNAVAILABLE, message="Mobile GPS request timed out")
        except LocatorTransportError as exc:
            _logger.debug("Mobile proxy request failed: %s", exc)
            return ResolutionFailure(reason=FailureReason.PROXY_UNAVAILABLE, message=str(exc))

        try:
            response = ProxyResponse.model_validate(payload)
        except ValidationError:
            _logger.debug("Mobile proxy returned malformed payload: %r", payload)
            message = payload.get("message") if isinstance(payload, dict) else None
            return ResolutionFailure(
                reason=FailureReason.PROXY_UNAVAILABLE,
                message=str(message) if message is not None else "Malformed mobile GPS response",
            )

        if not response.success:
            return ResolutionFailure(
                reason=FailureReason.PROXY_UNAVAILABLE,
                message=response.message or "Mobile GPS unavailable",
            )

        data = response.data
        coords = parse_coordinate(data.latitude, data.longitude) if data is not None else None
        if coords is None:
            return ResolutionFailure(
                reason=FailureReason.INVALID_COORDINATES,
                message=response.message or "Mobile GPS returned invalid coordinates",
            )

        _logger.info("Location resolved via mobile proxy")
        return LocationFix(
            latitude=coords[0],
            longitude=coords[1],
            source=FixSource.MOBILE,
            acquired_at=self._clock(),
        )
