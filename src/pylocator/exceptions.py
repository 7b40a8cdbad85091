"""Custom exception hierarchy for pylocator."""

from __future__ import annotations


class LocatorError(Exception):
    """Base exception for all pylocator errors."""


class LocatorConfigError(LocatorError):
    """Invalid or missing configuration."""


class LocatorTransportError(LocatorError):
    """HTTP-level failure (network, non-200, invalid JSON)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        url: str = "",
    ) -> None:
        self.status_code = status_code
        self.url = url
        super().__init__(message)


class InvalidCoordinatesError(LocatorError, ValueError):
    """A latitude/longitude pair failed coordinate validation.

    Raised by the manual override channel, which is the only producer
    called directly by the user. Automatic producers discard invalid
    candidates instead of raising.
    """

    def __init__(self, latitude: object, longitude: object) -> None:
        self.latitude = latitude
        self.longitude = longitude
        super().__init__(f"Invalid coordinates: lat={latitude!r} lng={longitude!r}")
