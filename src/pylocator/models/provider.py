"""Normalized IP-provider estimate."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict


class ConnectionType(StrEnum):
    ISP = "isp"
    MOBILE = "mobile"
    UNKNOWN = "unknown"


class ProviderEstimate(BaseModel):
    """A provider answer reduced to ``{lat, lng, accuracy}``.

    ``accuracy_estimated`` is ``True`` when the radius comes from the
    connection-type bands rather than the provider itself.
    """

    model_config = ConfigDict(frozen=True)

    lat: float
    lng: float
    accuracy_meters: float
    accuracy_estimated: bool = False
    shape: str = ""
