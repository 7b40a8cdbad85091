"""IP-provider response normalization.

Upstream IP-geolocation services share no schema. Each known response
shape has its own parser; :data:`PAYLOAD_SHAPES` lists them in the fixed
order they are tried. The first shape yielding a valid coordinate wins.

Accuracy handling:

* An explicit radius reported by the provider is used as-is.
* Otherwise the radius is *estimated* from the connection class the
  provider declares for the address (ISP, mobile carrier, unknown) using
  :class:`~pylocator.config.AccuracyBands`. Estimated radii are flagged
  with ``accuracy_estimated=True`` so they are never shown as measured.
"""

from __future__ import annotations

import ipaddress
import logging
import re
from collections.abc import Callable
from typing import Any

from pylocator._transport import Transport
from pylocator.config import AccuracyBands
from pylocator.exceptions import LocatorTransportError
from pylocator.models.provider import ConnectionType, ProviderEstimate
from pylocator.validate import parse_coordinate, safe_float

_logger = logging.getLogger(__name__)

_TOKEN_RE = re.compile(r"[a-z0-9]+")

ShapeParser = Callable[[dict[str, Any]], tuple[float, float] | None]


def _parse_latitude_longitude(payload: dict[str, Any]) -> tuple[float, float] | None:
    # ipapi.co, ipwho.is, freeipapi
    return parse_coordinate(payload.get("latitude"), payload.get("longitude"))


def _parse_lat_lon(payload: dict[str, Any]) -> tuple[float, float] | None:
    # ip-api.com uses lon; some mirrors use lng.
    lng = payload.get("lon")
    if lng is None:
        lng = payload.get("lng")
    return parse_coordinate(payload.get("lat"), lng)


def _parse_loc_string(payload: dict[str, Any]) -> tuple[float, float] | None:
    # ipinfo.io: "loc": "37.3860,-122.0838"
    loc = payload.get("loc")
    if not isinstance(loc, str) or loc.count(",") != 1:
        return None
    lat_text, lng_text = loc.split(",")
    return parse_coordinate(lat_text, lng_text)


def _parse_nested_location(payload: dict[str, Any]) -> tuple[float, float] | None:
    # GeoIP2 web service style: {"location": {"latitude": .., "longitude": ..}}
    location = payload.get("location")
    if not isinstance(location, dict):
        return None
    return parse_coordinate(location.get("latitude"), location.get("longitude"))


PAYLOAD_SHAPES: tuple[tuple[str, ShapeParser], ...] = (
    ("latitude_longitude", _parse_latitude_longitude),
    ("lat_lon", _parse_lat_lon),
    ("loc_string", _parse_loc_string),
    ("nested_location", _parse_nested_location),
)


def _explicit_accuracy(payload: dict[str, Any]) -> float | None:
    """Provider-reported radius in meters, if any."""
    for key in ("accuracy", "accuracy_meters", "radius", "uncertainty"):
        value = safe_float(payload.get(key))
        if value is not None and value > 0:
            return value
    # GeoIP2 reports accuracy_radius in kilometers.
    location = payload.get("location")
    candidates = [payload.get("accuracy_radius")]
    if isinstance(location, dict):
        candidates.append(location.get("accuracy_radius"))
    for candidate in candidates:
        km = safe_float(candidate)
        if km is not None and km > 0:
            return km * 1000.0
    return None


def _tokens(value: Any) -> set[str]:
    if not isinstance(value, str):
        return set()
    return set(_TOKEN_RE.findall(value.lower()))


def _classify(texts: list[Any], bands: AccuracyBands) -> ConnectionType:
    for text in texts:
        tokens = _tokens(text)
        if tokens & set(bands.mobile_keywords):
            return ConnectionType.MOBILE
        if tokens & set(bands.isp_keywords):
            return ConnectionType.ISP
    return ConnectionType.UNKNOWN


def classify_connection(payload: dict[str, Any], bands: AccuracyBands) -> ConnectionType:
    """Guess the connection class of the looked-up address.

    Declared type fields are consulted before organization names; the
    first text matching a mobile or ISP keyword decides.
    """
    mobile_flag = payload.get("mobile")
    if mobile_flag is True:
        return ConnectionType.MOBILE

    connection = payload.get("connection")
    connection = connection if isinstance(connection, dict) else {}
    asn = payload.get("asn")
    asn = asn if isinstance(asn, dict) else {}

    declared = _classify(
        [payload.get("connection_type"), connection.get("type"), asn.get("type")],
        bands,
    )
    if declared != ConnectionType.UNKNOWN:
        return declared

    named = _classify(
        [
            payload.get("isp"),
            payload.get("org"),
            connection.get("isp"),
            connection.get("org"),
            asn.get("name"),
        ],
        bands,
    )
    if named != ConnectionType.UNKNOWN:
        return named

    # ip-api answers mobile=false for fixed-line blocks.
    if mobile_flag is False:
        return ConnectionType.ISP
    return ConnectionType.UNKNOWN


def estimate_accuracy(payload: dict[str, Any], bands: AccuracyBands) -> tuple[float, bool]:
    """Return ``(accuracy_meters, estimated)`` for a provider payload."""
    explicit = _explicit_accuracy(payload)
    if explicit is not None:
        return explicit, False
    connection = classify_connection(payload, bands)
    if connection == ConnectionType.MOBILE:
        return bands.mobile_meters, True
    if connection == ConnectionType.ISP:
        return bands.isp_meters, True
    return bands.unknown_meters, True


def parse_payload(payload: Any, bands: AccuracyBands) -> ProviderEstimate | None:
    """Normalize a payload using the known coordinate shapes only (no lookups)."""
    if not isinstance(payload, dict):
        return None
    for shape, parser in PAYLOAD_SHAPES:
        coords = parser(payload)
        if coords is None:
            continue
        accuracy, estimated = estimate_accuracy(payload, bands)
        return ProviderEstimate(
            lat=coords[0],
            lng=coords[1],
            accuracy_meters=accuracy,
            accuracy_estimated=estimated,
            shape=shape,
        )
    return None


def extract_ip(payload: Any) -> str | None:
    """Return the address from an ip-only payload such as ``{"ip": "203.0.113.7"}``."""
    if not isinstance(payload, dict):
        return None
    value = payload.get("ip")
    if not isinstance(value, str):
        return None
    try:
        return str(ipaddress.ip_address(value.strip()))
    except ValueError:
        return None


class ProviderNormalizer:
    """Reduce any supported provider payload to a :class:`ProviderEstimate`.

    A payload carrying only an IP address triggers exactly one lookup
    against the fallback provider; that answer is parsed without any
    further hops. ``None`` means "this provider didn't help", not an error.
    """

    def __init__(
        self,
        transport: Transport,
        *,
        bands: AccuracyBands | None = None,
        fallback_lookup_url: str,
    ) -> None:
        self._transport = transport
        self._bands = bands or AccuracyBands()
        self._fallback_lookup_url = fallback_lookup_url

    @property
    def bands(self) -> AccuracyBands:
        return self._bands

    async def normalize(self, payload: Any) -> ProviderEstimate | None:
        estimate = parse_payload(payload, self._bands)
        if estimate is not None:
            return estimate

        ip = extract_ip(payload)
        if ip is None:
            return None

        url = self._fallback_lookup_url.format(ip=ip)
        _logger.debug("Payload carried only an address, looking up %s", url)
        try:
            second = await self._transport.get_json(url)
        except LocatorTransportError:
            _logger.debug("Fallback lookup failed", exc_info=True)
            return None

        estimate = parse_payload(second, self._bands)
        if estimate is None:
            return None
        return estimate.model_copy(update={"shape": f"ip_lookup:{estimate.shape}"})
