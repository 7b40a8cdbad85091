from __future__ import annotations

import asyncio
import time
from datetime import UTC, datetime
from typing import Any

import pytest

from pylocator._ip.normalizer import ProviderNormalizer
from pylocator._ip.race import IpLocationRace
from pylocator.config import ProviderConfig
from pylocator.exceptions import LocatorTransportError
from pylocator.models.fix import FixSource, LocationFix
from pylocator.models.status import FailureReason, ResolutionFailure


class _ScriptedTransport:
    """Answers each URL with ``(delay_seconds, payload_or_exception)``."""

    def __init__(self, script: dict[str, tuple[float, Any]]) -> None:
        self.script = script
        self.calls: list[str] = []

    async def get_json(self, url: str) -> Any:
        self.calls.append(url)
        delay, value = self.script[url]
        await asyncio.sleep(delay)
        if isinstance(value, Exception):
            raise value
        return value


def _clock() -> datetime:
    return datetime(2026, 1, 1, tzinfo=UTC)


def _race(transport: _ScriptedTransport) -> IpLocationRace:
    normalizer = ProviderNormalizer(transport, fallback_lookup_url="https://fallback.test/{ip}")
    return IpLocationRace(transport, normalizer, clock=_clock)


def _provider(name: str, timeout: float = 1.0) -> ProviderConfig:
    return ProviderConfig(name=name, url=f"https://{name}.test/json", timeout=timeout)


@pytest.mark.asyncio
async def test_most_precise_provider_wins() -> None:
    providers = [_provider(name) for name in ("a", "b", "c", "d", "e")]
    transport = _ScriptedTransport(
        {
            "https://a.test/json": (0.0, {"latitude": 10.0, "longitude": 10.0, "accuracy": 5000}),
            "https://b.test/json": (0.01, {"lat": 20.0, "lon": 20.0, "accuracy": 3000}),
            "https://c.test/json": (0.02, {"loc": "30.0,30.0", "accuracy": 800}),
            "https://d.test/json": (0.0, LocatorTransportError("boom")),
            "https://e.test/json": (0.0, {"status": "fail"}),
        }
    )

    result = await _race(transport).race(providers)

    assert isinstance(result, LocationFix)
    assert (result.latitude, result.longitude) == (30.0, 30.0)
    assert result.source == FixSource.IP
    assert result.accuracy_meters == 800.0
    assert result.provider == "c"
    assert result.acquired_at == _clock()


@pytest.mark.asyncio
async def test_coordinates_are_never_averaged() -> None:
    providers = [_provider("a"), _provider("b")]
    transport = _ScriptedTransport(
        {
            "https://a.test/json": (0.0, {"latitude": 40.0, "longitude": -74.0, "accuracy": 1000}),
            "https://b.test/json": (0.0, {"latitude": 34.0, "longitude": -118.0, "accuracy": 1200}),
        }
    )
    result = await _race(transport).race(providers)
    assert isinstance(result, LocationFix)
    assert (result.latitude, result.longitude) == (40.0, -74.0)


@pytest.mark.asyncio
async def test_ties_go_to_first_completed() -> None:
    providers = [_provider("slow"), _provider("fast")]
    transport = _ScriptedTransport(
        {
            "https://slow.test/json": (0.05, {"latitude": 1.0, "longitude": 1.0, "accuracy": 900}),
            "https://fast.test/json": (0.0, {"latitude": 2.0, "longitude": 2.0, "accuracy": 900}),
        }
    )
    result = await _race(transport).race(providers)
    assert isinstance(result, LocationFix)
    assert result.provider == "fast"


@pytest.mark.asyncio
async def test_all_providers_timing_out_is_a_failure() -> None:
    providers = [_provider(name, timeout=0.05) for name in ("a", "b", "c")]
    transport = _ScriptedTransport(
        {f"https://{name}.test/json": (5.0, {"latitude": 1.0, "longitude": 1.0}) for name in ("a", "b", "c")}
    )

    started = time.monotonic()
    result = await _race(transport).race(providers)
    elapsed = time.monotonic() - started

    assert isinstance(result, ResolutionFailure)
    assert result.reason == FailureReason.NO_PROVIDER_SUCCEEDED
    assert result.message == "no-ip-location"
    assert elapsed < 1.0


@pytest.mark.asyncio
async def test_slow_provider_does_not_block_others() -> None:
    providers = [_provider("slow", timeout=0.1), _provider("quick", timeout=1.0)]
    transport = _ScriptedTransport(
        {
            "https://slow.test/json": (5.0, {"latitude": 1.0, "longitude": 1.0, "accuracy": 10}),
            "https://quick.test/json": (0.0, {"latitude": 2.0, "longitude": 2.0, "accuracy": 4000}),
        }
    )

    started = time.monotonic()
    result = await _race(transport).race(providers)

    assert isinstance(result, LocationFix)
    assert result.provider == "quick"
    # Bounded by the slow provider's own timeout, not its response time.
    assert time.monotonic() - started < 1.0


@pytest.mark.asyncio
async def test_unexpected_provider_error_is_excluded() -> None:
    transport = _ScriptedTransport(
        {
            "https://a.test/json": (0.0, RuntimeError("boom")),
            "https://b.test/json": (0.01, {"latitude": 12.0, "longitude": 34.0, "accuracy": 900}),
        }
    )

    result = await _race(transport).race([_provider("a"), _provider("b")])

    assert isinstance(result, LocationFix)
    assert result.provider == "b"
    assert (result.latitude, result.longitude) == (12.0, 34.0)


@pytest.mark.asyncio
async def test_empty_provider_list_fails() -> None:
    result = await _race(_ScriptedTransport({})).race([])
    assert isinstance(result, ResolutionFailure)


@pytest.mark.asyncio
async def test_estimated_accuracy_is_flagged() -> None:
    transport = _ScriptedTransport(
        {"https://a.test/json": (0.0, {"latitude": 5.0, "longitude": 5.0, "isp": "T-Mobile USA"})}
    )
    result = await _race(transport).race([_provider("a")])
    assert isinstance(result, LocationFix)
    assert result.accuracy_meters == 1000.0
    assert result.accuracy_estimated is True
