"""Concurrent IP-geolocation race.

All providers are queried at once, each under its own timeout. Every
provider that normalizes successfully is a candidate; the candidate with
the smallest accuracy radius wins, ties going to whichever answered
first. Coordinates from different providers are never averaged.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime

from pylocator._ip.normalizer import ProviderNormalizer
from pylocator._transport import Transport
from pylocator.config import ProviderConfig
from pylocator.exceptions import LocatorTransportError
from pylocator.models.fix import FixSource, LocationFix
from pylocator.models.provider import ProviderEstimate
from pylocator.models.status import FailureReason, ResolutionFailure

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True, slots=True)
class ProviderAnswer:
    provider: ProviderConfig
    estimate: ProviderEstimate


class IpLocationRace:
    """Race IP providers and keep the most precise answer."""

    def __init__(
        self,
        transport: Transport,
        normalizer: ProviderNormalizer,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._transport = transport
        self._normalizer = normalizer
        self._clock = clock

    async def _query(self, provider: ProviderConfig) -> ProviderAnswer | None:
        try:
            async with asyncio.timeout(provider.timeout):
                payload = await self._transport.get_json(provider.url)
                estimate = await self._normalizer.normalize(payload)
        except TimeoutError:
            _logger.debug("Provider %s timed out after %.1fs", provider.name, provider.timeout)
            return None
        except LocatorTransportError as exc:
            _logger.debug("Provider %s failed: %s", provider.name, exc)
            return None
        except ValueError:
            _logger.debug("Provider %s returned an unusable payload", provider.name, exc_info=True)
            return None
        except Exception:
            _logger.warning("Provider %s raised unexpectedly", provider.name, exc_info=True)
            return None

        if estimate is None:
            _logger.debug("Provider %s returned no usable coordinates", provider.name)
            return None
        _logger.debug(
            "Provider %s answered shape=%s accuracy=%.0fm estimated=%s",
            provider.name,
            estimate.shape,
            estimate.accuracy_meters,
            estimate.accuracy_estimated,
        )
        return ProviderAnswer(provider, estimate)

    async def collect(self, providers: Sequence[ProviderConfig]) -> list[ProviderAnswer]:
        """Query every provider concurrently; return answers in completion order."""
        tasks = [asyncio.create_task(self._query(provider), name=f"ip-provider:{provider.name}") for provider in providers]
        answers: list[ProviderAnswer] = []
        try:
            for next_done in asyncio.as_completed(tasks):
                answer = await next_done
                if answer is not None:
                    answers.append(answer)
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()
        return answers

    async def race(self, providers: Sequence[ProviderConfig]) -> LocationFix | ResolutionFailure:
        """Return the most precise provider fix, or a failure if none answered."""
        answers = await self.collect(providers)
        if not answers:
            _logger.info("No IP provider produced a location (%d queried)", len(providers))
            return ResolutionFailure(
                reason=FailureReason.NO_PROVIDER_SUCCEEDED,
                message="no-ip-location",
            )

        # min() keeps the first of equal keys, so ties go to the earliest answer.
        best = min(answers, key=lambda answer: answer.estimate.accuracy_meters)
        _logger.info(
            "IP race won by %s (%.0fm, %d/%d providers answered)",
            best.provider.name,
            best.estimate.accuracy_meters,
            len(answers),
            len(providers),
        )
        return LocationFix(
            latitude=best.estimate.lat,
            longitude=best.estimate.lng,
            source=FixSource.IP,
            accuracy_meters=best.estimate.accuracy_meters,
            accuracy_estimated=best.estimate.accuracy_estimated,
            provider=best.provider.name,
            acquired_at=self._clock(),
        )
