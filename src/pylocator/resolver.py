"""High-level location resolver."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

import aiohttp

from pylocator._ip.normalizer import ProviderNormalizer
from pylocator._ip.race import IpLocationRace
from pylocator._transport import HttpTransport, Transport
from pylocator.config import LocatorConfig
from pylocator.exceptions import LocatorError
from pylocator.gps import GpsAcquisition, GpsState
from pylocator.manual import manual_fix
from pylocator.models.fix import FixSource, LocationFix
from pylocator.models.status import FailureReason, ResolutionFailure, ResolutionPhase, ResolutionStatus
from pylocator.proxy import MobileProxy
from pylocator.sensor import GeolocationSensor, is_secure_origin
from pylocator.state.store import FixStore, FixTicket

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class LocationResolver:
    """Owns the current fix and sequences every way of obtaining one.

    Usage::

        async with LocationResolver(config, sensor=sensor, origin=page_url) as resolver:
            status = await resolver.request_automatic_location()
            if not status.is_resolved:
                resolver.set_manual_location(lat, lng)

    The automatic cascade (sensor high accuracy, sensor low accuracy, IP
    race) has at most one live run at a time. The mobile proxy and the manual
    override can be used at any moment; their results supersede whatever
    the in-flight cascade eventually produces.
    """

    def __init__(
        self,
        config: LocatorConfig | None = None,
        *,
        sensor: GeolocationSensor | None = None,
        origin: str | None = None,
        secure_context: bool | None = None,
        session: aiohttp.ClientSession | None = None,
        transport: Transport | None = None,
        clock: Callable[[], datetime] = _utcnow,
        on_change: Callable[[ResolutionStatus], None] | None = None,
    ) -> None:
        self._config = config or LocatorConfig()
        self._sensor = sensor
        if secure_context is None:
            secure_context = is_secure_origin(origin) if origin is not None else True
        self._secure_context = secure_context
        self._external_session = session is not None
        self._http_session = session
        self._transport = transport
        self._clock = clock
        self._on_change = on_change
        self._store = FixStore()
        self._phase = ResolutionPhase.IDLE
        self._failure: ResolutionFailure | None = None
        self._in_flight: set[FixTicket] = set()
        self._auto_task: asyncio.Task[ResolutionStatus] | None = None
        self._auto_ticket: FixTicket | None = None
        self._detached: set[asyncio.Task[ResolutionStatus]] = set()
        self._machine: GpsAcquisition | None = None

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> LocationResolver:
        if self._transport is None:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
            self._transport = HttpTransport(self._http_session)
        return self

    async def __aexit__(self, *exc: Any) -> None:
        tasks = [*self._detached, *([self._auto_task] if self._auto_task is not None else [])]
        for task in tasks:
            if not task.done():
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
            self._transport = None

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def status(self) -> ResolutionStatus:
        return ResolutionStatus(phase=self._phase, fix=self._store.current, failure=self._failure)

    @property
    def current_fix(self) -> LocationFix | None:
        return self._store.current

    @property
    def secure_context(self) -> bool:
        return self._secure_context

    @property
    def gps_state(self) -> GpsState:
        """State of the most recent automatic cascade (``idle`` if none ran)."""
        return self._machine.state if self._machine is not None else GpsState.IDLE

    @property
    def automatic_in_flight(self) -> bool:
        return self._auto_task is not None and not self._auto_task.done()

    def _set_status(self, phase: ResolutionPhase, failure: ResolutionFailure | None = None) -> None:
        before = self.status
        self._phase = phase
        self._failure = failure
        after = self.status
        if after != before:
            _logger.debug("Resolution status %s -> %s", before.phase, after.phase)
            if self._on_change is not None:
                self._on_change(after)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require_transport(self) -> Transport:
        if self._transport is None:
            raise LocatorError("Resolver not initialized. Use 'async with LocationResolver(...) as resolver:'")
        return self._transport

    def _begin(self, ticket: FixTicket) -> None:
        self._in_flight.add(ticket)
        self._set_status(ResolutionPhase.RESOLVING)

    def _finish(self, ticket: FixTicket, result: LocationFix | ResolutionFailure) -> None:
        """Apply a producer's result unless a later, higher-intent write supersedes it."""
        self._in_flight.discard(ticket)

        if isinstance(result, LocationFix):
            if self._store.offer(ticket, result):
                self._set_status(ResolutionPhase.RESOLVED)
            else:
                _logger.info("Discarded superseded %s fix", result.source)
            return

        if self._store.is_superseded(ticket):
            _logger.debug("Discarded superseded failure %s", result.reason)
            return
        # Another live request may still succeed; stay in "resolving" until it settles.
        pending = any(not self._store.is_superseded(other) for other in self._in_flight)
        if pending:
            phase = ResolutionPhase.RESOLVING
        elif self._store.current is not None:
            # The failed request did not invalidate the fix already held.
            phase = ResolutionPhase.RESOLVED
        else:
            phase = ResolutionPhase.FAILED
        self._set_status(phase, result)

    async def _race_ip(self) -> LocationFix | ResolutionFailure:
        transport = self._require_transport()
        normalizer = ProviderNormalizer(
            transport,
            bands=self._config.accuracy_bands,
            fallback_lookup_url=self._config.fallback_lookup_url,
        )
        race = IpLocationRace(transport, normalizer, clock=self._clock)
        return await race.race(self._config.providers)

    async def _run_automatic(self, ticket: FixTicket) -> ResolutionStatus:
        machine = GpsAcquisition(
            self._sensor,
            self._race_ip,
            self._config,
            secure_context=self._secure_context,
            clock=self._clock,
        )
        self._machine = machine
        try:
            result: LocationFix | ResolutionFailure = await machine.run()
        except asyncio.CancelledError:
            self._in_flight.discard(ticket)
            raise
        except Exception as exc:
            _logger.exception("Automatic location cascade raised")
            result = ResolutionFailure(
                reason=FailureReason.NO_PROVIDER_SUCCEEDED,
                message=str(exc) or type(exc).__name__,
                last_outcome=machine.last_outcome,
                insecure_context=not self._secure_context,
            )
        self._finish(ticket, result)
        return self.status

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def start_automatic_location(self) -> asyncio.Task[ResolutionStatus]:
        """Start the automatic cascade, or return the one already running.

        A running cascade whose result would be discarded (a manual fix or a
        clear happened since it started) is left to finish on its own and a
        fresh cascade is started instead.
        """
        self._require_transport()
        running = self._auto_task
        if running is not None and not running.done():
            assert self._auto_ticket is not None  # noqa: S101
            if not self._store.is_superseded(self._auto_ticket):
                _logger.debug("Automatic location already in flight")
                return running
            _logger.debug("Detaching superseded automatic cascade")
            self._detached.add(running)
            running.add_done_callback(self._detached.discard)
        ticket = self._store.issue(FixSource.GPS, FixSource.IP)
        self._begin(ticket)
        self._auto_ticket = ticket
        self._auto_task = asyncio.create_task(self._run_automatic(ticket), name="pylocator:automatic")
        return self._auto_task

    async def request_automatic_location(self) -> ResolutionStatus:
        """Run (or join) the automatic cascade and return the resulting status."""
        task = self.start_automatic_location()
        await asyncio.shield(task)
        return self.status

    async def request_mobile_location(self) -> ResolutionStatus:
        """Ask the backend for the phone-relayed GPS position (single attempt)."""
        proxy = MobileProxy(
            self._require_transport(),
            self._config.mobile_proxy_url,
            timeout=self._config.mobile_proxy_timeout,
            clock=self._clock,
        )
        ticket = self._store.issue(FixSource.MOBILE)
        self._begin(ticket)
        try:
            result = await proxy.acquire()
        except asyncio.CancelledError:
            self._in_flight.discard(ticket)
            raise
        self._finish(ticket, result)
        return self.status

    def set_manual_location(self, latitude: Any, longitude: Any) -> LocationFix:
        """Use a point the user picked. Always wins over pending automatic results.

        Raises
        ------
        InvalidCoordinatesError
            If the point fails coordinate validation; the current fix is kept.
        """
        fix = manual_fix(latitude, longitude, clock=self._clock)
        self._store.put(fix)
        _logger.info("Manual location set")
        self._set_status(ResolutionPhase.RESOLVED)
        return fix

    def clear(self) -> None:
        """Forget the current fix. Results of requests already in flight are discarded."""
        self._store.clear()
        self._in_flight.clear()
        self._set_status(ResolutionPhase.IDLE)
