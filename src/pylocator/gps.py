"""GPS acquisition state machine.

Transitions::

    Idle -> RequestingHighAccuracy
    RequestingHighAccuracy --success--> Resolved
    RequestingHighAccuracy --permissionDenied--> Failed
    RequestingHighAccuracy --timeout/unavailable/error--> RequestingLowAccuracy
    RequestingLowAccuracy --success--> Resolved
    RequestingLowAccuracy --permissionDenied--> Failed
    RequestingLowAccuracy --timeout/unavailable/error--> EscalatedIp
    EscalatedIp --fix--> Resolved
    EscalatedIp --failure--> Failed

Each state runs at most once, so a cascade makes at most two sensor
requests and one IP race before it stops.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from enum import StrEnum

from pylocator.config import LocatorConfig
from pylocator.exceptions import LocatorError
from pylocator.models.attempt import AccuracyMode, AttemptOutcome, ResolutionAttempt
from pylocator.models.fix import FixSource, LocationFix
from pylocator.models.status import FailureReason, ResolutionFailure, reason_for_outcome
from pylocator.sensor import GeolocationSensor, PositionOptions, SensorResult
from pylocator.validate import is_valid_coordinate

_logger = logging.getLogger(__name__)

IpFallback = Callable[[], Awaitable[LocationFix | ResolutionFailure]]


def _utcnow() -> datetime:
    return datetime.now(UTC)


class GpsState(StrEnum):
    IDLE = "idle"
    REQUESTING_HIGH_ACCURACY = "requestingHighAccuracy"
    REQUESTING_LOW_ACCURACY = "requestingLowAccuracy"
    ESCALATED_IP = "escalatedIp"
    RESOLVED = "resolved"
    FAILED = "failed"


TERMINAL_STATES = frozenset({GpsState.RESOLVED, GpsState.FAILED})


class GpsAcquisition:
    """One run of the sensor cascade, ending in a fix or a failure.

    Instances are single-use: :meth:`run` may be awaited once.

    Parameters
    ----------
    sensor : GeolocationSensor or None
        Device sensor. ``None`` means the platform has no geolocation
        support; both sensor attempts then report ``positionUnavailable``.
    ip_fallback : callable
        Coroutine factory invoked once when both sensor attempts fail.
    config : LocatorConfig
        Timeouts and maximum ages for the two sensor requests.
    secure_context : bool
        Whether the page has secure transport. Only affects how a
        permission denial is reported.
    """

    def __init__(
        self,
        sensor: GeolocationSensor | None,
        ip_fallback: IpFallback,
        config: LocatorConfig,
        *,
        secure_context: bool = True,
        clock: Callable[[], datetime] = _utcnow,
        on_transition: Callable[[GpsState, GpsState], None] | None = None,
    ) -> None:
        self._sensor = sensor
        self._ip_fallback = ip_fallback
        self._config = config
        self._secure_context = secure_context
        self._clock = clock
        self._on_transition = on_transition
        self._state = GpsState.IDLE
        self._transitions: list[tuple[GpsState, GpsState]] = []
        self._attempts: list[ResolutionAttempt] = []
        self._last_outcome: AttemptOutcome | None = None

    @property
    def state(self) -> GpsState:
        return self._state

    @property
    def transitions(self) -> list[tuple[GpsState, GpsState]]:
        return list(self._transitions)

    @property
    def attempts(self) -> list[ResolutionAttempt]:
        """Attempts made in the current state only."""
        return list(self._attempts)

    @property
    def last_outcome(self) -> AttemptOutcome | None:
        return self._last_outcome

    def _transition(self, new_state: GpsState) -> None:
        old_state = self._state
        self._state = new_state
        self._attempts.clear()
        self._transitions.append((old_state, new_state))
        _logger.debug("GPS state %s -> %s", old_state, new_state)
        if self._on_transition is not None:
            self._on_transition(old_state, new_state)

    def _options(self, mode: AccuracyMode) -> PositionOptions:
        if mode == AccuracyMode.HIGH:
            return PositionOptions(
                enable_high_accuracy=True,
                timeout=self._config.high_accuracy_timeout,
                maximum_age=self._config.high_accuracy_maximum_age,
            )
        return PositionOptions(
            enable_high_accuracy=False,
            timeout=self._config.low_accuracy_timeout,
            maximum_age=self._config.low_accuracy_maximum_age,
        )

    async def _request_sensor(self, options: PositionOptions) -> SensorResult:
        if self._sensor is None:
            return SensorResult.failure(AttemptOutcome.POSITION_UNAVAILABLE, "geolocation is not supported")
        try:
            # Outer watchdog for sensors that never call back.
            async with asyncio.timeout(options.timeout + self._config.sensor_grace):
                return await self._sensor.get_current_position(options)
        except TimeoutError:
            return SensorResult.failure(AttemptOutcome.TIMEOUT, "sensor did not respond")
        except Exception as exc:
            _logger.debug("Sensor request raised", exc_info=True)
            return SensorResult.failure(AttemptOutcome.ERROR, str(exc))

    async def _attempt(self, mode: AccuracyMode) -> LocationFix | None:
        started_at = self._clock()
        result = await self._request_sensor(self._options(mode))

        fix: LocationFix | None = None
        outcome = result.outcome
        if outcome == AttemptOutcome.SUCCESS:
            reading = result.reading
            if (
                reading is not None
                and is_valid_coordinate(reading.latitude, reading.longitude)
                and reading.accuracy >= 0
            ):
                fix = LocationFix(
                    latitude=reading.latitude,
                    longitude=reading.longitude,
                    source=FixSource.GPS,
                    accuracy_meters=reading.accuracy,
                    acquired_at=self._clock(),
                )
            else:
                _logger.debug("Sensor returned unusable reading %s", reading)
                outcome = AttemptOutcome.POSITION_UNAVAILABLE

        self._attempts.append(ResolutionAttempt(accuracy_mode=mode, started_at=started_at, outcome=outcome))
        self._last_outcome = outcome
        _logger.debug("GPS %s-accuracy attempt finished: %s %s", mode, outcome, result.message)
        return fix

    def _resolve(self, fix: LocationFix) -> LocationFix:
        self._transition(GpsState.RESOLVED)
        _logger.info("Location resolved via %s (±%.0fm)", fix.source, fix.accuracy_meters or 0.0)
        return fix

    def _fail(self, failure: ResolutionFailure) -> ResolutionFailure:
        self._transition(GpsState.FAILED)
        _logger.warning("Automatic location failed: %s", failure.reason)
        return failure

    def _denied(self) -> ResolutionFailure:
        reason = reason_for_outcome(AttemptOutcome.PERMISSION_DENIED, secure_context=self._secure_context)
        assert reason is not None  # noqa: S101
        return self._fail(
            ResolutionFailure(
                reason=reason,
                message="location permission denied",
                last_outcome=AttemptOutcome.PERMISSION_DENIED,
                sensor_reason=reason,
                insecure_context=not self._secure_context,
            )
        )

    async def run(self) -> LocationFix | ResolutionFailure:
        """Drive the cascade to a terminal state."""
        if self._state != GpsState.IDLE:
            raise LocatorError(f"GPS acquisition already started (state={self._state})")

        self._transition(GpsState.REQUESTING_HIGH_ACCURACY)
        fix = await self._attempt(AccuracyMode.HIGH)
        if fix is not None:
            return self._resolve(fix)
        if self._last_outcome == AttemptOutcome.PERMISSION_DENIED:
            return self._denied()

        self._transition(GpsState.REQUESTING_LOW_ACCURACY)
        fix = await self._attempt(AccuracyMode.LOW)
        if fix is not None:
            return self._resolve(fix)
        if self._last_outcome == AttemptOutcome.PERMISSION_DENIED:
            return self._denied()

        sensor_outcome = self._last_outcome
        self._transition(GpsState.ESCALATED_IP)
        result = await self._ip_fallback()
        if isinstance(result, LocationFix):
            return self._resolve(result)

        sensor_reason = (
            reason_for_outcome(sensor_outcome, secure_context=self._secure_context)
            if sensor_outcome is not None
            else None
        )
        return self._fail(
            result.model_copy(
                update={
                    "reason": FailureReason.NO_PROVIDER_SUCCEEDED,
                    "last_outcome": sensor_outcome,
                    "sensor_reason": sensor_reason,
                    "insecure_context": not self._secure_context,
                }
            )
        )
