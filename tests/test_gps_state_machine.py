from __future__ import annotations

import asyncio

import pytest

from pylocator.config import LocatorConfig
from pylocator.exceptions import LocatorError
from pylocator.gps import GpsAcquisition, GpsState
from pylocator.models.attempt import AccuracyMode, AttemptOutcome
from pylocator.models.fix import FixSource, LocationFix
from pylocator.models.status import FailureReason, ResolutionFailure
from pylocator.sensor import PositionOptions, SensorResult


class _ScriptedSensor:
    def __init__(self, *results: SensorResult) -> None:
        self._results = list(results)
        self.requests: list[PositionOptions] = []

    async def get_current_position(self, options: PositionOptions) -> SensorResult:
        self.requests.append(options)
        return self._results.pop(0)


class _IpFallback:
    def __init__(self, result: LocationFix | ResolutionFailure) -> None:
        self.result = result
        self.calls = 0

    async def __call__(self) -> LocationFix | ResolutionFailure:
        self.calls += 1
        return self.result


_IP_FIX = LocationFix(latitude=40.0, longitude=-74.0, source=FixSource.IP, accuracy_meters=1200.0)
_IP_FAIL = ResolutionFailure(reason=FailureReason.NO_PROVIDER_SUCCEEDED, message="no-ip-location")


def _states(machine: GpsAcquisition) -> list[GpsState]:
    return [new for _old, new in machine.transitions]


@pytest.mark.asyncio
async def test_high_accuracy_success_resolves_immediately() -> None:
    sensor = _ScriptedSensor(SensorResult.success(25.76, -80.19, 15.0))
    fallback = _IpFallback(_IP_FIX)
    machine = GpsAcquisition(sensor, fallback, LocatorConfig())

    result = await machine.run()

    assert isinstance(result, LocationFix)
    assert result.source == FixSource.GPS
    assert result.accuracy_meters == 15.0
    assert _states(machine) == [GpsState.REQUESTING_HIGH_ACCURACY, GpsState.RESOLVED]
    assert fallback.calls == 0
    assert sensor.requests[0].enable_high_accuracy is True
    assert sensor.requests[0].timeout == 10.0


@pytest.mark.asyncio
async def test_permission_denied_first_attempt_fails_without_retry() -> None:
    sensor = _ScriptedSensor(SensorResult.failure(AttemptOutcome.PERMISSION_DENIED))
    fallback = _IpFallback(_IP_FIX)
    machine = GpsAcquisition(sensor, fallback, LocatorConfig())

    result = await machine.run()

    assert isinstance(result, ResolutionFailure)
    assert result.reason == FailureReason.PERMISSION_DENIED
    assert GpsState.REQUESTING_LOW_ACCURACY not in _states(machine)
    assert machine.state == GpsState.FAILED
    assert len(sensor.requests) == 1
    assert fallback.calls == 0


@pytest.mark.asyncio
async def test_permission_denied_in_insecure_context_is_reported_as_such() -> None:
    sensor = _ScriptedSensor(SensorResult.failure(AttemptOutcome.PERMISSION_DENIED))
    machine = GpsAcquisition(sensor, _IpFallback(_IP_FIX), LocatorConfig(), secure_context=False)

    result = await machine.run()

    assert isinstance(result, ResolutionFailure)
    assert result.reason == FailureReason.INSECURE_CONTEXT
    assert result.insecure_context is True


@pytest.mark.asyncio
async def test_timeout_moves_to_low_accuracy_then_escalates() -> None:
    sensor = _ScriptedSensor(
        SensorResult.failure(AttemptOutcome.TIMEOUT),
        SensorResult.failure(AttemptOutcome.TIMEOUT),
    )
    fallback = _IpFallback(_IP_FIX)
    machine = GpsAcquisition(sensor, fallback, LocatorConfig())

    result = await machine.run()

    assert _states(machine) == [
        GpsState.REQUESTING_HIGH_ACCURACY,
        GpsState.REQUESTING_LOW_ACCURACY,
        GpsState.ESCALATED_IP,
        GpsState.RESOLVED,
    ]
    assert result == _IP_FIX
    assert fallback.calls == 1
    low = sensor.requests[1]
    assert low.enable_high_accuracy is False
    assert low.timeout == 15.0
    assert low.maximum_age == 300.0


@pytest.mark.asyncio
async def test_permission_denied_on_low_accuracy_does_not_escalate() -> None:
    sensor = _ScriptedSensor(
        SensorResult.failure(AttemptOutcome.POSITION_UNAVAILABLE),
        SensorResult.failure(AttemptOutcome.PERMISSION_DENIED),
    )
    fallback = _IpFallback(_IP_FIX)
    machine = GpsAcquisition(sensor, fallback, LocatorConfig())

    result = await machine.run()

    assert isinstance(result, ResolutionFailure)
    assert result.reason == FailureReason.PERMISSION_DENIED
    assert fallback.calls == 0


@pytest.mark.asyncio
async def test_exhausted_cascade_carries_sensor_detail() -> None:
    sensor = _ScriptedSensor(
        SensorResult.failure(AttemptOutcome.POSITION_UNAVAILABLE),
        SensorResult.failure(AttemptOutcome.TIMEOUT),
    )
    machine = GpsAcquisition(sensor, _IpFallback(_IP_FAIL), LocatorConfig(), secure_context=False)

    result = await machine.run()

    assert isinstance(result, ResolutionFailure)
    assert result.reason == FailureReason.NO_PROVIDER_SUCCEEDED
    assert result.last_outcome == AttemptOutcome.TIMEOUT
    assert result.sensor_reason == FailureReason.SENSOR_TIMEOUT
    assert result.insecure_context is True
    assert machine.state == GpsState.FAILED


@pytest.mark.asyncio
async def test_invalid_reading_counts_as_unavailable() -> None:
    sensor = _ScriptedSensor(
        SensorResult.success(0.0, 0.0, 10.0),
        SensorResult.success(48.85, 2.35, 900.0),
    )
    machine = GpsAcquisition(sensor, _IpFallback(_IP_FIX), LocatorConfig())

    result = await machine.run()

    assert isinstance(result, LocationFix)
    assert (result.latitude, result.longitude) == (48.85, 2.35)
    assert GpsState.REQUESTING_LOW_ACCURACY in _states(machine)


@pytest.mark.asyncio
async def test_missing_sensor_goes_straight_through_to_ip() -> None:
    fallback = _IpFallback(_IP_FIX)
    machine = GpsAcquisition(None, fallback, LocatorConfig())

    result = await machine.run()

    assert result == _IP_FIX
    assert fallback.calls == 1


@pytest.mark.asyncio
async def test_sensor_that_never_answers_is_timed_out() -> None:
    class _SilentSensor:
        async def get_current_position(self, options: PositionOptions) -> SensorResult:
            await asyncio.sleep(60)
            raise AssertionError("unreachable")

    config = LocatorConfig(high_accuracy_timeout=0.01, low_accuracy_timeout=0.01, sensor_grace=0.0)
    fallback = _IpFallback(_IP_FAIL)
    machine = GpsAcquisition(_SilentSensor(), fallback, config)

    result = await machine.run()

    assert isinstance(result, ResolutionFailure)
    assert result.last_outcome == AttemptOutcome.TIMEOUT
    assert fallback.calls == 1


@pytest.mark.asyncio
async def test_sensor_exception_is_absorbed() -> None:
    class _BrokenSensor:
        async def get_current_position(self, options: PositionOptions) -> SensorResult:
            raise RuntimeError("driver crashed")

    machine = GpsAcquisition(_BrokenSensor(), _IpFallback(_IP_FIX), LocatorConfig())
    result = await machine.run()
    assert result == _IP_FIX


@pytest.mark.asyncio
async def test_attempts_are_discarded_on_transition() -> None:
    seen: list[tuple[GpsState, int]] = []
    sensor = _ScriptedSensor(SensorResult.failure(AttemptOutcome.TIMEOUT), SensorResult.success(1.0, 1.0, 5.0))
    machine: GpsAcquisition

    def on_transition(old: GpsState, new: GpsState) -> None:
        seen.append((new, len(machine.attempts)))

    machine = GpsAcquisition(sensor, _IpFallback(_IP_FIX), LocatorConfig(), on_transition=on_transition)
    await machine.run()

    assert all(count == 0 for _state, count in seen)
    assert machine.last_outcome == AttemptOutcome.SUCCESS


@pytest.mark.asyncio
async def test_run_is_single_use() -> None:
    sensor = _ScriptedSensor(SensorResult.success(1.0, 1.0, 5.0))
    machine = GpsAcquisition(sensor, _IpFallback(_IP_FIX), LocatorConfig())
    await machine.run()
    with pytest.raises(LocatorError):
        await machine.run()


def test_accuracy_modes_map_to_options() -> None:
    machine = GpsAcquisition(None, _IpFallback(_IP_FIX), LocatorConfig())
    high = machine._options(AccuracyMode.HIGH)  # noqa: SLF001
    assert high.as_geolocation_options() == {"enableHighAccuracy": True, "timeout": 10000, "maximumAge": 60000}
