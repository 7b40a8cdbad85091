from __future__ import annotations

from pylocator.messages import ESCAPE_HATCHES, describe_failure, describe_fix
from pylocator.models.attempt import AttemptOutcome
from pylocator.models.fix import FixSource, LocationFix
from pylocator.models.status import FailureReason, ResolutionFailure


def test_every_failure_offers_manual_and_mobile() -> None:
    for reason in FailureReason:
        text = describe_failure(ResolutionFailure(reason=reason))
        assert text.endswith(ESCAPE_HATCHES)


def test_exhausted_cascade_mentions_sensor_cause() -> None:
    failure = ResolutionFailure(
        reason=FailureReason.NO_PROVIDER_SUCCEEDED,
        last_outcome=AttemptOutcome.TIMEOUT,
        sensor_reason=FailureReason.SENSOR_TIMEOUT,
    )
    text = describe_failure(failure)
    assert text.startswith("Location request timed out.")
    assert "network" in text


def test_insecure_context_is_explained() -> None:
    failure = ResolutionFailure(reason=FailureReason.NO_PROVIDER_SUCCEEDED, insecure_context=True)
    assert "HTTPS" in describe_failure(failure)


def test_proxy_failure_shows_upstream_message() -> None:
    failure = ResolutionFailure(reason=FailureReason.PROXY_UNAVAILABLE, message="Phone offline")
    assert "(Phone offline)" in describe_failure(failure)


def test_estimated_accuracy_is_labeled() -> None:
    fix = LocationFix(
        latitude=40.0,
        longitude=-74.0,
        source=FixSource.IP,
        accuracy_meters=5000.0,
        accuracy_estimated=True,
    )
    assert describe_fix(fix) == "40.00000, -74.00000 (network location, approx. ±5000 m, estimated)"


def test_manual_fix_has_no_accuracy() -> None:
    fix = LocationFix(latitude=25.5, longitude=-80.25, source=FixSource.MANUAL)
    assert describe_fix(fix) == "25.50000, -80.25000 (chosen on map)"
