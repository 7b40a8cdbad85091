"""Resolution status and failure values surfaced to the UI."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict

from pylocator.models.attempt import AttemptOutcome
from pylocator.models.fix import LocationFix


class FailureReason(StrEnum):
    PERMISSION_DENIED = "permission_denied"
    SENSOR_UNAVAILABLE = "sensor_unavailable"
    SENSOR_TIMEOUT = "sensor_timeout"
    INSECURE_CONTEXT = "insecure_context"
    NO_PROVIDER_SUCCEEDED = "no_provider_succeeded"
    INVALID_COORDINATES = "invalid_coordinates"
    PROXY_UNAVAILABLE = "proxy_unavailable"


class ResolutionFailure(BaseModel):
    """Why a resolution path produced no fix.

    Parameters
    ----------
    reason : FailureReason
        Terminal classification.
    message : str
        Detail for display. For the mobile proxy this is the upstream
        message, verbatim.
    last_outcome : AttemptOutcome or None
        Outcome of the last sensor attempt, when the sensor was involved.
    sensor_reason : FailureReason or None
        Why the sensor path gave up, when the terminal reason lies elsewhere
        (e.g. ``sensor_timeout`` before ``no_provider_succeeded``).
    insecure_context : bool
        Whether the page lacked secure transport when the sensor was asked.
    """

    model_config = ConfigDict(frozen=True)

    reason: FailureReason
    message: str = ""
    last_outcome: AttemptOutcome | None = None
    sensor_reason: FailureReason | None = None
    insecure_context: bool = False


class ResolutionPhase(StrEnum):
    IDLE = "idle"
    RESOLVING = "resolving"
    RESOLVED = "resolved"
    FAILED = "failed"


class ResolutionStatus(BaseModel):
    """What the UI shows: the current phase plus the current fix or failure."""

    model_config = ConfigDict(frozen=True)

    phase: ResolutionPhase = ResolutionPhase.IDLE
    fix: LocationFix | None = None
    failure: ResolutionFailure | None = None

    @property
    def is_resolved(self) -> bool:
        return self.phase == ResolutionPhase.RESOLVED and self.fix is not None


def reason_for_outcome(outcome: AttemptOutcome, *, secure_context: bool = True) -> FailureReason | None:
    """Classify a failed sensor attempt."""
    if outcome == AttemptOutcome.SUCCESS:
        return None
    if outcome == AttemptOutcome.PERMISSION_DENIED:
        return FailureReason.PERMISSION_DENIED if secure_context else FailureReason.INSECURE_CONTEXT
    if outcome == AttemptOutcome.TIMEOUT:
        return FailureReason.SENSOR_TIMEOUT
    return FailureReason.SENSOR_UNAVAILABLE
