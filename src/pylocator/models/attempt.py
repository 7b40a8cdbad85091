"""Sensor attempt records used by the GPS state machine."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class AccuracyMode(StrEnum):
    HIGH = "high"
    LOW = "low"


class AttemptOutcome(StrEnum):
    SUCCESS = "success"
    TIMEOUT = "timeout"
    PERMISSION_DENIED = "permissionDenied"
    POSITION_UNAVAILABLE = "positionUnavailable"
    ERROR = "error"


class ResolutionAttempt(BaseModel):
    """One try of the sensor. Transient: dropped when the machine changes state."""

    model_config = ConfigDict(frozen=True)

    accuracy_mode: AccuracyMode
    started_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    outcome: AttemptOutcome
