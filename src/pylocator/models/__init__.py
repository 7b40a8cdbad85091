"""Data models for location resolution."""

from pylocator.models.attempt import AccuracyMode, AttemptOutcome, ResolutionAttempt
from pylocator.models.fix import FixSource, LocationFix
from pylocator.models.provider import ConnectionType, ProviderEstimate
from pylocator.models.status import FailureReason, ResolutionFailure, ResolutionPhase, ResolutionStatus

__all__ = [
    "AccuracyMode",
    "AttemptOutcome",
    "ConnectionType",
    "FailureReason",
    "FixSource",
    "LocationFix",
    "ProviderEstimate",
    "ResolutionAttempt",
    "ResolutionFailure",
    "ResolutionPhase",
    "ResolutionStatus",
]
