"""Plain-language text for resolution outcomes."""

from __future__ import annotations

from pylocator.models.fix import FixSource, LocationFix
from pylocator.models.status import FailureReason, ResolutionFailure

ESCAPE_HATCHES = "You can tap your position on the map, or use your phone's GPS instead."

_REASON_TEXT: dict[FailureReason, str] = {
    FailureReason.PERMISSION_DENIED: "Location access denied. Please enable location services.",
    FailureReason.SENSOR_UNAVAILABLE: "Location information unavailable.",
    FailureReason.SENSOR_TIMEOUT: "Location request timed out.",
    FailureReason.INSECURE_CONTEXT: (
        "Your browser only shares your location over a secure (HTTPS) connection, "
        "and this page is not using one."
    ),
    FailureReason.NO_PROVIDER_SUCCEEDED: "We could not estimate your location from your network either.",
    FailureReason.INVALID_COORDINATES: "The location we received was not a valid position.",
    FailureReason.PROXY_UNAVAILABLE: "Your phone's GPS could not be reached.",
}

_SOURCE_TEXT: dict[FixSource, str] = {
    FixSource.GPS: "device GPS",
    FixSource.MOBILE: "phone GPS",
    FixSource.IP: "network location",
    FixSource.MANUAL: "chosen on map",
}


def reason_text(reason: FailureReason) -> str:
    return _REASON_TEXT.get(reason, "Unable to get your location.")


def describe_failure(failure: ResolutionFailure) -> str:
    """One paragraph for the user, always ending with the manual alternatives."""
    parts: list[str] = []
    if failure.sensor_reason is not None and failure.sensor_reason != failure.reason:
        parts.append(reason_text(failure.sensor_reason))
    parts.append(reason_text(failure.reason))
    if failure.reason == FailureReason.PROXY_UNAVAILABLE and failure.message:
        parts.append(f"({failure.message})")
    if failure.insecure_context and FailureReason.INSECURE_CONTEXT not in (failure.reason, failure.sensor_reason):
        parts.append(reason_text(FailureReason.INSECURE_CONTEXT))
    parts.append(ESCAPE_HATCHES)
    return " ".join(parts)


def describe_fix(fix: LocationFix) -> str:
    """Short label such as ``"25.76170, -80.19180 (device GPS, ±12 m)"``."""
    label = _SOURCE_TEXT.get(fix.source, str(fix.source))
    details = [label]
    if fix.accuracy_meters is not None:
        accuracy = f"±{fix.accuracy_meters:.0f} m"
        if fix.accuracy_estimated:
            # Band-derived radii are guesses; say so wherever they are shown.
            accuracy = f"approx. {accuracy}, estimated"
        details.append(accuracy)
    return f"{fix.latitude:.5f}, {fix.longitude:.5f} ({', '.join(details)})"
