"""pylocator - Async location resolution with GPS, IP, mobile and manual sources."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pylocator")
except PackageNotFoundError:
    __version__ = "0+local"
from pylocator.config import AccuracyBands, LocatorConfig, ProviderConfig
from pylocator.exceptions import (
    InvalidCoordinatesError,
    LocatorConfigError,
    LocatorError,
    LocatorTransportError,
)
from pylocator.gps import GpsAcquisition, GpsState
from pylocator.messages import describe_failure, describe_fix
from pylocator.models import (
    AccuracyMode,
    AttemptOutcome,
    ConnectionType,
    FailureReason,
    FixSource,
    LocationFix,
    ProviderEstimate,
    ResolutionAttempt,
    ResolutionFailure,
    ResolutionPhase,
    ResolutionStatus,
)
from pylocator.nearest import haversine_m, select_nearest
from pylocator.resolver import LocationResolver
from pylocator.sensor import (
    CallbackSensorAdapter,
    GeolocationSensor,
    PositionOptions,
    SensorReading,
    SensorResult,
    is_secure_origin,
)
from pylocator.validate import is_valid_coordinate

__all__ = [
    "__version__",
    "AccuracyBands",
    "AccuracyMode",
    "AttemptOutcome",
    "CallbackSensorAdapter",
    "ConnectionType",
    "FailureReason",
    "FixSource",
    "GeolocationSensor",
    "GpsAcquisition",
    "GpsState",
    "InvalidCoordinatesError",
    "LocationFix",
    "LocationResolver",
    "LocatorConfig",
    "LocatorConfigError",
    "LocatorError",
    "LocatorTransportError",
    "PositionOptions",
    "ProviderConfig",
    "ProviderEstimate",
    "ResolutionAttempt",
    "ResolutionFailure",
    "ResolutionPhase",
    "ResolutionStatus",
    "SensorReading",
    "SensorResult",
    "describe_failure",
    "describe_fix",
    "haversine_m",
    "is_secure_origin",
    "is_valid_coordinate",
    "select_nearest",
]
