"""Resolver configuration for pylocator."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from pylocator._constants import (
    DEFAULT_PROVIDERS,
    FALLBACK_LOOKUP_URL,
    ISP_KEYWORDS,
    MOBILE_KEYWORDS,
    MOBILE_PROXY_URL,
)
from pylocator.exceptions import LocatorConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _env_float(value: str | None, name: str) -> float | None:
    if value is None or not value.strip():
        return None
    try:
        return float(value)
    except ValueError as exc:
        raise LocatorConfigError(f"{name} must be numeric, got {value!r}") from exc


@dataclasses.dataclass(frozen=True)
class ProviderConfig:
    """One IP-geolocation provider endpoint.

    Parameters
    ----------
    name : str
        Short identifier used in logs and on resulting fixes.
    url : str
        HTTP GET endpoint returning JSON.
    timeout : float
        Seconds before the request is cancelled.
    """

    name: str
    url: str
    timeout: float = 4.0

    def __post_init__(self) -> None:
        if not self.name:
            raise LocatorConfigError("provider name must be non-empty")
        if self.timeout <= 0:
            raise LocatorConfigError(f"provider {self.name!r} timeout must be positive")


@dataclasses.dataclass(frozen=True)
class AccuracyBands:
    """Estimated accuracy, in meters, for providers that report none.

    These are coarse guesses keyed on the connection class a provider
    declares for the caller's IP block. They are estimates, never
    measurements.
    """

    isp_meters: float = 5000.0
    mobile_meters: float = 1000.0
    unknown_meters: float = 2000.0
    mobile_keywords: tuple[str, ...] = MOBILE_KEYWORDS
    isp_keywords: tuple[str, ...] = ISP_KEYWORDS

    def __post_init__(self) -> None:
        for field_name in ("isp_meters", "mobile_meters", "unknown_meters"):
            if getattr(self, field_name) <= 0:
                raise LocatorConfigError(f"{field_name} must be positive")


def _default_providers() -> tuple[ProviderConfig, ...]:
    return tuple(ProviderConfig(name, url, timeout) for name, url, timeout in DEFAULT_PROVIDERS)


@dataclasses.dataclass(frozen=True)
class LocatorConfig:
    """Resolver configuration.

    Parameters
    ----------
    high_accuracy_timeout : float
        Seconds allowed for the first (high-accuracy) sensor request.
    high_accuracy_maximum_age : float
        Oldest cached sensor position, in seconds, accepted on the first request.
    low_accuracy_timeout : float
        Seconds allowed for the second (low-accuracy) sensor request.
    low_accuracy_maximum_age : float
        Oldest cached sensor position accepted on the second request.
    sensor_grace : float
        Extra seconds on top of a sensor timeout before the resolver stops
        waiting for a sensor that never calls back.
    providers : tuple of ProviderConfig
        IP-geolocation providers raced when the sensor path is exhausted.
    fallback_lookup_url : str
        URL template (``{ip}`` placeholder) for the single secondary lookup
        made when a provider answers with an IP address only.
    mobile_proxy_url : str
        Backend endpoint returning a GPS fix relayed from the user's phone.
    mobile_proxy_timeout : float
        Seconds allowed for the mobile proxy request.
    accuracy_bands : AccuracyBands
        Estimated accuracies for providers without an explicit radius.
    """

    high_accuracy_timeout: float = 10.0
    high_accuracy_maximum_age: float = 60.0
    low_accuracy_timeout: float = 15.0
    low_accuracy_maximum_age: float = 300.0
    sensor_grace: float = 1.0
    providers: tuple[ProviderConfig, ...] = dataclasses.field(default_factory=_default_providers)
    fallback_lookup_url: str = FALLBACK_LOOKUP_URL
    mobile_proxy_url: str = MOBILE_PROXY_URL
    mobile_proxy_timeout: float = 10.0
    accuracy_bands: AccuracyBands = dataclasses.field(default_factory=AccuracyBands)

    def __post_init__(self) -> None:
        for field_name in (
            "high_accuracy_timeout",
            "low_accuracy_timeout",
            "mobile_proxy_timeout",
        ):
            if getattr(self, field_name) <= 0:
                raise LocatorConfigError(f"{field_name} must be positive")
        for field_name in ("high_accuracy_maximum_age", "low_accuracy_maximum_age", "sensor_grace"):
            if getattr(self, field_name) < 0:
                raise LocatorConfigError(f"{field_name} must not be negative")
        names = [provider.name for provider in self.providers]
        if len(names) != len(set(names)):
            raise LocatorConfigError(f"duplicate provider names: {names}")
        if "{ip}" not in self.fallback_lookup_url:
            raise LocatorConfigError("fallback_lookup_url must contain an {ip} placeholder")

    @classmethod
    def from_env(cls, **overrides: Any) -> LocatorConfig:
        """Create configuration from environment variables.

        Reads optional ``LOCATOR_*`` variables. Explicit keyword arguments
        override environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        LocatorConfig
            Populated configuration.
        """
        env = os.environ

        band_kwargs: dict[str, Any] = {}
        _ENV_BAND_MAP = {
            "LOCATOR_ISP_ACCURACY_M": "isp_meters",
            "LOCATOR_MOBILE_ACCURACY_M": "mobile_meters",
            "LOCATOR_UNKNOWN_ACCURACY_M": "unknown_meters",
        }
        for env_key, field_name in _ENV_BAND_MAP.items():
            parsed = _env_float(env.get(env_key), env_key)
            if parsed is not None:
                band_kwargs[field_name] = parsed

        band_overrides = overrides.pop("accuracy_bands", None)
        if isinstance(band_overrides, dict):
            band_kwargs.update(band_overrides)
        elif isinstance(band_overrides, AccuracyBands):
            band_kwargs = dataclasses.asdict(band_overrides)

        config_kwargs: dict[str, Any] = {"accuracy_bands": AccuracyBands(**band_kwargs)}

        _ENV_FLOAT_MAP = {
            "LOCATOR_HIGH_ACCURACY_TIMEOUT": "high_accuracy_timeout",
            "LOCATOR_HIGH_ACCURACY_MAX_AGE": "high_accuracy_maximum_age",
            "LOCATOR_LOW_ACCURACY_TIMEOUT": "low_accuracy_timeout",
            "LOCATOR_LOW_ACCURACY_MAX_AGE": "low_accuracy_maximum_age",
            "LOCATOR_SENSOR_GRACE": "sensor_grace",
            "LOCATOR_MOBILE_PROXY_TIMEOUT": "mobile_proxy_timeout",
        }
        for env_key, field_name in _ENV_FLOAT_MAP.items():
            if field_name in overrides:
                continue
            parsed = _env_float(env.get(env_key), env_key)
            if parsed is not None:
                config_kwargs[field_name] = parsed

        _ENV_STR_MAP = {
            "LOCATOR_MOBILE_PROXY_URL": "mobile_proxy_url",
            "LOCATOR_FALLBACK_LOOKUP_URL": "fallback_lookup_url",
        }
        for env_key, field_name in _ENV_STR_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        # Comma-separated provider names restrict the default provider set.
        enabled = env.get("LOCATOR_PROVIDERS")
        if enabled is not None and "providers" not in overrides:
            wanted = {name.strip() for name in enabled.split(",") if name.strip()}
            config_kwargs["providers"] = tuple(p for p in _default_providers() if p.name in wanted)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)


def env_debug_enabled() -> bool:
    """Return whether ``LOCATOR_DEBUG`` asks for verbose logging."""
    return _env_bool(os.environ.get("LOCATOR_DEBUG"), False)
