"""Runtime configuration for providers and services."""
from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from typing import Mapping, Optional, Tuple


PLACEHOLDER_KEYS = frozenset(
    {
        "YOUR_OPENWEATHER_API_KEY_HERE",
        "YOUR_WINDY_API_KEY_HERE",
        "changeme",
    }
)

MERGE_MODES = ("fallback", "merge")
DEFAULT_PROVIDER_ORDER = ("OpenWeatherMap", "JMA", "NOAA")


def is_placeholder_key(value: Optional[str]) -> bool:
    if value is None:
        return True
    value = value.strip()
    return not value or value in PLACEHOLDER_KEYS


def _flag(value: Optional[str], default: bool) -> bool:
    if value is None or value == "":
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _number(value: Optional[str], default: Optional[float], name: str) -> Optional[float]:
    if value is None or value == "":
        return default
    try:
        number = float(value)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {value!r}") from None
    if number <= 0:
        raise ValueError(f"{name} must be positive, got {value!r}")
    return number


@dataclass(frozen=True)
class ProviderSettings:
    enabled: bool = True
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    timeout: Optional[float] = None

    @property
    def has_key(self) -> bool:
        return not is_placeholder_key(self.api_key)


@dataclass(frozen=True)
class TrackerConfig:
    """Everything the services need to know about their environment.

    Build it once with :meth:`from_env` and pass it down; adapters never
    read environment variables themselves.
    """

    openweathermap: ProviderSettings = field(
        default_factory=lambda: ProviderSettings(api_key="YOUR_OPENWEATHER_API_KEY_HERE")
    )
    windy: ProviderSettings = field(default_factory=lambda: ProviderSettings(api_key="YOUR_WINDY_API_KEY_HERE"))
    noaa: ProviderSettings = field(default_factory=lambda: ProviderSettings(base_url="https://api.weather.gov"))
    jma: ProviderSettings = field(default_factory=lambda: ProviderSettings(base_url="https://www.data.jma.go.jp"))
    openmeteo: ProviderSettings = field(default_factory=ProviderSettings)
    default_location: str = "Manila"
    default_country: str = "PH"
    provider_order: Tuple[str, ...] = DEFAULT_PROVIDER_ORDER
    merge_mode: str = "fallback"
    provider_timeout: Optional[float] = None
    aggregation_deadline: float = 30.0
    allow_synthetic_weather: bool = True

    def __post_init__(self) -> None:
        if self.merge_mode not in MERGE_MODES:
            raise ValueError(f"merge_mode must be one of {MERGE_MODES}, got {self.merge_mode!r}")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "TrackerConfig":
        env = os.environ if environ is None else environ
        owm_key = env.get("OPENWEATHER_API_KEY") or env.get("OPENWEATHERMAP_API_KEY") or "YOUR_OPENWEATHER_API_KEY_HERE"
        order = tuple(
            name.strip() for name in env.get("TYPHOON_PROVIDER_ORDER", ",".join(DEFAULT_PROVIDER_ORDER)).split(",") if name.strip()
        )
        return cls(
            openweathermap=ProviderSettings(
                enabled=_flag(env.get("OPENWEATHER_API_ENABLED"), True),
                api_key=owm_key,
            ),
            windy=ProviderSettings(
                enabled=_flag(env.get("WINDY_API_ENABLED"), True),
                api_key=env.get("WINDY_API_KEY") or "YOUR_WINDY_API_KEY_HERE",
            ),
            noaa=ProviderSettings(
                enabled=_flag(env.get("NOAA_API_ENABLED"), True),
                base_url=env.get("NOAA_API_BASE_URL") or "https://api.weather.gov",
            ),
            jma=ProviderSettings(
                enabled=_flag(env.get("JMA_API_ENABLED"), True),
                base_url=env.get("JMA_API_BASE_URL") or "https://www.data.jma.go.jp",
            ),
            openmeteo=ProviderSettings(enabled=_flag(env.get("OPENMETEO_API_ENABLED"), True)),
            default_location=env.get("DEFAULT_LOCATION") or "Manila",
            default_country=env.get("DEFAULT_COUNTRY") or "PH",
            provider_order=order or DEFAULT_PROVIDER_ORDER,
            merge_mode=(env.get("TYPHOON_MERGE_MODE") or "fallback").strip().lower(),
            provider_timeout=_number(env.get("PROVIDER_TIMEOUT"), None, "PROVIDER_TIMEOUT"),
            aggregation_deadline=_number(env.get("AGGREGATION_DEADLINE"), 30.0, "AGGREGATION_DEADLINE"),
            allow_synthetic_weather=_flag(env.get("ALLOW_SYNTHETIC_WEATHER"), True),
        )

    def with_overrides(self, **changes) -> "TrackerConfig":
        return replace(self, **changes)

    @classmethod
    def all_disabled(cls) -> "TrackerConfig":
        """Configuration with every provider switched off."""
        off = ProviderSettings(enabled=False)
        return cls(openweathermap=off, windy=off, noaa=off, jma=off, openmeteo=off)


__all__ = ["PLACEHOLDER_KEYS", "ProviderSettings", "TrackerConfig", "is_placeholder_key"]
