from __future__ import annotations

import logging
import re
from typing import Any, List, Optional, Sequence

import requests

from ..cache import WeatherCache
from ..config import TrackerConfig
from ..entities import Alert, ForecastDay, ResolvedLocation, WeatherSnapshot
from ..health import HealthRegistry
from ..providers.base import ProviderError, QuotaExceeded, RequestConfig, deadline_after
from ..providers.noaa import NOAAProvider
from ..providers.openmeteo import OpenMeteoProvider
from ..providers.openweathermap import OpenWeatherMapProvider
from ..providers.synthetic import SyntheticWeatherProvider
from ..providers.windy import WindyProvider


class WeatherServiceError(RuntimeError):
    """Raised when no source, synthetic included, can answer a weather request."""


def _place(name: str, latitude: float, longitude: float) -> ResolvedLocation:
    return ResolvedLocation(name=name, latitude=latitude, longitude=longitude, country="PH")


GAZETTEER = {
    place.name.lower(): place
    for place in (
        _place("Manila", 14.5995, 120.9842),
        _place("Quezon City", 14.6760, 121.0437),
        _place("Cebu", 10.3157, 123.8854),
        _place("Davao", 7.1907, 125.4553),
        _place("Baguio", 16.4023, 120.5960),
        _place("Tacloban", 11.2408, 125.0058),
        _place("Iloilo", 10.7202, 122.5621),
        _place("Bacolod", 10.6765, 122.9509),
        _place("Zamboanga", 6.9214, 122.0790),
        _place("Puerto Princesa", 9.7392, 118.7353),
        _place("Tuguegarao", 17.6133, 121.7269),
    )
}
GAZETTEER["cebu city"] = GAZETTEER["cebu"]
GAZETTEER["davao city"] = GAZETTEER["davao"]

_COORDINATES = re.compile(r"^\s*(-?\d+(?:\.\d+)?)\s*,\s*(-?\d+(?:\.\d+)?)\s*$")


def parse_coordinates(text: str) -> Optional[ResolvedLocation]:
    match = _COORDINATES.match(text or "")
    if not match:
        return None
    latitude, longitude = float(match.group(1)), float(match.group(2))
    if not -90 <= latitude <= 90 or not -180 <= longitude <= 360:
        return None
    return ResolvedLocation(name=f"{latitude}, {longitude}", latitude=latitude, longitude=longitude)


class WeatherService:
    CURRENT_TTL = 10 * 60
    FORECAST_TTL = 10 * 60
    ALERTS_TTL = 10 * 60

    def __init__(
        self,
        *,
        weather_providers: Sequence[Any],
        alert_providers: Sequence[Any] = (),
        geocoder: Optional[Any] = None,
        synthetic: Optional[SyntheticWeatherProvider] = None,
        cache: Optional[Any] = None,
        health: Optional[HealthRegistry] = None,
        default_country: str = "PH",
        deadline_seconds: Optional[float] = 30.0,
        ttl: Optional[int] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.weather_providers = list(weather_providers)
        self.alert_providers = list(alert_providers)
        self.geocoder = geocoder
        self.synthetic = synthetic
        self.cache = cache if cache is not None else WeatherCache()
        self.health = health or HealthRegistry()
        self.default_country = default_country
        self.deadline_seconds = deadline_seconds
        self.ttl = ttl
        self._log = logger or logging.getLogger(self.__class__.__name__)

    @classmethod
    def from_config(
        cls,
        config: TrackerConfig,
        *,
        session: Optional[requests.Session] = None,
        **kwargs: Any,
    ) -> "WeatherService":
        request_config = RequestConfig(timeout=config.provider_timeout)
        openweathermap = OpenWeatherMapProvider(config.openweathermap, session=session, request_config=request_config)
        windy = WindyProvider(config.windy, session=session, request_config=request_config)
        openmeteo = OpenMeteoProvider(config.openmeteo, session=session, request_config=request_config)
        noaa = NOAAProvider(config.noaa, session=session, request_config=request_config)
        return cls(
            weather_providers=(windy, openweathermap, openmeteo),
            alert_providers=(openweathermap, noaa),
            geocoder=openweathermap,
            synthetic=SyntheticWeatherProvider() if config.allow_synthetic_weather else None,
            default_country=config.default_country,
            deadline_seconds=config.aggregation_deadline,
            **kwargs,
        )

    # Public API ---------------------------------------------------------
    def get_current(self, location: str) -> WeatherSnapshot:
        return self._cached("current", location, self.CURRENT_TTL)

    def get_forecast(self, location: str) -> List[ForecastDay]:
        return self._cached("forecast", location, self.FORECAST_TTL)

    def get_alerts(self, location: str) -> List[Alert]:
        """Advisories from every alert source; empty when none answer."""
        cache_key = self._cache_key("alerts", location)
        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached
        deadline = deadline_after(self.deadline_seconds)
        resolved = self.resolve_location(location, deadline)
        alerts: List[Alert] = []
        if resolved is None:
            self._log.warning("Location %r not found, no alerts", location)
        else:
            for provider in self.alert_providers:
                if not provider.is_available:
                    continue
                try:
                    alerts.extend(provider.alerts(resolved, deadline=deadline))
                except ProviderError as exc:
                    self._record_failure(provider, exc)
                    continue
                self.health.record_success(provider.name)
        self.cache.set(cache_key, alerts, self.ttl or self.ALERTS_TTL)
        return alerts

    def resolve_location(self, location: str, deadline: Optional[float] = None) -> Optional[ResolvedLocation]:
        """Resolve ``"lat,lon"``, a known city, or a geocoded place name."""
        text = (location or "").strip()
        if not text:
            return None
        coordinates = parse_coordinates(text)
        if coordinates is not None:
            return coordinates
        known = GAZETTEER.get(text.split(",")[0].strip().lower())
        if known is not None:
            return known
        if self.geocoder is not None and self.geocoder.is_available:
            try:
                return self.geocoder.geocode(text, self.default_country, deadline=deadline)
            except ProviderError as exc:
                self._record_failure(self.geocoder, exc)
        return None

    # Helpers ------------------------------------------------------------
    def _cached(self, kind: str, location: str, default_ttl: int):
        cache_key = self._cache_key(kind, location)
        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached
        result = self._fetch_with_fallback(kind, location)
        # synthetic answers are never cached
        if not self._is_synthetic(result):
            self.cache.set(cache_key, result, self.ttl or default_ttl)
        return result

    def _fetch_with_fallback(self, kind: str, location: str):
        method_name = "current_weather" if kind == "current" else "forecast"
        deadline = deadline_after(self.deadline_seconds)
        resolved = self.resolve_location(location, deadline)
        if resolved is not None:
            for provider in self.weather_providers:
                method = getattr(provider, method_name, None)
                if not callable(method) or not provider.is_available:
                    continue
                try:
                    result = method(resolved, deadline=deadline)
                except ProviderError as exc:
                    self._record_failure(provider, exc)
                    continue
                self.health.record_success(provider.name)
                return result
        if self.synthetic is not None:
            self._log.warning("Serving synthetic %s for %r", kind, location)
            fallback = resolved or ResolvedLocation(name=location, latitude=None, longitude=None)
            return getattr(self.synthetic, method_name)(fallback)
        if resolved is None:
            raise WeatherServiceError(f"Location not found: {location}")
        raise WeatherServiceError("All weather providers failed")

    def _record_failure(self, provider: Any, exc: ProviderError) -> None:
        if isinstance(exc, QuotaExceeded):
            self._log.warning("Provider %s quota exceeded", provider.name)
        else:
            self._log.error("Provider %s failed: %s", provider.name, exc)
        self.health.record_provider_error(provider.name)

    @staticmethod
    def _is_synthetic(result) -> bool:
        if isinstance(result, list):
            return any(getattr(item, "synthetic", False) for item in result)
        return bool(getattr(result, "synthetic", False))

    def _cache_key(self, kind: str, location: str) -> str:
        return f"weather:{kind}:{(location or '').strip().lower().replace(' ', '_')}"


__all__ = ["GAZETTEER", "WeatherService", "WeatherServiceError", "parse_coordinates"]
