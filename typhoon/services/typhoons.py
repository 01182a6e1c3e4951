from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Callable, Dict, List, Optional, Sequence

import requests

from ..cache import WeatherCache
from ..config import TrackerConfig
from ..entities import NormalizedStorm
from ..health import HealthRegistry
from ..merge import merge_candidates
from ..providers.base import HTTPProvider, ProviderError, QuotaExceeded, RequestConfig, deadline_after, fan_out, remaining_seconds
from ..providers.jma import JMAProvider
from ..providers.noaa import NOAAProvider
from ..providers.openmeteo import OpenMeteoProvider
from ..providers.openweathermap import OpenWeatherMapProvider
from ..providers.windy import WindyProvider
from ..signals import SignalClassifier
from ..track import TrackExtrapolator


def build_provider(name: str, config: TrackerConfig, session: Optional[requests.Session] = None) -> Optional[HTTPProvider]:
    factories: Dict[str, Callable[..., HTTPProvider]] = {
        "openweathermap": lambda **kw: OpenWeatherMapProvider(config.openweathermap, **kw),
        "windy": lambda **kw: WindyProvider(config.windy, **kw),
        "noaa": lambda **kw: NOAAProvider(config.noaa, **kw),
        "jma": lambda **kw: JMAProvider(config.jma, **kw),
        "open-meteo": lambda **kw: OpenMeteoProvider(config.openmeteo, **kw),
        "openmeteo": lambda **kw: OpenMeteoProvider(config.openmeteo, **kw),
    }
    factory = factories.get(name.strip().lower())
    if factory is None:
        return None
    return factory(session=session, request_config=RequestConfig(timeout=config.provider_timeout))


class TyphoonService:
    """Aggregate active tropical cyclones across providers.

    In ``fallback`` mode providers are asked in order and the first one
    reporting any storm wins. In ``merge`` mode every provider is asked
    concurrently and all reports are combined. Either way duplicates are
    removed, each storm gets a wind signal, and storms without a provider
    forecast get an extrapolated track. Provider failures are logged and
    counted, never raised; an empty list means no active storms.
    """

    CACHE_TTL = 5 * 60

    def __init__(
        self,
        providers: Sequence[Any],
        *,
        merge_mode: str = "fallback",
        classifier: Optional[SignalClassifier] = None,
        extrapolator: Optional[TrackExtrapolator] = None,
        cache: Optional[Any] = None,
        health: Optional[HealthRegistry] = None,
        deadline_seconds: Optional[float] = 30.0,
        ttl: Optional[int] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        if merge_mode not in ("fallback", "merge"):
            raise ValueError(f"unknown merge mode {merge_mode!r}")
        self.providers = list(providers)
        self.merge_mode = merge_mode
        self.classifier = classifier or SignalClassifier()
        self.extrapolator = extrapolator or TrackExtrapolator()
        self.cache = cache if cache is not None else WeatherCache()
        self.health = health or HealthRegistry()
        self.deadline_seconds = deadline_seconds
        self.ttl = ttl if ttl is not None else self.CACHE_TTL
        self._log = logger or logging.getLogger(self.__class__.__name__)

    @classmethod
    def from_config(
        cls,
        config: TrackerConfig,
        *,
        session: Optional[requests.Session] = None,
        **kwargs: Any,
    ) -> "TyphoonService":
        providers = []
        for name in config.provider_order:
            provider = build_provider(name, config, session=session)
            if provider is None:
                logging.getLogger(cls.__name__).warning("Unknown typhoon provider %r in provider order", name)
                continue
            providers.append(provider)
        return cls(
            providers,
            merge_mode=config.merge_mode,
            deadline_seconds=config.aggregation_deadline,
            **kwargs,
        )

    # Public API ---------------------------------------------------------
    def get_typhoons(self, region: str = "PH") -> List[NormalizedStorm]:
        cache_key = f"typhoons:{region}:{self.merge_mode}"
        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached
        deadline = deadline_after(self.deadline_seconds)
        if self.merge_mode == "merge":
            candidates = self._collect_all(region, deadline)
        else:
            candidates = self._collect_first(region, deadline)
        storms = [self.enrich(storm) for storm in merge_candidates(candidates)]
        self.cache.set(cache_key, storms, self.ttl)
        return storms

    def enrich(self, storm: NormalizedStorm) -> NormalizedStorm:
        track = storm.forecast_track or self.extrapolator.extrapolate(storm)
        return replace(storm, forecast_track=tuple(track), signal=self.classifier.classify(storm))

    # Helpers ------------------------------------------------------------
    def _collect_first(self, region: str, deadline: Optional[float]) -> List[NormalizedStorm]:
        for provider in self.providers:
            remaining = remaining_seconds(deadline)
            if remaining is not None and remaining <= 0:
                self._log.warning("Aggregation deadline reached before %s", provider.name)
                break
            storms = self._fetch(provider, region, deadline)
            if storms:
                return storms
        return []

    def _collect_all(self, region: str, deadline: Optional[float]) -> List[NormalizedStorm]:
        per_provider = fan_out(
            lambda provider: self._fetch(provider, region, deadline),
            self.providers,
            deadline=deadline,
            label="typhoon provider",
        )
        return [storm for storms in per_provider for storm in storms]

    def _fetch(self, provider: Any, region: str, deadline: Optional[float]) -> List[NormalizedStorm]:
        if not provider.is_available:
            self._log.debug("Skipping %s: not configured", provider.name)
            return []
        try:
            storms = provider.fetch_storms(region, deadline=deadline)
        except QuotaExceeded:
            self._log.warning("Provider %s quota exceeded", provider.name)
            self.health.record_provider_error(provider.name)
            return []
        except ProviderError as exc:
            self._log.error("Provider %s failed: %s", provider.name, exc)
            self.health.record_provider_error(provider.name)
            return []
        self.health.record_success(provider.name)
        self._log.info("Provider %s returned %d storm(s)", provider.name, len(storms))
        return list(storms)


__all__ = ["TyphoonService", "build_provider"]
