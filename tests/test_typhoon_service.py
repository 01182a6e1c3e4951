from __future__ import annotations

import time
from typing import List, Optional

import pytest

from typhoon.cache import WeatherCache
from typhoon.config import TrackerConfig
from typhoon.entities import NormalizedStorm, TrackPoint
from typhoon.health import HealthRegistry
from typhoon.providers.base import NetworkError, QuotaExceeded
from typhoon.providers.jma import JMAProvider
from typhoon.providers.noaa import NOAAProvider
from typhoon.providers.openweathermap import OpenWeatherMapProvider
from typhoon.services.typhoons import TyphoonService, build_provider


class StormProviderStub:
    def __init__(
        self,
        name: str,
        storms: Optional[List[NormalizedStorm]] = None,
        error: Optional[Exception] = None,
        available: bool = True,
        delay: float = 0,
    ) -> None:
        self.name = name
        self._storms = storms or []
        self._error = error
        self.is_available = available
        self.delay = delay
        self.calls = 0

    def fetch_storms(self, region: str = "PH", deadline: Optional[float] = None) -> List[NormalizedStorm]:
        self.calls += 1
        if self.delay:
            time.sleep(self.delay)
        if self._error is not None:
            raise self._error
        return list(self._storms)


def make_service(providers, clock=None, **kwargs) -> TyphoonService:
    cache = WeatherCache(time_func=clock) if clock else WeatherCache()
    kwargs.setdefault("health", HealthRegistry())
    return TyphoonService(providers, cache=cache, **kwargs)


def test_fallback_uses_first_provider_with_storms(make_storm):
    empty = StormProviderStub("OpenWeatherMap")
    jma = StormProviderStub("JMA", [make_storm(source="JMA", wind=175)])
    noaa = StormProviderStub("NOAA", [make_storm(name="Leon", latitude=20.0, longitude=130.0, source="NOAA")])
    service = make_service([empty, jma, noaa])

    storms = service.get_typhoons()

    assert [storm.source for storm in storms] == ["JMA"]
    assert (empty.calls, jma.calls, noaa.calls) == (1, 1, 0)
    assert set(service.health.snapshot()["lastSuccess"]) == {"OpenWeatherMap", "JMA"}


def test_failing_provider_is_recorded_and_skipped(make_storm):
    broken = StormProviderStub("OpenWeatherMap", error=NetworkError("HTTP 500"))
    limited = StormProviderStub("JMA", error=QuotaExceeded("quota exceeded"))
    noaa = StormProviderStub("NOAA", [make_storm(source="NOAA")])
    service = make_service([broken, limited, noaa])

    storms = service.get_typhoons()

    assert [storm.source for storm in storms] == ["NOAA"]
    assert service.health.snapshot()["providers"] == {"OpenWeatherMap": 1, "JMA": 1}


def test_merge_mode_asks_everyone_and_keeps_first_seen(make_storm):
    owm = StormProviderStub("OpenWeatherMap", [make_storm(wind=150)])
    jma = StormProviderStub(
        "JMA",
        [
            make_storm(name="KRISTINE", latitude=15.7, longitude=125.3, wind=175, source="JMA"),
            make_storm(name="LEON", latitude=19.0, longitude=131.0, wind=90, source="JMA"),
        ],
    )
    noaa = StormProviderStub("NOAA", error=NetworkError("down"))
    service = make_service([owm, jma, noaa], merge_mode="merge")

    storms = service.get_typhoons()

    assert [(storm.name, storm.source) for storm in storms] == [("Kristine", "OpenWeatherMap"), ("LEON", "JMA")]
    assert storms[0].wind_speed_kmh == 150
    assert (owm.calls, jma.calls, noaa.calls) == (1, 1, 1)
    assert service.health.snapshot()["providers"] == {"NOAA": 1}


def test_merge_mode_returns_what_arrived_before_the_deadline(make_storm):
    fast = StormProviderStub("OpenWeatherMap", [make_storm(wind=150)])
    slow = StormProviderStub("JMA", [make_storm(name="LEON", latitude=19.0, longitude=131.0, source="JMA")], delay=2)
    service = make_service([slow, fast], merge_mode="merge", deadline_seconds=0.3)

    started = time.monotonic()
    storms = service.get_typhoons()

    assert time.monotonic() - started < 1.5
    assert [storm.name for storm in storms] == ["Kristine"]
    assert slow.calls == 1


def test_fallback_stops_once_the_deadline_has_passed(make_storm):
    slow = StormProviderStub("OpenWeatherMap", delay=0.3)
    jma = StormProviderStub("JMA", [make_storm(source="JMA")])
    service = make_service([slow, jma], deadline_seconds=0.1)

    assert service.get_typhoons() == []
    assert (slow.calls, jma.calls) == (1, 0)


def test_unavailable_providers_are_skipped_silently(make_storm):
    disabled = StormProviderStub("OpenWeatherMap", [make_storm()], available=False)
    service = make_service([disabled])

    assert service.get_typhoons() == []
    assert disabled.calls == 0
    assert service.health.snapshot()["providers"] == {}


def test_no_storms_anywhere_is_an_empty_list():
    service = make_service([StormProviderStub("OpenWeatherMap"), StormProviderStub("JMA")])
    assert service.get_typhoons() == []


def test_storms_get_signal_and_extrapolated_track(make_storm):
    service = make_service([StormProviderStub("OpenWeatherMap", [make_storm(wind=150)])])

    storm = service.get_typhoons()[0]

    assert storm.signal == 3
    assert [point.hours_ahead for point in storm.forecast_track] == [6, 12, 18, 24, 30]
    payload = storm.to_dict()
    assert payload["signal"]["label"] == "Wind Signal #3"
    assert len(payload["forecastTrack"]) == 5


def test_provider_track_is_kept(make_storm):
    track = (TrackPoint(latitude=16.0, longitude=124.5, wind_speed_kmh=140, hours_ahead=12),)
    service = make_service([StormProviderStub("NOAA", [make_storm(source="NOAA", forecast_track=track)])])

    assert service.get_typhoons()[0].forecast_track == track


def test_results_are_cached_until_ttl(make_storm, clock):
    provider = StormProviderStub("OpenWeatherMap", [make_storm()])
    service = make_service([provider], clock=clock, ttl=300)

    first = service.get_typhoons()
    clock.advance(299)
    second = service.get_typhoons()
    clock.advance(2)
    service.get_typhoons()

    assert first == second
    assert provider.calls == 2


def test_empty_results_are_cached_too(clock):
    provider = StormProviderStub("OpenWeatherMap")
    service = make_service([provider], clock=clock)

    service.get_typhoons()
    service.get_typhoons()

    assert provider.calls == 1


def test_unknown_merge_mode_is_rejected():
    with pytest.raises(ValueError):
        TyphoonService([], merge_mode="vote")


def test_build_provider_by_name():
    config = TrackerConfig()
    assert isinstance(build_provider("OpenWeatherMap", config), OpenWeatherMapProvider)
    assert isinstance(build_provider(" jma ", config), JMAProvider)
    assert build_provider("accuweather", config) is None
    assert build_provider("NOAA", config).timeout == 15.0
    assert build_provider("NOAA", config.with_overrides(provider_timeout=4.0)).timeout == 4.0


def test_from_config_follows_provider_order():
    config = TrackerConfig(provider_order=("NOAA", "accuweather", "JMA"), merge_mode="merge")

    service = TyphoonService.from_config(config)

    assert [type(provider) for provider in service.providers] == [NOAAProvider, JMAProvider]
    assert service.merge_mode == "merge"


def test_from_config_with_everything_disabled():
    service = TyphoonService.from_config(TrackerConfig.all_disabled(), cache=WeatherCache())
    assert service.get_typhoons() == []
