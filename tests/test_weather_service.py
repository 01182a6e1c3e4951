from __future__ import annotations

from datetime import date, datetime, timezone
from typing import List, Optional

import pytest

from typhoon.cache import WeatherCache
from typhoon.config import TrackerConfig
from typhoon.entities import Alert, ForecastDay, ResolvedLocation, WeatherSnapshot
from typhoon.health import HealthRegistry
from typhoon.providers.base import NetworkError, QuotaExceeded
from typhoon.providers.openweathermap import OpenWeatherMapProvider
from typhoon.providers.synthetic import SyntheticWeatherProvider
from typhoon.providers.windy import WindyProvider
from typhoon.services.weather import GAZETTEER, WeatherService, WeatherServiceError, parse_coordinates


OBSERVED = datetime(2024, 10, 22, 6, 0, tzinfo=timezone.utc)


def make_snapshot(source: str, location: str = "Manila", temperature: float = 30) -> WeatherSnapshot:
    return WeatherSnapshot(
        location=location,
        temperature_c=temperature,
        condition="Clouds",
        description="broken clouds",
        humidity=70,
        wind_speed_kmh=18,
        pressure_hpa=1008,
        source=source,
        last_updated=OBSERVED,
    )


class WeatherProviderStub:
    def __init__(
        self,
        name: str,
        error: Optional[Exception] = None,
        available: bool = True,
        alerts: Optional[List[Alert]] = None,
    ) -> None:
        self.name = name
        self._error = error
        self._alerts = alerts or []
        self.is_available = available
        self.calls: List[ResolvedLocation] = []

    def _answer(self, location: ResolvedLocation, value):
        self.calls.append(location)
        if self._error is not None:
            raise self._error
        return value

    def current_weather(self, location: ResolvedLocation, deadline: Optional[float] = None) -> WeatherSnapshot:
        return self._answer(location, make_snapshot(self.name, location.name))

    def forecast(self, location: ResolvedLocation, deadline: Optional[float] = None, days: int = 7) -> List[ForecastDay]:
        day = ForecastDay(
            day="Tuesday",
            date="2024-10-22",
            condition="Rain",
            temp_high_c=31,
            temp_low_c=25,
            source=self.name,
        )
        return self._answer(location, [day])

    def alerts(self, location: ResolvedLocation, deadline: Optional[float] = None) -> List[Alert]:
        return self._answer(location, list(self._alerts))


class GeocoderStub:
    name = "OpenWeatherMap"
    is_available = True

    def __init__(self, result: Optional[ResolvedLocation] = None, error: Optional[Exception] = None) -> None:
        self._result = result
        self._error = error
        self.queries: List[str] = []

    def geocode(self, location: str, country: str = "PH", deadline: Optional[float] = None):
        self.queries.append(f"{location},{country}")
        if self._error is not None:
            raise self._error
        return self._result


def make_alert(source: str, title: str) -> Alert:
    return Alert(
        id=f"{source}-{title}",
        type="warning",
        title=title,
        message=title,
        severity="Warning",
        source=source,
        timestamp=OBSERVED,
    )


@pytest.fixture
def synthetic() -> SyntheticWeatherProvider:
    return SyntheticWeatherProvider(today=lambda: date(2024, 10, 22))


def make_service(weather_providers, **kwargs) -> WeatherService:
    kwargs.setdefault("cache", WeatherCache())
    kwargs.setdefault("health", HealthRegistry())
    return WeatherService(weather_providers=weather_providers, **kwargs)


def test_current_falls_through_provider_chain():
    windy = WeatherProviderStub("Windy", error=NetworkError("timeout"))
    owm = WeatherProviderStub("OpenWeatherMap", error=QuotaExceeded("quota exceeded"))
    openmeteo = WeatherProviderStub("Open-Meteo")
    service = make_service([windy, owm, openmeteo])

    snapshot = service.get_current("Manila")

    assert snapshot.source == "Open-Meteo"
    assert not snapshot.synthetic
    assert service.health.snapshot()["providers"] == {"Windy": 1, "OpenWeatherMap": 1}
    assert openmeteo.calls[0] == GAZETTEER["manila"]


def test_unavailable_providers_are_not_asked():
    windy = WeatherProviderStub("Windy", available=False)
    owm = WeatherProviderStub("OpenWeatherMap")
    service = make_service([windy, owm])

    assert service.get_current("Cebu").source == "OpenWeatherMap"
    assert windy.calls == []


def test_real_answers_are_cached():
    owm = WeatherProviderStub("OpenWeatherMap")
    service = make_service([owm])

    service.get_current("Manila")
    service.get_current("manila")
    service.get_forecast("Manila")

    assert len(owm.calls) == 2


def test_synthetic_fallback_is_labelled_and_never_cached(synthetic):
    windy = WeatherProviderStub("Windy", error=NetworkError("down"))
    service = make_service([windy], synthetic=synthetic)

    first = service.get_current("Manila")
    second = service.get_current("Manila")

    assert first.synthetic
    assert first.source == "Synthetic"
    assert first.to_dict()["synthetic"] is True
    assert first.temperature_c == second.temperature_c
    assert len(windy.calls) == 2


def test_synthetic_forecast_for_unresolved_location(synthetic):
    service = make_service([WeatherProviderStub("Windy")], synthetic=synthetic)

    days = service.get_forecast("Atlantis")

    assert len(days) == 7
    assert all(day.synthetic for day in days)
    assert days[0].date == "2024-10-22"


def test_without_synthetic_failures_raise():
    service = make_service([WeatherProviderStub("Windy", error=NetworkError("down"))])

    with pytest.raises(WeatherServiceError, match="All weather providers failed"):
        service.get_current("Manila")


def test_unknown_location_without_synthetic():
    service = make_service([WeatherProviderStub("Windy")], geocoder=GeocoderStub(result=None))

    with pytest.raises(WeatherServiceError, match="Location not found: Atlantis"):
        service.get_current("Atlantis")


def test_resolve_location_order():
    geocoded = ResolvedLocation("Legazpi", 13.1391, 123.7438, "PH")
    geocoder = GeocoderStub(result=geocoded)
    service = make_service([], geocoder=geocoder)

    assert service.resolve_location("14.6, 121.0") == ResolvedLocation("14.6, 121.0", 14.6, 121.0)
    assert service.resolve_location("Cebu City") == GAZETTEER["cebu"]
    assert service.resolve_location("Davao, PH") == GAZETTEER["davao"]
    assert service.resolve_location("Legazpi") == geocoded
    assert service.resolve_location("   ") is None
    assert geocoder.queries == ["Legazpi,PH"]


def test_geocoder_failure_is_recorded():
    service = make_service([], geocoder=GeocoderStub(error=NetworkError("HTTP 500")))

    assert service.resolve_location("Legazpi") is None
    assert service.health.snapshot()["providers"] == {"OpenWeatherMap": 1}


@pytest.mark.parametrize(
    "text, expected",
    [
        ("14.5995,120.9842", (14.5995, 120.9842)),
        ("-33.9, 151.2", (-33.9, 151.2)),
        ("95,120", None),
        ("Manila", None),
    ],
)
def test_parse_coordinates(text, expected):
    result = parse_coordinates(text)
    if expected is None:
        assert result is None
    else:
        assert (result.latitude, result.longitude) == expected


def test_alerts_are_combined_across_sources():
    owm = WeatherProviderStub("OpenWeatherMap", alerts=[make_alert("OpenWeatherMap", "Typhoon Warning")])
    noaa = WeatherProviderStub("NOAA", alerts=[make_alert("NOAA", "Hurricane Statement")])
    service = make_service([], alert_providers=[owm, noaa])

    alerts = service.get_alerts("Manila")

    assert [alert.source for alert in alerts] == ["OpenWeatherMap", "NOAA"]


def test_alerts_survive_a_failing_source():
    owm = WeatherProviderStub("OpenWeatherMap", error=NetworkError("down"))
    noaa = WeatherProviderStub("NOAA", alerts=[make_alert("NOAA", "Hurricane Statement")])
    service = make_service([], alert_providers=[owm, noaa])

    assert [alert.title for alert in service.get_alerts("Manila")] == ["Hurricane Statement"]
    assert service.health.snapshot()["providers"] == {"OpenWeatherMap": 1}


def test_no_alerts_is_an_empty_list(synthetic):
    service = make_service([], alert_providers=[WeatherProviderStub("NOAA")], synthetic=synthetic)

    assert service.get_alerts("Manila") == []
    assert service.get_alerts("Atlantis") == []


def test_synthetic_weather_is_deterministic_per_day():
    today = {"value": date(2024, 10, 22)}
    provider = SyntheticWeatherProvider(today=lambda: today["value"])
    manila = GAZETTEER["manila"]

    first = provider.current_weather(manila)
    again = provider.current_weather(manila)

    assert (first.condition, first.temperature_c, first.cloud_cover) == (
        again.condition,
        again.temperature_c,
        again.cloud_cover,
    )
    assert first.description.endswith("(synthetic)")
    assert provider.forecast(manila, days=3)[2].date == "2024-10-24"


def test_from_config_wires_provider_chain():
    service = WeatherService.from_config(TrackerConfig(allow_synthetic_weather=False), cache=WeatherCache())

    assert [type(provider) for provider in service.weather_providers][:2] == [WindyProvider, OpenWeatherMapProvider]
    assert [provider.name for provider in service.alert_providers] == ["OpenWeatherMap", "NOAA"]
    assert service.synthetic is None


def test_from_config_with_everything_disabled_serves_synthetic():
    service = WeatherService.from_config(TrackerConfig.all_disabled(), cache=WeatherCache())

    snapshot = service.get_current("Manila")

    assert snapshot.synthetic
    assert service.get_alerts("Manila") == []
