"""OpenWeatherMap: geocoding, current weather, forecast, alerts and cyclone alerts."""
from __future__ import annotations

import hashlib
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from .base import MALFORMED, HTTPProvider, ParseError, fan_out
from .. import extraction
from ..entities import Alert, ForecastDay, NormalizedStorm, ResolvedLocation, WeatherSnapshot
from ..merge import merge_candidates
from ..normalize import SOURCE_OPENWEATHERMAP, build_storm, ms_to_kmh


@dataclass(frozen=True)
class Probe:
    name: str
    latitude: float
    longitude: float


# cities first, then open-water points east of the archipelago
PROBES = (
    Probe("Manila", 14.5995, 120.9842),
    Probe("Cebu", 10.3157, 123.8854),
    Probe("Davao", 7.1907, 125.4553),
    Probe("Baguio", 16.4023, 120.5960),
    Probe("Tacloban", 11.2408, 125.0058),
    Probe("Central Philippines", 15.0, 120.0),
    Probe("Northern Philippines", 20.0, 125.0),
    Probe("Southern Philippines", 10.0, 125.0),
)


def _timestamp(value: Any) -> datetime:
    try:
        return datetime.fromtimestamp(int(value), tz=timezone.utc)
    except (OSError, OverflowError, TypeError, ValueError):
        return datetime.now(tz=timezone.utc)


def _round(value: Any) -> Optional[int]:
    if value is None:
        return None
    return int(round(float(value)))


class OpenWeatherMapProvider(HTTPProvider):
    name = SOURCE_OPENWEATHERMAP
    requires_key = True
    base_url = "https://api.openweathermap.org"

    def __init__(self, *args, probes=PROBES, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.base_url = self.settings.base_url or self.base_url
        self.probes = tuple(probes)

    # Cyclones ------------------------------------------------------------
    def fetch_storms(self, region: str = "PH", deadline: Optional[float] = None) -> List[NormalizedStorm]:
        """Scan severe-weather alerts around the region for tropical cyclones.

        Each probe point is queried independently; a failing probe is
        skipped. Storms reported by several probes are kept once.
        """
        self.ensure_configured()
        per_probe = fan_out(
            lambda probe: self._probe_storms(probe, deadline),
            self.probes,
            deadline=deadline,
            label="OpenWeatherMap probe",
        )
        storms = merge_candidates(storm for found in per_probe for storm in found)
        self._log.info("OpenWeatherMap reported %d storm(s) from %d probe(s)", len(storms), len(per_probe))
        return storms

    def _probe_storms(self, probe: Probe, deadline: Optional[float]) -> List[NormalizedStorm]:
        alerts = self._onecall_alerts(probe.latitude, probe.longitude, deadline)
        storms = []
        for alert in alerts:
            try:
                storm = self.storm_from_alert(alert, probe)
            except MALFORMED as exc:
                self._log.warning("Skipping malformed alert at %s: %s", probe.name, exc)
                continue
            if storm is not None:
                storms.append(storm)
        return storms

    def storm_from_alert(self, alert: Mapping[str, Any], probe: Probe) -> Optional[NormalizedStorm]:
        event = alert.get("event") or ""
        description = alert.get("description") or ""
        text = f"{event} {description}"
        if not extraction.mentions_cyclone(text):
            return None

        wind = extraction.extract_wind_speed(description)
        if wind is None:
            wind = extraction.estimate_wind_from_keywords(text)
        latitude, longitude = extraction.extract_coordinates(description) or (probe.latitude, probe.longitude)
        direction, movement_speed = extraction.extract_movement(description)
        return build_storm(
            name=extraction.extract_name(text),
            latitude=latitude,
            longitude=longitude,
            wind_speed_kmh=wind,
            source=self.name,
            pressure_hpa=extraction.extract_pressure(description),
            movement_speed_kmh=movement_speed,
            movement_direction=direction,
            warnings=description,
            last_updated=_timestamp(alert.get("start")),
            default_name="Unnamed System",
        )

    def _onecall_alerts(self, latitude: float, longitude: float, deadline: Optional[float]) -> List[dict]:
        params = {
            "lat": latitude,
            "lon": longitude,
            "appid": self.api_key,
            "exclude": "current,minutely,hourly,daily",
        }
        response = self._request("GET", f"{self.base_url}/data/3.0/onecall", params=params, deadline=deadline)
        data = self._json(response)
        alerts = data.get("alerts") if isinstance(data, dict) else None
        if alerts is None:
            return []
        if not isinstance(alerts, list):
            raise ParseError("alerts is not a list")
        return [alert for alert in alerts if isinstance(alert, dict)]

    # Weather -------------------------------------------------------------
    def geocode(self, location: str, country: str = "PH", deadline: Optional[float] = None) -> Optional[ResolvedLocation]:
        self.ensure_configured()
        params = {"q": f"{location},{country}", "limit": 1, "appid": self.api_key}
        response = self._request("GET", f"{self.base_url}/geo/1.0/direct", params=params, deadline=deadline)
        data = self._json(response)
        if not data:
            return None
        try:
            first = data[0]
            return ResolvedLocation(
                name=first.get("name") or location,
                latitude=float(first["lat"]),
                longitude=float(first["lon"]),
                country=first.get("country"),
            )
        except MALFORMED as exc:
            raise ParseError("unexpected geocoding payload") from exc

    def current_weather(self, location: ResolvedLocation, deadline: Optional[float] = None) -> WeatherSnapshot:
        self.ensure_configured()
        params = {"lat": location.latitude, "lon": location.longitude, "appid": self.api_key, "units": "metric"}
        response = self._request("GET", f"{self.base_url}/data/2.5/weather", params=params, deadline=deadline)
        return self._parse_current(self._json(response), location)

    def _parse_current(self, data: Dict[str, Any], location: ResolvedLocation) -> WeatherSnapshot:
        try:
            main = data["main"]
            weather = (data.get("weather") or [{}])[0]
            wind = data.get("wind") or {}
            visibility = data.get("visibility")
            return WeatherSnapshot(
                location=location.name,
                temperature_c=_round(main["temp"]),
                condition=weather.get("main") or "Unknown",
                description=weather.get("description") or "",
                humidity=main.get("humidity"),
                wind_speed_kmh=_round(ms_to_kmh(float(wind.get("speed") or 0))),
                wind_direction=wind.get("deg"),
                pressure_hpa=main.get("pressure"),
                feels_like_c=_round(main.get("feels_like")),
                cloud_cover=(data.get("clouds") or {}).get("all", 0),
                visibility_km=round(visibility / 1000, 1) if visibility is not None else 10,
                latitude=location.latitude,
                longitude=location.longitude,
                source=self.name,
                last_updated=_timestamp(data.get("dt")),
            )
        except MALFORMED as exc:
            raise ParseError("unexpected current weather payload") from exc

    def forecast(self, location: ResolvedLocation, deadline: Optional[float] = None, days: int = 7) -> List[ForecastDay]:
        self.ensure_configured()
        params = {
            "lat": location.latitude,
            "lon": location.longitude,
            "appid": self.api_key,
            "units": "metric",
            "cnt": 40,
        }
        response = self._request("GET", f"{self.base_url}/data/2.5/forecast", params=params, deadline=deadline)
        return self._parse_forecast(self._json(response), days)

    def _parse_forecast(self, data: Dict[str, Any], days: int) -> List[ForecastDay]:
        entries = data.get("list") if isinstance(data, dict) else None
        if not entries:
            raise ParseError("missing forecast list")
        # one entry per calendar day, the one closest to noon
        chosen: Dict[str, dict] = {}
        for entry in entries:
            if not isinstance(entry, dict):
                continue
            when = _timestamp(entry.get("dt"))
            date = when.date().isoformat()
            best = chosen.get(date)
            if best is None or abs(12 - when.hour) < abs(12 - _timestamp(best.get("dt")).hour):
                chosen[date] = entry
        result: List[ForecastDay] = []
        try:
            for date, entry in list(chosen.items())[:days]:
                main = entry["main"]
                weather = (entry.get("weather") or [{}])[0]
                pop = entry.get("pop")
                result.append(
                    ForecastDay(
                        day=_timestamp(entry["dt"]).strftime("%A"),
                        date=date,
                        condition=weather.get("main") or "Unknown",
                        temp_high_c=_round(main.get("temp_max")),
                        temp_low_c=_round(main.get("temp_min")),
                        humidity=main.get("humidity"),
                        wind_speed_kmh=_round(ms_to_kmh(float((entry.get("wind") or {}).get("speed") or 0))),
                        chance_of_rain=int(round(pop * 100)) if pop is not None else 0,
                        precipitation_mm=(entry.get("rain") or {}).get("3h"),
                        source=self.name,
                    )
                )
        except MALFORMED as exc:
            raise ParseError("unexpected forecast payload") from exc
        return result

    def alerts(self, location: ResolvedLocation, deadline: Optional[float] = None) -> List[Alert]:
        self.ensure_configured()
        result = []
        for alert in self._onecall_alerts(location.latitude, location.longitude, deadline):
            sender = alert.get("sender_name") or ""
            start = alert.get("start")
            result.append(
                Alert(
                    id=hashlib.md5(f"{sender}{start}".encode("utf-8")).hexdigest(),
                    type="warning",
                    title=alert.get("event") or "Weather Alert",
                    message=alert.get("description") or "",
                    severity="Warning",
                    source=self.name,
                    timestamp=_timestamp(start),
                )
            )
        return result


__all__ = ["OpenWeatherMapProvider", "PROBES", "Probe"]
