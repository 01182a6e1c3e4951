"""Windy point-forecast API (current conditions and daily forecast)."""
from __future__ import annotations

import math
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .base import MALFORMED, HTTPProvider, ParseError
from ..entities import ForecastDay, ResolvedLocation, WeatherSnapshot
from ..normalize import SOURCE_WINDY, ms_to_kmh


DEFAULT_PARAMETERS = ("temp", "wind", "pressure", "rh", "precip", "lclouds", "mclouds", "hclouds")
CLOUD_LAYERS = ("lclouds-surface", "mclouds-surface", "hclouds-surface")


def wind_from_components(u: Optional[float], v: Optional[float]):
    """Return ``(speed km/h, direction degrees)`` for surface wind components in m/s."""
    if u is None or v is None:
        return None, None
    speed = ms_to_kmh(math.sqrt(u * u + v * v))
    direction = math.degrees(math.atan2(u, v))
    if direction < 0:
        direction += 360
    return speed, direction


def cloud_cover(values: Dict[str, Any]) -> float:
    return min(100.0, sum(float(values.get(layer) or 0) for layer in CLOUD_LAYERS))


def condition_for(cloud: float, precipitation: float) -> str:
    if precipitation > 0.5:
        return "Rain"
    if cloud > 80:
        return "Clouds"
    if cloud > 50:
        return "Partly Cloudy"
    return "Clear"


def description_for(cloud: float, precipitation: float) -> str:
    if precipitation > 0.5:
        return "Rainy"
    if cloud > 80:
        return "Overcast"
    if cloud > 50:
        return "Partly cloudy"
    return "Clear sky"


def _celsius(value: Optional[float], unit: Optional[str]) -> Optional[float]:
    if value is None:
        return None
    if unit == "K":
        return value - 273.15
    return value


def _precipitation(values: Dict[str, Any]) -> float:
    return float(values.get("precip-surface") or values.get("past3hprecip-surface") or 0)


class WindyProvider(HTTPProvider):
    name = SOURCE_WINDY
    requires_key = True
    base_url = "https://api.windy.com/api/point-forecast/v2"

    def __init__(self, *args, model: str = "gfs", clock=time.time, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.base_url = self.settings.base_url or self.base_url
        self.model = model
        self._clock = clock

    def point_forecast(self, latitude: float, longitude: float, parameters=DEFAULT_PARAMETERS, deadline: Optional[float] = None) -> Dict[str, Any]:
        """Return ``{"current": {...}, "hourly": [...], "units": {...}}``.

        ``current`` holds the values at the latest timestamp not in the
        future; ``hourly`` the entries after it, each with a ``timestamp``
        in milliseconds.
        """
        self.ensure_configured()
        body = {
            "lat": round(latitude, 2),
            "lon": round(longitude, 2),
            "model": self.model,
            "parameters": list(parameters),
            "levels": ["surface"],
            "key": self.api_key,
        }
        response = self._request("POST", self.base_url, json=body, deadline=deadline)
        if response.status_code == 204:
            raise ParseError("no data")
        data = self._json(response)
        timestamps = data.get("ts") if isinstance(data, dict) else None
        if not timestamps:
            raise ParseError("missing ts")
        if not isinstance(timestamps, list):
            raise ParseError("ts is not a list")

        now_ms = self._clock() * 1000
        current_index = 0
        for index, ts in enumerate(timestamps):
            if not isinstance(ts, (int, float)) or isinstance(ts, bool):
                raise ParseError(f"bad timestamp {ts!r}")
            if ts <= now_ms:
                current_index = index
            else:
                break

        series = {key: values for key, values in data.items() if key not in ("ts", "units") and isinstance(values, list)}

        def values_at(index: int) -> Dict[str, Any]:
            return {key: values[index] for key, values in series.items() if index < len(values) and values[index] is not None}

        hourly = []
        for index in range(current_index + 1, min(len(timestamps), current_index + 1 + 7 * 24)):
            entry = values_at(index)
            entry["timestamp"] = timestamps[index]
            hourly.append(entry)
        return {"current": values_at(current_index), "hourly": hourly, "units": data.get("units") or {}}

    def current_weather(self, location: ResolvedLocation, deadline: Optional[float] = None) -> WeatherSnapshot:
        forecast = self.point_forecast(
            location.latitude,
            location.longitude,
            parameters=DEFAULT_PARAMETERS + ("dewpoint", "windGust"),
            deadline=deadline,
        )
        current = forecast["current"]
        if not current:
            raise ParseError("no current weather data available")
        try:
            return self._snapshot(location, current, forecast["units"])
        except MALFORMED as exc:
            raise ParseError("unexpected current weather payload") from exc

    def _snapshot(self, location: ResolvedLocation, current: Dict[str, Any], units: Dict[str, Any]) -> WeatherSnapshot:
        speed, direction = wind_from_components(current.get("wind_u-surface"), current.get("wind_v-surface"))
        cloud = cloud_cover(current)
        precipitation = _precipitation(current)
        temperature = _celsius(current.get("temp-surface"), units.get("temp-surface"))
        pressure = current.get("pressure-surface")
        humidity = current.get("rh-surface")
        return WeatherSnapshot(
            location=location.name,
            temperature_c=round(temperature) if temperature is not None else None,
            condition=condition_for(cloud, precipitation),
            description=description_for(cloud, precipitation),
            humidity=round(humidity) if humidity is not None else None,
            wind_speed_kmh=round(speed) if speed is not None else None,
            wind_direction=round(direction) if direction is not None else None,
            pressure_hpa=round(pressure / 100) if pressure is not None else None,
            cloud_cover=round(cloud),
            precipitation_mm=round(precipitation * 10, 1),
            latitude=location.latitude,
            longitude=location.longitude,
            source=self.name,
            last_updated=datetime.now(tz=timezone.utc),
        )

    def forecast(self, location: ResolvedLocation, deadline: Optional[float] = None, days: int = 7) -> List[ForecastDay]:
        forecast = self.point_forecast(location.latitude, location.longitude, deadline=deadline)
        hourly = forecast["hourly"]
        if not hourly:
            raise ParseError("no forecast data available")
        try:
            return self._daily(hourly, forecast["units"], days)
        except MALFORMED as exc:
            raise ParseError("unexpected forecast payload") from exc

    def _daily(self, hourly: List[Dict[str, Any]], units: Dict[str, Any], days: int) -> List[ForecastDay]:
        by_date: Dict[str, Dict[str, Any]] = {}
        for entry in hourly:
            when = datetime.fromtimestamp(entry["timestamp"] / 1000, tz=timezone.utc)
            date = when.date().isoformat()
            temperature = _celsius(entry.get("temp-surface"), units.get("temp-surface"))
            temperature = round(temperature) if temperature is not None else None
            day = by_date.get(date)
            if day is None:
                speed, _ = wind_from_components(entry.get("wind_u-surface"), entry.get("wind_v-surface"))
                precipitation = _precipitation(entry)
                humidity = entry.get("rh-surface")
                by_date[date] = {
                    "day": when.strftime("%A"),
                    "date": date,
                    "high": temperature,
                    "low": temperature,
                    "condition": condition_for(cloud_cover(entry), precipitation),
                    "humidity": round(humidity) if humidity is not None else None,
                    "wind": round(speed) if speed is not None else None,
                    "rain": 70 if precipitation > 0 else 0,
                    "precipitation": round(precipitation * 10, 1),
                }
            elif temperature is not None:
                day["high"] = temperature if day["high"] is None else max(day["high"], temperature)
                day["low"] = temperature if day["low"] is None else min(day["low"], temperature)
        return [
            ForecastDay(
                day=day["day"],
                date=day["date"],
                condition=day["condition"],
                temp_high_c=day["high"],
                temp_low_c=day["low"],
                humidity=day["humidity"],
                wind_speed_kmh=day["wind"],
                chance_of_rain=day["rain"],
                precipitation_mm=day["precipitation"],
                source=self.name,
            )
            for day in list(by_date.values())[:days]
        ]


__all__ = ["WindyProvider", "condition_for", "cloud_cover", "wind_from_components"]
