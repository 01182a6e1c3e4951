from __future__ import annotations

from datetime import date as date_cls, datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from .base import MALFORMED, HTTPProvider, ParseError
from ..entities import ForecastDay, ResolvedLocation, WeatherSnapshot
from ..normalize import SOURCE_OPENMETEO


# WMO weather interpretation codes
WMO_DESCRIPTIONS = {
    0: "Clear sky",
    1: "Mainly clear",
    2: "Partly cloudy",
    3: "Overcast",
    45: "Fog",
    48: "Depositing rime fog",
    51: "Light drizzle",
    53: "Moderate drizzle",
    55: "Dense drizzle",
    56: "Light freezing drizzle",
    57: "Dense freezing drizzle",
    61: "Slight rain",
    63: "Moderate rain",
    65: "Heavy rain",
    66: "Light freezing rain",
    67: "Heavy freezing rain",
    71: "Slight snow fall",
    73: "Moderate snow fall",
    75: "Heavy snow fall",
    77: "Snow grains",
    80: "Slight rain showers",
    81: "Moderate rain showers",
    82: "Violent rain showers",
    85: "Slight snow showers",
    86: "Heavy snow showers",
    95: "Thunderstorm",
    96: "Thunderstorm with slight hail",
    99: "Thunderstorm with heavy hail",
}


def describe_weather_code(code: Optional[int]) -> str:
    if code is None:
        return "Unknown"
    return WMO_DESCRIPTIONS.get(int(code), "Unknown")


def condition_for_code(code: Optional[int]) -> str:
    if code is None:
        return "Unknown"
    code = int(code)
    if code <= 1:
        return "Clear"
    if code == 2:
        return "Partly Cloudy"
    if code == 3:
        return "Clouds"
    if code in (45, 48):
        return "Fog"
    if code >= 95:
        return "Thunderstorm"
    if code in (71, 73, 75, 77, 85, 86):
        return "Snow"
    return "Rain"


class OpenMeteoProvider(HTTPProvider):
    name = SOURCE_OPENMETEO
    base_url = "https://api.open-meteo.com/v1/forecast"

    def __init__(self, *args, timezone_name: str = "Asia/Manila", **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.base_url = self.settings.base_url or self.base_url
        self.timezone_name = timezone_name

    def current_weather(self, location: ResolvedLocation, deadline: Optional[float] = None) -> WeatherSnapshot:
        self.ensure_configured()
        params = {
            "latitude": location.latitude,
            "longitude": location.longitude,
            "current": ",".join(
                [
                    "temperature_2m",
                    "relative_humidity_2m",
                    "apparent_temperature",
                    "precipitation",
                    "weather_code",
                    "cloud_cover",
                    "pressure_msl",
                    "wind_speed_10m",
                    "wind_direction_10m",
                ]
            ),
            "timezone": self.timezone_name,
        }
        response = self._request("GET", self.base_url, params=params, deadline=deadline)
        data = self._json(response)
        current = data.get("current") if isinstance(data, dict) else None
        if not current:
            raise ParseError("missing current weather")
        try:
            return self._snapshot(location, current, data.get("utc_offset_seconds"))
        except MALFORMED as exc:
            raise ParseError("unexpected current weather payload") from exc

    def _snapshot(self, location: ResolvedLocation, current: Dict[str, Any], utc_offset_seconds: Any) -> WeatherSnapshot:
        code = _safe_int(current.get("weather_code"))
        return WeatherSnapshot(
            location=location.name,
            temperature_c=_round(current.get("temperature_2m"), 1),
            feels_like_c=_round(current.get("apparent_temperature"), 1),
            condition=condition_for_code(code),
            description=describe_weather_code(code),
            humidity=_safe_int(current.get("relative_humidity_2m")),
            pressure_hpa=_round(current.get("pressure_msl"), 1),
            wind_speed_kmh=_round(current.get("wind_speed_10m"), 1),
            wind_direction=_safe_int(current.get("wind_direction_10m")),
            precipitation_mm=_round(current.get("precipitation"), 2) or 0,
            cloud_cover=_safe_int(current.get("cloud_cover")),
            latitude=location.latitude,
            longitude=location.longitude,
            source=self.name,
            last_updated=self._parse_time(current.get("time"), utc_offset_seconds),
        )

    def forecast(self, location: ResolvedLocation, deadline: Optional[float] = None, days: int = 7) -> List[ForecastDay]:
        self.ensure_configured()
        params = {
            "latitude": location.latitude,
            "longitude": location.longitude,
            "daily": ",".join(
                [
                    "weather_code",
                    "temperature_2m_max",
                    "temperature_2m_min",
                    "precipitation_sum",
                    "precipitation_probability_max",
                    "wind_speed_10m_max",
                ]
            ),
            "forecast_days": min(days, 16),
            "timezone": self.timezone_name,
        }
        response = self._request("GET", self.base_url, params=params, deadline=deadline)
        data = self._json(response)
        daily = data.get("daily") if isinstance(data, dict) else None
        if not isinstance(daily, dict):
            raise ParseError("missing daily data")
        dates = daily.get("time")
        if not dates or not isinstance(dates, list):
            raise ParseError("missing daily data")
        codes = daily.get("weather_code") or []
        temps_max = daily.get("temperature_2m_max") or []
        temps_min = daily.get("temperature_2m_min") or []
        precipitation = daily.get("precipitation_sum") or []
        rain_chance = daily.get("precipitation_probability_max") or []
        winds = daily.get("wind_speed_10m_max") or []
        result: List[ForecastDay] = []
        for idx, date_str in enumerate(dates[:days]):
            try:
                day = date_cls.fromisoformat(date_str)
            except (TypeError, ValueError) as exc:
                raise ParseError(f"bad date {date_str!r}") from exc
            code = _safe_int(_safe_index(codes, idx))
            result.append(
                ForecastDay(
                    day=day.strftime("%A"),
                    date=day.isoformat(),
                    condition=condition_for_code(code),
                    temp_high_c=_round(_safe_index(temps_max, idx), 1),
                    temp_low_c=_round(_safe_index(temps_min, idx), 1),
                    wind_speed_kmh=_round(_safe_index(winds, idx), 1),
                    chance_of_rain=_safe_int(_safe_index(rain_chance, idx)),
                    precipitation_mm=_round(_safe_index(precipitation, idx), 2),
                    source=self.name,
                )
            )
        return result

    # helpers ------------------------------------------------------------
    def _parse_time(self, value: Optional[str], utc_offset_seconds: Optional[int] = None) -> datetime:
        if not value:
            return datetime.now(tz=timezone.utc)
        if not isinstance(value, str):
            raise ParseError(f"bad time {value!r}")
        if value.endswith("Z"):
            value = value[:-1]
        try:
            parsed = datetime.fromisoformat(value)
        except ValueError as exc:
            raise ParseError(f"bad time {value!r}") from exc
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone(timedelta(seconds=int(utc_offset_seconds or 0))))
        return parsed


def _safe_float(value: Optional[object]) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _safe_int(value: Optional[object]) -> Optional[int]:
    number = _safe_float(value)
    return int(number) if number is not None else None


def _round(value: Optional[object], digits: int) -> Optional[float]:
    number = _safe_float(value)
    return round(number, digits) if number is not None else None


def _safe_index(values: List[Any], index: int) -> Optional[Any]:
    try:
        return values[index]
    except (IndexError, TypeError):
        return None


__all__ = ["OpenMeteoProvider", "WMO_DESCRIPTIONS", "condition_for_code", "describe_weather_code"]
