"""Labelled stand-in weather for when no real source answers.

Output is seeded from the location name and the date, so the same location
gives the same values for a whole day. Synthetic data never covers storms or
alerts.
"""
from __future__ import annotations

import random
import zlib
from datetime import date, datetime, timedelta, timezone
from typing import Callable, List, Optional

from ..entities import ForecastDay, ResolvedLocation, WeatherSnapshot


SOURCE_SYNTHETIC = "Synthetic"

CONDITIONS = (
    {"temp": 32, "condition": "Sunny", "humidity": 65, "wind": 15},
    {"temp": 28, "condition": "Cloudy", "humidity": 75, "wind": 20},
    {"temp": 25, "condition": "Rainy", "humidity": 85, "wind": 25},
    {"temp": 30, "condition": "Partly Cloudy", "humidity": 70, "wind": 18},
)
FORECAST_CONDITIONS = ("Sunny", "Cloudy", "Rainy", "Partly Cloudy", "Stormy")


class SyntheticWeatherProvider:
    name = SOURCE_SYNTHETIC

    def __init__(self, today: Callable[[], date] = lambda: datetime.now(tz=timezone.utc).date()) -> None:
        self._today = today

    def _rng(self, location: ResolvedLocation, kind: str) -> random.Random:
        seed = zlib.crc32(f"{kind}|{location.name}|{self._today().isoformat()}".encode("utf-8"))
        return random.Random(seed)

    def current_weather(self, location: ResolvedLocation, deadline: Optional[float] = None) -> WeatherSnapshot:
        rng = self._rng(location, "current")
        picked = rng.choice(CONDITIONS)
        return WeatherSnapshot(
            location=location.name,
            temperature_c=picked["temp"],
            condition=picked["condition"],
            description=f"{picked['condition']} (synthetic)",
            humidity=picked["humidity"],
            wind_speed_kmh=picked["wind"],
            pressure_hpa=1013,
            feels_like_c=picked["temp"] - 2,
            visibility_km=10,
            cloud_cover=rng.randint(0, 100),
            latitude=location.latitude,
            longitude=location.longitude,
            source=self.name,
            last_updated=datetime.now(tz=timezone.utc),
            synthetic=True,
        )

    def forecast(self, location: ResolvedLocation, deadline: Optional[float] = None, days: int = 7) -> List[ForecastDay]:
        rng = self._rng(location, "forecast")
        start = self._today()
        result = []
        for offset in range(days):
            day = start + timedelta(days=offset)
            result.append(
                ForecastDay(
                    day=day.strftime("%A"),
                    date=day.isoformat(),
                    condition=rng.choice(FORECAST_CONDITIONS),
                    temp_high_c=rng.randint(28, 35),
                    temp_low_c=rng.randint(22, 28),
                    humidity=rng.randint(60, 85),
                    wind_speed_kmh=rng.randint(10, 30),
                    chance_of_rain=rng.randint(10, 80),
                    source=self.name,
                    synthetic=True,
                )
            )
        return result


__all__ = ["SOURCE_SYNTHETIC", "SyntheticWeatherProvider"]
