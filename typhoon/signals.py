"""Tropical cyclone wind signals for a region of interest.

Signal levels follow the PAGASA wind-signal system:

- #1: 30-60 km/h winds expected within 36 hours
- #2: 61-120 km/h winds expected within 24 hours
- #3: 121-170 km/h winds expected within 18 hours
- #4: 171-220 km/h winds expected within 12 hours
- #5: >220 km/h winds expected within 12 hours
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Dict, Optional

from .entities import NormalizedStorm


logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371.0


@dataclass(frozen=True)
class RegionOfInterest:
    name: str
    center_latitude: float
    center_longitude: float
    lat_min: float
    lat_max: float
    lon_min: float
    lon_max: float

    def contains(self, latitude: float, longitude: float) -> bool:
        return self.lat_min <= latitude <= self.lat_max and self.lon_min <= longitude <= self.lon_max


PHILIPPINES = RegionOfInterest(
    name="Philippines",
    center_latitude=12.8797,
    center_longitude=121.7740,
    lat_min=5.0,
    lat_max=20.0,
    lon_min=115.0,
    lon_max=127.0,
)

SIGNAL_INFO: Dict[int, Dict[str, object]] = {
    1: {"number": 1, "label": "Wind Signal #1", "description": "30-60 km/h winds expected within 36 hours"},
    2: {"number": 2, "label": "Wind Signal #2", "description": "61-120 km/h winds expected within 24 hours"},
    3: {"number": 3, "label": "Wind Signal #3", "description": "121-170 km/h winds expected within 18 hours"},
    4: {"number": 4, "label": "Wind Signal #4", "description": "171-220 km/h winds expected within 12 hours"},
    5: {"number": 5, "label": "Wind Signal #5", "description": ">220 km/h winds expected within 12 hours"},
}


def signal_info(level: Optional[int]) -> Optional[Dict[str, object]]:
    if not level:
        return None
    info = SIGNAL_INFO.get(level)
    return dict(info) if info else None


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def level_for_wind(wind_speed_kmh: float, max_level: int = 5) -> Optional[int]:
    """Map a wind speed to a signal level no higher than ``max_level``."""
    breakpoints = (
        (5, wind_speed_kmh >= 220),
        (4, wind_speed_kmh > 170),
        (3, wind_speed_kmh > 120),
        (2, wind_speed_kmh > 60),
        (1, wind_speed_kmh >= 30),
    )
    for level, reached in breakpoints:
        if level <= max_level and reached:
            return level
    return None


def lead_time_cap(hours: float) -> int:
    """Highest signal that may be raised ``hours`` ahead of impact (0 = none)."""
    if hours <= 12:
        return 5
    if hours <= 18:
        return 3
    if hours <= 24:
        return 2
    if hours <= 36:
        return 1
    return 0


class SignalClassifier:
    DEFAULT_MOVEMENT_SPEED_KMH = 15.0
    MAX_LEAD_HOURS = 72.0
    MAX_TRACKING_DISTANCE_KM = 1500.0

    def __init__(self, region: RegionOfInterest = PHILIPPINES) -> None:
        self.region = region

    def classify(self, storm: NormalizedStorm, region: Optional[RegionOfInterest] = None) -> Optional[int]:
        region = region or self.region
        position = storm.position
        if position is None or position.latitude is None or position.longitude is None:
            return None
        latitude = position.latitude
        longitude = position.longitude
        wind = float(storm.wind_speed_kmh or 0)

        if region.contains(latitude, longitude):
            return level_for_wind(wind)

        distance = haversine_km(latitude, longitude, region.center_latitude, region.center_longitude)
        hours = self.estimate_hours_to_impact(distance, storm.movement_speed_kmh)
        if hours is None or hours > self.MAX_LEAD_HOURS:
            return None

        cap = lead_time_cap(hours)
        if cap == 0:
            return None
        expected_wind = wind * self.weakening_factor(distance)
        return level_for_wind(expected_wind, max_level=cap)

    def estimate_hours_to_impact(self, distance_km: float, movement_speed_kmh: Optional[float]) -> Optional[float]:
        speed = movement_speed_kmh if movement_speed_kmh and movement_speed_kmh > 0 else self.DEFAULT_MOVEMENT_SPEED_KMH
        if distance_km > self.MAX_TRACKING_DISTANCE_KM:
            return None
        return distance_km / speed

    @staticmethod
    def weakening_factor(distance_km: float) -> float:
        # 10% weakening per 500 km, never below half strength
        return max(0.5, 1 - (distance_km / 500) * 0.1)


__all__ = [
    "PHILIPPINES",
    "RegionOfInterest",
    "SIGNAL_INFO",
    "SignalClassifier",
    "haversine_km",
    "lead_time_cap",
    "level_for_wind",
    "signal_info",
]
