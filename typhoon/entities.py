from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple, Union


Direction = Union[str, float, None]


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass(frozen=True)
class Position:
    latitude: float
    longitude: float

    def to_dict(self) -> Dict[str, float]:
        return {"latitude": self.latitude, "longitude": self.longitude}


@dataclass(frozen=True)
class TrackPoint:
    latitude: float
    longitude: float
    wind_speed_kmh: int
    hours_ahead: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "latitude": self.latitude,
            "longitude": self.longitude,
            "windSpeedKmh": self.wind_speed_kmh,
            "hoursAhead": self.hours_ahead,
        }


@dataclass(frozen=True)
class NormalizedStorm:
    """A tropical cyclone report that passed extraction and normalization.

    Wind speeds are always km/h and longitudes always east-positive in
    [0, 360). Instances are built through :func:`typhoon.normalize.build_storm`
    so that ``category`` and ``id`` stay consistent with the source.
    """

    id: str
    name: str
    category: str
    wind_speed_kmh: int
    position: Position
    source: str
    last_updated: datetime
    pressure_hpa: Optional[int] = None
    movement_speed_kmh: Optional[float] = None
    movement_direction: Direction = None
    status: str = "Active"
    affected_regions: Tuple[str, ...] = ()
    warnings: Optional[str] = None
    forecast_track: Tuple[TrackPoint, ...] = ()
    signal: Optional[int] = None

    def __post_init__(self) -> None:
        if self.wind_speed_kmh < 0:
            raise ValueError("wind_speed_kmh must be non-negative")
        if not -90.0 <= self.position.latitude <= 90.0:
            raise ValueError(f"latitude out of range: {self.position.latitude}")
        if not 0.0 <= self.position.longitude < 360.0:
            raise ValueError(f"longitude must be normalized to [0, 360): {self.position.longitude}")

    @property
    def latitude(self) -> float:
        return self.position.latitude

    @property
    def longitude(self) -> float:
        return self.position.longitude

    def to_dict(self) -> Dict[str, Any]:
        from .signals import signal_info  # signals imports this module

        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "windSpeedKmh": self.wind_speed_kmh,
            "pressureHPa": self.pressure_hpa,
            "position": self.position.to_dict(),
            "movementSpeedKmh": self.movement_speed_kmh,
            "movementDirection": self.movement_direction,
            "status": self.status,
            "affectedRegions": list(self.affected_regions),
            "warnings": self.warnings,
            "source": self.source,
            "lastUpdated": format_timestamp(self.last_updated),
            "forecastTrack": [point.to_dict() for point in self.forecast_track],
            "signal": signal_info(self.signal),
        }


@dataclass(frozen=True)
class WeatherSnapshot:
    """Current conditions for a location.

    - temperature in Celsius
    - wind speed in km/h, direction in degrees
    - pressure in hectopascal (hPa)
    - precipitation in millimetres (mm)
    """

    location: str
    temperature_c: Optional[float]
    condition: str
    description: str
    humidity: Optional[int]
    wind_speed_kmh: Optional[float]
    pressure_hpa: Optional[float]
    source: str
    last_updated: datetime
    wind_direction: Optional[int] = None
    feels_like_c: Optional[float] = None
    cloud_cover: Optional[int] = None
    visibility_km: Optional[float] = None
    precipitation_mm: Optional[float] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    synthetic: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "location": self.location,
            "temperature": self.temperature_c,
            "condition": self.condition,
            "description": self.description,
            "humidity": self.humidity,
            "windSpeed": self.wind_speed_kmh,
            "windDirection": self.wind_direction,
            "pressure": self.pressure_hpa,
            "feelsLike": self.feels_like_c,
            "cloudCover": self.cloud_cover,
            "visibility": self.visibility_km,
            "precipitation": self.precipitation_mm,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "source": self.source,
            "synthetic": self.synthetic,
            "lastUpdated": format_timestamp(self.last_updated),
        }


@dataclass(frozen=True)
class ForecastDay:
    day: str
    date: str
    condition: str
    temp_high_c: Optional[float]
    temp_low_c: Optional[float]
    source: str
    humidity: Optional[int] = None
    wind_speed_kmh: Optional[float] = None
    chance_of_rain: Optional[int] = None
    precipitation_mm: Optional[float] = None
    synthetic: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "day": self.day,
            "date": self.date,
            "condition": self.condition,
            "tempHigh": self.temp_high_c,
            "tempLow": self.temp_low_c,
            "humidity": self.humidity,
            "windSpeed": self.wind_speed_kmh,
            "chanceOfRain": self.chance_of_rain,
            "precipitation": self.precipitation_mm,
            "source": self.source,
            "synthetic": self.synthetic,
        }


@dataclass(frozen=True)
class Alert:
    id: str
    type: str
    title: str
    message: str
    severity: str
    source: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(tz=timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "title": self.title,
            "message": self.message,
            "severity": self.severity,
            "source": self.source,
            "timestamp": format_timestamp(self.timestamp),
        }


@dataclass(frozen=True)
class ResolvedLocation:
    """A place name with coordinates; unresolved names carry ``None`` coordinates."""

    name: str
    latitude: Optional[float]
    longitude: Optional[float]
    country: Optional[str] = None

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None


__all__ = [
    "Alert",
    "Direction",
    "ForecastDay",
    "NormalizedStorm",
    "Position",
    "ResolvedLocation",
    "TrackPoint",
    "WeatherSnapshot",
    "format_timestamp",
]
