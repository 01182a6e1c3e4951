"""Unit conversion, longitude normalization and per-source intensity scales."""
from __future__ import annotations

import hashlib
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Iterable, Optional, Sequence, Tuple

from .entities import Direction, NormalizedStorm, Position, TrackPoint


MS_TO_KMH = 3.6
KNOTS_TO_KMH = 1.852
MPH_TO_KMH = 1.60934

SOURCE_OPENWEATHERMAP = "OpenWeatherMap"
SOURCE_WINDY = "Windy"
SOURCE_NOAA = "NOAA"
SOURCE_JMA = "JMA"
SOURCE_OPENMETEO = "Open-Meteo"

_UNIT_FACTORS: Dict[str, float] = {
    "km/h": 1.0,
    "kmh": 1.0,
    "kph": 1.0,
    "m/s": MS_TO_KMH,
    "ms": MS_TO_KMH,
    "mph": MPH_TO_KMH,
    "kt": KNOTS_TO_KMH,
    "kts": KNOTS_TO_KMH,
    "knot": KNOTS_TO_KMH,
    "knots": KNOTS_TO_KMH,
}


def ms_to_kmh(value: float) -> float:
    return value * MS_TO_KMH


def knots_to_kmh(value: float) -> float:
    return value * KNOTS_TO_KMH


def mph_to_kmh(value: float) -> float:
    return value * MPH_TO_KMH


def to_kmh(value: float, unit: str) -> float:
    """Convert ``value`` expressed in ``unit`` to km/h.

    Unit names are matched case-insensitively; unknown units raise ``ValueError``.
    """
    try:
        factor = _UNIT_FACTORS[unit.strip().lower()]
    except KeyError:
        raise ValueError(f"unknown speed unit: {unit!r}") from None
    return value * factor


def truncate_kmh(value: float) -> int:
    """Storm wind speeds are whole km/h, truncated toward zero."""
    return int(value)


def normalize_longitude(longitude: float) -> float:
    """Return ``longitude`` in the east-positive [0, 360) convention."""
    if longitude < 0:
        longitude = 360.0 + longitude
    longitude = longitude % 360.0
    if longitude >= 360.0:
        # float rounding of tiny negative values
        return 0.0
    return longitude


@dataclass(frozen=True)
class CategoryScale:
    """Ordered wind-speed thresholds (km/h) mapping to category labels.

    ``thresholds`` run strongest first; a wind speed takes the label of the
    first threshold it reaches, otherwise ``floor``.
    """

    name: str
    thresholds: Tuple[Tuple[int, str], ...]
    floor: str

    def classify(self, wind_speed_kmh: float) -> str:
        for minimum, label in self.thresholds:
            if wind_speed_kmh >= minimum:
                return label
        return self.floor

    @property
    def labels(self) -> Tuple[str, ...]:
        """Labels from weakest to strongest."""
        return (self.floor,) + tuple(label for _, label in reversed(self.thresholds))


OPENWEATHERMAP_SCALE = CategoryScale(
    name="openweathermap-heuristic",
    thresholds=(
        (220, "Super Typhoon"),
        (118, "Typhoon"),
        (89, "Severe Tropical Storm"),
        (62, "Tropical Storm"),
        (39, "Tropical Depression"),
    ),
    floor="Low Pressure Area",
)

SAFFIR_SIMPSON_SCALE = CategoryScale(
    name="saffir-simpson",
    thresholds=(
        (252, "Super Typhoon"),
        (209, "Category 5"),
        (178, "Category 4"),
        (154, "Category 3"),
        (119, "Category 2"),
        (63, "Category 1"),
        (39, "Tropical Storm"),
    ),
    floor="Tropical Depression",
)

JMA_SCALE = CategoryScale(
    name="jma",
    thresholds=(
        (194, "Violent Typhoon"),
        (158, "Very Strong Typhoon"),
        (118, "Typhoon"),
        (88, "Severe Tropical Storm"),
        (63, "Tropical Storm"),
    ),
    floor="Tropical Depression",
)

_SCALES_BY_SOURCE: Dict[str, CategoryScale] = {
    SOURCE_OPENWEATHERMAP: OPENWEATHERMAP_SCALE,
    SOURCE_NOAA: SAFFIR_SIMPSON_SCALE,
    SOURCE_JMA: JMA_SCALE,
}


def scale_for_source(source: str) -> CategoryScale:
    return _SCALES_BY_SOURCE.get(source, OPENWEATHERMAP_SCALE)


def categorize(wind_speed_kmh: float, source: str) -> str:
    return scale_for_source(source).classify(wind_speed_kmh)


def storm_id(name: str, latitude: float, longitude: float) -> str:
    key = f"{name}|{round(latitude, 1):.1f}|{round(longitude, 1):.1f}"
    return hashlib.md5(key.encode("utf-8")).hexdigest()


def build_storm(
    *,
    name: Optional[str],
    latitude: Optional[float],
    longitude: Optional[float],
    wind_speed_kmh: Optional[float],
    source: str,
    provider_id: Optional[str] = None,
    pressure_hpa: Optional[float] = None,
    movement_speed_kmh: Optional[float] = None,
    movement_direction: Direction = None,
    status: Optional[str] = None,
    affected_regions: Iterable[str] = (),
    warnings: Optional[str] = None,
    last_updated: Optional[datetime] = None,
    forecast_track: Sequence[TrackPoint] = (),
    default_name: str = "Unnamed System",
) -> Optional[NormalizedStorm]:
    """Build a :class:`NormalizedStorm` from extracted values.

    Returns ``None`` when the position is unresolved or out of range; such
    candidates must not reach the merge stage.
    """
    if latitude is None or longitude is None:
        return None
    if not -90.0 <= latitude <= 90.0 or not -360.0 <= longitude <= 360.0:
        return None
    longitude = normalize_longitude(longitude)
    wind = max(0, truncate_kmh(wind_speed_kmh or 0))
    name = (name or "").strip() or default_name
    return NormalizedStorm(
        id=str(provider_id) if provider_id else storm_id(name, latitude, longitude),
        name=name,
        category=categorize(wind, source),
        wind_speed_kmh=wind,
        position=Position(latitude=float(latitude), longitude=longitude),
        source=source,
        last_updated=last_updated or datetime.now(tz=timezone.utc),
        pressure_hpa=int(pressure_hpa) if pressure_hpa else None,
        movement_speed_kmh=movement_speed_kmh if movement_speed_kmh else None,
        movement_direction=movement_direction,
        status=status or "Active",
        affected_regions=tuple(affected_regions or ()),
        warnings=warnings or None,
        forecast_track=tuple(forecast_track),
    )


__all__ = [
    "CategoryScale",
    "JMA_SCALE",
    "KNOTS_TO_KMH",
    "MPH_TO_KMH",
    "MS_TO_KMH",
    "OPENWEATHERMAP_SCALE",
    "SAFFIR_SIMPSON_SCALE",
    "SOURCE_JMA",
    "SOURCE_NOAA",
    "SOURCE_OPENMETEO",
    "SOURCE_OPENWEATHERMAP",
    "SOURCE_WINDY",
    "build_storm",
    "categorize",
    "knots_to_kmh",
    "mph_to_kmh",
    "ms_to_kmh",
    "normalize_longitude",
    "scale_for_source",
    "storm_id",
    "to_kmh",
    "truncate_kmh",
]
