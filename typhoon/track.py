"""Forecast-track extrapolation from current position and movement.

This is a planar approximation: displacement in km is turned into degrees
with ``1 degree ~= 111 km`` and split along the bearing with ``cos`` for
latitude and ``sin`` for longitude. It does no great-circle projection.
"""
from __future__ import annotations

import math
from typing import Optional, Tuple, Union

from .entities import NormalizedStorm, TrackPoint
from .normalize import normalize_longitude


KM_PER_DEGREE = 111.0

# bearings in degrees, clockwise from north
COMPASS_BEARINGS = {
    "N": 0.0,
    "NNE": 22.5,
    "NE": 45.0,
    "ENE": 67.5,
    "E": 90.0,
    "ESE": 112.5,
    "SE": 135.0,
    "SSE": 157.5,
    "S": 180.0,
    "SSW": 202.5,
    "SW": 225.0,
    "WSW": 247.5,
    "W": 270.0,
    "WNW": 292.5,
    "NW": 315.0,
    "NNW": 337.5,
}


def direction_to_radians(direction: Union[str, float, int, None], default: str = "NW") -> float:
    """Convert a compass point or a bearing in degrees to radians.

    Missing directions use ``default``; strings that are neither a compass
    point nor a number fall back to NE.
    """
    if direction is None or (isinstance(direction, str) and not direction.strip()):
        direction = default
    if isinstance(direction, (int, float)):
        return math.radians(float(direction))
    token = direction.strip().upper()
    if token in COMPASS_BEARINGS:
        return math.radians(COMPASS_BEARINGS[token])
    try:
        return math.radians(float(token.rstrip("°")))
    except ValueError:
        return math.radians(COMPASS_BEARINGS["NE"])


class TrackExtrapolator:
    """Project a storm's next positions at fixed steps.

    The output depends only on the storm's position, movement and wind
    speed; repeated calls with the same input give the same track.
    """

    def __init__(
        self,
        steps: int = 5,
        step_hours: int = 6,
        default_speed_kmh: float = 20.0,
        default_direction: str = "NW",
        wind_decay_per_step: int = 5,
    ) -> None:
        self.steps = steps
        self.step_hours = step_hours
        self.default_speed_kmh = default_speed_kmh
        self.default_direction = default_direction
        self.wind_decay_per_step = wind_decay_per_step

    def extrapolate(self, storm: NormalizedStorm) -> Tuple[TrackPoint, ...]:
        speed = self._speed(storm.movement_speed_kmh)
        bearing = direction_to_radians(storm.movement_direction, self.default_direction)
        points = []
        for step in range(1, self.steps + 1):
            hours_ahead = step * self.step_hours
            distance_deg = speed * hours_ahead / KM_PER_DEGREE
            latitude = storm.latitude + distance_deg * math.cos(bearing)
            longitude = storm.longitude + distance_deg * math.sin(bearing)
            points.append(
                TrackPoint(
                    latitude=round(max(-90.0, min(90.0, latitude)), 4),
                    longitude=round(normalize_longitude(longitude), 4),
                    wind_speed_kmh=max(0, storm.wind_speed_kmh - step * self.wind_decay_per_step),
                    hours_ahead=hours_ahead,
                )
            )
        return tuple(points)

    def _speed(self, movement_speed_kmh: Optional[float]) -> float:
        if movement_speed_kmh and movement_speed_kmh > 0:
            return float(movement_speed_kmh)
        return self.default_speed_kmh


__all__ = ["COMPASS_BEARINGS", "KM_PER_DEGREE", "TrackExtrapolator", "direction_to_radians"]
