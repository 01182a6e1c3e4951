"""Free-text extraction of tropical-cyclone details.

Severe-weather alerts and text bulletins describe storms in prose, e.g.
``"Typhoon Kristine moving NW at 20 km/h with 150 km/h winds located at
15.5°N 125.0°E"``. The helpers here pull out the fields a
:class:`~typhoon.entities.NormalizedStorm` needs. Each returns ``None`` when
the text does not carry the value so callers can apply their own fallback.
"""
from __future__ import annotations

import re
from typing import Optional, Tuple

from .normalize import to_kmh, truncate_kmh


CYCLONE_KEYWORDS = (
    "typhoon",
    "tropical cyclone",
    "hurricane",
    "tropical storm",
    "tropical depression",
    "super typhoon",
)

# keyword fallback when the text carries no numeric wind speed
KEYWORD_WIND_ESTIMATES = (
    ("super typhoon", 220),
    ("typhoon", 120),
    ("tropical storm", 65),
    ("tropical depression", 45),
)

# capitalized words that follow a cyclone keyword without being a storm name
_BULLETIN_WORDS = frozenset(
    {
        "Advisory",
        "Alert",
        "Bulletin",
        "Information",
        "Outlook",
        "Signal",
        "Statement",
        "Update",
        "Warning",
        "Warnings",
        "Watch",
    }
)

_NAME_WORD = r"(?:[A-Z][a-z]+|[A-Z]{2,})"
_NAME_RE = re.compile(
    r"(?i:typhoon|tropical\s+cyclone|hurricane|tropical\s+storm)\s+"
    rf"({_NAME_WORD}(?:[ \t]+{_NAME_WORD})?)"
)
_NUMBERED_RE = re.compile(r"\b(?:typhoon|tc)\s*(\d+)", re.IGNORECASE)

_NUMBER = r"(\d+(?:\.\d+)?)"
_WIND_PATTERNS = (
    ("km/h", re.compile(_NUMBER + r"\s*(?:km/h|kmh|kph)\b", re.IGNORECASE)),
    ("mph", re.compile(_NUMBER + r"\s*mph\b", re.IGNORECASE)),
    ("m/s", re.compile(_NUMBER + r"\s*(?:m/s|ms)\b", re.IGNORECASE)),
    ("knots", re.compile(_NUMBER + r"\s*(?:knots|kts|kt)\b", re.IGNORECASE)),
)

_COMPASS_WORDS = {
    "north": "N",
    "northeast": "NE",
    "east": "E",
    "southeast": "SE",
    "south": "S",
    "southwest": "SW",
    "west": "W",
    "northwest": "NW",
}
_DIRECTION = r"(north(?:east|west)?|south(?:east|west)?|east|west|[NSEW]{1,3})"
_MOVEMENT_RE = re.compile(
    r"\bmoving\s+(?:towards?\s+(?:the\s+)?)?"
    + _DIRECTION
    + r"\b(?:\s*(?:at|@)?\s*"
    + _NUMBER
    + r"\s*(km/h|kmh|kph|mph|m/s|knots|kts|kt))?",
    re.IGNORECASE,
)

_COORDINATES_RE = re.compile(
    r"(?<![\d.])(\d{1,2}(?:\.\d+)?)\s*°?\s*([NS])\b\s*,?\s*(\d{1,3}(?:\.\d+)?)\s*°?\s*([EW])\b",
    re.IGNORECASE,
)
_PRESSURE_RE = re.compile(r"(\d{3,4})\s*(?:mb|hpa)\b", re.IGNORECASE)


def mentions_cyclone(text: str) -> bool:
    lowered = text.lower()
    return any(keyword in lowered for keyword in CYCLONE_KEYWORDS)


def extract_name(text: str) -> Optional[str]:
    position = 0
    while True:
        match = _NAME_RE.search(text, position)
        if match is None:
            break
        words = match.group(1).split()
        if words[0].title() not in _BULLETIN_WORDS:
            kept = [word for word in words if word.title() not in _BULLETIN_WORDS]
            return " ".join(word.title() if word.isupper() else word for word in kept)
        # "Typhoon Warning Typhoon Kristine": rescan from the rejected word
        position = match.start(1)
    numbered = _NUMBERED_RE.search(text)
    if numbered:
        return f"Typhoon {numbered.group(1)}"
    return None


def extract_movement(text: str) -> Tuple[Optional[str], Optional[float]]:
    """Return ``(compass direction, speed km/h)`` from a "moving ..." phrase."""
    match = _MOVEMENT_RE.search(text)
    if not match:
        return None, None
    token = match.group(1)
    direction = _COMPASS_WORDS.get(token.lower(), token.upper())
    speed = None
    if match.group(2):
        speed = round(to_kmh(float(match.group(2)), match.group(3)), 1)
    return direction, speed


def extract_wind_speed(text: str) -> Optional[int]:
    """Return the sustained wind speed in whole km/h, or ``None``.

    Movement phrases are removed first so a storm's translational speed is
    not mistaken for its winds. Units are tried in the order km/h, mph, m/s,
    knots; within the first unit found the largest value wins.
    """
    stripped = _MOVEMENT_RE.sub(" ", text)
    for unit, pattern in _WIND_PATTERNS:
        values = [float(value) for value in pattern.findall(stripped)]
        if values:
            return truncate_kmh(to_kmh(max(values), unit))
    return None


def estimate_wind_from_keywords(text: str) -> int:
    lowered = text.lower()
    for keyword, estimate in KEYWORD_WIND_ESTIMATES:
        if keyword in lowered:
            return estimate
    return 0


def extract_coordinates(text: str) -> Optional[Tuple[float, float]]:
    """Return signed ``(latitude, longitude)`` from ``15.5°N, 125.0°E`` style text."""
    match = _COORDINATES_RE.search(text)
    if not match:
        return None
    latitude = float(match.group(1))
    longitude = float(match.group(3))
    if latitude > 90 or longitude > 180:
        return None
    if match.group(2).upper() == "S":
        latitude = -latitude
    if match.group(4).upper() == "W":
        longitude = -longitude
    return latitude, longitude


def extract_pressure(text: str) -> Optional[int]:
    match = _PRESSURE_RE.search(text)
    if not match:
        return None
    value = int(match.group(1))
    if not 850 <= value <= 1100:
        return None
    return value


__all__ = [
    "CYCLONE_KEYWORDS",
    "KEYWORD_WIND_ESTIMATES",
    "estimate_wind_from_keywords",
    "extract_coordinates",
    "extract_movement",
    "extract_name",
    "extract_pressure",
    "extract_wind_speed",
    "mentions_cyclone",
]
