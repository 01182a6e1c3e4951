"""Japan Meteorological Agency typhoon position table.

JMA publishes current typhoon positions as an HTML table. Columns vary
between page revisions, so each field is found by scanning every cell of a
row rather than by column index.
"""
from __future__ import annotations

import re
from typing import List, Optional, Sequence, Tuple

from bs4 import BeautifulSoup

from .base import MALFORMED, USER_AGENT, HTTPProvider
from .. import extraction
from ..entities import NormalizedStorm
from ..normalize import SOURCE_JMA, build_storm, to_kmh, truncate_kmh


POSITION_TABLE_PATH = "/fcd/yoho/typhoon/position_table.html"

_TYPHOON_MARKER = re.compile(r"typhoon|台風", re.IGNORECASE)
_LATITUDE = re.compile(r"(\d+(?:\.\d+)?)\s*°?\s*([NS])\b", re.IGNORECASE)
_LONGITUDE = re.compile(r"(\d+(?:\.\d+)?)\s*°?\s*([EW])\b", re.IGNORECASE)
_WIND = re.compile(r"(\d+(?:\.\d+)?)\s*(km/h|kmh|m/s|ms|kt|knots)\b", re.IGNORECASE)
_MOVEMENT = re.compile(
    r"^\s*([NSEW]{1,3})\s+(\d+(?:\.\d+)?)\s*(km/h|kmh|m/s|kt|knots)\b",
    re.IGNORECASE,
)


def _table_class(css_class: Optional[str]) -> bool:
    return bool(css_class) and ("typhoon" in css_class or "table" in css_class)


def find_latitude(cells: Sequence[str]) -> Optional[float]:
    for cell in cells:
        match = _LATITUDE.search(cell)
        if match:
            value = float(match.group(1))
            return -value if match.group(2).upper() == "S" else value
    return None


def find_longitude(cells: Sequence[str]) -> Optional[float]:
    for cell in cells:
        match = _LONGITUDE.search(cell)
        if match:
            value = float(match.group(1))
            return -value if match.group(2).upper() == "W" else value
    return None


def find_wind_kmh(cells: Sequence[str]) -> int:
    for cell in cells:
        if _MOVEMENT.search(cell):
            continue
        match = _WIND.search(cell)
        if match:
            return truncate_kmh(to_kmh(float(match.group(1)), match.group(2)))
    return 0


def find_pressure(cells: Sequence[str]) -> Optional[int]:
    for cell in cells:
        pressure = extraction.extract_pressure(cell)
        if pressure is not None:
            return pressure
    return None


def find_movement(cells: Sequence[str]) -> Tuple[Optional[str], Optional[float]]:
    for cell in cells:
        match = _MOVEMENT.search(cell)
        if match:
            return match.group(1).upper(), round(to_kmh(float(match.group(2)), match.group(3)), 1)
    return None, None


class JMAProvider(HTTPProvider):
    name = SOURCE_JMA
    default_timeout = 15.0
    base_url = "https://www.data.jma.go.jp"
    headers = {
        "Accept": "text/html,application/xhtml+xml",
        "Accept-Language": "en-US,en;q=0.9,ja;q=0.8",
        "User-Agent": USER_AGENT,
    }

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.base_url = (self.settings.base_url or self.base_url).rstrip("/")

    def fetch_storms(self, region: str = "PH", deadline: Optional[float] = None) -> List[NormalizedStorm]:
        self.ensure_configured()
        response = self._request("GET", f"{self.base_url}{POSITION_TABLE_PATH}", deadline=deadline, allow_not_found=True)
        if response is None:
            return []
        storms = self.parse_position_table(response.text)
        self._log.info("JMA position table yielded %d row(s)", len(storms))
        return storms

    def parse_position_table(self, html: str) -> List[NormalizedStorm]:
        if not html or not _TYPHOON_MARKER.search(html):
            return []
        soup = BeautifulSoup(html, "html.parser")
        storms = []
        for table in soup.find_all("table", class_=_table_class):
            for row in table.find_all("tr"):
                cells = [cell.get_text(" ", strip=True) for cell in row.find_all("td")]
                if len(cells) < 5:
                    continue
                try:
                    storm = self.parse_row(cells)
                except MALFORMED as exc:
                    self._log.warning("Skipping malformed JMA row %r: %s", cells[0], exc)
                    continue
                if storm is not None:
                    storms.append(storm)
        return storms

    def parse_row(self, cells: Sequence[str]) -> Optional[NormalizedStorm]:
        name = cells[0].strip()
        if len(name) < 2:
            return None
        fields = cells[1:]
        direction, movement_speed = find_movement(fields)
        return build_storm(
            name=name,
            latitude=find_latitude(fields),
            longitude=find_longitude(fields),
            wind_speed_kmh=find_wind_kmh(fields),
            source=self.name,
            pressure_hpa=find_pressure(fields),
            movement_speed_kmh=movement_speed,
            movement_direction=direction,
            default_name="Unnamed",
        )


__all__ = ["JMAProvider", "POSITION_TABLE_PATH"]
