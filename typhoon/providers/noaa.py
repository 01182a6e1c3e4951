"""NOAA: NHC active-storm feeds, api.weather.gov text products and point alerts.

NHC feeds report wind in knots; values under 200 are treated as knots and
converted, larger values are assumed to already be km/h.
"""
from __future__ import annotations

import hashlib
import json
import math
from datetime import datetime, timezone
from typing import Any, List, Mapping, Optional, Tuple, Union

from .base import MALFORMED, USER_AGENT, HTTPProvider, ParseError, ProviderError
from .. import extraction
from ..entities import Alert, NormalizedStorm, ResolvedLocation, TrackPoint
from ..merge import merge_candidates
from ..normalize import SOURCE_NOAA, build_storm, knots_to_kmh, mph_to_kmh, normalize_longitude, truncate_kmh


NHC_URL = "https://www.nhc.noaa.gov"
NHC_FEEDS = ("/json/active_atl.json", "/json/active_epac.json")
PRODUCT_KEYWORDS = ("tropical", "hurricane", "typhoon")
MAX_PRODUCTS_PER_TYPE = 3
KNOTS_CEILING = 200


def nhc_wind_kmh(value: Any) -> int:
    try:
        wind = int(float(value))
    except (TypeError, ValueError):
        return 0
    if wind < KNOTS_CEILING:
        return truncate_kmh(knots_to_kmh(wind))
    return wind


def _parse_iso(value: Any) -> Optional[datetime]:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return datetime.fromtimestamp(value, tz=timezone.utc)
        except (OSError, OverflowError, ValueError):
            return None
    if not value or not isinstance(value, str):
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _direction(value: Any) -> Union[float, str, None]:
    """Degrees when numeric, otherwise the compass label as given."""
    number = _float(value)
    if number is not None:
        return number
    if not isinstance(value, str):
        return None
    return value.strip().upper() or None


def alert_type_for(severity: Optional[str]) -> str:
    severity = (severity or "").lower()
    if severity in ("extreme", "severe"):
        return "critical"
    if severity in ("moderate", "minor"):
        return "warning"
    return "info"


class NOAAProvider(HTTPProvider):
    name = SOURCE_NOAA
    default_timeout = 15.0
    base_url = "https://api.weather.gov"
    headers = {"Accept": "application/geo+json", "User-Agent": USER_AGENT}

    def __init__(self, *args, nhc_url: str = NHC_URL, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.base_url = (self.settings.base_url or self.base_url).rstrip("/")
        self.nhc_url = nhc_url.rstrip("/")

    def fetch_storms(self, region: str = "PH", deadline: Optional[float] = None) -> List[NormalizedStorm]:
        """Active storms from the NHC feeds, else from tropical text products."""
        self.ensure_configured()
        storms, failed_feeds = self._nhc_storms(deadline)
        if storms:
            self._log.info("NHC feeds reported %d storm(s)", len(storms))
            return storms
        try:
            storms = self._product_storms(deadline)
        except ProviderError:
            if failed_feeds == len(NHC_FEEDS):
                raise
            self._log.warning("NOAA products listing failed, no active storms reported")
            return []
        self._log.info("NOAA products reported %d storm(s)", len(storms))
        return storms

    # NHC feeds -------------------------------------------------------------
    def _nhc_storms(self, deadline: Optional[float]) -> Tuple[List[NormalizedStorm], int]:
        storms: List[NormalizedStorm] = []
        failed = 0
        for feed in NHC_FEEDS:
            try:
                response = self._request(
                    "GET",
                    f"{self.nhc_url}{feed}",
                    headers={"Accept": "application/json"},
                    deadline=deadline,
                    allow_not_found=True,
                )
                if response is None:
                    continue
                data = self._json(response)
            except ProviderError as exc:
                self._log.warning("NHC feed %s failed: %s", feed, exc)
                failed += 1
                continue
            entries = data.get("storms") if isinstance(data, dict) else None
            for entry in entries if isinstance(entries, list) else []:
                if not isinstance(entry, dict):
                    continue
                try:
                    storm = self.parse_nhc_storm(entry)
                except MALFORMED as exc:
                    self._log.warning("Skipping malformed NHC entry in %s: %s", feed, exc)
                    continue
                if storm is not None:
                    storms.append(storm)
        return storms, failed

    def parse_nhc_storm(self, entry: Mapping[str, Any]) -> Optional[NormalizedStorm]:
        if not entry.get("id") or not entry.get("name"):
            return None
        forecast = entry.get("forecast") if isinstance(entry.get("forecast"), list) else []
        first = forecast[0] if forecast and isinstance(forecast[0], dict) else {}
        latitude = _float(first.get("lat"))
        if latitude is None:
            latitude = _float(entry.get("lat", entry.get("latitudeNumeric")))
        longitude = _float(first.get("lon"))
        if longitude is None:
            longitude = _float(entry.get("lon", entry.get("longitudeNumeric")))

        movement_speed = _float(entry.get("speed"))
        if movement_speed is None and entry.get("movementSpeed") is not None:
            movement_speed = _float(entry.get("movementSpeed"))
            movement_speed = round(mph_to_kmh(movement_speed), 1) if movement_speed is not None else None

        areas = entry.get("areas")
        return build_storm(
            name=str(entry["name"]),
            latitude=latitude,
            longitude=longitude,
            wind_speed_kmh=nhc_wind_kmh(entry.get("windSpeed", entry.get("intensity"))),
            source=self.name,
            provider_id=str(entry["id"]),
            pressure_hpa=_float(entry.get("pressure")),
            movement_speed_kmh=movement_speed,
            movement_direction=_direction(entry.get("movementDir")),
            status=entry.get("status") or entry.get("classification"),
            affected_regions=areas if isinstance(areas, list) else (),
            warnings=entry.get("advisory"),
            last_updated=_parse_iso(entry.get("time") or entry.get("lastUpdate")),
            forecast_track=self._forecast_track(forecast),
        )

    @staticmethod
    def _forecast_track(forecast: List[Any]) -> Tuple[TrackPoint, ...]:
        points = []
        for item in forecast:
            if not isinstance(item, dict) or "hour" not in item:
                continue
            hours = _float(item.get("hour"))
            latitude = _float(item.get("lat"))
            longitude = _float(item.get("lon"))
            if not hours or not math.isfinite(hours) or hours <= 0 or latitude is None or longitude is None:
                continue
            points.append(
                TrackPoint(
                    latitude=latitude,
                    longitude=normalize_longitude(longitude),
                    wind_speed_kmh=nhc_wind_kmh(item.get("windSpeed")),
                    hours_ahead=int(hours),
                )
            )
        return tuple(points)

    # api.weather.gov text products ----------------------------------------
    def _product_storms(self, deadline: Optional[float]) -> List[NormalizedStorm]:
        types = self._graph(f"{self.base_url}/products/types", deadline)
        storms: List[NormalizedStorm] = []
        for product_type in types:
            code = product_type.get("productCode") or product_type.get("id")
            label = " ".join(str(product_type.get(key) or "") for key in ("id", "productCode", "productName")).lower()
            if not code or not any(keyword in label for keyword in PRODUCT_KEYWORDS):
                continue
            try:
                products = self._graph(f"{self.base_url}/products/types/{code}", deadline)
            except ProviderError as exc:
                self._log.warning("Product type %s failed: %s", code, exc)
                continue
            for product in products[:MAX_PRODUCTS_PER_TYPE]:
                storm = self._product_storm(product, deadline)
                if storm is not None:
                    storms.append(storm)
        return merge_candidates(storms)

    def _product_storm(self, product: Mapping[str, Any], deadline: Optional[float]) -> Optional[NormalizedStorm]:
        product_id = product.get("id")
        if not product_id:
            return None
        try:
            response = self._request("GET", f"{self.base_url}/products/{product_id}", deadline=deadline, allow_not_found=True)
            if response is None:
                return None
            data = self._json(response)
        except ProviderError as exc:
            self._log.warning("Product %s failed: %s", product_id, exc)
            return None
        text = data.get("productText") if isinstance(data, dict) else None
        if not isinstance(text, str):
            return None
        return self.storm_from_text(text, issued=_parse_iso(product.get("issuanceTime")))

    def storm_from_text(self, text: str, issued: Optional[datetime] = None) -> Optional[NormalizedStorm]:
        if not extraction.mentions_cyclone(text):
            return None
        coordinates = extraction.extract_coordinates(text)
        if coordinates is None:
            return None
        wind = extraction.extract_wind_speed(text)
        if wind is None:
            wind = extraction.estimate_wind_from_keywords(text)
        direction, movement_speed = extraction.extract_movement(text)
        return build_storm(
            name=extraction.extract_name(text),
            latitude=coordinates[0],
            longitude=coordinates[1],
            wind_speed_kmh=wind,
            source=self.name,
            pressure_hpa=extraction.extract_pressure(text),
            movement_speed_kmh=movement_speed,
            movement_direction=direction,
            last_updated=issued,
            default_name="Unnamed System",
        )

    def _graph(self, url: str, deadline: Optional[float]) -> List[dict]:
        response = self._request("GET", url, deadline=deadline, allow_not_found=True)
        if response is None:
            return []
        data = self._json(response)
        graph = data.get("@graph") if isinstance(data, dict) else None
        if graph is None:
            return []
        if not isinstance(graph, list):
            raise ParseError("@graph is not a list")
        return [item for item in graph if isinstance(item, dict)]

    # Alerts ----------------------------------------------------------------
    def alerts(self, location: ResolvedLocation, deadline: Optional[float] = None) -> List[Alert]:
        self.ensure_configured()
        params = {"point": f"{location.latitude},{location.longitude}"}
        response = self._request("GET", f"{self.base_url}/alerts/active", params=params, deadline=deadline, allow_not_found=True)
        if response is None:
            return []
        data = self._json(response)
        result = []
        for feature in (data.get("features") if isinstance(data, dict) else None) or []:
            properties = feature.get("properties") if isinstance(feature, dict) else None
            if not isinstance(properties, dict):
                continue
            alert_id = properties.get("id") or hashlib.md5(json.dumps(feature, sort_keys=True).encode("utf-8")).hexdigest()
            result.append(
                Alert(
                    id=str(alert_id),
                    type=alert_type_for(properties.get("severity")),
                    title=properties.get("event") or "Weather Alert",
                    message=properties.get("headline") or properties.get("description") or "",
                    severity=properties.get("severity") or "Unknown",
                    source=self.name,
                    timestamp=_parse_iso(properties.get("sent")) or datetime.now(tz=timezone.utc),
                )
            )
        return result


__all__ = ["NHC_FEEDS", "NOAAProvider", "alert_type_for", "nhc_wind_kmh"]
