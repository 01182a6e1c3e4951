"""REST API views for weather and typhoon information."""
from __future__ import annotations

import logging
from datetime import datetime
from functools import lru_cache
from typing import Any, Dict

from django.conf import settings
from django.core.cache import caches
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from typhoon.entities import format_timestamp
from typhoon.health import HealthRegistry
from typhoon.services.typhoons import TyphoonService
from typhoon.services.weather import WeatherService, WeatherServiceError


logger = logging.getLogger(__name__)

ACTIONS = ("weather", "typhoon", "forecast", "alerts")


class InvalidAction(ValueError):
    """Raised for an ``action`` the API does not serve."""


@lru_cache(maxsize=1)
def get_health_registry() -> HealthRegistry:
    return HealthRegistry()


@lru_cache(maxsize=1)
def get_typhoon_service() -> TyphoonService:
    return TyphoonService.from_config(
        settings.TYPHOON_TRACKER,
        cache=caches[settings.TRACKER_CACHE_ALIAS],
        health=get_health_registry(),
        ttl=settings.TYPHOON_CACHE_TIMEOUT,
    )


@lru_cache(maxsize=1)
def get_weather_service() -> WeatherService:
    return WeatherService.from_config(
        settings.TYPHOON_TRACKER,
        cache=caches[settings.TRACKER_CACHE_ALIAS],
        health=get_health_registry(),
        ttl=settings.WEATHER_CACHE_TIMEOUT,
    )


def reset_services() -> None:
    """Drop the memoized services, e.g. after settings change."""
    get_typhoon_service.cache_clear()
    get_weather_service.cache_clear()
    get_health_registry.cache_clear()


def now_timestamp() -> str:
    return format_timestamp(datetime.now(tz=settings.DEFAULT_TIMEZONE))


def fetch_action(action: str, location: str) -> Any:
    """Return the JSON-ready ``data`` for an API action."""
    if action == "weather":
        return get_weather_service().get_current(location).to_dict()
    if action == "forecast":
        return [day.to_dict() for day in get_weather_service().get_forecast(location)]
    if action == "alerts":
        return [alert.to_dict() for alert in get_weather_service().get_alerts(location)]
    if action == "typhoon":
        return [storm.to_dict() for storm in get_typhoon_service().get_typhoons()]
    raise InvalidAction(action)


def error_payload(message: str) -> Dict[str, Any]:
    return {"success": False, "error": message, "timestamp": now_timestamp()}


class CorsMixin:
    def finalize_response(self, request, response, *args, **kwargs):
        response = super().finalize_response(request, response, *args, **kwargs)
        response["Access-Control-Allow-Origin"] = "*"
        response["Access-Control-Allow-Methods"] = "GET, OPTIONS"
        return response


class TrackerView(CorsMixin, APIView):
    """Serve weather, forecast, alerts or active typhoons depending on ``action``."""

    permission_classes = [AllowAny]

    def get(self, request, *args, **kwargs):  # noqa: D401
        """Return ``{success, data, timestamp}`` for the requested action."""
        action = request.query_params.get("action") or "weather"
        location = request.query_params.get("location") or settings.TYPHOON_TRACKER.default_location
        try:
            data = fetch_action(action, location)
        except InvalidAction:
            return Response(error_payload("Invalid request"), status=status.HTTP_400_BAD_REQUEST)
        except WeatherServiceError as exc:
            logger.error("API error for action=%s location=%s: %s", action, location, exc)
            return Response(error_payload(str(exc)), status=status.HTTP_400_BAD_REQUEST)
        return Response({"success": True, "data": data, "timestamp": now_timestamp()}, status=status.HTTP_200_OK)


class HealthView(CorsMixin, APIView):
    """Provider error counters, last successful fetches and cache statistics."""

    permission_classes = [AllowAny]

    def get(self, request, *args, **kwargs):  # noqa: D401
        registry = get_health_registry()
        cache = caches[settings.TRACKER_CACHE_ALIAS]
        stats = getattr(cache, "stats", None)
        if callable(stats):
            registry.set_cache_stats(stats())
        return Response(registry.snapshot(), status=status.HTTP_200_OK)
