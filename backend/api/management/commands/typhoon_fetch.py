"""Management command to fetch tracker data using the same stack as the API."""
from __future__ import annotations

import json
from typing import Any

from django.conf import settings
from django.core.management.base import BaseCommand, CommandError

from backend.api.views import ACTIONS, fetch_action, now_timestamp
from typhoon.services.weather import WeatherServiceError


class Command(BaseCommand):
    help = "Print the API payload for an action (weather, typhoon, forecast, alerts)"

    def add_arguments(self, parser) -> None:  # noqa: D401
        parser.add_argument("--action", choices=ACTIONS, default="typhoon", help="What to fetch")
        parser.add_argument("--location", type=str, help="City name or 'lat,lon'")
        parser.add_argument("--indent", type=int, default=None, help="Pretty-print with this indent")

    def handle(self, *args: Any, **options: Any) -> None:  # noqa: D401
        location = options.get("location") or settings.TYPHOON_TRACKER.default_location
        try:
            data = fetch_action(options["action"], location)
        except WeatherServiceError as exc:
            raise CommandError(str(exc)) from exc
        payload = {"success": True, "data": data, "timestamp": now_timestamp()}
        self.stdout.write(json.dumps(payload, indent=options.get("indent")))
