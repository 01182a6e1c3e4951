from __future__ import annotations

from datetime import datetime, timezone

import pytest

from typhoon.normalize import build_storm


class TimeController:
    def __init__(self, now: float = 0.0) -> None:
        self.now = now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock() -> TimeController:
    return TimeController()


@pytest.fixture
def make_storm():
    def factory(
        name: str = "Kristine",
        latitude: float = 15.5,
        longitude: float = 125.0,
        wind: float = 150,
        source: str = "OpenWeatherMap",
        **kwargs,
    ):
        kwargs.setdefault("last_updated", datetime(2024, 10, 22, 6, 0, tzinfo=timezone.utc))
        storm = build_storm(
            name=name,
            latitude=latitude,
            longitude=longitude,
            wind_speed_kmh=wind,
            source=source,
            **kwargs,
        )
        assert storm is not None
        return storm

    return factory
