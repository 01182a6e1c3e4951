from __future__ import annotations

import pytest

from typhoon.extraction import (
    estimate_wind_from_keywords,
    extract_coordinates,
    extract_movement,
    extract_name,
    extract_pressure,
    extract_wind_speed,
    mentions_cyclone,
)


KRISTINE = (
    "Typhoon Warning ...Typhoon Kristine moving NW at 20 km/h with 150 km/h winds "
    "located at 15.5°N 125.0°E..."
)


def test_kristine_bulletin_fields():
    assert extract_name(KRISTINE) == "Kristine"
    assert extract_wind_speed(KRISTINE) == 150
    assert extract_coordinates(KRISTINE) == (15.5, 125.0)
    assert extract_movement(KRISTINE) == ("NW", 20.0)


@pytest.mark.parametrize(
    "text, expected",
    [
        ("Tropical Storm Trami approaching Luzon", "Trami"),
        ("Super Typhoon Pepito nears Catanduanes", "Pepito"),
        ("UPDATE ON TYPHOON KRISTINE", "Kristine"),
        ("Hurricane Milton makes landfall", "Milton"),
        ("tropical cyclone warning for typhoon 05", "Typhoon 05"),
        ("TC 12 upgraded", "Typhoon 12"),
        ("Heavy rainfall advisory", None),
    ],
)
def test_extract_name(text, expected):
    assert extract_name(text) == expected


def test_bulletin_words_are_not_names():
    assert extract_name("Tropical Cyclone Signal raised") is None
    assert extract_name("Typhoon Advisory: Typhoon Leon nearing Batanes") == "Leon"


@pytest.mark.parametrize(
    "text, expected",
    [
        ("winds of 120 km/h", 120),
        ("sustained winds 100 mph", 160),
        ("max wind 40 m/s", 144),
        ("winds 100 knots", 185),
        ("gusts 90 kt", 166),
        ("winds of 120 km/h gusting to 150 km/h", 150),
        ("no numbers here", None),
    ],
)
def test_extract_wind_speed(text, expected):
    assert extract_wind_speed(text) == expected


def test_km_h_takes_precedence_over_other_units():
    assert extract_wind_speed("winds 100 knots (185 km/h)") == 185


def test_movement_speed_is_not_wind_speed():
    assert extract_wind_speed("moving west at 25 km/h") is None


@pytest.mark.parametrize(
    "text, expected",
    [
        ("super typhoon bearing down", 220),
        ("a typhoon is approaching", 120),
        ("tropical storm watch", 65),
        ("tropical depression formed", 45),
        ("thunderstorm advisory", 0),
    ],
)
def test_keyword_wind_estimates(text, expected):
    assert estimate_wind_from_keywords(text) == expected


@pytest.mark.parametrize(
    "text, expected",
    [
        ("center at 15.5°N, 125.0°E", (15.5, 125.0)),
        ("near 12.3N 130.1E", (12.3, 130.1)),
        ("located 18.2 S 160.5 W", (-18.2, -160.5)),
        ("position unknown", None),
    ],
)
def test_extract_coordinates(text, expected):
    assert extract_coordinates(text) == expected


def test_movement_words_map_to_compass_points():
    assert extract_movement("moving northwest at 15 kt") == ("NW", pytest.approx(27.8))
    assert extract_movement("moving towards the west") == ("W", None)
    assert extract_movement("stationary") == (None, None)


def test_extract_pressure():
    assert extract_pressure("central pressure 955 hPa") == 955
    assert extract_pressure("pressure 1002mb") == 1002
    assert extract_pressure("1500 hPa") is None
    assert extract_pressure("no pressure") is None


def test_mentions_cyclone():
    assert mentions_cyclone("TROPICAL DEPRESSION ONE")
    assert not mentions_cyclone("Flood warning")
