from __future__ import annotations

import pytest

from typhoon.merge import DUPLICATE_DISTANCE_DEG, is_duplicate, merge_candidates, planar_distance


def test_same_name_is_duplicate_regardless_of_distance(make_storm):
    first = make_storm(latitude=15.5, longitude=125.0)
    second = make_storm(latitude=25.0, longitude=140.0, source="JMA")
    assert is_duplicate(first, second)


def test_nearby_positions_are_duplicates_even_with_different_names(make_storm):
    first = make_storm(name="Kristine", latitude=15.5, longitude=125.0)
    second = make_storm(name="Trami", latitude=15.9, longitude=125.5, source="JMA")
    assert planar_distance(first, second) < DUPLICATE_DISTANCE_DEG
    assert is_duplicate(first, second)


def test_distance_threshold_is_strict(make_storm):
    first = make_storm(name="Kristine", latitude=15.0, longitude=125.0)
    second = make_storm(name="Leon", latitude=16.0, longitude=125.0)
    assert planar_distance(first, second) == pytest.approx(1.0)
    assert not is_duplicate(first, second)


def test_merge_keeps_first_seen_and_insertion_order(make_storm):
    owm = make_storm(name="Kristine", wind=150, source="OpenWeatherMap")
    leon = make_storm(name="Leon", latitude=20.0, longitude=130.0, wind=90)
    jma = make_storm(name="KRISTINE-JMA", latitude=15.6, longitude=125.2, wind=175, source="JMA")
    noaa = make_storm(name="Leon", latitude=20.3, longitude=130.1, wind=120, source="NOAA")

    merged = merge_candidates([owm, leon, jma, noaa])

    assert merged == [owm, leon]
    assert merged[0].wind_speed_kmh == 150


def test_merge_of_nothing_is_empty():
    assert merge_candidates([]) == []
    assert merge_candidates(iter(())) == []
