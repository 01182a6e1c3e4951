from __future__ import annotations

import responses

from typhoon.providers.jma import (
    POSITION_TABLE_PATH,
    JMAProvider,
    find_latitude,
    find_movement,
    find_wind_kmh,
)


JMA_URL = f"https://www.data.jma.go.jp{POSITION_TABLE_PATH}"

POSITION_TABLE = """
<html>
<head><title>Typhoon Position Table</title></head>
<body>
<table class="typhoon-table">
  <tr><th>Name</th><th>Time</th><th>Lat</th><th>Lon</th><th>Movement</th><th>Pressure</th><th>Wind</th></tr>
  <tr><td>TY KONG-REY (2421)</td><td>Oct 30 00UTC</td><td>22.1N</td><td>123.9E</td><td>NW 15 km/h</td><td>925 hPa</td><td>185 km/h</td></tr>
  <tr><td>TS YINXING</td><td>Oct 30 00UTC</td><td>16.5N</td><td>119.2E</td><td>W 20 km/h</td><td>985hPa</td><td>45 kt</td></tr>
  <tr><td>X</td><td>Oct 30 00UTC</td><td>10.0N</td><td>130.0E</td><td>N 10 km/h</td><td>1000 hPa</td></tr>
  <tr><td>TD</td><td>Oct 30 00UTC</td><td>Unknown</td><td>-</td><td>-</td><td>1004 hPa</td></tr>
</table>
<table class="footer"><tr><td>Storm</td><td>1.0N</td><td>1.0E</td><td>a</td><td>b</td></tr></table>
</body>
</html>
"""


def test_jma_position_table():
    with responses.RequestsMock() as rsps:
        rsps.add("GET", JMA_URL, body=POSITION_TABLE, status=200, content_type="text/html")
        storms = JMAProvider().fetch_storms()
        user_agent = rsps.calls[0].request.headers["User-Agent"]

    assert [storm.name for storm in storms] == ["TY KONG-REY (2421)", "TS YINXING"]
    kong_rey, yinxing = storms
    assert (kong_rey.latitude, kong_rey.longitude) == (22.1, 123.9)
    assert kong_rey.wind_speed_kmh == 185
    assert kong_rey.category == "Very Strong Typhoon"
    assert kong_rey.pressure_hpa == 925
    assert (kong_rey.movement_direction, kong_rey.movement_speed_kmh) == ("NW", 15.0)
    assert yinxing.wind_speed_kmh == 83
    assert yinxing.category == "Tropical Storm"
    assert yinxing.pressure_hpa == 985
    assert yinxing.source == "JMA"
    assert "TyphoonTracker" in user_agent


def test_jma_missing_page_means_no_storms():
    with responses.RequestsMock() as rsps:
        rsps.add("GET", JMA_URL, status=404)
        assert JMAProvider().fetch_storms() == []


def test_jma_page_without_typhoon_content():
    with responses.RequestsMock() as rsps:
        rsps.add("GET", JMA_URL, body="<html><body>Maintenance</body></html>", status=200)
        assert JMAProvider().fetch_storms() == []


def test_row_scan_ignores_column_order():
    cells = ["995 hPa", "W 20 km/h", "35 kt", "140.0E", "18.3N"]
    assert find_latitude(cells) == 18.3
    assert find_wind_kmh(cells) == 64
    assert find_movement(cells) == ("W", 20.0)


def test_row_without_wind_defaults_to_zero():
    storm = JMAProvider().parse_row(["TD", "12.0N", "135.0E", "1006 hPa", "-"])
    assert storm.wind_speed_kmh == 0
    assert storm.category == "Tropical Depression"
