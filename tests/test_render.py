"""Tests for the text watch face renderer."""

from __future__ import annotations

from datetime import datetime

import pytest
from rich.console import Console

from wear_weather_sync.protocol import WeatherSnapshot
from wear_weather_sync.render import condition_icon, format_date, format_time, render

NOW = datetime(2026, 2, 24, 21, 5)


def _text(renderable: object) -> str:
    console = Console(record=True, width=60, color_system=None)
    console.print(renderable)
    return console.export_text()


@pytest.mark.parametrize(
    ("code", "icon"),
    [
        (211, "storm"),
        (301, "light_rain"),
        (502, "rain"),
        (511, "snow"),
        (521, "light_rain"),
        (601, "snow"),
        (741, "fog"),
        (781, "storm"),
        (800, "clear"),
        (801, "light_clouds"),
        (804, "cloudy"),
        (900, "clear"),
    ],
)
def test_condition_icon_ranges(code: int, icon: str) -> None:
    assert condition_icon(code) == icon


def test_time_formats() -> None:
    assert format_time(NOW) == ("21", "05", None)
    assert format_time(NOW, use_24_hour=False) == ("9", "05", "PM")
    assert format_time(datetime(2026, 2, 24, 0, 7), use_24_hour=False) == ("12", "07", "AM")


def test_date_line() -> None:
    assert format_date(NOW) == "TUE, FEB 24 2026"


def test_interactive_face_shows_weather() -> None:
    snapshot = WeatherSnapshot(condition_code=601, max_temp=-2.0, min_temp=-10.4)

    text = _text(render(snapshot, NOW, False, False))

    assert "21:05" in text
    assert "TUE, FEB 24 2026" in text
    assert "snow" in text
    assert "-2°" in text
    assert "-10°" in text


def test_placeholder_without_snapshot() -> None:
    text = _text(render(None, NOW, False, False))

    assert "--°" in text
    assert "clear" in text


def test_ambient_face_drops_icon_glyph() -> None:
    snapshot = WeatherSnapshot(condition_code=500, max_temp=12.0, min_temp=4.0)

    interactive = _text(render(snapshot, NOW, False, False))
    ambient = _text(render(snapshot, NOW, True, True, use_24_hour=False))

    assert "🌧" in interactive
    assert "🌧" not in ambient
    assert "9:05 PM" in ambient
    assert "rain" in ambient


def _hour_style(panel: object) -> str:
    time_line = panel.renderable.renderables[0].renderable  # type: ignore[attr-defined]
    return str(time_line.spans[0].style)


def test_burn_in_protection_drops_bold_hour() -> None:
    snapshot = WeatherSnapshot(condition_code=800, max_temp=25.0, min_temp=15.0)

    normal = render(snapshot, NOW, False, False)
    protected = render(snapshot, NOW, False, False, burn_in_protection=True)

    assert "bold" in _hour_style(normal)
    assert "bold" not in _hour_style(protected)
    assert "21:05" in _text(protected)
