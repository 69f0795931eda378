"""Text rendering of the watch face.

``render`` is pure: it reads a snapshot and display flags and returns a rich
renderable. It never calls back into the sync machinery.
"""

from __future__ import annotations

from datetime import datetime

from rich.align import Align
from rich.console import Group
from rich.panel import Panel
from rich.text import Text

from .protocol import WeatherSnapshot

_ICON_GLYPHS: dict[str, str] = {
    "storm": "⛈",
    "light_rain": "🌦",
    "rain": "🌧",
    "snow": "❄",
    "fog": "🌫",
    "clear": "☀",
    "light_clouds": "🌤",
    "cloudy": "☁",
}

_INTERACTIVE_STYLES: dict[str, str] = {
    "hour": "bold white",
    "minute": "white",
    "am_pm": "grey70",
    "date": "cyan",
    "divider": "grey50",
    "icon": "yellow",
    "high": "bold white",
    "low": "grey70",
    "border": "blue",
}

_AMBIENT_STYLES: dict[str, str] = {
    "hour": "bold white",
    "minute": "white",
    "am_pm": "white",
    "date": "white",
    "divider": "white",
    "icon": "white",
    "high": "white",
    "low": "white",
    "border": "white",
}

# Low-bit ambient displays cannot dim or embolden glyphs.
_LOW_BIT_STYLES: dict[str, str] = {key: "white" for key in _AMBIENT_STYLES}

_DIVIDER_WIDTH = 14


def condition_icon(condition_code: int) -> str:
    """Map an OpenWeatherMap condition code to an icon name."""
    code = condition_code
    if 200 <= code <= 232:
        return "storm"
    if 300 <= code <= 321:
        return "light_rain"
    if 500 <= code <= 504:
        return "rain"
    if code == 511:
        return "snow"
    if 520 <= code <= 531:
        return "light_rain"
    if 600 <= code <= 622:
        return "snow"
    if 701 <= code <= 761:
        return "fog"
    if code == 781:
        return "storm"
    if code == 800:
        return "clear"
    if code == 801:
        return "light_clouds"
    if 802 <= code <= 804:
        return "cloudy"
    return "clear"


def format_temperature(value: float | None) -> str:
    if value is None:
        return "--°"
    return f"{value:.0f}°"


def format_time(now: datetime, *, use_24_hour: bool = True) -> tuple[str, str, str | None]:
    """Return (hour, minute, am/pm marker or None)."""
    minute = f"{now.minute:02d}"
    if use_24_hour:
        return f"{now.hour:02d}", minute, None
    hour = now.hour % 12 or 12
    return str(hour), minute, "AM" if now.hour < 12 else "PM"


def format_date(now: datetime) -> str:
    """Day-of-week date line, e.g. ``TUE, FEB 24 2026``."""
    return f"{now:%a}, {now:%b} {now.day} {now.year}".upper()


def render(
    snapshot: WeatherSnapshot | None,
    now: datetime,
    is_ambient: bool,
    is_low_bit_ambient: bool,
    *,
    use_24_hour: bool = True,
    burn_in_protection: bool = False,
) -> Panel:
    """Render one frame of the watch face.

    Screens with burn-in protection draw the hour without bold.
    """
    if is_ambient and is_low_bit_ambient:
        styles = _LOW_BIT_STYLES
    elif is_ambient:
        styles = _AMBIENT_STYLES
    else:
        styles = _INTERACTIVE_STYLES
    hour_style = styles["hour"]
    if burn_in_protection:
        hour_style = hour_style.replace("bold", "").strip() or "white"

    hour, minute, am_pm = format_time(now, use_24_hour=use_24_hour)
    time_line = Text()
    time_line.append(hour, style=hour_style)
    time_line.append(":", style=styles["minute"])
    time_line.append(minute, style=styles["minute"])
    if am_pm is not None:
        time_line.append(f" {am_pm}", style=styles["am_pm"])

    date_line = Text(format_date(now), style=styles["date"])
    divider = Text("─" * _DIVIDER_WIDTH, style=styles["divider"])

    icon_name = condition_icon(snapshot.condition_code if snapshot else 800)
    # Ambient mode shows the icon desaturated: name only, no colour glyph.
    icon_label = icon_name if is_ambient else f"{_ICON_GLYPHS[icon_name]} {icon_name}"
    weather_line = Text()
    weather_line.append(icon_label, style=styles["icon"])
    weather_line.append("  ")
    weather_line.append(
        format_temperature(snapshot.max_temp if snapshot else None), style=styles["high"]
    )
    weather_line.append(" ")
    weather_line.append(
        format_temperature(snapshot.min_temp if snapshot else None), style=styles["low"]
    )

    body = Group(
        Align.center(time_line),
        Align.center(date_line),
        Align.center(divider),
        Align.center(weather_line),
    )
    return Panel(body, border_style=styles["border"], expand=False)
