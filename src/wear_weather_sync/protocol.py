"""Weather snapshot value type and the phone/watch wire contract."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .exceptions import ProtocolError

WEATHER_REQUEST_PATH = "/weather-req"
WEATHER_PATH = "/weather"

KEY_WEATHER_ID = "weather_id"
KEY_MAX_TEMP = "max_temp"
KEY_MIN_TEMP = "min_temp"
KEY_LOCATION = "location"
KEY_TIME = "time"


class WeatherSnapshot(BaseModel):
    """Current conditions published by the phone and displayed by the watch.

    ``disambiguating_timestamp`` (milliseconds since epoch) only keeps two
    publishes with identical weather values from being collapsed by the
    transport's change de-duplication. It is not a freshness indicator.
    """

    model_config = ConfigDict(frozen=True)

    condition_code: int
    max_temp: float
    min_temp: float
    location: str = ""
    disambiguating_timestamp: int = Field(default=0, ge=0)


def normalize_location(location: str) -> str:
    """Trim and upper-case a location setting for publishing."""
    return location.strip().upper()


def encode_snapshot(snapshot: WeatherSnapshot) -> dict[str, Any]:
    """Build the replicated ``/weather`` record for a snapshot."""
    return {
        KEY_WEATHER_ID: snapshot.condition_code,
        KEY_MAX_TEMP: snapshot.max_temp,
        KEY_MIN_TEMP: snapshot.min_temp,
        KEY_LOCATION: snapshot.location,
        KEY_TIME: snapshot.disambiguating_timestamp,
    }


def decode_snapshot(record: Mapping[str, Any]) -> WeatherSnapshot:
    """Decode a replicated ``/weather`` record.

    The three weather fields are required. ``location`` and ``time`` are
    optional because the watch does not need them to draw.
    """
    condition_code = record.get(KEY_WEATHER_ID)
    if isinstance(condition_code, bool) or not isinstance(condition_code, int):
        raise ProtocolError(f"Weather record field '{KEY_WEATHER_ID}' missing or not an int.")

    max_temp = _require_float(record, KEY_MAX_TEMP)
    min_temp = _require_float(record, KEY_MIN_TEMP)

    location = record.get(KEY_LOCATION, "")
    if location is None:
        location = ""
    if not isinstance(location, str):
        raise ProtocolError(f"Weather record field '{KEY_LOCATION}' must be a string.")

    timestamp = record.get(KEY_TIME, 0)
    if isinstance(timestamp, bool) or not isinstance(timestamp, int) or timestamp < 0:
        raise ProtocolError(f"Weather record field '{KEY_TIME}' must be a non-negative int.")

    return WeatherSnapshot(
        condition_code=condition_code,
        max_temp=max_temp,
        min_temp=min_temp,
        location=location,
        disambiguating_timestamp=timestamp,
    )


def _require_float(record: Mapping[str, Any], key: str) -> float:
    value = record.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ProtocolError(f"Weather record field '{key}' missing or not numeric.")
    return float(value)
