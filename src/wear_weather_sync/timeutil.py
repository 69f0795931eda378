"""UTC and epoch-millisecond helpers."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)
_ONE_MS = timedelta(milliseconds=1)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    return value.astimezone(UTC) if value.tzinfo else value.replace(tzinfo=UTC)


def epoch_ms(value: datetime) -> int:
    """Exact integer milliseconds since the Unix epoch."""
    return (as_utc(value) - _EPOCH) // _ONE_MS
