"""Weather store contract consumed by the fetch-and-publish job."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable
from datetime import UTC, date, datetime

from .models import ForecastRow


class SnapshotStore(ABC):
    """Base contract for the phone's forecast store."""

    @abstractmethod
    def query_latest(self, location: str, not_before: datetime) -> ForecastRow | None:
        """Return the earliest row dated on or after ``not_before``'s day, if any."""

    def close(self) -> None:
        """Release store resources."""


def first_row_from(rows: Iterable[ForecastRow], not_before: datetime) -> ForecastRow | None:
    """Apply the day filter and ascending date order shared by all stores."""
    start_day = _utc_day(not_before)
    candidates = sorted(
        (row for row in rows if row.forecast_date >= start_day),
        key=lambda row: row.forecast_date,
    )
    return candidates[0] if candidates else None


def _utc_day(value: datetime) -> date:
    value = value.astimezone(UTC) if value.tzinfo else value.replace(tzinfo=UTC)
    return value.date()


class InMemorySnapshotStore(SnapshotStore):
    """Forecast rows held in memory, keyed by case-insensitive location."""

    def __init__(self, rows: Iterable[ForecastRow] = ()) -> None:
        self._rows: list[ForecastRow] = list(rows)
        self.query_count = 0

    def add_row(self, row: ForecastRow) -> None:
        self._rows.append(row)

    def clear(self) -> None:
        self._rows.clear()

    def query_latest(self, location: str, not_before: datetime) -> ForecastRow | None:
        self.query_count += 1
        wanted = location.strip().casefold()
        return first_row_from(
            (row for row in self._rows if row.location.strip().casefold() == wanted),
            not_before,
        )
