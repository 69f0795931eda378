"""Watch-side holder for the current conditions."""

from __future__ import annotations

from ..protocol import WeatherSnapshot


class ConditionsHolder:
    """Hold the snapshot the watch face draws.

    Snapshots are immutable, so replacing the reference is the whole update
    and a reader sees either the old snapshot or the new one.
    """

    def __init__(self, initial: WeatherSnapshot | None = None) -> None:
        self._current = initial
        self.updates = 0

    @property
    def current(self) -> WeatherSnapshot | None:
        return self._current

    def replace(self, snapshot: WeatherSnapshot) -> None:
        self._current = snapshot
        self.updates += 1
