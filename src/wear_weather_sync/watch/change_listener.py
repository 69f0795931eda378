"""Watch-side listener applying replicated ``/weather`` changes."""

from __future__ import annotations

import logging
from collections.abc import Callable

from ..exceptions import ProtocolError
from ..link.models import DataEvent
from ..protocol import WEATHER_PATH, decode_snapshot
from .state import ConditionsHolder


class ChangeListener:
    """Decode weather record changes into held state and request a redraw."""

    def __init__(
        self,
        holder: ConditionsHolder,
        invalidate: Callable[[], None],
        logger: logging.Logger,
    ) -> None:
        self.holder = holder
        self.invalidate = invalidate
        self.logger = logger

    def on_data_changed(self, events: list[DataEvent]) -> int:
        """Apply every matching change in order; return how many were applied."""
        applied = 0
        for event in events:
            if event.event_type != "changed" or event.path != WEATHER_PATH:
                continue
            try:
                snapshot = decode_snapshot(event.data)
            except ProtocolError as exc:
                self.logger.warning("Skipping malformed weather record: %s", exc)
                continue
            self.holder.replace(snapshot)
            applied += 1
            self.logger.debug(
                "Conditions updated: weather_id=%d max=%.1f min=%.1f",
                snapshot.condition_code,
                snapshot.max_temp,
                snapshot.min_temp,
            )
            self.invalidate()
        return applied
