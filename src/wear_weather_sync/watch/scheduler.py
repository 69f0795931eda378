"""Visibility- and ambient-aware redraw timer for the watch face."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any, Protocol

from ..timeutil import epoch_ms

INTERACTIVE_UPDATE_RATE_MS = 60_000


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class TimerLoop(Protocol):
    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> TimerHandle: ...


def delay_to_next_boundary_ms(now_ms: int, rate_ms: int = INTERACTIVE_UPDATE_RATE_MS) -> int:
    """Milliseconds until the next wall-clock multiple of ``rate_ms``.

    Exactly on a boundary, the next one is a full period away.
    """
    return rate_ms - (now_ms % rate_ms)


class RenderScheduler:
    """Single-timer redraw scheduler.

    The timer runs only while the face is visible and interactive. It fires
    on minute boundaries of the wall clock rather than 60s after the last
    fire, and every reschedule cancels the pending timer first.
    """

    def __init__(
        self,
        *,
        redraw: Callable[[], None],
        logger: logging.Logger,
        loop: TimerLoop | None = None,
        now_provider: Callable[[], datetime] | None = None,
        update_rate_ms: int = INTERACTIVE_UPDATE_RATE_MS,
    ) -> None:
        if update_rate_ms <= 0:
            raise ValueError("update_rate_ms must be > 0.")
        self.redraw = redraw
        self.logger = logger
        self.update_rate_ms = update_rate_ms
        self.visible = False
        self.ambient = False
        self.next_fire_at: int | None = None
        self.fire_count = 0
        self._loop = loop
        self._now_provider = now_provider or (lambda: datetime.now(UTC))
        self._handle: TimerHandle | None = None

    @property
    def active(self) -> bool:
        return self._handle is not None

    @property
    def should_run(self) -> bool:
        return self.visible and not self.ambient

    def set_visible(self, visible: bool) -> None:
        self.visible = visible
        self.update_timer()

    def set_ambient(self, ambient: bool) -> None:
        self.ambient = ambient
        self.update_timer()

    def update_timer(self) -> None:
        """Cancel any pending fire, then arm one if the timer should run."""
        self._cancel()
        if self.should_run:
            self._arm()

    def on_time_tick(self) -> None:
        """Platform per-minute tick (delivered in ambient mode too)."""
        self.redraw()

    def on_timezone_changed(self) -> None:
        # Cadence is unaffected; only the displayed time changes.
        if self.visible:
            self.redraw()

    def stop(self) -> None:
        self.visible = False
        self._cancel()

    def _arm(self) -> None:
        now_ms = self._now_ms()
        delay_ms = delay_to_next_boundary_ms(now_ms, self.update_rate_ms)
        self.next_fire_at = now_ms + delay_ms
        loop = self._loop or asyncio.get_running_loop()
        self._handle = loop.call_later(delay_ms / 1000, self._on_fire)
        self.logger.debug("Redraw timer armed for %d (+%dms)", self.next_fire_at, delay_ms)

    def _cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
        self._handle = None
        self.next_fire_at = None

    def _on_fire(self) -> None:
        self._handle = None
        self.next_fire_at = None
        self.fire_count += 1
        self.redraw()
        if self.should_run and self._handle is None:
            self._arm()

    def _now_ms(self) -> int:
        return epoch_ms(self._now_provider())
