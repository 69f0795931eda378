"""Watch face engine: one watch process's session, state, timer and renderer."""

from __future__ import annotations

import functools
import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any

from ..link.session import LinkSession
from ..link.transport import LinkTransport
from ..render import render
from .change_listener import ChangeListener
from .emitter import RequestEmitter
from .scheduler import INTERACTIVE_UPDATE_RATE_MS, RenderScheduler, TimerLoop
from .state import ConditionsHolder

# (snapshot, now, is_ambient, is_low_bit_ambient, *, burn_in_protection) -> frame
RenderFn = Callable[..., Any]
FrameSink = Callable[[Any], None]


class WatchFaceEngine:
    """Drive the watch face from platform events.

    Becoming visible opens the link; on connect every peer is asked for
    weather and ``/weather`` changes update the held conditions. Becoming
    invisible closes the link. Redraws come from the minute timer, platform
    ticks and incoming weather.
    """

    def __init__(
        self,
        *,
        transport: LinkTransport,
        logger: logging.Logger,
        render_fn: RenderFn | None = None,
        frame_sink: FrameSink | None = None,
        loop: TimerLoop | None = None,
        now_provider: Callable[[], datetime] | None = None,
        update_rate_ms: int = INTERACTIVE_UPDATE_RATE_MS,
        use_24_hour: bool = True,
    ) -> None:
        self.logger = logger
        self.session = LinkSession(transport, logger, name="watch")
        self.holder = ConditionsHolder()
        self.change_listener = ChangeListener(self.holder, self.invalidate, logger)
        self.emitter = RequestEmitter(self.session, logger)
        self.session.add_data_listener(self.change_listener.on_data_changed)
        self.session.add_connection_observer(self.emitter.on_connected)
        self.scheduler = RenderScheduler(
            redraw=self.invalidate,
            logger=logger,
            loop=loop,
            now_provider=now_provider,
            update_rate_ms=update_rate_ms,
        )
        self.render_fn: RenderFn = render_fn or functools.partial(render, use_24_hour=use_24_hour)
        self.frame_sink = frame_sink
        self.low_bit_ambient = False
        self.burn_in_protection = False
        self.redraw_count = 0
        self.last_frame: Any = None
        self._now_provider = now_provider or datetime.now

    @property
    def is_visible(self) -> bool:
        return self.scheduler.visible

    @property
    def is_ambient(self) -> bool:
        return self.scheduler.ambient

    def on_visibility_changed(self, visible: bool) -> None:
        if visible:
            # A failed session is retried here, never automatically.
            self.session.open()
        else:
            self.session.close()
        self.scheduler.set_visible(visible)

    def on_ambient_mode_changed(self, ambient: bool) -> None:
        self.scheduler.set_ambient(ambient)
        self.invalidate()

    def on_properties_changed(self, *, low_bit_ambient: bool, burn_in_protection: bool) -> None:
        self.low_bit_ambient = low_bit_ambient
        self.burn_in_protection = burn_in_protection

    def on_time_tick(self) -> None:
        self.scheduler.on_time_tick()

    def on_timezone_changed(self) -> None:
        self.scheduler.on_timezone_changed()

    def invalidate(self) -> None:
        """Draw a frame from the current conditions right away."""
        frame = self.render_fn(
            self.holder.current,
            self._now_provider(),
            self.is_ambient,
            self.low_bit_ambient,
            burn_in_protection=self.burn_in_protection,
        )
        self.redraw_count += 1
        self.last_frame = frame
        if self.frame_sink is not None:
            self.frame_sink(frame)

    def shutdown(self) -> None:
        self.scheduler.stop()
        self.session.close()
