"""Watch side: request emitter, change listener, redraw scheduler, face engine."""

from .change_listener import ChangeListener
from .emitter import RequestEmitter
from .face import WatchFaceEngine
from .scheduler import RenderScheduler, delay_to_next_boundary_ms
from .state import ConditionsHolder

__all__ = [
    "ChangeListener",
    "ConditionsHolder",
    "RenderScheduler",
    "RequestEmitter",
    "WatchFaceEngine",
    "delay_to_next_boundary_ms",
]
