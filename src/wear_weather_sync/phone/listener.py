"""Phone-side listener turning weather requests into queued publish jobs."""

from __future__ import annotations

import logging

from ..link.models import MessageEvent
from ..link.transport import LinkTransport
from ..protocol import WEATHER_REQUEST_PATH
from .publisher import PublishQueue


class RequestListener:
    """Match inbound ``/weather-req`` messages and queue a fetch-and-publish run."""

    def __init__(self, queue: PublishQueue, logger: logging.Logger) -> None:
        self.queue = queue
        self.logger = logger
        self.requests_seen = 0
        self._transport: LinkTransport | None = None

    def attach(self, transport: LinkTransport) -> None:
        if self._transport is transport:
            return
        self.detach()
        transport.add_message_listener(self.on_message_received)
        self._transport = transport

    def detach(self) -> None:
        if self._transport is None:
            return
        self._transport.remove_message_listener(self.on_message_received)
        self._transport = None

    def on_message_received(self, event: MessageEvent) -> None:
        if event.path != WEATHER_REQUEST_PATH:
            self.logger.debug("Ignoring message on %s from %s", event.path, event.source_node_id)
            return
        self.requests_seen += 1
        self.logger.info("Weather request from %s", event.source_node_id)
        self.queue.submit(reason=f"request:{event.source_node_id}")
