"""Watch-side request emitter: ask every connected peer for fresh weather."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from ..link.models import OperationResult, PeerNode
from ..link.session import LinkSession
from ..protocol import WEATHER_REQUEST_PATH


class RequestEmitter:
    """Fan out one ``/weather-req`` message per peer on each connect.

    Sends are independent and never retried; a failed request waits for the
    next connect event.
    """

    def __init__(self, session: LinkSession, logger: logging.Logger) -> None:
        self.session = session
        self.logger = logger
        self._tasks: set[asyncio.Task[Any]] = set()

    def on_connected(self) -> None:
        task = asyncio.get_running_loop().create_task(self.request_weather_update())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def request_weather_update(self) -> list[OperationResult]:
        self.logger.debug("Requesting weather update from connected peers")
        nodes = await self.session.refresh_peers()
        if not nodes.ok:
            self.logger.warning("Could not enumerate peers: %s", nodes.error)
            return []
        if not nodes.nodes:
            self.logger.info("No connected peers to request weather from")
            return []
        return list(await asyncio.gather(*(self._send_request(node) for node in nodes.nodes)))

    async def _send_request(self, node: PeerNode) -> OperationResult:
        result = await self.session.send_message(node.node_id, WEATHER_REQUEST_PATH, b"")
        if result.ok:
            self.logger.debug(
                "Weather request sent to %s", node.node_id, extra={"node_id": node.node_id}
            )
        else:
            self.logger.warning(
                "Weather request to %s failed: %s",
                node.node_id,
                result.error,
                extra={"node_id": node.node_id},
            )
        return result
