"""Link session: one process's connection-lifecycle state machine."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from ..exceptions import LinkStateError
from .models import LinkState, NodeId, NodesResult, OperationResult
from .transport import ConnectionCallbacks, DataListener, LinkTransport

ConnectionObserver = Callable[[], None]

_ALLOWED_TRANSITIONS: dict[LinkState, set[LinkState]] = {
    "disconnected": {"connecting"},
    "connecting": {"connected", "failed", "disconnected"},
    "connected": {"suspended", "failed", "disconnected"},
    "suspended": {"connected", "failed", "disconnected"},
    "failed": {"connecting", "disconnected"},
}

_REUSABLE_STATES: set[LinkState] = {"connecting", "connected", "suspended"}


class LinkSession(ConnectionCallbacks):
    """Own the link for one local process.

    State only changes in :meth:`open`, :meth:`close` and the three transport
    callbacks. Outbound operations are refused without touching the
    transport unless the session is connected. A failed session is never
    retried automatically; the owner calls :meth:`open` again.
    """

    def __init__(
        self,
        transport: LinkTransport,
        logger: logging.Logger,
        *,
        name: str = "link",
    ) -> None:
        self.transport = transport
        self.logger = logger
        self.name = name
        self.state: LinkState = "disconnected"
        self.peer_nodes: set[NodeId] = set()
        self.transitions: list[tuple[LinkState, LinkState, str | None]] = []
        self._data_listeners: list[DataListener] = []
        self._listeners_registered = False
        self._connection_observers: list[ConnectionObserver] = []
        self._waiters: list[asyncio.Future[bool]] = []
        self._background: set[asyncio.Task[Any]] = set()

    @property
    def is_connected(self) -> bool:
        return self.state == "connected"

    def open(self) -> None:
        """Begin connecting unless a usable session is already in progress."""
        if self.state in _REUSABLE_STATES:
            self.logger.debug("Link %s reused in state %s", self.name, self.state)
            return
        self._transition("connecting", note="open")
        self.transport.connect(self)

    def close(self) -> None:
        """Unregister subscriptions, then disconnect. No-op when disconnected."""
        if self.state == "disconnected":
            return
        self._unregister_data_listeners()
        for task in list(self._background):
            task.cancel()
        self.transport.disconnect()
        self._transition("disconnected", note="close")

    def on_connected(self) -> None:
        if self.state == "connected":
            self.logger.debug("Link %s already connected; refreshing peers", self.name)
            self._spawn(self.refresh_peers())
            return
        if self.state not in {"connecting", "suspended"}:
            self.logger.warning(
                "Ignoring stale on_connected for link %s in state %s", self.name, self.state
            )
            return
        self._transition("connected")
        self._register_data_listeners()
        self._resolve_waiters(True)
        self._spawn(self.refresh_peers())
        for observer in list(self._connection_observers):
            observer()

    def on_suspended(self, cause: str) -> None:
        if self.state != "connected":
            self.logger.debug(
                "Ignoring on_suspended for link %s in state %s", self.name, self.state
            )
            return
        self._transition("suspended", note=cause)

    def on_connection_failed(self, reason: str) -> None:
        if self.state in {"disconnected", "failed"}:
            self.logger.debug(
                "Ignoring on_connection_failed for link %s in state %s", self.name, self.state
            )
            return
        self._unregister_data_listeners()
        self._transition("failed", note=reason)
        self.logger.warning("Link %s failed: %s", self.name, reason)

    async def wait_connected(self, timeout: float | None = None) -> bool:
        """Suspend until connected (True) or failed/closed (False)."""
        if self.state == "connected":
            return True
        if self.state in {"disconnected", "failed"}:
            return False
        waiter: asyncio.Future[bool] = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        try:
            if timeout is None:
                return await waiter
            return await asyncio.wait_for(waiter, timeout)
        except TimeoutError:
            self.logger.warning(
                "Link %s did not connect within %.1fs", self.name, timeout
            )
            return False
        finally:
            if waiter in self._waiters:
                self._waiters.remove(waiter)

    def add_connection_observer(self, observer: ConnectionObserver) -> None:
        """Call ``observer`` on every entry into the connected state."""
        self._connection_observers.append(observer)

    def add_data_listener(self, listener: DataListener) -> None:
        """Subscribe to change notifications while connected."""
        if listener in self._data_listeners:
            return
        self._data_listeners.append(listener)
        if self._listeners_registered:
            self.transport.add_data_listener(listener)

    def remove_data_listener(self, listener: DataListener) -> None:
        if listener not in self._data_listeners:
            return
        self._data_listeners.remove(listener)
        if self._listeners_registered:
            self.transport.remove_data_listener(listener)

    async def get_connected_nodes(self) -> NodesResult:
        if not self.is_connected:
            return NodesResult(ok=False, error="not_connected")
        return await self.transport.get_connected_nodes()

    async def send_message(self, node_id: NodeId, path: str, payload: bytes = b"") -> OperationResult:
        if not self.is_connected:
            return OperationResult.failure(
                "send_message", "not_connected", node_id=node_id, path=path
            )
        return await self.transport.send_message(node_id, path, payload)

    async def put_data_item(
        self,
        path: str,
        data: dict[str, Any],
        *,
        urgent: bool = False,
    ) -> OperationResult:
        if not self.is_connected:
            return OperationResult.failure("put_data_item", "not_connected", path=path)
        return await self.transport.put_data_item(path, data, urgent=urgent)

    async def refresh_peers(self) -> NodesResult:
        """Re-derive ``peer_nodes`` from the transport."""
        result = await self.get_connected_nodes()
        if result.ok and self.is_connected:
            self.peer_nodes = {node.node_id for node in result.nodes}
        elif not result.ok:
            self.logger.warning("Link %s peer enumeration failed: %s", self.name, result.error)
        return result

    def _transition(self, new_state: LinkState, *, note: str | None = None) -> None:
        current = self.state
        if new_state not in _ALLOWED_TRANSITIONS[current]:
            raise LinkStateError(
                f"Invalid link transition: {current} -> {new_state}",
                current=current,
                requested=new_state,
            )
        self.state = new_state
        self.transitions.append((current, new_state, note))
        if new_state != "connected":
            self.peer_nodes = set()
        if new_state in {"disconnected", "failed"}:
            self._resolve_waiters(False)
        self.logger.info(
            "Link %s: %s -> %s%s",
            self.name,
            current,
            new_state,
            f" ({note})" if note else "",
            extra={"link": self.name, "link_state": new_state},
        )

    def _register_data_listeners(self) -> None:
        if self._listeners_registered:
            return
        for listener in self._data_listeners:
            self.transport.add_data_listener(listener)
        self._listeners_registered = True

    def _unregister_data_listeners(self) -> None:
        if not self._listeners_registered:
            return
        for listener in self._data_listeners:
            self.transport.remove_data_listener(listener)
        self._listeners_registered = False

    def _resolve_waiters(self, connected: bool) -> None:
        for waiter in self._waiters:
            if not waiter.done():
                waiter.set_result(connected)

    def _spawn(self, coro: Any) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)
