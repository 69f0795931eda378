"""In-process link transport connecting simulated phone and watch nodes.

All nodes share one event loop. Every callback, listener notification and
operation result is delivered with ``loop.call_soon`` so callers always see
asynchronous completion, as they would with a real cross-device channel.
"""

from __future__ import annotations

import asyncio
import copy
import logging
from collections.abc import Callable
from typing import Any

from .models import DataEvent, MessageEvent, NodeId, NodesResult, OperationResult, PeerNode
from .transport import ConnectionCallbacks, DataListener, LinkTransport, MessageListener


class LoopbackHub:
    """Shared replication layer for a set of loopback nodes."""

    def __init__(self, logger: logging.Logger) -> None:
        self.logger = logger
        self._nodes: dict[NodeId, LoopbackTransport] = {}
        self._reachable: dict[NodeId, bool] = {}
        self._pending_connect_failures: dict[NodeId, str] = {}
        self._data_items: dict[str, dict[str, Any]] = {}
        self.put_log: list[tuple[NodeId, str, dict[str, Any], bool]] = []
        self.message_log: list[tuple[NodeId, NodeId, str]] = []

    def create_transport(self, node_id: NodeId, display_name: str = "") -> LoopbackTransport:
        """Register a node and return its transport handle."""
        if node_id in self._nodes:
            raise ValueError(f"Loopback node {node_id!r} already registered.")
        transport = LoopbackTransport(hub=self, node_id=node_id, display_name=display_name)
        self._nodes[node_id] = transport
        self._reachable[node_id] = True
        return transport

    def data_item(self, path: str) -> dict[str, Any] | None:
        """Return a copy of the replicated record at ``path``."""
        item = self._data_items.get(path)
        return copy.deepcopy(item) if item is not None else None

    def delete_data_item(self, path: str) -> bool:
        """Remove a replicated record and notify listeners."""
        if path not in self._data_items:
            return False
        del self._data_items[path]
        self._broadcast_data_event(DataEvent(event_type="deleted", path=path))
        return True

    def set_reachable(self, node_id: NodeId, reachable: bool) -> None:
        """Mark a node as (un)reachable for peer enumeration and messages."""
        self._require_node(node_id)
        self._reachable[node_id] = reachable

    def fail_next_connect(self, node_id: NodeId, reason: str = "connection_failed") -> None:
        """Make the next connect attempt by ``node_id`` fail."""
        self._require_node(node_id)
        self._pending_connect_failures[node_id] = reason

    def suspend(self, node_id: NodeId, cause: str = "service_disconnected") -> None:
        """Drop a connected node into the suspended state."""
        transport = self._require_node(node_id)
        if not transport.is_connected:
            return
        transport.is_connected = False
        self._schedule(transport._deliver_suspended, cause)

    def resume(self, node_id: NodeId) -> None:
        """Restore a suspended node's channel."""
        transport = self._require_node(node_id)
        if transport._callbacks is None or transport.is_connected:
            return
        transport.is_connected = True
        self._schedule(transport._deliver_connected)

    def fail(self, node_id: NodeId, reason: str = "connection_lost") -> None:
        """Fail a node's channel unrecoverably."""
        transport = self._require_node(node_id)
        if transport._callbacks is None:
            return
        transport.is_connected = False
        self._schedule(transport._deliver_failed, reason)

    def _require_node(self, node_id: NodeId) -> LoopbackTransport:
        transport = self._nodes.get(node_id)
        if transport is None:
            raise KeyError(f"Unknown loopback node {node_id!r}.")
        return transport

    def _schedule(self, callback: Callable[..., None], *args: Any) -> None:
        asyncio.get_running_loop().call_soon(callback, *args)

    def _complete_connect(self, transport: LoopbackTransport) -> None:
        if not transport._connect_pending:
            return
        transport._connect_pending = False
        reason = self._pending_connect_failures.pop(transport.local_node_id, None)
        if reason is not None:
            transport.is_connected = False
            transport._deliver_failed(reason)
            return
        transport.is_connected = True
        transport._deliver_connected()

    def _peers_of(self, node_id: NodeId) -> list[PeerNode]:
        return [
            PeerNode(node_id=other.local_node_id, display_name=other.display_name)
            for other in self._nodes.values()
            if other.local_node_id != node_id and self._reachable[other.local_node_id]
        ]

    def _deliver_message(self, source: NodeId, target: NodeId, path: str, payload: bytes) -> bool:
        transport = self._nodes.get(target)
        if transport is None or not self._reachable.get(target, False):
            return False
        self.message_log.append((source, target, path))
        event = MessageEvent(source_node_id=source, path=path, payload=payload)
        self._schedule(transport._dispatch_message, event)
        return True

    def _put(self, source: NodeId, path: str, data: dict[str, Any], urgent: bool) -> None:
        self.put_log.append((source, path, copy.deepcopy(data), urgent))
        if self._data_items.get(path) == data:
            # Unchanged payloads are not replicated again.
            self.logger.debug("Loopback put at %s unchanged; no change event", path)
            return
        self._data_items[path] = copy.deepcopy(data)
        self._broadcast_data_event(
            DataEvent(event_type="changed", path=path, data=copy.deepcopy(data))
        )

    def _broadcast_data_event(self, event: DataEvent) -> None:
        for transport in self._nodes.values():
            self._schedule(transport._dispatch_data_events, [event])


class LoopbackTransport(LinkTransport):
    """One node's handle on a :class:`LoopbackHub`."""

    def __init__(self, *, hub: LoopbackHub, node_id: NodeId, display_name: str = "") -> None:
        self.hub = hub
        self.display_name = display_name or node_id
        self.is_connected = False
        self.calls: list[str] = []
        self._node_id = node_id
        self._callbacks: ConnectionCallbacks | None = None
        self._connect_pending = False
        self._data_listeners: list[DataListener] = []
        self._message_listeners: list[MessageListener] = []

    @property
    def local_node_id(self) -> NodeId:
        return self._node_id

    @property
    def data_listener_count(self) -> int:
        return len(self._data_listeners)

    def connect(self, callbacks: ConnectionCallbacks) -> None:
        self.calls.append("connect")
        self._callbacks = callbacks
        if self.is_connected:
            self.hub._schedule(self._deliver_connected)
            return
        if self._connect_pending:
            return
        self._connect_pending = True
        self.hub._schedule(self.hub._complete_connect, self)

    def disconnect(self) -> None:
        self.calls.append("disconnect")
        self.is_connected = False
        self._connect_pending = False
        self._callbacks = None

    def get_connected_nodes(self) -> asyncio.Future[NodesResult]:
        self.calls.append("get_connected_nodes")
        if not self.is_connected:
            return self._resolved(NodesResult(ok=False, error="not_connected"))
        return self._resolved(NodesResult(ok=True, nodes=self.hub._peers_of(self._node_id)))

    def send_message(
        self, node_id: NodeId, path: str, payload: bytes
    ) -> asyncio.Future[OperationResult]:
        self.calls.append("send_message")
        if not self.is_connected:
            result = OperationResult.failure(
                "send_message", "not_connected", node_id=node_id, path=path
            )
        elif not self.hub._deliver_message(self._node_id, node_id, path, payload):
            result = OperationResult.failure(
                "send_message", "target_node_unreachable", node_id=node_id, path=path
            )
        else:
            result = OperationResult.success("send_message", node_id=node_id, path=path)
        return self._resolved(result)

    def put_data_item(
        self,
        path: str,
        data: dict[str, Any],
        *,
        urgent: bool = False,
    ) -> asyncio.Future[OperationResult]:
        self.calls.append("put_data_item")
        if not self.is_connected:
            return self._resolved(OperationResult.failure("put_data_item", "not_connected", path=path))
        self.hub._put(self._node_id, path, data, urgent)
        return self._resolved(OperationResult.success("put_data_item", path=path))

    def add_data_listener(self, listener: DataListener) -> None:
        if listener not in self._data_listeners:
            self._data_listeners.append(listener)

    def remove_data_listener(self, listener: DataListener) -> None:
        if listener in self._data_listeners:
            self._data_listeners.remove(listener)

    def add_message_listener(self, listener: MessageListener) -> None:
        if listener not in self._message_listeners:
            self._message_listeners.append(listener)

    def remove_message_listener(self, listener: MessageListener) -> None:
        if listener in self._message_listeners:
            self._message_listeners.remove(listener)

    def _resolved(self, value: Any) -> asyncio.Future[Any]:
        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self.hub._schedule(_set_result_if_pending, future, value)
        return future

    def _deliver_connected(self) -> None:
        if self._callbacks is not None:
            self._callbacks.on_connected()

    def _deliver_suspended(self, cause: str) -> None:
        if self._callbacks is not None:
            self._callbacks.on_suspended(cause)

    def _deliver_failed(self, reason: str) -> None:
        if self._callbacks is not None:
            self._callbacks.on_connection_failed(reason)

    def _dispatch_message(self, event: MessageEvent) -> None:
        for listener in list(self._message_listeners):
            try:
                listener(event)
            except Exception:
                self.hub.logger.exception(
                    "Message listener on %s raised for %s", self._node_id, event.path
                )

    def _dispatch_data_events(self, events: list[DataEvent]) -> None:
        for listener in list(self._data_listeners):
            try:
                listener(events)
            except Exception:
                self.hub.logger.exception("Data listener on %s raised", self._node_id)


def _set_result_if_pending(future: asyncio.Future[Any], value: Any) -> None:
    if not future.done():
        future.set_result(value)
