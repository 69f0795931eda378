"""Transport-agnostic contract for the cross-device channel."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import Any

from .models import DataEvent, MessageEvent, NodeId, NodesResult, OperationResult

DataListener = Callable[[list[DataEvent]], None]
MessageListener = Callable[[MessageEvent], None]


class ConnectionCallbacks(ABC):
    """Connectivity events delivered by a transport, asynchronously."""

    @abstractmethod
    def on_connected(self) -> None:
        """The channel is usable."""

    @abstractmethod
    def on_suspended(self, cause: str) -> None:
        """The channel was temporarily lost and may come back."""

    @abstractmethod
    def on_connection_failed(self, reason: str) -> None:
        """The connect attempt or channel failed unrecoverably."""


class LinkTransport(ABC):
    """Base contract for the platform link used by a local process.

    Outbound operations return awaitables resolving to tagged results.
    Implementations must never raise for delivery failures.
    """

    @property
    @abstractmethod
    def local_node_id(self) -> NodeId:
        """Identifier of this process's node."""

    @abstractmethod
    def connect(self, callbacks: ConnectionCallbacks) -> None:
        """Begin connecting; the outcome arrives through ``callbacks``."""

    @abstractmethod
    def disconnect(self) -> None:
        """Tear down the channel."""

    @abstractmethod
    def get_connected_nodes(self) -> Awaitable[NodesResult]:
        """Enumerate currently connected peers."""

    @abstractmethod
    def send_message(self, node_id: NodeId, path: str, payload: bytes) -> Awaitable[OperationResult]:
        """Send a fire-and-forget message to one peer."""

    @abstractmethod
    def put_data_item(
        self,
        path: str,
        data: dict[str, Any],
        *,
        urgent: bool = False,
    ) -> Awaitable[OperationResult]:
        """Upsert the replicated record at ``path``."""

    @abstractmethod
    def add_data_listener(self, listener: DataListener) -> None:
        """Subscribe to replicated-record change notifications."""

    @abstractmethod
    def remove_data_listener(self, listener: DataListener) -> None:
        """Unsubscribe a data listener; unknown listeners are ignored."""

    @abstractmethod
    def add_message_listener(self, listener: MessageListener) -> None:
        """Subscribe to inbound messages addressed to this node."""

    @abstractmethod
    def remove_message_listener(self, listener: MessageListener) -> None:
        """Unsubscribe a message listener; unknown listeners are ignored."""
