"""Typed models for the cross-device link layer."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field

LinkState = Literal[
    "disconnected",
    "connecting",
    "connected",
    "suspended",
    "failed",
]

DataEventType = Literal["changed", "deleted"]

OperationName = Literal["connect", "get_connected_nodes", "send_message", "put_data_item"]

NodeId = str


class PeerNode(BaseModel):
    """One node reachable over the link."""

    node_id: NodeId
    display_name: str = ""
    nearby: bool = True


class MessageEvent(BaseModel):
    """Inbound fire-and-forget message."""

    source_node_id: NodeId
    path: str
    payload: bytes = b""


class DataEvent(BaseModel):
    """Change notification for one replicated data item."""

    event_type: DataEventType
    path: str
    data: dict[str, Any] = Field(default_factory=dict)


class OperationResult(BaseModel):
    """Tagged outcome of one outbound link operation."""

    operation: OperationName
    ok: bool
    error: str | None = None
    node_id: NodeId | None = None
    path: str | None = None

    @classmethod
    def success(
        cls,
        operation: OperationName,
        *,
        node_id: NodeId | None = None,
        path: str | None = None,
    ) -> OperationResult:
        return cls(operation=operation, ok=True, node_id=node_id, path=path)

    @classmethod
    def failure(
        cls,
        operation: OperationName,
        error: str,
        *,
        node_id: NodeId | None = None,
        path: str | None = None,
    ) -> OperationResult:
        return cls(operation=operation, ok=False, error=error, node_id=node_id, path=path)


class NodesResult(BaseModel):
    """Outcome of a connected-peer enumeration."""

    ok: bool
    nodes: list[PeerNode] = Field(default_factory=list)
    error: str | None = None
