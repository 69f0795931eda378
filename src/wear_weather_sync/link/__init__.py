"""Cross-device link layer: transport contract, loopback transport, session."""

from .loopback import LoopbackHub, LoopbackTransport
from .models import DataEvent, LinkState, MessageEvent, NodesResult, OperationResult, PeerNode
from .session import LinkSession
from .transport import ConnectionCallbacks, LinkTransport

__all__ = [
    "ConnectionCallbacks",
    "DataEvent",
    "LinkSession",
    "LinkState",
    "LinkTransport",
    "LoopbackHub",
    "LoopbackTransport",
    "MessageEvent",
    "NodesResult",
    "OperationResult",
    "PeerNode",
]
