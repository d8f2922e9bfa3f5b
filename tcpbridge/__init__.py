"""Bridge two open stream connections, closing both when either side stops or the link goes idle."""
from .core import (
    BridgeSession,
    Endpoint,
    SessionSummary,
    StreamEndpoint,
    TerminationReason,
    bridge,
    bridge_sockets,
    bridge_streams,
)

__all__ = [
    "BridgeSession",
    "Endpoint",
    "SessionSummary",
    "StreamEndpoint",
    "TerminationReason",
    "bridge",
    "bridge_sockets",
    "bridge_streams",
]
