"""Duplex byte bridge with an idle watchdog."""
from .endpoint import Endpoint, StreamEndpoint
from .forwarder import BUFFER_SIZE, forward
from .session import (
    Direction,
    Session,
    SessionSummary,
    TerminationReason,
    clamp_timeouts,
)
from .supervisor import BridgeSession, bridge, bridge_sockets, bridge_streams

__all__ = [
    "BUFFER_SIZE",
    "BridgeSession",
    "Direction",
    "Endpoint",
    "Session",
    "SessionSummary",
    "StreamEndpoint",
    "TerminationReason",
    "bridge",
    "bridge_sockets",
    "bridge_streams",
    "clamp_timeouts",
    "forward",
]
