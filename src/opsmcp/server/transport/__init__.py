"""Transports — SSE push stream and single duplex endpoint."""

from opsmcp.server.transport.base import (
    BaseTransport,
    ConnectionContext,
    MessageHandler,
    Transport,
    TransportState,
)
from opsmcp.server.transport.duplex import DuplexTransport
from opsmcp.server.transport.sse import SseTransport

__all__ = [
    "BaseTransport",
    "ConnectionContext",
    "DuplexTransport",
    "MessageHandler",
    "SseTransport",
    "Transport",
    "TransportState",
]
