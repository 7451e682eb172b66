"""Server layer — tool registry, dispatcher, session and HTTP transports."""

from opsmcp.server.dispatcher import ToolDispatcher
from opsmcp.server.registry import ToolRegistry
from opsmcp.server.server import ToolServer
from opsmcp.server.session import Session

__all__ = [
    "Session",
    "ToolDispatcher",
    "ToolRegistry",
    "ToolServer",
]
