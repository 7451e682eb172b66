"""ToolServer — registry, dispatcher and session behind one object.

Typical usage::

    server = ToolServer("mcp-logs")

    @server.tool("echo", "Echo the input back", EchoArgs)
    async def echo(args: EchoArgs) -> str:
        return args.text

    server.connect(SseTransport())
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING

from opsmcp.protocol.models import ToolDefinition, ToolResult
from opsmcp.server.dispatcher import ToolDispatcher
from opsmcp.server.registry import ToolHandler, ToolRegistry
from opsmcp.server.session import Session

if TYPE_CHECKING:
    from pydantic import BaseModel

    from opsmcp.server.transport.base import ConnectionContext, Transport

logger = logging.getLogger(__name__)


class ToolServer:
    """A named tool server with exactly one client session."""

    def __init__(self, name: str, version: str = "0.1.0") -> None:
        self.name = name
        self.version = version
        self.registry = ToolRegistry()
        self.dispatcher = ToolDispatcher(self.registry, server_name=name, server_version=version)
        self.session = Session()

    def add_tool(self, definition: ToolDefinition, handler: ToolHandler) -> None:
        self.registry.register(definition, handler)

    def tool(
        self,
        name: str,
        description: str,
        parameters: type[BaseModel],
    ) -> Callable[[ToolHandler], ToolHandler]:
        """Decorator form of :meth:`add_tool`."""

        def decorator(handler: ToolHandler) -> ToolHandler:
            definition = ToolDefinition(name=name, description=description, parameters=parameters)
            self.add_tool(definition, handler)
            return handler

        return decorator

    def connect(self, transport: Transport, context: ConnectionContext | None = None) -> None:
        """Wire *transport* to the dispatcher, accept it, and bind it."""
        transport.on_message(self.dispatcher.handle_message)
        transport.accept(context)
        self.session.bind_transport(transport)

    async def call_tool(self, name: str, arguments: dict[str, object] | None = None) -> ToolResult:
        """Dispatch a tool call in-process, bypassing any transport."""
        return await self.dispatcher.dispatch(name, arguments or {})
