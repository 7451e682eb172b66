"""Protocol layer — JSON-RPC messages, tool payloads and error taxonomy."""

from opsmcp.protocol.errors import (
    ConfigError,
    HandlerFailure,
    InvalidArgumentsError,
    MissingFixtureError,
    NoActiveSessionError,
    ProtocolError,
    ToolRegistrationError,
    UnknownToolError,
)
from opsmcp.protocol.models import (
    JsonRpcError,
    JsonRpcRequest,
    JsonRpcResponse,
    TextContent,
    ToolArguments,
    ToolCallRequest,
    ToolDefinition,
    ToolResult,
)

__all__ = [
    "ConfigError",
    "HandlerFailure",
    "InvalidArgumentsError",
    "JsonRpcError",
    "JsonRpcRequest",
    "JsonRpcResponse",
    "MissingFixtureError",
    "NoActiveSessionError",
    "ProtocolError",
    "TextContent",
    "ToolArguments",
    "ToolCallRequest",
    "ToolDefinition",
    "ToolRegistrationError",
    "ToolResult",
    "UnknownToolError",
]
