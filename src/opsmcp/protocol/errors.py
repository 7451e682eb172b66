"""Shared error types for the protocol layer.

Each error that can cross the transport boundary carries the JSON-RPC
error ``code`` it is reported with.
"""

from __future__ import annotations

from typing import Any

# JSON-RPC 2.0 reserved codes
PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603

# Server-defined codes
UNKNOWN_TOOL = -32001
NO_ACTIVE_SESSION = -32002


class ProtocolError(Exception):
    """Base error for all protocol-layer failures."""

    code: int = INTERNAL_ERROR

    def to_error_data(self) -> Any:
        """Structured ``data`` member for the JSON-RPC error object."""
        return None


class ToolRegistrationError(ProtocolError):
    """A tool definition could not be registered."""


class UnknownToolError(ProtocolError):
    """Requested tool does not exist in the registry."""

    code = UNKNOWN_TOOL

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Unknown tool: {name}")


class InvalidArgumentsError(ProtocolError):
    """Tool arguments do not conform to the tool's parameter schema."""

    code = INVALID_PARAMS

    def __init__(self, name: str, violations: list[dict[str, str]]) -> None:
        self.name = name
        self.violations = violations
        fields = ", ".join(v["field"] for v in violations) or "<root>"
        super().__init__(f"Invalid arguments for tool {name}: {fields}")

    @property
    def fields(self) -> list[str]:
        return [v["field"] for v in self.violations]

    def to_error_data(self) -> Any:
        return {"tool": self.name, "violations": self.violations}


class NoActiveSessionError(ProtocolError):
    """A submission arrived while no transport is bound."""

    code = NO_ACTIVE_SESSION

    def __init__(self, detail: str = "No active SSE transport. Call GET /sse first.") -> None:
        self.detail = detail
        super().__init__(detail)


class MissingFixtureError(ProtocolError):
    """The log fixture file backing ``search_logs`` does not exist."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"Missing fixture file at: {path}")


class HandlerFailure(ProtocolError):
    """A tool handler or one of its collaborators failed."""

    def __init__(self, name: str, detail: str = "") -> None:
        self.name = name
        self.detail = detail
        super().__init__(f"Tool execution failed: {name}" + (f": {detail}" if detail else ""))


class ConfigError(Exception):
    """Raised when server settings cannot be read or validated."""
