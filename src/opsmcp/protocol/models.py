"""Protocol models — JSON-RPC 2.0 messages, content blocks, and tool payloads.

Implements the message format used by the Model Context Protocol for
tool discovery (``tools/list``) and execution (``tools/call``).
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr

PROTOCOL_VERSION = "2024-11-05"

RequestId = StrictInt | StrictStr

# ---------------------------------------------------------------------------
# JSON-RPC 2.0 envelope
# ---------------------------------------------------------------------------


class JsonRpcRequest(BaseModel):
    """A JSON-RPC 2.0 request or notification (``id`` is ``None``)."""

    jsonrpc: Literal["2.0"] = "2.0"
    method: str
    id: RequestId | None = None
    params: dict[str, Any] = {}

    @property
    def is_notification(self) -> bool:
        return self.id is None


def is_request_id(value: Any) -> bool:
    """Whether *value* can be echoed back as a JSON-RPC ``id``."""
    return isinstance(value, (int, str)) and not isinstance(value, bool)


class JsonRpcError(BaseModel):
    """A JSON-RPC 2.0 error object."""

    code: int
    message: str
    data: Any = None


class JsonRpcResponse(BaseModel):
    """A JSON-RPC 2.0 response message."""

    jsonrpc: Literal["2.0"] = "2.0"
    id: int | str | None = None
    result: dict[str, Any] | None = None
    error: JsonRpcError | None = None

    @classmethod
    def success(cls, request_id: int | str | None, result: dict[str, Any]) -> JsonRpcResponse:
        return cls(id=request_id, result=result)

    @classmethod
    def failure(
        cls,
        request_id: int | str | None,
        code: int,
        message: str,
        data: Any = None,
    ) -> JsonRpcResponse:
        return cls(id=request_id, error=JsonRpcError(code=code, message=message, data=data))

    def to_wire(self) -> dict[str, Any]:
        """Serialize, omitting whichever of ``result``/``error`` is unset."""
        payload: dict[str, Any] = {"jsonrpc": self.jsonrpc, "id": self.id}
        if self.error is not None:
            payload["error"] = self.error.model_dump(exclude_none=True)
        else:
            payload["result"] = self.result or {}
        return payload


# ---------------------------------------------------------------------------
# Tool payloads
# ---------------------------------------------------------------------------


class TextContent(BaseModel):
    """Plain text content block."""

    type: Literal["text"] = "text"
    text: str


ContentBlock = TextContent


class ToolResult(BaseModel):
    """The envelope returned by every ``tools/call``."""

    content: list[ContentBlock] = []
    is_error: bool = False

    @classmethod
    def from_text(cls, text: str, *, is_error: bool = False) -> ToolResult:
        """Create a ToolResult with a single text content block."""
        blocks: list[ContentBlock] = [TextContent(text=text)]
        return cls(content=blocks, is_error=is_error)

    @property
    def text(self) -> str:
        return "\n".join(block.text for block in self.content)

    def to_wire(self) -> dict[str, Any]:
        return {
            "content": [block.model_dump() for block in self.content],
            "isError": self.is_error,
        }


class ToolCallRequest(BaseModel):
    """Parameters of a ``tools/call`` request."""

    tool_name: str = Field(alias="name")
    arguments: dict[str, Any] | None = None

    model_config = ConfigDict(populate_by_name=True)


class ToolDefinition(BaseModel):
    """A registered tool: name, description and parameter schema.

    ``parameters`` is a pydantic model class; its JSON Schema is what
    ``tools/list`` advertises as ``inputSchema``.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str
    description: str = ""
    parameters: type[BaseModel]

    def input_schema(self) -> dict[str, Any]:
        schema = self.parameters.model_json_schema()
        schema.pop("title", None)
        return schema

    def to_wire(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema(),
        }


class ToolArguments(BaseModel):
    """Base class for tool parameter schemas.

    Strict: JSON numbers are not coerced from strings. Unknown keys are
    ignored.
    """

    model_config = ConfigDict(strict=True, extra="ignore", frozen=True)
