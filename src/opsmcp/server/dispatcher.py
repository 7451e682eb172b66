"""ToolDispatcher — validates, invokes and wraps tool calls.

Also routes inbound JSON-RPC messages (``initialize``, ``tools/list``,
``tools/call``, ...) so that every transport shares one dispatch path.
"""

from __future__ import annotations

import inspect
import logging
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from opsmcp.protocol.errors import (
    INTERNAL_ERROR,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    ProtocolError,
)
from opsmcp.protocol.models import (
    PROTOCOL_VERSION,
    JsonRpcRequest,
    JsonRpcResponse,
    ToolCallRequest,
    ToolResult,
    is_request_id,
)
from opsmcp.utils.telemetry import (
    ATTR_RPC_METHOD,
    ATTR_SERVER_NAME,
    ATTR_TOOL_IS_ERROR,
    ATTR_TOOL_NAME,
    get_tracer,
)

if TYPE_CHECKING:
    from opsmcp.server.registry import ToolRegistry

logger = logging.getLogger(__name__)
_tracer = get_tracer(__name__)


class ToolDispatcher:
    """Dispatches validated tool calls against a :class:`ToolRegistry`.

    Usage::

        dispatcher = ToolDispatcher(registry, server_name="mcp-logs")
        result = await dispatcher.dispatch("search_logs", {...})
        response = await dispatcher.handle_message(raw_jsonrpc_dict)
    """

    def __init__(
        self,
        registry: ToolRegistry,
        *,
        server_name: str = "opsmcp",
        server_version: str = "0.1.0",
    ) -> None:
        self._registry = registry
        self._server_name = server_name
        self._server_version = server_version

    @property
    def registry(self) -> ToolRegistry:
        return self._registry

    async def dispatch(self, name: str, raw_arguments: Any) -> ToolResult:
        """Validate and run a tool call.

        ``UnknownToolError`` and ``InvalidArgumentsError`` propagate to the
        caller. Any failure raised by the handler itself is converted into
        an ``is_error`` result.
        """
        with _tracer.start_as_current_span("opsmcp.tool.call") as span:
            span.set_attribute(ATTR_TOOL_NAME, name)
            arguments = self._registry.validate(name, raw_arguments)
            handler = self._registry.get(name).handler

            try:
                outcome = handler(arguments)
                if inspect.isawaitable(outcome):
                    outcome = await outcome
            except Exception as exc:
                logger.warning("Tool %s failed: %s", name, exc)
                logger.debug("Tool %s traceback", name, exc_info=True)
                result = ToolResult.from_text(_describe_failure(exc), is_error=True)
            else:
                if isinstance(outcome, ToolResult):
                    result = outcome
                else:
                    result = ToolResult.from_text(str(outcome))

            span.set_attribute(ATTR_TOOL_IS_ERROR, result.is_error)
            return result

    async def handle_message(self, message: dict[str, Any]) -> JsonRpcResponse | None:
        """Process one inbound JSON-RPC message.

        Returns ``None`` for notifications, otherwise the response to send
        back to the peer. Never raises for protocol-level failures.
        """
        try:
            request = JsonRpcRequest.model_validate(message)
        except ValidationError as exc:
            request_id = message.get("id") if isinstance(message, dict) else None
            if not is_request_id(request_id):
                request_id = None
            return JsonRpcResponse.failure(request_id, INVALID_REQUEST, f"Invalid request: {exc}")

        if request.is_notification:
            logger.debug("Notification received: %s", request.method)
            return None

        with _tracer.start_as_current_span("opsmcp.rpc") as span:
            span.set_attribute(ATTR_RPC_METHOD, request.method)
            span.set_attribute(ATTR_SERVER_NAME, self._server_name)
            try:
                result = await self._route(request)
            except ProtocolError as exc:
                return JsonRpcResponse.failure(request.id, exc.code, str(exc), exc.to_error_data())
            except Exception as exc:
                logger.exception("Unhandled error processing %s", request.method)
                return JsonRpcResponse.failure(request.id, INTERNAL_ERROR, str(exc))
            return JsonRpcResponse.success(request.id, result)

    async def _route(self, request: JsonRpcRequest) -> dict[str, Any]:
        method = request.method
        if method == "initialize":
            return {
                "protocolVersion": request.params.get("protocolVersion", PROTOCOL_VERSION),
                "capabilities": {"tools": {}},
                "serverInfo": {"name": self._server_name, "version": self._server_version},
            }
        if method == "ping":
            return {}
        if method == "tools/list":
            return {"tools": [d.to_wire() for d in self._registry.definitions()]}
        if method == "tools/call":
            call = _parse_call(request)
            result = await self.dispatch(call.tool_name, call.arguments)
            return result.to_wire()
        raise _MethodNotFound(method)


class _MethodNotFound(ProtocolError):
    code = METHOD_NOT_FOUND

    def __init__(self, method: str) -> None:
        super().__init__(f"Method not found: {method}")


class _MalformedCall(ProtocolError):
    code = INVALID_REQUEST


def _parse_call(request: JsonRpcRequest) -> ToolCallRequest:
    try:
        return ToolCallRequest.model_validate(request.params)
    except ValidationError as exc:
        raise _MalformedCall(f"Malformed tools/call params: {exc}") from exc


def _describe_failure(exc: Exception) -> str:
    detail = str(exc) or exc.__class__.__name__
    return f"Error: {detail}"
