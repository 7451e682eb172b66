"""ToolRegistry — name-keyed tool definitions and argument validation."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Any, NamedTuple

from pydantic import BaseModel, ValidationError

from opsmcp.protocol.errors import InvalidArgumentsError, ToolRegistrationError, UnknownToolError
from opsmcp.protocol.models import ToolDefinition, ToolResult

logger = logging.getLogger(__name__)

HandlerReturn = ToolResult | str
ToolHandler = Callable[[Any], Awaitable[HandlerReturn] | HandlerReturn]


class RegisteredTool(NamedTuple):
    definition: ToolDefinition
    handler: ToolHandler


class ToolRegistry:
    """Holds the invocable tools and validates inbound arguments.

    The registry is populated at startup and only read afterwards, so
    concurrent dispatches share it without locking.

    Usage::

        registry = ToolRegistry()
        registry.register(ToolDefinition(name="echo", parameters=EchoArgs), echo)
        args = registry.validate("echo", {"text": "hi"})   # -> EchoArgs
    """

    def __init__(self) -> None:
        self._tools: dict[str, RegisteredTool] = {}

    def register(self, definition: ToolDefinition, handler: ToolHandler) -> None:
        """Add a tool. Re-registering a name replaces the earlier entry."""
        if not definition.name:
            msg = f"Tool definition for handler {handler!r} has no name"
            raise ToolRegistrationError(msg)
        if definition.name in self._tools:
            logger.warning("Tool %s re-registered; replacing previous definition", definition.name)
        self._tools[definition.name] = RegisteredTool(definition, handler)
        logger.info("Registered tool: %s", definition.name)

    def get(self, name: str) -> RegisteredTool:
        tool = self._tools.get(name)
        if tool is None:
            raise UnknownToolError(name)
        return tool

    def definitions(self) -> list[ToolDefinition]:
        """Return all tool definitions in registration order."""
        return [tool.definition for tool in self._tools.values()]

    def names(self) -> list[str]:
        return list(self._tools)

    def validate(self, name: str, raw_arguments: Any) -> BaseModel:
        """Validate *raw_arguments* against the schema of tool *name*.

        Raises:
            UnknownToolError: If no tool is registered under *name*.
            InvalidArgumentsError: If the arguments do not conform; carries
                one ``{"field", "message"}`` entry per violation.
        """
        definition = self.get(name).definition
        try:
            return definition.parameters.model_validate(
                {} if raw_arguments is None else raw_arguments
            )
        except ValidationError as exc:
            raise InvalidArgumentsError(name, _violations(exc)) from exc

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)


def _violations(exc: ValidationError) -> list[dict[str, str]]:
    violations: list[dict[str, str]] = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error["loc"]) or "(root)"
        violations.append({"field": field, "message": error["msg"]})
    return violations
