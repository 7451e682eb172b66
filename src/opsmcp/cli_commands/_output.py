"""Shared CLI output formatters."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

from rich.console import Console
from rich.table import Table

if TYPE_CHECKING:
    from opsmcp.protocol.errors import InvalidArgumentsError
    from opsmcp.protocol.models import ToolDefinition, ToolResult

console = Console()


def print_tools_table(server_name: str, definitions: list[ToolDefinition]) -> None:
    """Pretty-print registered tools as a table."""
    table = Table(title=f"Tools on {server_name}")
    table.add_column("Name", style="cyan")
    table.add_column("Description")
    table.add_column("Parameters")

    for definition in definitions:
        params = ", ".join(definition.input_schema().get("properties", {}))
        table.add_row(definition.name, _truncate(definition.description), params or "-")

    console.print(table)


def print_tool_result(result: ToolResult, *, as_json: bool = False) -> None:
    """Print a tool result envelope."""
    if as_json:
        console.print_json(json.dumps(result.to_wire()))
        return

    if result.is_error:
        console.print(f"[red]{result.text}[/red]")
    else:
        console.print(result.text, markup=False, highlight=False)


def print_invalid_arguments(exc: InvalidArgumentsError) -> None:
    console.print(f"[red]Invalid arguments for {exc.name}:[/red]")
    for violation in exc.violations:
        console.print(f"  {violation['field']}: {violation['message']}")


def _truncate(text: str, max_len: int = 80) -> str:
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."
