"""``opsmcp tools`` — inspect and invoke tools without a transport."""

from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path
from typing import TYPE_CHECKING

import click

from opsmcp.cli_commands._output import (
    console,
    print_invalid_arguments,
    print_tool_result,
    print_tools_table,
)

if TYPE_CHECKING:
    from opsmcp.server.server import ToolServer

_config_option = click.option(
    "--config", "-c", "config_path", type=click.Path(exists=True), default=None,
    help="Settings YAML file.",
)
_fixture_option = click.option(
    "--fixture", type=click.Path(), default=None, help="Log fixture (logs server)."
)


@click.group()
def tools() -> None:
    """Inspect and invoke tools."""


def _build(kind: str, config_path: str | None, fixture: str | None) -> ToolServer:
    from opsmcp.config import load_settings
    from opsmcp.protocol.errors import ConfigError
    from opsmcp.servers import build_server

    try:
        settings = load_settings(
            kind,  # type: ignore[arg-type]
            Path(config_path) if config_path else None,
            **{"logs.fixture_path": fixture},
        )
        return build_server(settings, kind)
    except ConfigError as exc:
        console.print(f"[red]Configuration error:[/red] {exc}")
        sys.exit(1)


@tools.command("list")
@click.argument("kind", type=click.Choice(["logs", "chat"]))
@_config_option
@_fixture_option
def list_tools(kind: str, config_path: str | None, fixture: str | None) -> None:
    """List the tools served by KIND."""
    server = _build(kind, config_path, fixture)
    print_tools_table(server.name, server.registry.definitions())


@tools.command("call")
@click.argument("kind", type=click.Choice(["logs", "chat"]))
@click.argument("name")
@click.option("--args", "-a", "raw_args", default="{}", help="Tool arguments as a JSON object.")
@click.option("--json", "as_json", is_flag=True, help="Print the raw result envelope.")
@_config_option
@_fixture_option
def call_tool(
    kind: str,
    name: str,
    raw_args: str,
    as_json: bool,
    config_path: str | None,
    fixture: str | None,
) -> None:
    """Call tool NAME on KIND in-process and print its result."""
    from opsmcp.protocol.errors import InvalidArgumentsError, UnknownToolError

    try:
        arguments = json.loads(raw_args)
    except json.JSONDecodeError as exc:
        console.print(f"[red]--args is not valid JSON:[/red] {exc}")
        sys.exit(2)

    server = _build(kind, config_path, fixture)

    try:
        result = asyncio.run(server.call_tool(name, arguments))
    except UnknownToolError as exc:
        console.print(f"[red]{exc}[/red] (available: {', '.join(server.registry.names())})")
        sys.exit(1)
    except InvalidArgumentsError as exc:
        print_invalid_arguments(exc)
        sys.exit(1)

    print_tool_result(result, as_json=as_json)
    if result.is_error:
        sys.exit(1)
