"""``opsmcp serve`` — run one of the tool servers over HTTP."""

from __future__ import annotations

import sys
from pathlib import Path

import click

from opsmcp.cli_commands._output import console

SERVER_KINDS = click.Choice(["logs", "chat"])


@click.command()
@click.argument("kind", type=SERVER_KINDS)
@click.option("--config", "-c", "config_path", type=click.Path(exists=True), default=None,
              help="Settings YAML file.")
@click.option("--host", default=None, help="Bind address.")
@click.option("--port", "-p", type=int, default=None, help="Listening port.")
@click.option(
    "--transport",
    type=click.Choice(["sse", "duplex"]),
    default=None,
    help="sse: GET /sse + POST /messages. duplex: POST / request/response.",
)
@click.option("--fixture", type=click.Path(), default=None, help="Log fixture (logs server).")
@click.option("--log-level", default=None, help="Logging level (DEBUG, INFO, ...).")
@click.option("--telemetry", is_flag=True, help="Enable telemetry.")
@click.option("--dry-run", is_flag=True, help="Validate settings and tools only, do not serve.")
def serve(
    kind: str,
    config_path: str | None,
    host: str | None,
    port: int | None,
    transport: str | None,
    fixture: str | None,
    log_level: str | None,
    telemetry: bool,
    dry_run: bool,
) -> None:
    """Serve the KIND tool server (logs or chat)."""
    from opsmcp.config import load_settings
    from opsmcp.protocol.errors import ConfigError, MissingFixtureError
    from opsmcp.server.app import MCPHttpServer
    from opsmcp.servers import build_server
    from opsmcp.utils.logging import configure_logging
    from opsmcp.utils.telemetry import configure_for_server

    try:
        settings = load_settings(
            kind,  # type: ignore[arg-type]
            Path(config_path) if config_path else None,
            host=host,
            port=port,
            transport=transport,
            log_level=log_level,
            **{"logs.fixture_path": fixture},
        )
    except ConfigError as exc:
        console.print(f"[red]Configuration error:[/red] {exc}")
        sys.exit(1)

    configure_logging(settings.log_level)

    if telemetry:
        settings.telemetry.enabled = True
    try:
        configure_for_server(settings)
    except ImportError as exc:
        console.print(f"[red]Telemetry error:[/red] {exc}")
        sys.exit(1)

    try:
        server = build_server(settings, kind, strict=True)
    except (ConfigError, MissingFixtureError) as exc:
        console.print(f"[red]Startup error:[/red] {exc}")
        sys.exit(1)

    if dry_run:
        console.print(f"[green]{settings.name} is ready.[/green]")
        console.print(f"  Transport: {settings.transport}")
        console.print(f"  Address: {settings.host}:{settings.port}")
        console.print(f"  Tools: {', '.join(server.registry.names())}")
        return

    MCPHttpServer(server, settings).run()
