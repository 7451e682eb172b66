"""opsmcp CLI entrypoint."""

from __future__ import annotations

import click

from opsmcp import __version__


@click.group()
@click.version_option(version=__version__, prog_name="opsmcp")
def main() -> None:
    """opsmcp — single-session MCP tool servers."""


# Register subcommands
from opsmcp.cli_commands import register_commands  # noqa: E402

register_commands(main)

if __name__ == "__main__":
    main()
