"""Builders for the two shipped servers: ``mcp-logs`` and ``mcp-slack``."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from opsmcp.protocol.errors import ConfigError, MissingFixtureError
from opsmcp.server.server import ToolServer
from opsmcp.tools.chat import ChatClient, register_chat_tools
from opsmcp.tools.logs import LogStore, register_log_tools

if TYPE_CHECKING:
    from opsmcp.config import ServerSettings

logger = logging.getLogger(__name__)


def build_logs_server(settings: ServerSettings, *, require_fixture: bool = False) -> ToolServer:
    """Create the log-search server.

    With *require_fixture* a missing fixture is fatal at build time instead
    of surfacing on the first ``search_logs`` call.
    """
    store = LogStore(settings.logs.fixture_path)
    if not store.exists():
        if require_fixture:
            raise MissingFixtureError(str(store.path))
        logger.warning("Log fixture %s does not exist yet", store.path)

    server = ToolServer(settings.name, settings.version)
    register_log_tools(server, store)
    return server


def build_chat_server(settings: ServerSettings) -> ToolServer:
    """Create the chat server.

    Raises:
        ConfigError: If no chat API token is configured.
    """
    if not settings.chat.token:
        raise ConfigError("Missing SLACK_BOT_TOKEN (set it in the environment or chat.token)")

    client = ChatClient(
        settings.chat.token,
        base_url=settings.chat.base_url,
        timeout=settings.chat.timeout,
    )
    server = ToolServer(settings.name, settings.version)
    register_chat_tools(server, client, settings.chat)
    return server


def build_server(settings: ServerSettings, kind: str, *, strict: bool = False) -> ToolServer:
    if kind == "logs":
        return build_logs_server(settings, require_fixture=strict)
    if kind == "chat":
        return build_chat_server(settings)
    raise ConfigError(f"Unknown server kind: {kind}")
