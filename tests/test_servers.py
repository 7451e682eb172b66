"""Tests for the shipped server builders."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from opsmcp.config import load_settings
from opsmcp.protocol.errors import ConfigError, MissingFixtureError
from opsmcp.servers import build_chat_server, build_logs_server, build_server


class TestBuildLogsServer:
    def test_registers_log_tools(self, log_fixture: Path) -> None:
        settings = load_settings("logs", environ={}, **{"logs.fixture_path": str(log_fixture)})
        server = build_logs_server(settings)
        assert server.name == "mcp-logs"
        assert server.registry.names() == ["search_logs", "request_restart"]

    def test_missing_fixture_warns(
        self, tmp_path: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        settings = load_settings(
            "logs", environ={}, **{"logs.fixture_path": str(tmp_path / "absent.jsonl")}
        )
        with caplog.at_level(logging.WARNING, logger="opsmcp.servers"):
            server = build_logs_server(settings)
        assert "search_logs" in server.registry
        assert "does not exist" in caplog.text

    def test_missing_fixture_fatal_when_required(self, tmp_path: Path) -> None:
        settings = load_settings(
            "logs", environ={}, **{"logs.fixture_path": str(tmp_path / "absent.jsonl")}
        )
        with pytest.raises(MissingFixtureError, match="absent.jsonl"):
            build_logs_server(settings, require_fixture=True)


class TestBuildChatServer:
    def test_requires_token(self) -> None:
        settings = load_settings("chat", environ={})
        with pytest.raises(ConfigError, match="SLACK_BOT_TOKEN"):
            build_chat_server(settings)

    def test_registers_chat_tools(self) -> None:
        settings = load_settings("chat", environ={"SLACK_BOT_TOKEN": "xoxb-test"})
        server = build_chat_server(settings)
        assert server.name == "mcp-slack"
        assert server.registry.names() == ["post_message", "read_recent_messages"]


class TestBuildServer:
    def test_dispatches_on_kind(self, log_fixture: Path) -> None:
        settings = load_settings("logs", environ={}, **{"logs.fixture_path": str(log_fixture)})
        assert build_server(settings, "logs").name == "mcp-logs"

    def test_unknown_kind(self) -> None:
        settings = load_settings("logs", environ={})
        with pytest.raises(ConfigError, match="Unknown server kind"):
            build_server(settings, "mail")
