"""Tests for ``opsmcp serve`` CLI command."""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from click.testing import CliRunner

from opsmcp.cli import main


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for var in ("SLACK_BOT_TOKEN", "OPSMCP_FIXTURE", "OPSMCP_PORT", "OPSMCP_TRANSPORT"):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture(autouse=True)
def _no_logging_setup() -> Iterator[MagicMock]:
    with patch("opsmcp.utils.logging.configure_logging") as configure:
        yield configure


class TestServe:
    def test_dry_run_logs(self, log_fixture: Path) -> None:
        runner = CliRunner()
        result = runner.invoke(
            main, ["serve", "logs", "--fixture", str(log_fixture), "--dry-run"]
        )

        assert result.exit_code == 0
        assert "mcp-logs is ready." in result.output
        assert "Transport: sse" in result.output
        assert "127.0.0.1:7011" in result.output
        assert "search_logs, request_restart" in result.output

    def test_dry_run_duplex_with_port(self, log_fixture: Path) -> None:
        runner = CliRunner()
        result = runner.invoke(
            main,
            [
                "serve", "logs", "--fixture", str(log_fixture),
                "--transport", "duplex", "--port", "9000", "--dry-run",
            ],
        )

        assert result.exit_code == 0
        assert "Transport: duplex" in result.output
        assert "127.0.0.1:9000" in result.output

    def test_dry_run_chat_with_token(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SLACK_BOT_TOKEN", "xoxb-test")
        runner = CliRunner()
        result = runner.invoke(main, ["serve", "chat", "--dry-run"])

        assert result.exit_code == 0
        assert "mcp-slack is ready." in result.output
        assert "127.0.0.1:7012" in result.output
        assert "post_message, read_recent_messages" in result.output

    def test_chat_without_token_fails(self) -> None:
        runner = CliRunner()
        result = runner.invoke(main, ["serve", "chat", "--dry-run"])

        assert result.exit_code == 1
        assert "Startup error" in result.output
        assert "SLACK_BOT_TOKEN" in result.output

    def test_missing_fixture_fails(self, tmp_path: Path) -> None:
        runner = CliRunner()
        result = runner.invoke(
            main, ["serve", "logs", "--fixture", str(tmp_path / "absent.jsonl"), "--dry-run"]
        )

        assert result.exit_code == 1
        assert "Startup error" in result.output
        assert "Missing fixture file" in result.output

    def test_invalid_port_is_config_error(self, log_fixture: Path) -> None:
        runner = CliRunner()
        result = runner.invoke(
            main, ["serve", "logs", "--fixture", str(log_fixture), "--port", "0"]
        )

        assert result.exit_code == 1
        assert "Configuration error" in result.output

    def test_config_file(self, tmp_path: Path, log_fixture: Path) -> None:
        config = tmp_path / "opsmcp.yaml"
        config.write_text(
            f"host: 0.0.0.0\nport: 8111\nlogs:\n  fixture_path: {log_fixture}\n",
            encoding="utf-8",
        )
        runner = CliRunner()
        result = runner.invoke(main, ["serve", "logs", "-c", str(config), "--dry-run"])

        assert result.exit_code == 0
        assert "0.0.0.0:8111" in result.output

    def test_configures_logging_level(
        self, log_fixture: Path, _no_logging_setup: MagicMock
    ) -> None:
        runner = CliRunner()
        runner.invoke(
            main,
            ["serve", "logs", "--fixture", str(log_fixture), "--log-level", "DEBUG", "--dry-run"],
        )
        _no_logging_setup.assert_called_once_with("DEBUG")

    def test_runs_http_server(self, log_fixture: Path) -> None:
        with patch("opsmcp.server.app.MCPHttpServer.run") as run:
            runner = CliRunner()
            result = runner.invoke(main, ["serve", "logs", "--fixture", str(log_fixture)])

        assert result.exit_code == 0
        run.assert_called_once_with()

    def test_unknown_kind_rejected(self) -> None:
        runner = CliRunner()
        result = runner.invoke(main, ["serve", "mail"])
        assert result.exit_code == 2
