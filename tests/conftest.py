"""Shared fixtures: a temporary log fixture and a server built on it."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from opsmcp.config import load_settings
from opsmcp.server.server import ToolServer
from opsmcp.servers import build_logs_server


def write_log_fixture(path: Path, lines: list[dict[str, Any]]) -> Path:
    path.write_text("\n".join(json.dumps(line) for line in lines) + "\n", encoding="utf-8")
    return path


@pytest.fixture
def log_fixture(tmp_path: Path) -> Path:
    return write_log_fixture(
        tmp_path / "logs.jsonl",
        [
            {"service": "auth", "msg": "login fail"},
            {"service": "auth", "msg": "ok"},
            {"service": "billing", "msg": "fail"},
        ],
    )


@pytest.fixture
def logs_server(log_fixture: Path) -> ToolServer:
    settings = load_settings("logs", environ={}, **{"logs.fixture_path": str(log_fixture)})
    return build_logs_server(settings)
