"""Server settings — pydantic models loaded from YAML and the environment.

Precedence, lowest to highest: per-kind defaults, the optional YAML file,
``OPSMCP_*`` / ``SLACK_BOT_TOKEN`` environment variables, explicit
overrides (CLI flags).

Example YAML::

    host: 0.0.0.0
    port: 7011
    transport: duplex
    logs:
      fixture_path: fixtures/logs.jsonl
    chat:
      token: ${SLACK_BOT_TOKEN}
    telemetry:
      enabled: true
      otlp_endpoint: http://localhost:4317
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, ValidationError

from opsmcp.protocol.errors import ConfigError

ServerKind = Literal["logs", "chat"]


class TelemetrySettings(BaseModel):
    """Optional telemetry configuration."""

    enabled: bool = False
    otlp_endpoint: str | None = None


class LogsSettings(BaseModel):
    """Settings for the log-search server."""

    fixture_path: Path = Path("fixtures/logs.jsonl")


class ChatSettings(BaseModel):
    """Settings for the chat server's Web API client."""

    token: str | None = None
    base_url: str = "https://slack.com/api"
    timeout: float = 10.0
    history_limit: int = Field(default=20, ge=1, le=1000)


class ServerSettings(BaseModel):
    """Top-level settings for one ``opsmcp serve`` process."""

    name: str
    version: str = "0.1.0"
    host: str = "127.0.0.1"
    port: int = Field(ge=1, le=65535)
    transport: Literal["sse", "duplex"] = "sse"
    messages_path: str = "/messages"
    keepalive_seconds: float = 15.0
    log_level: str = "INFO"
    telemetry: TelemetrySettings = Field(default_factory=TelemetrySettings)
    logs: LogsSettings = Field(default_factory=LogsSettings)
    chat: ChatSettings = Field(default_factory=ChatSettings)


_DEFAULTS: dict[str, dict[str, Any]] = {
    "logs": {"name": "mcp-logs", "port": 7011},
    "chat": {"name": "mcp-slack", "port": 7012},
}

_ENV_OVERRIDES: dict[str, tuple[str, ...]] = {
    "OPSMCP_HOST": ("host",),
    "OPSMCP_PORT": ("port",),
    "OPSMCP_TRANSPORT": ("transport",),
    "OPSMCP_LOG_LEVEL": ("log_level",),
    "OPSMCP_FIXTURE": ("logs", "fixture_path"),
    "SLACK_BOT_TOKEN": ("chat", "token"),
}


def load_settings(
    kind: ServerKind,
    path: Path | None = None,
    *,
    environ: dict[str, str] | None = None,
    **overrides: Any,
) -> ServerSettings:
    """Build :class:`ServerSettings` for a *kind* of server.

    ``None`` values in *overrides* are ignored so CLI options can be passed
    through unconditionally. Dotted keys (``"logs.fixture_path"``) address
    nested sections.

    Raises:
        ConfigError: On unreadable YAML or settings that fail validation.
    """
    if kind not in _DEFAULTS:
        raise ConfigError(f"Unknown server kind: {kind}")

    data: dict[str, Any] = dict(_DEFAULTS[kind])
    if path is not None:
        _merge(data, _read_yaml(path))

    env = os.environ if environ is None else environ
    for var, keys in _ENV_OVERRIDES.items():
        if env.get(var):
            _set_nested(data, keys, env[var])

    for key, value in overrides.items():
        if value is not None:
            _set_nested(data, tuple(key.split(".")), value)

    try:
        return ServerSettings.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(str(exc)) from exc


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Cannot read {path}: {exc}") from exc

    try:
        data: Any = yaml.safe_load(os.path.expandvars(raw))
    except yaml.YAMLError as exc:
        raise ConfigError(f"YAML parse error: {exc}") from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError("Settings YAML must be a mapping")
    return data


def _merge(base: dict[str, Any], extra: dict[str, Any]) -> None:
    for key, value in extra.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _merge(base[key], value)
        else:
            base[key] = value


def _set_nested(data: dict[str, Any], keys: tuple[str, ...], value: Any) -> None:
    target = data
    for key in keys[:-1]:
        target = target.setdefault(key, {})
    target[keys[-1]] = value
