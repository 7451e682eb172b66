"""Log tools — fixture-backed log search and restart requests."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path  # noqa: TC003
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from opsmcp.protocol.errors import HandlerFailure, MissingFixtureError
from opsmcp.protocol.models import ToolArguments, ToolDefinition

if TYPE_CHECKING:
    from opsmcp.server.server import ToolServer

logger = logging.getLogger(__name__)

MAX_SEARCH_RESULTS = 30


class LogLine(BaseModel):
    """One record of the JSON-lines log fixture."""

    model_config = ConfigDict(extra="allow")

    ts: str = ""
    service: str = ""
    level: str = ""
    msg: str = ""


class SearchLogsArgs(ToolArguments):
    service: str
    minutes: int = Field(ge=1, le=1440)
    pattern: str


class RequestRestartArgs(ToolArguments):
    service: str
    reason: str = Field(min_length=5)


class LogStore:
    """Reads the log fixture; every call re-reads the file."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def exists(self) -> bool:
        return self.path.is_file()

    def load(self) -> list[LogLine]:
        """Parse every non-blank line of the fixture.

        Raises:
            MissingFixtureError: If the fixture file does not exist.
            HandlerFailure: If a line is not a valid log record.
        """
        if not self.exists():
            raise MissingFixtureError(str(self.path))

        records: list[LogLine] = []
        text = self.path.read_text(encoding="utf-8")
        for lineno, line in enumerate(text.splitlines(), start=1):
            if not line.strip():
                continue
            try:
                records.append(LogLine.model_validate(json.loads(line)))
            except (json.JSONDecodeError, ValidationError) as exc:
                raise HandlerFailure("search_logs", f"{self.path}:{lineno}: {exc}") from exc
        return records

    def search(self, service: str, pattern: str, limit: int = MAX_SEARCH_RESULTS) -> list[LogLine]:
        """Exact service match and case-insensitive substring match on ``msg``."""
        needle = pattern.lower()
        matches = [
            line for line in self.load() if line.service == service and needle in line.msg.lower()
        ]
        return matches[:limit]


def search_logs_result(lines: list[LogLine]) -> str:
    payload: list[dict[str, Any]] = [line.model_dump(exclude_unset=True) for line in lines]
    return json.dumps(payload, indent=2)


def register_log_tools(server: ToolServer, store: LogStore) -> None:
    """Register ``search_logs`` and ``request_restart`` on *server*."""

    async def search_logs(args: SearchLogsArgs) -> str:
        # ``minutes`` only bounds the request; fixture records carry no usable clock.
        lines = await asyncio.to_thread(store.search, args.service, args.pattern)
        logger.debug("search_logs %s/%r -> %d match(es)", args.service, args.pattern, len(lines))
        return search_logs_result(lines)

    async def request_restart(args: RequestRestartArgs) -> str:
        # Not policy-gated.
        logger.info("Restart requested for %s: %s", args.service, args.reason)
        return f"RESTART_REQUESTED service={args.service} reason={args.reason}"

    server.add_tool(
        ToolDefinition(
            name="search_logs",
            description="Search logs by service + pattern (fixture-backed)",
            parameters=SearchLogsArgs,
        ),
        search_logs,
    )
    server.add_tool(
        ToolDefinition(
            name="request_restart",
            description="Request restart for a service (should be policy-gated)",
            parameters=RequestRestartArgs,
        ),
        request_restart,
    )
