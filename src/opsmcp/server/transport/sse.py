"""SseTransport — a server-sent-events push stream plus a POST submission path.

The client opens ``GET /sse`` and keeps it open. The first event tells it
where to POST its JSON-RPC messages::

    event: endpoint
    data: /messages?session_id=3f2a...

Each POST is acknowledged with ``202 Accepted`` and processed as its own
task; the response comes back on the stream as an ``event: message``.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncIterator
from typing import Any
from uuid import uuid4

from opsmcp.protocol.errors import NoActiveSessionError
from opsmcp.server.transport.base import BaseTransport, ConnectionContext, TransportState

logger = logging.getLogger(__name__)

_Frame = tuple[str, str]


def format_event(event: str, data: str) -> str:
    """Encode one SSE frame."""
    lines = "".join(f"data: {line}\n" for line in data.splitlines() or [""])
    return f"event: {event}\n{lines}\n"


class SseTransport(BaseTransport):
    """Variant A transport: one instance per ``GET /sse`` connection."""

    kind = "sse"

    def __init__(
        self,
        messages_path: str = "/messages",
        *,
        keepalive: float | None = 15.0,
        session_id: str | None = None,
    ) -> None:
        super().__init__()
        self.session_id = session_id or uuid4().hex
        self._messages_path = messages_path
        self._keepalive = keepalive
        self._queue: asyncio.Queue[_Frame | None] = asyncio.Queue()
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def endpoint(self) -> str:
        return f"{self._messages_path}?session_id={self.session_id}"

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    def accept(self, context: ConnectionContext | None = None) -> None:
        super().accept(context)
        self._queue.put_nowait(("endpoint", self.endpoint))

    def close(self) -> None:
        if self._state is TransportState.CLOSED:
            return
        super().close()
        # In-flight tasks are left to finish; their sends are discarded.
        self._queue.put_nowait(None)

    async def send(self, message: dict[str, Any]) -> None:
        """Push *message* onto the stream."""
        if not self.is_bound():
            msg = f"SSE stream {self.session_id} is {self._state.value}"
            raise RuntimeError(msg)
        await self._queue.put(("message", json.dumps(message)))

    async def events(self) -> AsyncIterator[str]:
        """Yield encoded SSE frames until the transport is closed."""
        while True:
            try:
                if self._keepalive:
                    item = await asyncio.wait_for(self._queue.get(), self._keepalive)
                else:
                    item = await self._queue.get()
            except TimeoutError:
                yield ": keepalive\n\n"
                continue
            if item is None:
                return
            event, data = item
            yield format_event(event, data)

    async def handle_post(self, body: bytes, *, session_id: str | None = None) -> tuple[int, str]:
        """Accept one submitted message for processing.

        Returns the HTTP status and body for the submission response.

        Raises:
            NoActiveSessionError: If this stream is no longer bound.
        """
        if not self.is_bound():
            raise NoActiveSessionError()
        if session_id is not None and session_id != self.session_id:
            logger.debug(
                "Submission for session %s routed to current session %s",
                session_id,
                self.session_id,
            )

        try:
            message = json.loads(body)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            return 400, f"Invalid JSON: {exc}"
        if not isinstance(message, dict):
            return 400, "Expected a single JSON-RPC message object"

        task = asyncio.create_task(self._process(message))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return 202, "Accepted"

    async def _process(self, message: dict[str, Any]) -> None:
        try:
            await self._deliver(message)
        except Exception:
            if self._state is TransportState.CLOSED:
                logger.warning(
                    "Dropping reply to %r: SSE session %s closed while it was in flight",
                    message.get("method"),
                    self.session_id,
                )
                return
            logger.exception(
                "Failed to process message %r on SSE session %s",
                message.get("method"),
                self.session_id,
            )
