"""DuplexTransport — every JSON-RPC exchange rides one HTTP request/response.

Bound once at process start. Outbound messages are matched to the waiting
exchange by JSON-RPC ``id``.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from opsmcp.protocol.errors import NoActiveSessionError
from opsmcp.protocol.models import is_request_id
from opsmcp.server.transport.base import BaseTransport

logger = logging.getLogger(__name__)


class DuplexTransport(BaseTransport):
    """Variant B transport: a single endpoint handling request/response pairs."""

    kind = "duplex"

    def __init__(self) -> None:
        super().__init__()
        self._pending: dict[int | str, asyncio.Future[dict[str, Any]]] = {}

    def close(self) -> None:
        super().close()
        for request_id, future in self._pending.items():
            if not future.done():
                msg = f"Transport closed before reply to {request_id!r}"
                future.set_exception(RuntimeError(msg))
        self._pending.clear()

    async def send(self, message: dict[str, Any]) -> None:
        """Complete the exchange waiting on ``message["id"]``."""
        future = self._pending.pop(message.get("id"), None)  # type: ignore[arg-type]
        if future is None or future.done():
            logger.warning(
                "Discarding outbound message %r: no exchange is waiting for it",
                message.get("id"),
            )
            return
        future.set_result(message)

    async def exchange(self, message: dict[str, Any]) -> dict[str, Any] | None:
        """Process one inbound message and return the reply, if any.

        Notifications (no ``id``) return ``None``. An ``id`` that is not a
        string or integer is answered directly with the dispatcher's
        invalid-request error.

        Raises:
            NoActiveSessionError: If the transport is not bound.
            RuntimeError: If a request produced no reply or reuses an
                in-flight ``id``.
        """
        if not self.is_bound():
            raise NoActiveSessionError("Duplex transport is not bound")

        request_id = message.get("id")
        if request_id is None:
            await self._deliver(message)
            return None
        if not is_request_id(request_id):
            return await self._reply_uncorrelated(message)
        if request_id in self._pending:
            msg = f"Request id {request_id!r} is already in flight"
            raise RuntimeError(msg)

        future: asyncio.Future[dict[str, Any]] = asyncio.get_running_loop().create_future()
        self._pending[request_id] = future
        try:
            await self._deliver(message)
            if not future.done():
                msg = f"No reply produced for request {request_id!r}"
                raise RuntimeError(msg)
            return await future
        finally:
            self._pending.pop(request_id, None)

    async def _reply_uncorrelated(self, message: dict[str, Any]) -> dict[str, Any] | None:
        """Answer a message whose ``id`` cannot key a pending exchange."""
        if self._handler is None:
            msg = f"{self.kind} transport has no message handler"
            raise RuntimeError(msg)
        response = await self._handler(message)
        return response.to_wire() if response is not None else None
