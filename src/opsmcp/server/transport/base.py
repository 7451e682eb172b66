"""Transport contract shared by the SSE and duplex variants.

A transport instance moves through ``UNBOUND -> BOUND -> CLOSED``.
``accept`` binds it to a connection; ``CLOSED`` is terminal for that
instance, a new connection always gets a fresh one.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from opsmcp.protocol.models import JsonRpcResponse

logger = logging.getLogger(__name__)

MessageHandler = Callable[[dict[str, Any]], Awaitable["JsonRpcResponse | None"]]


class TransportState(enum.Enum):
    UNBOUND = "unbound"
    BOUND = "bound"
    CLOSED = "closed"


@dataclass
class ConnectionContext:
    """What the HTTP layer knows about the connecting peer."""

    client: str | None = None
    headers: dict[str, str] = field(default_factory=dict)


@runtime_checkable
class Transport(Protocol):
    """Abstract duplex channel between the server and one peer."""

    kind: str

    def accept(self, context: ConnectionContext | None = None) -> None: ...
    def on_message(self, handler: MessageHandler) -> None: ...
    async def send(self, message: dict[str, Any]) -> None: ...
    def is_bound(self) -> bool: ...
    def close(self) -> None: ...


class BaseTransport:
    """State bookkeeping and inbound delivery common to both variants."""

    kind = "base"

    def __init__(self) -> None:
        self._state = TransportState.UNBOUND
        self._handler: MessageHandler | None = None
        self.context: ConnectionContext | None = None

    @property
    def state(self) -> TransportState:
        return self._state

    def is_bound(self) -> bool:
        return self._state is TransportState.BOUND

    def on_message(self, handler: MessageHandler) -> None:
        """Install the coroutine that processes each inbound message."""
        self._handler = handler

    def accept(self, context: ConnectionContext | None = None) -> None:
        """Bind this instance to a connection."""
        if self._state is not TransportState.UNBOUND:
            msg = f"{self.kind} transport cannot accept from state {self._state.value}"
            raise RuntimeError(msg)
        self.context = context
        self._state = TransportState.BOUND
        logger.debug("%s transport bound (client=%s)", self.kind, context and context.client)

    def close(self) -> None:
        if self._state is TransportState.CLOSED:
            return
        self._state = TransportState.CLOSED
        logger.debug("%s transport closed", self.kind)

    async def send(self, message: dict[str, Any]) -> None:
        raise NotImplementedError

    async def _deliver(self, message: dict[str, Any]) -> None:
        """Run *message* through the handler and send back any response."""
        if self._handler is None:
            msg = f"{self.kind} transport has no message handler"
            raise RuntimeError(msg)
        response = await self._handler(message)
        if response is not None:
            await self.send(response.to_wire())
