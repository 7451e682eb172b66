"""Session — the process-wide slot holding the one bound transport."""

from __future__ import annotations

import logging
import threading

from opsmcp.protocol.errors import NoActiveSessionError
from opsmcp.server.transport.base import Transport  # noqa: TC001

logger = logging.getLogger(__name__)


class Session:
    """Owns the single active transport.

    Binding is last-write-wins: a new connection replaces (and closes) the
    previous transport. Work already in flight on the old transport is not
    drained or cancelled; its replies are dropped once it is closed.
    """

    def __init__(self) -> None:
        self._transport: Transport | None = None
        self._lock = threading.Lock()

    def bind_transport(self, transport: Transport) -> Transport | None:
        """Make *transport* the active one; return the instance it replaced."""
        with self._lock:
            previous = self._transport
            self._transport = transport

        if previous is not None and previous is not transport:
            logger.info("Replacing bound %s transport with a new connection", previous.kind)
            previous.close()
        else:
            logger.info("Bound %s transport", transport.kind)
        return previous

    def unbind(self, transport: Transport) -> bool:
        """Clear the slot if *transport* is still the bound instance."""
        with self._lock:
            if self._transport is not transport:
                return False
            self._transport = None
        logger.info("Unbound %s transport", transport.kind)
        return True

    def current_transport(self) -> Transport | None:
        return self._transport

    def is_bound(self) -> bool:
        transport = self._transport
        return transport is not None and transport.is_bound()

    def require_transport(self) -> Transport:
        """Return the bound transport or raise :class:`NoActiveSessionError`."""
        transport = self._transport
        if transport is None or not transport.is_bound():
            raise NoActiveSessionError()
        return transport
