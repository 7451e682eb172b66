"""HTTP server exposing a :class:`ToolServer` over SSE or a duplex endpoint."""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator
from typing import TYPE_CHECKING, cast

from starlette.applications import Starlette
from starlette.background import BackgroundTask
from starlette.responses import JSONResponse, PlainTextResponse, Response, StreamingResponse
from starlette.routing import Route

from opsmcp.protocol.errors import PARSE_ERROR, NoActiveSessionError
from opsmcp.protocol.models import JsonRpcResponse
from opsmcp.server.transport.base import ConnectionContext
from opsmcp.server.transport.duplex import DuplexTransport
from opsmcp.server.transport.sse import SseTransport
from opsmcp.utils.telemetry import ATTR_SESSION_ID, ATTR_TRANSPORT_KIND, get_tracer

if TYPE_CHECKING:
    from starlette.requests import Request

    from opsmcp.config import ServerSettings
    from opsmcp.server.server import ToolServer

logger = logging.getLogger(__name__)
_tracer = get_tracer(__name__)

_SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


class MCPHttpServer:
    """Starlette app serving one tool server in one transport mode.

    ``sse`` mode routes ``GET /sse`` and ``POST <messages_path>``;
    ``duplex`` mode routes ``POST /`` against a transport bound at
    construction. ``GET /health`` is always present.

    Example:
        http = MCPHttpServer(server, settings)
        http.run()  # Blocks, serving HTTP
    """

    def __init__(self, server: ToolServer, settings: ServerSettings) -> None:
        self.server = server
        self.settings = settings
        self.mode = settings.transport
        self.duplex: DuplexTransport | None = None

        if self.mode == "duplex":
            self.duplex = DuplexTransport()
            self.server.connect(self.duplex)

        self.app = self._create_app()
        logger.info(
            "HTTP server %s initialized in %s mode (will bind to %s:%s)",
            server.name,
            self.mode,
            settings.host,
            settings.port,
        )

    def _create_app(self) -> Starlette:
        routes = [Route("/health", endpoint=self._health, methods=["GET"])]
        if self.mode == "sse":
            routes.extend(
                [
                    Route("/sse", endpoint=self._handle_sse, methods=["GET"]),
                    Route(
                        self.settings.messages_path,
                        endpoint=self._handle_messages,
                        methods=["POST"],
                    ),
                ]
            )
        else:
            routes.append(Route("/", endpoint=self._handle_duplex, methods=["POST"]))
        return Starlette(routes=routes)

    async def _health(self, request: Request) -> JSONResponse:
        return JSONResponse({"ok": True, "server": self.server.name})

    async def _handle_sse(self, request: Request) -> Response:
        """Open the push stream and make it the session's transport."""
        transport = SseTransport(
            self.settings.messages_path,
            keepalive=self.settings.keepalive_seconds,
        )
        client = f"{request.client.host}:{request.client.port}" if request.client else None
        context = ConnectionContext(client=client, headers=dict(request.headers))
        self.server.connect(transport, context)
        logger.info("SSE connection from %s (session %s)", client, transport.session_id)

        async def stream() -> AsyncIterator[str]:
            try:
                async for frame in transport.events():
                    yield frame
            finally:
                await self._release(transport, client)

        # Runs even when the client drops before the body is iterated.
        cleanup = BackgroundTask(self._release, transport, client)
        return StreamingResponse(
            stream(), media_type="text/event-stream", headers=_SSE_HEADERS, background=cleanup
        )

    async def _release(self, transport: SseTransport, client: str | None) -> None:
        """Close *transport* and clear the session slot if it still holds it."""
        transport.close()
        if self.server.session.unbind(transport):
            logger.info(
                "SSE connection closed from %s (session %s)", client, transport.session_id
            )

    async def _handle_messages(self, request: Request) -> Response:
        """Forward a submission to the bound SSE stream."""
        try:
            transport = cast("SseTransport", self.server.session.require_transport())
            with _tracer.start_as_current_span("opsmcp.submission") as span:
                span.set_attribute(ATTR_TRANSPORT_KIND, transport.kind)
                span.set_attribute(ATTR_SESSION_ID, transport.session_id)
                status, text = await transport.handle_post(
                    await request.body(),
                    session_id=request.query_params.get("session_id"),
                )
        except NoActiveSessionError as exc:
            logger.warning("Rejected submission: %s", exc)
            return PlainTextResponse(str(exc), status_code=400)
        return PlainTextResponse(text, status_code=status)

    async def _handle_duplex(self, request: Request) -> Response:
        """Run one request/response exchange on the duplex transport."""
        if self.duplex is None:
            msg = f"{self.server.name} is not serving in duplex mode"
            raise RuntimeError(msg)
        body = await request.body()
        try:
            message = json.loads(body)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            error = JsonRpcResponse.failure(None, PARSE_ERROR, f"Parse error: {exc}")
            return JSONResponse(error.to_wire(), status_code=400)
        if not isinstance(message, dict):
            error = JsonRpcResponse.failure(None, PARSE_ERROR, "Expected a JSON-RPC message object")
            return JSONResponse(error.to_wire(), status_code=400)

        try:
            with _tracer.start_as_current_span("opsmcp.exchange") as span:
                span.set_attribute(ATTR_TRANSPORT_KIND, self.duplex.kind)
                reply = await self.duplex.exchange(message)
        except NoActiveSessionError as exc:
            return PlainTextResponse(str(exc), status_code=400)
        except Exception as exc:
            logger.exception("Duplex exchange failed")
            return PlainTextResponse(str(exc) or exc.__class__.__name__, status_code=500)

        if reply is None:
            return Response(status_code=202)
        return JSONResponse(reply)

    def run(self) -> None:
        """Run the HTTP server (blocks)."""
        import uvicorn

        logger.info(
            "%s running at http://%s:%s%s",
            self.server.name,
            self.settings.host,
            self.settings.port,
            "/sse" if self.mode == "sse" else "/",
        )
        uvicorn.run(
            self.app,
            host=self.settings.host,
            port=self.settings.port,
            log_level=self.settings.log_level.lower(),
        )
