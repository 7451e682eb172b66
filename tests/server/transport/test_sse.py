"""Tests for SseTransport state machine, framing and submission handling."""

from __future__ import annotations

import asyncio
import json
from typing import Any
from unittest.mock import AsyncMock

import pytest

from opsmcp.protocol.errors import INVALID_REQUEST, NoActiveSessionError
from opsmcp.protocol.models import JsonRpcResponse
from opsmcp.server.dispatcher import ToolDispatcher
from opsmcp.server.registry import ToolRegistry
from opsmcp.server.transport.base import Transport, TransportState
from opsmcp.server.transport.sse import SseTransport, format_event


async def _next_frame(events: Any) -> str:
    return await asyncio.wait_for(events.__anext__(), timeout=1.0)


def _data(frame: str) -> str:
    return "".join(line[len("data: ") :] for line in frame.splitlines() if line.startswith("data: "))


class TestFormatEvent:
    def test_single_line(self) -> None:
        assert format_event("message", '{"a": 1}') == 'event: message\ndata: {"a": 1}\n\n'

    def test_multi_line_data(self) -> None:
        assert format_event("note", "a\nb") == "event: note\ndata: a\ndata: b\n\n"


class TestSseTransportState:
    def test_satisfies_protocol(self) -> None:
        assert isinstance(SseTransport(), Transport)

    def test_starts_unbound(self) -> None:
        transport = SseTransport()
        assert transport.state is TransportState.UNBOUND
        assert not transport.is_bound()

    def test_accept_binds(self) -> None:
        transport = SseTransport()
        transport.accept()
        assert transport.state is TransportState.BOUND
        assert transport.is_bound()

    def test_close_is_terminal(self) -> None:
        transport = SseTransport()
        transport.accept()
        transport.close()
        assert transport.state is TransportState.CLOSED
        with pytest.raises(RuntimeError, match="closed"):
            transport.accept()

    def test_accept_twice_rejected(self) -> None:
        transport = SseTransport()
        transport.accept()
        with pytest.raises(RuntimeError):
            transport.accept()

    def test_endpoint_carries_session_id(self) -> None:
        transport = SseTransport("/messages", session_id="abc")
        assert transport.endpoint == "/messages?session_id=abc"


class TestSseTransportStream:
    async def test_first_event_is_endpoint(self) -> None:
        transport = SseTransport("/messages", session_id="s1", keepalive=None)
        transport.accept()
        events = transport.events()
        frame = await _next_frame(events)
        assert frame == "event: endpoint\ndata: /messages?session_id=s1\n\n"

    async def test_send_pushes_message_event(self) -> None:
        transport = SseTransport(keepalive=None)
        transport.accept()
        events = transport.events()
        await _next_frame(events)

        await transport.send({"jsonrpc": "2.0", "id": 1, "result": {}})
        frame = await _next_frame(events)
        assert frame.startswith("event: message\n")
        assert json.loads(_data(frame)) == {"jsonrpc": "2.0", "id": 1, "result": {}}

    async def test_close_ends_stream(self) -> None:
        transport = SseTransport(keepalive=None)
        transport.accept()
        events = transport.events()
        await _next_frame(events)

        transport.close()
        remaining = [frame async for frame in events]
        assert remaining == []

    async def test_keepalive_comment_when_idle(self) -> None:
        transport = SseTransport(keepalive=0.01)
        transport.accept()
        events = transport.events()
        await _next_frame(events)
        assert await _next_frame(events) == ": keepalive\n\n"

    async def test_send_after_close_raises(self) -> None:
        transport = SseTransport()
        transport.accept()
        transport.close()
        with pytest.raises(RuntimeError):
            await transport.send({"jsonrpc": "2.0", "id": 1, "result": {}})


class TestSseTransportSubmission:
    async def test_post_before_accept_rejected(self) -> None:
        transport = SseTransport()
        with pytest.raises(NoActiveSessionError):
            await transport.handle_post(b'{"jsonrpc": "2.0", "id": 1, "method": "ping"}')

    async def test_post_after_close_rejected(self) -> None:
        transport = SseTransport()
        transport.accept()
        transport.close()
        with pytest.raises(NoActiveSessionError):
            await transport.handle_post(b'{"jsonrpc": "2.0", "id": 1, "method": "ping"}')

    async def test_invalid_json_is_400(self) -> None:
        transport = SseTransport()
        transport.accept()
        status, text = await transport.handle_post(b"{not json")
        assert status == 400
        assert "Invalid JSON" in text

    async def test_non_object_is_400(self) -> None:
        transport = SseTransport()
        transport.accept()
        status, _ = await transport.handle_post(b"[1, 2]")
        assert status == 400

    async def test_post_is_processed_and_reply_streamed(self) -> None:
        handler = AsyncMock(return_value=JsonRpcResponse.success(1, {"pong": True}))
        transport = SseTransport(keepalive=None)
        transport.on_message(handler)
        transport.accept()
        events = transport.events()
        await _next_frame(events)

        status, text = await transport.handle_post(b'{"jsonrpc": "2.0", "id": 1, "method": "ping"}')
        assert (status, text) == (202, "Accepted")

        frame = await _next_frame(events)
        assert json.loads(_data(frame))["result"] == {"pong": True}
        handler.assert_awaited_once_with({"jsonrpc": "2.0", "id": 1, "method": "ping"})

    async def test_notification_produces_no_event(self) -> None:
        handler = AsyncMock(return_value=None)
        transport = SseTransport(keepalive=None)
        transport.on_message(handler)
        transport.accept()
        events = transport.events()
        await _next_frame(events)

        await transport.handle_post(b'{"jsonrpc": "2.0", "method": "notifications/initialized"}')
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        handler.assert_awaited_once()
        with pytest.raises(TimeoutError):
            await asyncio.wait_for(events.__anext__(), timeout=0.05)

    async def test_concurrent_submissions_dispatched_independently(self) -> None:
        release = asyncio.Event()

        async def handler(message: dict[str, Any]) -> JsonRpcResponse:
            if message["id"] == "slow":
                await release.wait()
            return JsonRpcResponse.success(message["id"], {})

        transport = SseTransport(keepalive=None)
        transport.on_message(handler)
        transport.accept()
        events = transport.events()
        await _next_frame(events)

        await transport.handle_post(b'{"jsonrpc": "2.0", "id": "slow", "method": "ping"}')
        await transport.handle_post(b'{"jsonrpc": "2.0", "id": "fast", "method": "ping"}')

        first = json.loads(_data(await _next_frame(events)))
        assert first["id"] == "fast"
        await asyncio.sleep(0)
        assert transport.in_flight == 1

        release.set()
        second = json.loads(_data(await _next_frame(events)))
        assert second["id"] == "slow"

    async def test_reply_after_close_is_dropped(self) -> None:
        release = asyncio.Event()

        async def handler(message: dict[str, Any]) -> JsonRpcResponse:
            await release.wait()
            return JsonRpcResponse.success(message["id"], {})

        transport = SseTransport(keepalive=None)
        transport.on_message(handler)
        transport.accept()

        await transport.handle_post(b'{"jsonrpc": "2.0", "id": 1, "method": "ping"}')
        transport.close()
        release.set()
        for _ in range(5):
            await asyncio.sleep(0)
        assert transport.in_flight == 0

    @pytest.mark.parametrize("bad_id", [1.5, [1], {"a": 1}])
    async def test_unusable_id_gets_invalid_request_event(self, bad_id: object) -> None:
        transport = SseTransport(keepalive=None)
        transport.on_message(ToolDispatcher(ToolRegistry()).handle_message)
        transport.accept()
        events = transport.events()
        await _next_frame(events)

        body = json.dumps({"jsonrpc": "2.0", "id": bad_id, "method": "ping"}).encode()
        assert (await transport.handle_post(body))[0] == 202

        reply = json.loads(_data(await _next_frame(events)))
        assert reply["id"] is None
        assert reply["error"]["code"] == INVALID_REQUEST
