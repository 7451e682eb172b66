"""Chat tools — post to and read from a Slack-compatible Web API."""

from __future__ import annotations

import json
import logging
import time
from typing import TYPE_CHECKING, Any

import httpx
from pydantic import BaseModel, Field

from opsmcp.protocol.errors import HandlerFailure
from opsmcp.protocol.models import ToolArguments, ToolDefinition

if TYPE_CHECKING:
    from opsmcp.config import ChatSettings
    from opsmcp.server.server import ToolServer

logger = logging.getLogger(__name__)


class ChatMessage(BaseModel):
    ts: str | None = None
    text: str | None = None


class PostMessageArgs(ToolArguments):
    channel: str
    text: str


class ReadRecentMessagesArgs(ToolArguments):
    channel: str
    minutes: int = Field(ge=1, le=240)


class ChatClient:
    """Minimal async client for the two Web API methods the tools need.

    Usage::

        async with ChatClient(token) as chat:
            ts = await chat.post_message("#ops", "deploy done")
            recent = await chat.history("#ops", oldest=time.time() - 600, limit=20)
    """

    def __init__(
        self,
        token: str,
        *,
        base_url: str = "https://slack.com/api",
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers={"Authorization": f"Bearer {token}"},
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> ChatClient:
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def post_message(self, channel: str, text: str) -> str:
        """Post *text* to *channel* and return the message timestamp."""
        data = await self._call("POST", "chat.postMessage", json={"channel": channel, "text": text})
        return str(data.get("ts", ""))

    async def history(self, channel: str, oldest: float, limit: int) -> list[ChatMessage]:
        """Return up to *limit* messages newer than *oldest* (epoch seconds)."""
        data = await self._call(
            "GET",
            "conversations.history",
            params={"channel": channel, "oldest": str(int(oldest)), "limit": limit},
        )
        return [ChatMessage.model_validate(m) for m in data.get("messages") or []]

    async def _call(self, method: str, api_method: str, **kwargs: Any) -> dict[str, Any]:
        try:
            response = await self._client.request(method, f"/{api_method}", **kwargs)
            response.raise_for_status()
            data: dict[str, Any] = response.json()
        except (httpx.HTTPError, json.JSONDecodeError) as exc:
            raise HandlerFailure(api_method, str(exc)) from exc

        if not data.get("ok", False):
            raise HandlerFailure(api_method, str(data.get("error", "unknown_error")))
        return data


def register_chat_tools(
    server: ToolServer,
    client: ChatClient,
    settings: ChatSettings | None = None,
) -> None:
    """Register ``post_message`` and ``read_recent_messages`` on *server*."""
    history_limit = settings.history_limit if settings is not None else 20

    async def post_message(args: PostMessageArgs) -> str:
        ts = await client.post_message(args.channel, args.text)
        logger.info("Posted message to %s (ts=%s)", args.channel, ts)
        return f"ok ts={ts}"

    async def read_recent_messages(args: ReadRecentMessagesArgs) -> str:
        oldest = time.time() - args.minutes * 60
        messages = await client.history(args.channel, oldest=oldest, limit=history_limit)
        return json.dumps([m.model_dump() for m in messages], indent=2)

    server.add_tool(
        ToolDefinition(
            name="post_message",
            description="Post a message to a Slack channel",
            parameters=PostMessageArgs,
        ),
        post_message,
    )
    server.add_tool(
        ToolDefinition(
            name="read_recent_messages",
            description="Read recent messages from a Slack channel",
            parameters=ReadRecentMessagesArgs,
        ),
        read_recent_messages,
    )
