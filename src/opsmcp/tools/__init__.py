"""Tool implementations served by the ``mcp-logs`` and ``mcp-slack`` servers."""

from opsmcp.tools.chat import ChatClient, register_chat_tools
from opsmcp.tools.logs import LogStore, register_log_tools

__all__ = [
    "ChatClient",
    "LogStore",
    "register_chat_tools",
    "register_log_tools",
]
