"""opsmcp — single-session MCP tool servers for log search and chat."""

from __future__ import annotations

__version__ = "0.1.0"
