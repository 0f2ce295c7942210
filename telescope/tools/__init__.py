"""
Tools Module - MCP Tool Implementations

The web search tool exposed by the server.
"""

from telescope.tools import search_web

__all__ = [
    "search_web",
]
