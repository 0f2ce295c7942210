"""
Telescope - web search MCP server.
"""

__version__ = "0.1.0"
