"""
MCP Tool - searchweb

Web search returning cleaned text excerpts of the result pages.
"""

import logging
import math
from typing import Annotated, Optional

from fastmcp import FastMCP
from fastmcp.exceptions import ToolError
from pydantic import Field

from telescope.errors import TelescopeError
from telescope.services import SearchService

logger = logging.getLogger(__name__)

TOOL_NAME = "searchweb"


def coerce_limit(limit: Optional[float]) -> Optional[int]:
    """Truncate a numeric limit toward zero; non-finite values mean no limit."""
    if limit is None or not math.isfinite(limit):
        return None
    return int(limit)


async def run_search(
    service: SearchService,
    query: str,
    limit: Optional[float] = None,
) -> str:
    """
    Execute one tool call.

    Per-request failures are turned into a ToolError so the client gets
    an error result with a plain message instead of a crashed server.
    """
    try:
        return await service.search_text(query, coerce_limit(limit))
    except TelescopeError as e:
        logger.warning(f"{TOOL_NAME} failed: {e.message}")
        raise ToolError(e.message) from e


def register(mcp: FastMCP, service: SearchService) -> None:
    """Register the searchweb tool bound to service."""
    low = service.config.min_results
    high = service.config.max_results

    @mcp.tool(
        name=TOOL_NAME,
        description=(
            "Search the web for a query and return cleaned textual page "
            "excerpts (title, URL and extracted text for each result)."
        ),
    )
    async def searchweb(
        query: Annotated[str, Field(description="The search query keywords")],
        limit: Annotated[
            Optional[float],
            Field(
                description=(
                    f"Maximum number of documents to return "
                    f"(default {low}, range {low}-{high}; fractions are truncated)"
                ),
            ),
        ] = None,
    ) -> str:
        return await run_search(service, query, limit)
