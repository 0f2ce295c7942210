"""
Telescope MCP Server - Main Entry Point

FastMCP server with STDIO, SSE and HTTP transport support.
"""

import argparse
import logging
import sys
from typing import Any, Dict, List, Optional

from fastmcp import FastMCP

from telescope.config import SearchSettings, Settings, get_settings
from telescope.logging_config import setup_logging
from telescope.services import Extractor, Ranker, SearchService, WebExtractor
from telescope.tools import search_web

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    extractor: Optional[Extractor] = None,
    ranker: Optional[Ranker] = None,
) -> FastMCP:
    """Create and configure the MCP application."""
    settings = settings or get_settings()

    service = SearchService(
        config=settings.search.to_configuration(),
        extractor=extractor or WebExtractor(settings),
        ranker=ranker,
    )

    mcp = FastMCP(
        name="telescope",
        instructions="Search the web and return cleaned text excerpts of the result pages",
    )

    search_web.register(mcp, service)

    return mcp


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Telescope web search MCP server")
    parser.add_argument(
        "--transport",
        choices=["stdio", "sse", "http"],
        default=None,
        help="Transport protocol (default: from env)"
    )
    parser.add_argument(
        "--host",
        default=None,
        help="Bind address for SSE/HTTP transport (default: from env)"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port for SSE/HTTP transport (default: from env)"
    )
    parser.add_argument(
        "--no-rerank",
        action="store_true",
        help="Disable re-ranking and host diversity; keep search order"
    )
    parser.add_argument(
        "--host-cap",
        default=None,
        help="Keep at most N results per hostname, or 'none' for no cap"
    )
    parser.add_argument(
        "--max-body-chars",
        default=None,
        help="Character budget for each result's text"
    )
    parser.add_argument(
        "--min-results",
        default=None,
        help="Lower bound of the result count range"
    )
    parser.add_argument(
        "--max-results",
        default=None,
        help="Upper bound of the result count range"
    )
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Log level (default: from env)"
    )
    return parser


def search_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    """Search settings given on the command line."""
    overrides: Dict[str, Any] = {}
    if args.no_rerank:
        overrides["rerank_enabled"] = False
    if args.host_cap is not None:
        overrides["host_cap"] = args.host_cap
    if args.max_body_chars is not None:
        overrides["max_body_chars"] = args.max_body_chars
    if args.min_results is not None:
        overrides["min_results"] = args.min_results
    if args.max_results is not None:
        overrides["max_results"] = args.max_results
    return overrides


def apply_overrides(settings: Settings, overrides: Dict[str, Any]) -> Settings:
    """Re-validate search settings with command line values on top."""
    if not overrides:
        return settings
    search = SearchSettings(**{**settings.search.model_dump(), **overrides})
    return settings.model_copy(update={"search": search})


def main(argv: Optional[List[str]] = None):
    """Main entry point."""
    args = build_parser().parse_args(argv)

    # Route configuration warnings into logging before settings load
    setup_logging(args.log_level or "INFO")

    settings = apply_overrides(get_settings(), search_overrides(args))
    setup_logging(args.log_level or settings.log.level, settings.log.format)

    transport = args.transport or settings.mcp.transport
    host = args.host or settings.mcp.host
    port = args.port or settings.mcp.port

    search = settings.search
    logger.info(
        f"Starting telescope ({transport}): rerank={search.rerank_enabled} "
        f"host_cap={search.host_cap} max_body_chars={search.max_body_chars} "
        f"results=[{search.min_results}, {search.max_results}]"
    )

    mcp = create_app(settings)

    try:
        if transport == "stdio":
            mcp.run(transport="stdio")
        else:
            mcp.run(transport=transport, host=host, port=port)
    except KeyboardInterrupt:
        logger.info("Shutting down telescope")
    except Exception as e:
        logger.exception(f"Server terminated with error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
