"""
Pipeline Module - Page Extraction

Handles the flow from search hit to plain text:
Fetch → Parse
"""

from telescope.pipeline.fetcher import PageFetcher, FetchedPage
from telescope.pipeline.parser import TextParser, ParsedPage

__all__ = [
    "PageFetcher",
    "FetchedPage",
    "TextParser",
    "ParsedPage",
]
