"""
Services - Extractor

Runs the web search and turns each hit into a plain-text Document.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Protocol

from telescope.config import get_settings
from telescope.errors import ExtractionError
from telescope.pipeline.fetcher import PageFetcher, ProgressCallback
from telescope.pipeline.parser import TextParser
from telescope.schemas import Document

logger = logging.getLogger(__name__)


class Extractor(Protocol):
    """Produces raw documents for a query."""

    async def extract(self, query: str, count_hint: int) -> List[Document]:
        ...


@dataclass
class SearchHit:
    """Single result from the search backend."""
    title: str
    url: str
    snippet: str = ""


SearchBackend = Callable[[str, int], List[SearchHit]]


class DDGSSearchBackend:
    """Blocking metasearch through ddgs."""

    def __init__(self, settings=None):
        self.settings = settings or get_settings()

    def __call__(self, query: str, max_results: int) -> List[SearchHit]:
        from ddgs import DDGS

        config = self.settings.extractor
        results = DDGS().text(
            query,
            region=config.search_region,
            safesearch=config.safesearch,
            max_results=max_results,
            backend=config.search_backend,
        )
        return [
            SearchHit(
                title=r.get("title", ""),
                url=r.get("href", ""),
                snippet=r.get("body", ""),
            )
            for r in results or []
            if r.get("href")
        ]


class WebExtractor:
    """Searches the web and extracts readable text from every hit."""

    def __init__(
        self,
        settings=None,
        search_backend: Optional[SearchBackend] = None,
        fetcher: Optional[PageFetcher] = None,
        parser: Optional[TextParser] = None,
        on_progress: Optional[ProgressCallback] = None,
    ):
        self.settings = settings or get_settings()
        self.search_backend = search_backend or DDGSSearchBackend(self.settings)
        self.fetcher = fetcher or PageFetcher(self.settings)
        self.parser = parser or TextParser()
        self.on_progress = on_progress

    async def extract(self, query: str, count_hint: int) -> List[Document]:
        """
        Search and extract up to count_hint documents.

        Pages that cannot be fetched or contain no text are skipped,
        so fewer documents than requested may come back.

        Raises:
            ExtractionError: If the search backend fails
        """
        try:
            hits = await asyncio.to_thread(self.search_backend, query, count_hint)
        except Exception as e:
            raise ExtractionError(
                f"web search backend failed: {e}",
                details={"query": query},
            ) from e

        hits = hits[:count_hint]
        logger.debug(f"Search backend returned {len(hits)} hits for {query!r}")

        pages = await self.fetcher.fetch_pages(
            [hit.url for hit in hits],
            on_progress=self._report_progress,
        )

        documents = []
        for hit, page in zip(hits, pages):
            if page is None:
                continue

            parsed = self.parser.parse(page.content) if page.is_html else self.parser.parse_plain(page.content)
            if not parsed.text:
                logger.debug(f"No text extracted from {hit.url}")
                continue

            documents.append(Document(
                title=parsed.title or hit.title,
                source_url=page.final_url or hit.url,
                body=parsed.text,
            ))

        return documents

    def _report_progress(self, completed: int, total: int) -> None:
        logger.debug(f"Fetched {completed}/{total} pages")
        if self.on_progress is not None:
            self.on_progress(completed, total)
