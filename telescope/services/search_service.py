"""
Services - Search Service

Validates the request, runs the extractor and ranker, bounds each page
body and renders the result set as one text artifact.
"""

import asyncio
import logging
from typing import List, Optional, Sequence

from telescope.errors import UpstreamError, ValidationError
from telescope.schemas import Document, SearchConfiguration, SearchRequest
from telescope.services.extractor import Extractor
from telescope.services.ranker import HostDiversityRanker, Ranker
from telescope.services.text_budget import bound_text

logger = logging.getLogger(__name__)


class SearchService:
    """Web search with re-ranking, per-host caps and body budgeting."""

    def __init__(
        self,
        config: SearchConfiguration,
        extractor: Extractor,
        ranker: Optional[Ranker] = None,
    ):
        self.config = config
        self.extractor = extractor
        self.ranker = ranker or HostDiversityRanker()

    def build_request(self, query: str, limit: Optional[int] = None) -> SearchRequest:
        """
        Validate and normalise the inbound parameters.

        Raises:
            ValidationError: If the query is empty after trimming
        """
        query = (query or "").strip()
        if not query:
            raise ValidationError("missing or empty query")
        return SearchRequest(query=query, limit=self.config.clamp_limit(limit))

    async def search(
        self,
        query: str,
        limit: Optional[int] = None,
    ) -> List[Document]:
        """
        Search the web and return bounded documents.

        Args:
            query: Search query keywords
            limit: Requested number of documents (clamped into the
                configured result range; defaults to its lower bound)

        Returns:
            Documents in ranker order (or extractor order when re-ranking
            is disabled), each body within max_body_chars

        Raises:
            ValidationError: Empty query; the extractor is not called
            UpstreamError: The extractor or ranker failed
        """
        request = self.build_request(query, limit)
        logger.info(f"Searching {request.query!r} (limit={request.limit})")

        try:
            documents = await self.extractor.extract(request.query, request.limit)
        except asyncio.CancelledError:
            logger.info(f"Search for {request.query!r} cancelled")
            raise
        except Exception as e:
            logger.error(f"Extractor failed for {request.query!r}: {e}")
            raise UpstreamError(
                f"Search failed: {e}",
                details={"query": request.query, "stage": "extract"},
            ) from e

        extracted = len(documents)

        if self.config.rerank_enabled:
            try:
                documents = self.ranker.rerank(documents, self.config.host_cap)
            except Exception as e:
                logger.error(f"Ranker failed for {request.query!r}: {e}")
                raise UpstreamError(
                    f"Re-ranking failed: {e}",
                    details={"query": request.query, "stage": "rerank"},
                ) from e

        bounded = [
            document.with_body(bound_text(document.body, self.config.max_body_chars))
            for document in documents
        ]

        logger.info(
            f"Search for {request.query!r} returned {len(bounded)} documents "
            f"({extracted} extracted)"
        )
        return bounded

    def render(self, query: str, documents: Sequence[Document]) -> str:
        """Format documents as the text returned to the client."""
        parts = [f"Search results for: {query}\n\n"]
        for index, document in enumerate(documents, start=1):
            parts.append(f"# Result {index}: {document.title}\nURL: {document.source_url}\n\n")
            parts.append(f"{document.body}\n\n")
        return "".join(parts)

    async def search_text(self, query: str, limit: Optional[int] = None) -> str:
        """Run a search and render it in one step."""
        documents = await self.search(query, limit)
        return self.render(query.strip(), documents)
