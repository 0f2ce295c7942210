"""
Pipeline - Page Fetcher

Parallel page fetching with bounded concurrency and size limits.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

import httpx
from bs4.dammit import EncodingDetector

from telescope.config import get_settings

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]

TEXT_CONTENT_TYPES = ("text/html", "application/xhtml+xml", "text/plain")


@dataclass
class FetchedPage:
    """Raw page content as returned by the server."""
    url: str
    final_url: str
    content: str
    content_type: str

    @property
    def is_html(self) -> bool:
        return "html" in self.content_type


def decode_body(raw: bytes, charset: Optional[str], is_html: bool = False) -> str:
    """
    Decode fetched bytes.

    The header charset wins, then a <meta charset> declared in HTML, then
    UTF-8. Unknown charset names are skipped.
    """
    candidates = [charset]
    if is_html:
        candidates.append(EncodingDetector.find_declared_encoding(raw, is_html=True))
    for encoding in candidates:
        if not encoding:
            continue
        try:
            return raw.decode(encoding, errors="replace")
        except LookupError:
            logger.debug(f"Unknown charset {encoding!r}")
    return raw.decode("utf-8", errors="replace")


class PageFetcher:
    """Fetches search result pages over HTTP."""

    def __init__(self, settings=None, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = settings or get_settings()
        config = self.settings.extractor
        self.timeout = config.fetch_timeout_seconds
        self.max_bytes = config.max_page_bytes
        self.headers = {
            "User-Agent": config.user_agent,
            "Accept": "text/html,application/xhtml+xml,text/plain;q=0.9,*/*;q=0.5",
        }
        self.transport = transport
        self._semaphore = asyncio.Semaphore(max(config.fetch_concurrency, 1))

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            headers=self.headers,
            timeout=self.timeout,
            follow_redirects=True,
            transport=self.transport,
        )

    async def fetch_page(
        self,
        url: str,
        client: Optional[httpx.AsyncClient] = None,
    ) -> Optional[FetchedPage]:
        """
        Fetch a single page.

        Args:
            url: Absolute http(s) URL
            client: Shared client; a new one is opened when omitted

        Returns:
            FetchedPage, or None for HTTP errors and non-text content
        """
        if not url.startswith(("http://", "https://")):
            logger.debug(f"Skipping non-http URL {url}")
            return None

        if client is None:
            async with self._client() as own_client:
                return await self.fetch_page(url, own_client)

        async with self._semaphore:
            try:
                async with client.stream("GET", url) as response:
                    response.raise_for_status()
                    content_type = response.headers.get("content-type", "").lower()
                    if not content_type.startswith(TEXT_CONTENT_TYPES):
                        logger.debug(f"Skipping {url}: unsupported content type {content_type!r}")
                        return None

                    chunks = []
                    size = 0
                    async for chunk in response.aiter_bytes():
                        chunks.append(chunk)
                        size += len(chunk)
                        if size >= self.max_bytes:
                            break
                    raw = b"".join(chunks)[:self.max_bytes]

                    return FetchedPage(
                        url=url,
                        final_url=str(response.url),
                        content=decode_body(
                            raw, response.charset_encoding, "html" in content_type
                        ),
                        content_type=content_type,
                    )
            except httpx.HTTPError as e:
                logger.debug(f"Fetch failed for {url}: {e}")
                return None

    async def fetch_pages(
        self,
        urls: List[str],
        on_progress: Optional[ProgressCallback] = None,
    ) -> List[Optional[FetchedPage]]:
        """
        Fetch multiple pages in parallel.

        Args:
            urls: Page URLs
            on_progress: Called with (completed, total) after each page

        Returns:
            One entry per URL in input order; None where the fetch failed
        """
        total = len(urls)
        completed = 0

        async with self._client() as client:

            async def fetch_one(url: str) -> Optional[FetchedPage]:
                nonlocal completed
                try:
                    return await self.fetch_page(url, client)
                finally:
                    completed += 1
                    if on_progress is not None:
                        on_progress(completed, total)

            results = await asyncio.gather(
                *(fetch_one(url) for url in urls),
                return_exceptions=True,
            )

        pages = []
        for url, result in zip(urls, results):
            if isinstance(result, asyncio.CancelledError):
                raise result
            if isinstance(result, BaseException):
                logger.warning(f"Unexpected error fetching {url}: {result}")
                pages.append(None)
            else:
                pages.append(result)
        return pages
