"""
Services - Ranker

De-duplication and host diversity for extracted documents.
"""

import hashlib
from typing import List, Optional, Protocol, Sequence
from urllib.parse import urlsplit, urlunsplit

from telescope.schemas import Document, hostname_of


class Ranker(Protocol):
    """Reorders and filters extracted documents."""

    def rerank(
        self,
        documents: Sequence[Document],
        host_cap: Optional[int],
    ) -> List[Document]:
        ...


def normalize_url(url: str) -> str:
    """Canonical form of url used for duplicate detection."""
    raw = url.strip()
    try:
        parts = urlsplit(raw)
        port = parts.port
    except ValueError:
        # Malformed port or IPv6 literal; compare the raw text instead.
        return raw
    host = hostname_of(raw)
    if port:
        host = f"{host}:{port}"
    path = parts.path.rstrip("/")
    return urlunsplit((parts.scheme.lower(), host, path, parts.query, ""))


def body_fingerprint(body: str) -> Optional[str]:
    """Hash of the whitespace-normalised body, or None if it is empty."""
    normalized = " ".join(body.split())
    if not normalized:
        return None
    return hashlib.sha1(normalized.encode("utf-8")).hexdigest()


class HostDiversityRanker:
    """
    Stable ranker that removes duplicates and caps results per host.

    Documents keep their input order. A document is dropped when its
    normalised URL or its body was already seen, or when its host has
    already contributed host_cap documents.
    """

    def rerank(
        self,
        documents: Sequence[Document],
        host_cap: Optional[int],
    ) -> List[Document]:
        seen_urls = set()
        seen_bodies = set()
        per_host = {}
        result = []

        for document in documents:
            url_key = normalize_url(document.source_url)
            if url_key in seen_urls:
                continue

            fingerprint = body_fingerprint(document.body)
            if fingerprint is not None and fingerprint in seen_bodies:
                continue

            host = document.hostname
            if host_cap is not None and host_cap > 0 and per_host.get(host, 0) >= host_cap:
                continue

            seen_urls.add(url_key)
            if fingerprint is not None:
                seen_bodies.add(fingerprint)
            per_host[host] = per_host.get(host, 0) + 1
            result.append(document)

        return result
