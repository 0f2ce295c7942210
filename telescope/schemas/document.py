"""
Schemas - Document Model

Immutable search document produced by the extractor.
"""

from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict


def hostname_of(url: str) -> str:
    """Lower-cased hostname of url without a leading "www."; "" if unparsable."""
    try:
        host = (urlparse(url).hostname or "").lower()
    except ValueError:
        return ""
    if host.startswith("www."):
        host = host[4:]
    return host


class Document(BaseModel):
    """Single extracted web page."""
    title: str = ""
    source_url: str
    body: str = ""

    model_config = ConfigDict(frozen=True)

    @property
    def hostname(self) -> str:
        """Diversity key used by the ranker."""
        return hostname_of(self.source_url)

    def with_body(self, body: str) -> "Document":
        """Return a copy of this document carrying a different body."""
        return self.model_copy(update={"body": body})
