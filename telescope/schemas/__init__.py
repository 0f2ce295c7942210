"""
Schemas Module - Pydantic Models

Data models for documents and search requests.
"""

from telescope.schemas.document import Document, hostname_of
from telescope.schemas.search import SearchConfiguration, SearchRequest

__all__ = [
    "Document",
    "SearchConfiguration",
    "SearchRequest",
    "hostname_of",
]
