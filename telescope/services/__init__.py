"""
Services Module - Business Logic Layer

Provides the search orchestrator, text budgeting, extraction and ranking.
"""

from telescope.services.text_budget import bound_text
from telescope.services.ranker import HostDiversityRanker, Ranker
from telescope.services.extractor import Extractor, WebExtractor
from telescope.services.search_service import SearchService

__all__ = [
    "bound_text",
    "HostDiversityRanker",
    "Ranker",
    "Extractor",
    "WebExtractor",
    "SearchService",
]
