"""
Schemas - Search Models

Pydantic models for search configuration and requests.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class SearchConfiguration(BaseModel):
    """Process-wide search behaviour, fixed at startup."""
    rerank_enabled: bool = True
    host_cap: Optional[int] = Field(default=2, ge=1)
    max_body_chars: int = Field(default=20_000, ge=0)
    min_results: int = Field(default=10, ge=1)
    max_results: int = Field(default=20, ge=1)

    model_config = ConfigDict(frozen=True)

    def clamp_limit(self, limit: Optional[int]) -> int:
        """Clamp a requested result count into [min_results, max_results]."""
        if limit is None:
            return self.min_results
        return max(self.min_results, min(limit, self.max_results))


class SearchRequest(BaseModel):
    """Validated search request (one per tool call)."""
    query: str = Field(min_length=1)
    limit: int = Field(ge=1)

    model_config = ConfigDict(frozen=True)
