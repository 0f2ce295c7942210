"""
Telescope - Errors

Exception and warning types raised by the search pipeline.
"""

from typing import Any, Dict, Optional


class TelescopeError(Exception):
    """Base exception for per-request search failures."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(TelescopeError):
    """Raised when a request is rejected before any upstream call."""
    pass


class UpstreamError(TelescopeError):
    """Raised when the extractor or ranker fails; no documents are returned."""
    pass


class ExtractionError(TelescopeError):
    """Raised by the web extractor when the search backend fails."""
    pass


class ConfigurationWarning(UserWarning):
    """Invalid startup value; the documented default is used instead."""
    pass
