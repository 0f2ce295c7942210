"""
Shared fixtures for the test suite.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from telescope.schemas import SearchConfiguration


@pytest.fixture
def config() -> SearchConfiguration:
    return SearchConfiguration(
        rerank_enabled=True,
        host_cap=2,
        max_body_chars=200,
        min_results=10,
        max_results=20,
    )


@pytest.fixture
def extractor():
    """Extractor double returning no documents unless reconfigured."""
    double = MagicMock()
    double.extract = AsyncMock(return_value=[])
    return double
