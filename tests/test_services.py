"""
Unit Tests for Services
"""

import asyncio

import pytest
from pydantic import ValidationError as PydanticValidationError
from unittest.mock import MagicMock

from telescope.errors import UpstreamError, ValidationError
from telescope.schemas import Document, SearchConfiguration
from telescope.services.ranker import HostDiversityRanker, normalize_url
from telescope.services.search_service import SearchService
from telescope.services.text_budget import MAX_BACKWARD_SCAN, bound_text

from tests.helpers import make_documents


class TestBoundText:
    """Tests for bound_text."""

    SAMPLES = [
        "",
        "short",
        "Hello world. Goodbye.",
        "First paragraph.\n\nSecond paragraph, with a clause; and more!",
        "no-boundaries-at-all-" * 40,
        "Mixed\r\nline endings\rand separators. End",
        "café naïve résumé " * 30,
    ]

    def test_text_within_budget_is_unchanged(self):
        """Text no longer than the budget comes back as-is."""
        for text in self.SAMPLES:
            assert bound_text(text, len(text)) == text
            assert bound_text(text, len(text) + 10) == text

    def test_budget_is_respected(self):
        """Output never exceeds the budget."""
        for text in self.SAMPLES:
            for budget in (0, 1, 5, 13, 15, 40, 100, 1000):
                assert len(bound_text(text, budget)) <= budget

    def test_repeated_calls_are_identical(self):
        """Same input gives the same output."""
        for text in self.SAMPLES:
            for budget in (3, 15, 60):
                assert bound_text(text, budget) == bound_text(text, budget)

    def test_result_is_prefix(self):
        """Output is always a prefix of the input."""
        for text in self.SAMPLES:
            for budget in (3, 15, 60):
                assert text.startswith(bound_text(text, budget))

    def test_sentence_boundary_preferred(self):
        """Cut after the sentence end, never mid-word."""
        result = bound_text("Hello world. Goodbye.", 15)

        assert result == "Hello world."

    def test_newline_beats_sentence_punctuation(self):
        """A line break anywhere in the window wins over nearer punctuation."""
        text = "First line\nSecond sentence. More words here"

        assert bound_text(text, 35) == "First line"

    def test_crlf_cut_before_carriage_return(self):
        """A CRLF pair is not split."""
        text = "line one\r\nline two words"

        assert bound_text(text, 18) == "line one"

    def test_whitespace_fallback(self):
        """Without sentence punctuation, cut at the last whitespace."""
        assert bound_text("alpha beta gamma", 13) == "alpha beta"

    def test_punctuation_fallback(self):
        """Generic punctuation is a soft boundary."""
        assert bound_text("alpha,beta,gamma", 13) == "alpha,beta"

    def test_hard_cut_without_boundary(self):
        """No boundary at all returns the hard prefix."""
        assert bound_text("x" * 1000, 100) == "x" * 100

    def test_scan_window_is_bounded(self):
        """Boundaries further back than the scan window are ignored."""
        text = "a b" + "x" * 2000
        budget = MAX_BACKWARD_SCAN + 300

        assert bound_text(text, budget) == text[:budget]

    def test_zero_and_negative_budget(self):
        """Zero or negative budgets yield an empty string."""
        assert bound_text("", 0) == ""
        assert bound_text("abc", 0) == ""
        assert bound_text("abc", -5) == ""

    def test_combining_mark_not_split(self):
        """The hard cut backs off instead of orphaning a combining accent."""
        text = "abcde\u0301f"

        result = bound_text(text, 5)

        assert result == "abcd"

    def test_counts_characters_not_bytes(self):
        """Multi-byte characters count once."""
        text = "\u00e9" * 5

        assert bound_text(text, 5) == text


class TestHostDiversityRanker:
    """Tests for HostDiversityRanker."""

    def test_host_cap_enforced(self):
        """At most host_cap documents per hostname survive."""
        documents = make_documents(["a.com"], per_host=5)

        result = HostDiversityRanker().rerank(documents, 2)

        assert len(result) == 2
        assert [d.source_url for d in result] == [
            "https://a.com/page-0",
            "https://a.com/page-1",
        ]

    def test_no_cap_keeps_distinct_documents(self):
        """Without a cap only duplicates are removed."""
        documents = make_documents(["a.com", "b.com"], per_host=4)

        result = HostDiversityRanker().rerank(documents, None)

        assert result == documents

    def test_www_prefix_shares_host(self):
        """www.a.com and a.com count against the same cap."""
        documents = [
            Document(title="1", source_url="https://www.a.com/1", body="one"),
            Document(title="2", source_url="https://a.com/2", body="two"),
            Document(title="3", source_url="https://A.com/3", body="three"),
        ]

        result = HostDiversityRanker().rerank(documents, 2)

        assert [d.title for d in result] == ["1", "2"]

    def test_duplicate_urls_dropped(self):
        """Fragments and trailing slashes do not make a new page."""
        documents = [
            Document(title="1", source_url="https://a.com/docs/", body="one"),
            Document(title="2", source_url="https://a.com/docs#intro", body="two"),
            Document(title="3", source_url="https://b.com/docs", body="three"),
        ]

        result = HostDiversityRanker().rerank(documents, None)

        assert [d.title for d in result] == ["1", "3"]

    def test_duplicate_bodies_dropped(self):
        """Mirrored content is kept once; empty bodies are never duplicates."""
        documents = [
            Document(title="1", source_url="https://a.com/1", body="Same  text"),
            Document(title="2", source_url="https://b.com/2", body="Same text"),
            Document(title="3", source_url="https://c.com/3", body=""),
            Document(title="4", source_url="https://d.com/4", body=""),
        ]

        result = HostDiversityRanker().rerank(documents, None)

        assert [d.title for d in result] == ["1", "3", "4"]

    def test_normalize_url(self):
        """URL normalisation used for duplicate detection."""
        assert normalize_url("HTTPS://www.Example.com/a/?q=1#x") == "https://example.com/a?q=1"
        assert normalize_url("http://example.com:8080/") == "http://example.com:8080"

    def test_malformed_urls_do_not_break_rerank(self):
        """A bad port or IPv6 literal is compared as raw text, not raised."""
        documents = [
            Document(title="1", source_url="https://a.com/1", body="one"),
            Document(title="2", source_url="http://b.com:abc/x", body="two"),
            Document(title="3", source_url="http://[::1/y", body="three"),
            Document(title="4", source_url="https://c.com/4", body="four"),
        ]

        result = HostDiversityRanker().rerank(documents, None)

        assert [d.title for d in result] == ["1", "2", "3", "4"]
        assert normalize_url(" http://b.com:abc/x ") == "http://b.com:abc/x"


class TestDocument:
    """Tests for the Document model."""

    def test_with_body_returns_copy(self):
        """Bounding never edits the original document."""
        original = Document(title="t", source_url="https://a.com", body="long body")

        copy = original.with_body("long")

        assert copy.body == "long"
        assert original.body == "long body"
        assert copy.title == original.title

    def test_document_is_frozen(self):
        """Documents cannot be mutated in place."""
        document = Document(title="t", source_url="https://a.com", body="b")

        with pytest.raises(PydanticValidationError):
            document.body = "changed"

    def test_hostname(self):
        """Hostname is lower-cased without www."""
        document = Document(source_url="https://WWW.Example.org/path")

        assert document.hostname == "example.org"

    def test_hostname_of_malformed_url(self):
        """Unparsable netlocs have an empty hostname."""
        assert Document(source_url="http://[::1/path").hostname == ""
        assert Document(source_url="http://b.com:abc/x").hostname == "b.com"


class TestSearchService:
    """Tests for SearchService."""

    @pytest.mark.asyncio
    async def test_limit_below_range_is_raised(self, config, extractor):
        """Requests below the range ask for the minimum."""
        service = SearchService(config, extractor)

        await service.search("x", 3)

        extractor.extract.assert_awaited_once_with("x", 10)

    @pytest.mark.asyncio
    async def test_limit_above_range_is_lowered(self, config, extractor):
        """Requests above the range ask for the maximum."""
        service = SearchService(config, extractor)

        await service.search("x", 999)

        extractor.extract.assert_awaited_once_with("x", 20)

    @pytest.mark.asyncio
    async def test_limit_defaults_to_minimum(self, config, extractor):
        """No limit means the lower bound."""
        service = SearchService(config, extractor)

        await service.search("x")

        extractor.extract.assert_awaited_once_with("x", 10)

    @pytest.mark.asyncio
    async def test_limit_in_range_passes_through(self, config, extractor):
        """In-range limits are used unchanged."""
        service = SearchService(config, extractor)

        await service.search("x", 15)

        extractor.extract.assert_awaited_once_with("x", 15)

    @pytest.mark.asyncio
    async def test_empty_query_rejected(self, config, extractor):
        """Whitespace-only queries fail before the extractor runs."""
        service = SearchService(config, extractor)

        with pytest.raises(ValidationError, match="missing or empty query"):
            await service.search("   ", 10)

        assert extractor.extract.await_count == 0

    @pytest.mark.asyncio
    async def test_query_is_trimmed(self, config, extractor):
        """Surrounding whitespace is not sent upstream."""
        service = SearchService(config, extractor)

        await service.search("  rust async  ", 10)

        extractor.extract.assert_awaited_once_with("rust async", 10)

    @pytest.mark.asyncio
    async def test_end_to_end_host_cap(self, config, extractor):
        """12 documents over 4 hosts with cap 2 leave 8 bounded documents."""
        hosts = ["a.com", "b.com", "c.com", "d.com"]
        documents = make_documents(hosts, per_host=3, body_size=500)
        extractor.extract.return_value = documents
        service = SearchService(config, extractor)

        result = await service.search("x", 12)

        expected = [d for d in documents if not d.source_url.endswith("page-2")]
        assert len(result) == 8
        assert [d.source_url for d in result] == [d.source_url for d in expected]
        for host in hosts:
            assert sum(1 for d in result if d.hostname == host) <= 2
        for document in result:
            assert len(document.body) <= config.max_body_chars

    @pytest.mark.asyncio
    async def test_malformed_url_keeps_other_results(self, config, extractor):
        """One bad source URL does not fail the whole search."""
        documents = make_documents(["a.com"], per_host=1) + [
            Document(title="bad", source_url="http://b.com:abc/x", body="Bad port page."),
        ]
        extractor.extract.return_value = documents
        service = SearchService(config, extractor)

        result = await service.search("x")

        assert [d.source_url for d in result] == [
            "https://a.com/page-0",
            "http://b.com:abc/x",
        ]

    @pytest.mark.asyncio
    async def test_ranker_order_preserved(self, config, extractor):
        """Output follows the ranker's order exactly."""
        documents = make_documents(["a.com", "b.com"], per_host=2)
        extractor.extract.return_value = documents
        ranker = MagicMock()
        ranker.rerank.return_value = list(reversed(documents))
        service = SearchService(config, extractor, ranker)

        result = await service.search("x")

        ranker.rerank.assert_called_once_with(documents, 2)
        assert [d.source_url for d in result] == [
            d.source_url for d in reversed(documents)
        ]

    @pytest.mark.asyncio
    async def test_rerank_disabled_keeps_extractor_output(self, config, extractor):
        """With re-ranking off the ranker is skipped and nothing is capped."""
        documents = make_documents(["a.com"], per_host=5)
        extractor.extract.return_value = documents
        ranker = MagicMock()
        config = config.model_copy(update={"rerank_enabled": False})
        service = SearchService(config, extractor, ranker)

        result = await service.search("x")

        ranker.rerank.assert_not_called()
        assert [d.source_url for d in result] == [d.source_url for d in documents]

    @pytest.mark.asyncio
    async def test_bodies_bounded_without_touching_originals(self, config, extractor):
        """Bounding replaces bodies in copies only."""
        long_body = "Sentence one. " * 100
        documents = [Document(title="t", source_url="https://a.com/1", body=long_body)]
        extractor.extract.return_value = documents
        service = SearchService(config, extractor)

        result = await service.search("x")

        assert len(result[0].body) <= 200
        assert result[0].body.endswith(".")
        assert documents[0].body == long_body

    @pytest.mark.asyncio
    async def test_extractor_failure_is_upstream_error(self, config, extractor):
        """Extractor exceptions surface as UpstreamError."""
        extractor.extract.side_effect = RuntimeError("network down")
        service = SearchService(config, extractor)

        with pytest.raises(UpstreamError) as exc_info:
            await service.search("x")

        assert "network down" in exc_info.value.message
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    @pytest.mark.asyncio
    async def test_extractor_timeout_is_upstream_error(self, config, extractor):
        """Timeouts are upstream failures too."""
        extractor.extract.side_effect = asyncio.TimeoutError()
        service = SearchService(config, extractor)

        with pytest.raises(UpstreamError):
            await service.search("x")

    @pytest.mark.asyncio
    async def test_ranker_failure_is_upstream_error(self, config, extractor):
        """Ranker exceptions surface as UpstreamError."""
        extractor.extract.return_value = make_documents(["a.com"], per_host=1)
        ranker = MagicMock()
        ranker.rerank.side_effect = ValueError("bad scores")
        service = SearchService(config, extractor, ranker)

        with pytest.raises(UpstreamError, match="bad scores"):
            await service.search("x")

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self, config):
        """Cancelling the call cancels the extractor."""
        started = asyncio.Event()
        cancelled = asyncio.Event()

        class SlowExtractor:
            async def extract(self, query, count_hint):
                started.set()
                try:
                    await asyncio.Event().wait()
                except asyncio.CancelledError:
                    cancelled.set()
                    raise

        service = SearchService(config, SlowExtractor())
        task = asyncio.create_task(service.search("x"))
        await started.wait()
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert cancelled.is_set()

    @pytest.mark.asyncio
    async def test_concurrent_searches_are_independent(self, config):
        """Calls do not share per-request state."""

        class EchoExtractor:
            async def extract(self, query, count_hint):
                await asyncio.sleep(0)
                return [Document(title=query, source_url=f"https://{query}.com/", body=query)]

        service = SearchService(config, EchoExtractor())

        first, second = await asyncio.gather(service.search("one"), service.search("two"))

        assert [d.title for d in first] == ["one"]
        assert [d.title for d in second] == ["two"]


class TestRender:
    """Tests for SearchService.render."""

    def _service(self, config):
        return SearchService(config, MagicMock())

    def test_render_format(self, config):
        """Header, then one numbered block per document."""
        documents = [
            Document(title="First", source_url="https://a.com/1", body="Alpha."),
            Document(title="", source_url="https://b.com/2", body="Beta."),
        ]

        output = self._service(config).render("q", documents)

        assert output == (
            "Search results for: q\n\n"
            "# Result 1: First\nURL: https://a.com/1\n\nAlpha.\n\n"
            "# Result 2: \nURL: https://b.com/2\n\nBeta.\n\n"
        )

    def test_render_is_deterministic(self, config):
        """Rendering twice gives byte-identical output."""
        service = self._service(config)
        documents = make_documents(["a.com", "b.com"], per_host=2)

        assert service.render("q", documents) == service.render("q", documents)

    def test_render_empty(self, config):
        """No documents yields the header only."""
        output = self._service(config).render("q", [])

        assert output == "Search results for: q\n\n"
        assert "# Result" not in output

    @pytest.mark.asyncio
    async def test_search_text_uses_trimmed_query(self, config, extractor):
        """The rendered header names the trimmed query."""
        extractor.extract.return_value = make_documents(["a.com"], per_host=1)
        service = SearchService(config, extractor)

        output = await service.search_text("  q  ")

        assert output.startswith("Search results for: q\n\n# Result 1: a.com page 0\n")


class TestSearchConfiguration:
    """Tests for SearchConfiguration."""

    def test_clamp_limit(self):
        """Limits are clamped into the closed range."""
        config = SearchConfiguration(min_results=10, max_results=20)

        assert config.clamp_limit(None) == 10
        assert config.clamp_limit(-1) == 10
        assert config.clamp_limit(10) == 10
        assert config.clamp_limit(17) == 17
        assert config.clamp_limit(20) == 20
        assert config.clamp_limit(21) == 20

    def test_configuration_is_frozen(self):
        """Configuration cannot change after construction."""
        config = SearchConfiguration()

        with pytest.raises(PydanticValidationError):
            config.host_cap = 5
