"""Tests for tool argument normalization and response formatting."""

import json

import pytest

from paper_search.presentation.mcp_server.tools._common import (
    InputNormalizer,
    ResponseFormatter,
    handle_tool_error,
)
from paper_search.shared.exceptions import (
    ErrorContext,
    InvalidQueryError,
    NotFoundError,
    PaperSearchError,
)

from conftest import make_paper


class TestNormalizeSources:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            (None, None),
            ("", None),
            (" , ", None),
            ("arxiv", ["arxiv"]),
            ("ArXiv, INSPIRE", ["arxiv", "inspire"]),
            (["arxiv", " lab "], ["arxiv", "lab"]),
            ([], None),
        ],
    )
    def test_normalize(self, raw, expected):
        assert InputNormalizer.normalize_sources(raw) == expected


class TestNormalizeScalars:
    def test_id(self):
        assert InputNormalizer.normalize_id("  arxiv:1 ") == "arxiv:1"
        assert InputNormalizer.normalize_id(12345) == "12345"
        assert InputNormalizer.normalize_id(None) == ""

    def test_optional(self):
        assert InputNormalizer.normalize_optional(None) is None
        assert InputNormalizer.normalize_optional("   ") is None
        assert InputNormalizer.normalize_optional(" arxiv ") == "arxiv"


class TestResponseFormatter:
    def test_papers(self):
        payload = json.loads(ResponseFormatter.papers([make_paper("x:1", "Título")], query="q"))
        assert payload["query"] == "q"
        assert payload["count"] == 1
        assert payload["results"][0]["title"] == "Título"

    def test_json_keeps_unicode(self):
        assert "Título" in ResponseFormatter.json({"t": "Título"})

    def test_error_from_domain_exception(self):
        message = ResponseFormatter.error(InvalidQueryError(""), tool_name="search_papers")
        assert message.startswith("❌ **Error**")
        assert "Suggestion" in message

    def test_error_adds_missing_suggestion(self):
        message = ResponseFormatter.error(PaperSearchError("boom"), tool_name="t", suggestion="Check the id")
        assert "💡 **Suggestion**: Check the id" in message

    def test_not_found_keeps_default_suggestion(self):
        message = ResponseFormatter.error(NotFoundError("Paper", "x:1"), tool_name="t", suggestion="other")
        assert "Paper not found: x:1" in message
        assert "Check the identifier" in message

    def test_error_keeps_own_suggestion(self):
        error = InvalidQueryError("", context=ErrorContext(suggestion="own"))
        message = ResponseFormatter.error(error, tool_name="t", suggestion="other")
        assert "own" in message
        assert "other" not in message

    def test_error_from_string(self):
        message = ResponseFormatter.error("paper_id is required", tool_name="get_paper", example="get_paper('x')")
        assert "paper_id is required" in message
        assert "`get_paper('x')`" in message


class TestHandleToolError:
    def test_unexpected_error_logged(self, caplog):
        message = handle_tool_error(RuntimeError("kaboom"), "search_local")
        assert "kaboom" in message
        assert "search_local failed unexpectedly" in caplog.text
