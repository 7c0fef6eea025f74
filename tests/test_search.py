"""Tests for search result decoding and derivation."""

import pytest

from omnisearch.backend import BackendResponseError, BackendTransportError
from omnisearch.models import ContentItem, FileItem, MatchCount, Query
from omnisearch.search import (
    badge_text,
    collect_extensions,
    count_match_lines,
    format_elapsed,
    matches_extension,
    parse_search_response,
)


SAMPLE_RESPONSE = {
    "time_sec": 0.042,
    "used_cache": True,
    "files": [{"path": "src/main.go", "ext": "go"}],
    "file_matches": {"count": 1, "match": "exact"},
    "content": [
        {
            "path": "src/lib.rs",
            "ext": "rs",
            "matches": [
                {
                    "lines": [
                        {"kind": "before", "num": 9, "bytes": "fn main() {", "truncated": False},
                        {
                            "kind": "match",
                            "num": 10,
                            "before_bytes": "    let ",
                            "bytes": "needle",
                            "after_bytes": " = 1;",
                            "truncated": False,
                        },
                        {"kind": "after", "num": 11, "bytes": "}", "truncated": False},
                    ]
                }
            ],
        }
    ],
    "content_matches": {"count": 100, "match": "atleast"},
}


class TestQuery:
    """Tests for the Query model."""

    def test_empty_query_is_invalid(self):
        """Test that a fresh query cannot be sent."""
        assert not Query().is_valid()

    def test_requires_pattern_and_path(self):
        """Test validity needs both pattern and path."""
        query = Query()
        query.set_pattern("needle")
        assert not query.is_valid()
        query.set_path("/src")
        assert query.is_valid()
        query.set_pattern("")
        assert not query.is_valid()

    def test_to_request(self):
        """Test the wire payload."""
        query = Query("needle", "/src")
        query.set_use_regex(1)
        assert query.to_request() == {"dir": "/src", "pattern": "needle", "use_regex": True}
        assert query.get_pattern() == "needle"
        assert query.get_path() == "/src"


class TestParseResponse:
    """Tests for decoding server replies."""

    def test_success_payload(self):
        """Test decoding a full success response."""
        result = parse_search_response(SAMPLE_RESPONSE)

        assert result.files == [FileItem(path="src/main.go", ext="go")]
        assert result.file_matches == MatchCount(1, "exact")
        assert result.content_matches.count == 100
        assert not result.content_matches.is_exact
        assert result.time_sec == pytest.approx(0.042)
        assert result.used_cache

        lines = result.content[0].matches[0].lines
        assert [line.kind for line in lines] == ["before", "match", "after"]
        assert lines[1].has_range
        assert lines[1].before_bytes == "    let "
        assert lines[1].after_bytes == " = 1;"
        assert not lines[0].has_range

    def test_context_fragments_only_on_match_lines(self):
        """Test that before/after fragments are dropped for context lines."""
        data = {
            "content": [{
                "path": "a.py", "ext": "py",
                "matches": [{"lines": [{"kind": "before", "num": 1, "bytes": "x", "before_bytes": "y"}]}],
            }],
        }
        line = parse_search_response(data).content[0].matches[0].lines[0]
        assert line.before_bytes is None

    def test_error_payload(self):
        """Test that err: true raises with the server message."""
        with pytest.raises(BackendResponseError, match="No such directory"):
            parse_search_response({"err": True, "msg": "No such directory"})

    def test_error_payload_without_message(self):
        """Test the fallback message."""
        with pytest.raises(BackendResponseError, match="Search server error"):
            parse_search_response({"err": True})

    def test_malformed_payload(self):
        """Test that garbage field types become transport errors."""
        with pytest.raises(BackendTransportError):
            parse_search_response({"files": [{"path": "a"}], "time_sec": "slow"})

    def test_missing_sections_default_to_empty(self):
        """Test decoding a minimal response."""
        result = parse_search_response({"time_sec": 0})
        assert result.files == []
        assert result.content == []
        assert badge_text(result.file_matches) == "0"


class TestBadgeText:
    """Tests for count badges."""

    def test_exact(self):
        assert badge_text(MatchCount(5, "exact")) == "5"

    def test_at_least(self):
        assert badge_text(MatchCount(5, "atleast")) == "5+"

    def test_missing(self):
        assert badge_text(None) == "0"


class TestExtensions:
    """Tests for extension derivation and filtering."""

    def test_union_is_sorted(self):
        """Test extensions across files and content."""
        files = [FileItem("a.go", "go")]
        content = [ContentItem("b.rs", "rs"), ContentItem("c.go", "go")]
        assert collect_extensions(files, content) == ["go", "rs"]

    def test_empty_extensions_skipped(self):
        assert collect_extensions([FileItem("Makefile", "")], []) == []

    def test_matches_extension(self):
        assert matches_extension("go", None)
        assert matches_extension("go", "go")
        assert not matches_extension("rs", "go")


class TestFormatting:
    """Tests for status and count helpers."""

    def test_format_elapsed(self):
        assert format_elapsed(0.042) == "Done in 42 ms"
        assert format_elapsed(2.5) == "Done in 2.50 sec"

    def test_format_elapsed_cached(self):
        """Test that answers served from the server cache are marked."""
        assert format_elapsed(0.001, used_cache=True) == "Done in 1 ms (cached)"

    def test_count_match_lines(self):
        result = parse_search_response(SAMPLE_RESPONSE)
        assert count_match_lines(result.content[0]) == 1
