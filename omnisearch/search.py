"""Decoding and client-side derivation of search results."""

from typing import Iterable, Optional

from .backend import BackendResponseError, BackendTransportError
from .models import ContentItem, FileItem, MatchCount, SearchResult


def parse_search_response(data: dict) -> SearchResult:
    """Decode a server reply, raising BackendResponseError for error payloads."""
    if data.get("err"):
        raise BackendResponseError(data.get("msg") or "Search server error")
    try:
        return SearchResult.from_dict(data)
    except (AttributeError, TypeError, ValueError) as e:
        raise BackendTransportError(f"Malformed search response: {e}") from e


def badge_text(matches: Optional[MatchCount]) -> str:
    """Count label: "5" for an exact count, "5+" for a lower bound."""
    if matches is None:
        return "0"
    if matches.is_exact:
        return f"{matches.count}"
    return f"{matches.count}+"


def collect_extensions(files: Iterable[FileItem], content: Iterable[ContentItem]) -> list[str]:
    """Distinct extensions across both result lists, sorted ascending."""
    extensions = {item.ext for item in files if item.ext}
    extensions.update(item.ext for item in content if item.ext)
    return sorted(extensions)


def matches_extension(ext: str, active: Optional[str]) -> bool:
    """Whether an entry with ``ext`` stays visible under the active filter."""
    return active is None or ext == active


def format_elapsed(time_sec: float, used_cache: bool = False) -> str:
    """Status text for a finished search."""
    if time_sec < 1:
        text = f"Done in {time_sec * 1000:.0f} ms"
    else:
        text = f"Done in {time_sec:.2f} sec"
    return f"{text} (cached)" if used_cache else text


def count_match_lines(item: ContentItem) -> int:
    """Number of matching (non-context) lines in a content item."""
    return sum(1 for match in item.matches for line in match.lines if line.is_match)
