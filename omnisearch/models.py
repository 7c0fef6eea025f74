"""Query and search result models."""

from dataclasses import dataclass, field
from typing import Optional

# Content line kinds
BEFORE = "before"
AFTER = "after"
MATCH = "match"

# Match count kinds
EXACT = "exact"
AT_LEAST = "atleast"


class Query:
    """Parameters of a single search request."""

    def __init__(self, pattern: str = "", path: Optional[str] = None, use_regex: bool = False):
        self.pattern = pattern
        self.path = path
        self.use_regex = use_regex

    def is_valid(self) -> bool:
        """Whether or not the backend can interpret this query."""
        return bool(self.pattern) and bool(self.path)

    def set_path(self, path: Optional[str]):
        self.path = path

    def set_pattern(self, pattern: str):
        self.pattern = pattern

    def set_use_regex(self, use_regex: bool):
        self.use_regex = bool(use_regex)

    def get_pattern(self) -> str:
        return self.pattern

    def get_path(self) -> Optional[str]:
        return self.path

    def to_request(self) -> dict:
        """Build the request body sent to the backend."""
        return {"dir": self.path, "pattern": self.pattern, "use_regex": self.use_regex}

    def __repr__(self) -> str:
        return f"Query(pattern={self.pattern!r}, path={self.path!r}, use_regex={self.use_regex})"


@dataclass
class FileItem:
    """File whose name matched the pattern."""

    path: str
    ext: str

    @classmethod
    def from_dict(cls, data: dict) -> "FileItem":
        return cls(path=data.get("path", ""), ext=data.get("ext", ""))


@dataclass
class ContentLine:
    """One line of a content match, either context or the match itself."""

    kind: str  # "before", "after" or "match"
    num: int
    bytes: str
    before_bytes: Optional[str] = None  # only for match lines
    after_bytes: Optional[str] = None
    truncated: bool = False

    @property
    def is_match(self) -> bool:
        return self.kind == MATCH

    @property
    def has_range(self) -> bool:
        """True if the matched fragment can be highlighted within the line."""
        return self.is_match and self.before_bytes is not None and self.after_bytes is not None

    @classmethod
    def from_dict(cls, data: dict) -> "ContentLine":
        kind = data.get("kind", MATCH)
        before_bytes = data.get("before_bytes")
        after_bytes = data.get("after_bytes")
        if kind != MATCH:
            before_bytes = after_bytes = None
        return cls(
            kind=kind,
            num=int(data.get("num", 0)),
            bytes=data.get("bytes", ""),
            before_bytes=before_bytes,
            after_bytes=after_bytes,
            truncated=bool(data.get("truncated", False)),
        )


@dataclass
class ContentMatch:
    """Context and match lines forming a single match."""

    lines: list[ContentLine] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> "ContentMatch":
        return cls(lines=[ContentLine.from_dict(line) for line in data.get("lines", [])])


@dataclass
class ContentItem:
    """File whose content matched the pattern."""

    path: str
    ext: str
    matches: list[ContentMatch] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> "ContentItem":
        return cls(
            path=data.get("path", ""),
            ext=data.get("ext", ""),
            matches=[ContentMatch.from_dict(m) for m in data.get("matches", [])],
        )


@dataclass
class MatchCount:
    """Number of matches, either exact or a lower bound."""

    count: int = 0
    match: str = EXACT

    @property
    def is_exact(self) -> bool:
        return self.match == EXACT

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "MatchCount":
        if not data:
            return cls()
        return cls(count=int(data.get("count", 0)), match=data.get("match", EXACT))


@dataclass
class SearchResult:
    """Decoded response of a successful search."""

    files: list[FileItem] = field(default_factory=list)
    content: list[ContentItem] = field(default_factory=list)
    file_matches: MatchCount = field(default_factory=MatchCount)
    content_matches: MatchCount = field(default_factory=MatchCount)
    time_sec: float = 0.0
    used_cache: bool = False

    @classmethod
    def from_dict(cls, data: dict) -> "SearchResult":
        return cls(
            files=[FileItem.from_dict(f) for f in data.get("files") or []],
            content=[ContentItem.from_dict(c) for c in data.get("content") or []],
            file_matches=MatchCount.from_dict(data.get("file_matches")),
            content_matches=MatchCount.from_dict(data.get("content_matches")),
            time_sec=float(data.get("time_sec", 0.0)),
            used_cache=bool(data.get("used_cache", False)),
        )
