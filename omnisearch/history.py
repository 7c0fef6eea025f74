"""Pattern history with shell-style browsing."""

from typing import Optional


class HistoryCursorError(RuntimeError):
    """Raised when the browsing cursor is outside of the buffer."""


class History:
    """Append-only log of past patterns with a browsing cursor.

    The cursor points one past the last entry while the user is not browsing.
    ``previous()`` stops at the oldest entry and returns ``None`` there;
    ``next()`` runs off the newest entry into the blank edit slot ``""``.
    """

    def __init__(self, buffer: Optional[list[str]] = None, pos: Optional[int] = None):
        self.buffer: list[str] = list(buffer or [])
        self.cursor = len(self.buffer) if pos is None else pos
        self._check_cursor()

    def __len__(self) -> int:
        return len(self.buffer)

    @property
    def is_browsing(self) -> bool:
        return self.cursor < len(self.buffer)

    def entries(self) -> list[str]:
        return list(self.buffer)

    def append(self, text: str):
        """Record a pattern, ignoring blanks and immediate repeats."""
        if text and (not self.buffer or self.buffer[-1] != text):
            self.buffer.append(text)
        self.cursor = len(self.buffer)

    def previous(self) -> Optional[str]:
        """Step back; None means there is no earlier entry."""
        self._check_cursor()
        if self.cursor > 0:
            self.cursor -= 1
            return self.buffer[self.cursor]
        return None

    def next(self) -> str:
        """Step forward; an empty string marks the live edit slot."""
        self._check_cursor()
        if self.cursor < len(self.buffer):
            text = self.buffer[self.cursor]
            self.cursor += 1
            return text
        return ""

    def serialize(self) -> dict:
        return {"buffer": list(self.buffer), "pos": self.cursor}

    @classmethod
    def deserialize(cls, state: Optional[dict]) -> "History":
        if not state:
            return cls()
        return cls(buffer=state.get("buffer") or [], pos=state.get("pos"))

    def _check_cursor(self):
        if not 0 <= self.cursor <= len(self.buffer):
            raise HistoryCursorError(
                f"history cursor {self.cursor} outside of buffer of length {len(self.buffer)}"
            )
