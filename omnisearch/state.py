"""Persistence of serialized search session state."""

import json
import logging
import threading
from pathlib import Path
from typing import Optional

from .config import DEFAULT_STATE_PATH

logger = logging.getLogger(__name__)


class SessionStateStore:
    """JSON file holding the last serialized session (pattern history).

    A missing or unreadable file behaves like an empty store.
    """

    def __init__(self, path: Optional[Path] = None):
        self.path = path or DEFAULT_STATE_PATH
        self._lock = threading.Lock()

    def load(self) -> Optional[dict]:
        """Load state from disk."""
        if not self.path.exists():
            return None
        try:
            with open(self.path) as f:
                data = json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            logger.warning(f"Ignoring unreadable session state {self.path}: {e}")
            return None
        return data if isinstance(data, dict) else None

    def save(self, state: dict) -> bool:
        """Save state to disk."""
        with self._lock:
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                with open(self.path, "w") as f:
                    json.dump(state, f, indent=2)
                return True
            except IOError as e:
                logger.warning(f"Failed to save session state to {self.path}: {e}")
                return False

    def clear(self) -> bool:
        """Delete the state file. Returns True if one existed."""
        with self._lock:
            if not self.path.exists():
                return False
            self.path.unlink()
            return True

    def info(self) -> dict:
        """Summary of the stored state for display."""
        state = self.load()
        history = (state or {}).get("history") or {}
        return {
            "path": str(self.path),
            "exists": self.path.exists(),
            "size": self.path.stat().st_size if self.path.exists() else 0,
            "history_entries": len(history.get("buffer") or []),
        }
