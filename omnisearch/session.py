"""Search session controller."""

import enum
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Generic, Optional, Protocol, TypeVar

from .backend import BackendError, BackendProcess, BackendTransportError, Failed
from .history import History
from .models import ContentItem, FileItem, Query, SearchResult
from .reconcile import KeyedList
from .search import (
    badge_text,
    collect_extensions,
    format_elapsed,
    matches_extension,
    parse_search_response,
)

logger = logging.getLogger(__name__)

DESERIALIZER = "omnisearch/SearchSession"


class ProjectRootsProvider(Protocol):
    """Host collaborator that knows the open project roots."""

    def get_paths(self) -> list[str]: ...


class NotificationSink(Protocol):
    """Host collaborator that shows dismissible messages to the user."""

    def error(self, message: str, detail: str = "") -> None: ...

    def info(self, message: str) -> None: ...


class StaticProjectRoots:
    """Fixed list of project roots, e.g. from the command line."""

    def __init__(self, paths: Optional[list[str]] = None):
        self.paths = list(paths or [])

    def get_paths(self) -> list[str]:
        return list(self.paths)


class SearchStatus(enum.Enum):
    IDLE = "idle"
    RUNNING = "running"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(eq=False)
class ProjectEntry:
    """Row of the project selector.

    ``widget`` is bound by the host view; disposing the entry removes it.
    """

    path: str
    selected: bool = False
    disposed: bool = False
    widget: Optional[Any] = field(default=None, repr=False)

    @property
    def key(self) -> str:
        return self.path

    def dispose(self):
        self.disposed = True
        widget, self.widget = self.widget, None
        if widget is not None:
            widget.remove()


@dataclass(eq=False)
class ExtensionChip:
    """Filter chip for one file extension."""

    ext: str
    selected: bool = False
    disposed: bool = False

    @property
    def key(self) -> str:
        return self.ext

    def dispose(self):
        self.disposed = True


ItemT = TypeVar("ItemT", FileItem, ContentItem)


@dataclass(eq=False)
class ResultEntry(Generic[ItemT]):
    """Displayed search result with its visibility under the extension filter."""

    item: ItemT
    visible: bool = True

    @property
    def ext(self) -> str:
        return self.item.ext

    @property
    def path(self) -> str:
        return self.item.path


class ResultList(Generic[ItemT]):
    """Files or content blocks shown for the last search, with a count badge."""

    def __init__(self):
        self.entries: list[ResultEntry[ItemT]] = []
        self.badge = "0"

    def __len__(self) -> int:
        return len(self.entries)

    def replace(self, items: list[ItemT], badge: str):
        self.entries = [ResultEntry(item) for item in items]
        self.badge = badge

    def reset(self):
        self.replace([], "0")

    def apply_filter(self, active_ext: Optional[str]):
        for entry in self.entries:
            entry.visible = matches_extension(entry.ext, active_ext)

    def visible(self) -> list[ResultEntry[ItemT]]:
        return [e for e in self.entries if e.visible]


class SearchSession:
    """Coordinates the query, history, search server and result views.

    All methods run on the host's event loop. Only one search may be in
    flight; ``trigger_search`` ignores calls while one is running and the
    host uses ``can_search`` to disable its trigger.
    """

    def __init__(
        self,
        backend: BackendProcess,
        roots: ProjectRootsProvider,
        notifier: NotificationSink,
        history: Optional[History] = None,
    ):
        self.backend = backend
        self.roots = roots
        self.notifier = notifier
        self.query = Query()
        self.history = history or History()

        self.projects: KeyedList[ProjectEntry] = KeyedList(ProjectEntry)
        self.extensions: KeyedList[ExtensionChip] = KeyedList(ExtensionChip, select_first=False)
        self.files: ResultList[FileItem] = ResultList()
        self.content: ResultList[ContentItem] = ResultList()
        self.active_extension: Optional[str] = None
        self.last_result: Optional[SearchResult] = None

        self.status = SearchStatus.IDLE
        self.status_text = ""
        self._listeners: list[Callable[["SearchSession"], None]] = []

        self.backend.add_exit_listener(self._on_backend_exit)

    # -- lifecycle --

    async def start(self) -> bool:
        """Spawn the search server and wait until it listens."""
        # A zero startup timeout only makes send() fail fast; startup still waits.
        try:
            await self.backend.spawn()
            result = await self.backend.wait_started(self.backend.startup_timeout or None)
        except BackendError as e:
            logger.error(f"Search server did not start: {e}")
            self.notifier.error("Search server did not start", str(e))
            return False

        if isinstance(result, Failed):
            logger.error(f"Search server failed: {result.describe()}")
            self.notifier.error("Search server failed to start", result.describe())
            return False
        self.notifier.info(f"Search server listening on {result.address}")
        return True

    def close(self):
        self.backend.stop()
        self.projects.clear()
        self.extensions.clear()

    def add_listener(self, callback: Callable[["SearchSession"], None]):
        """Call ``callback`` whenever displayed state changes."""
        self._listeners.append(callback)

    # -- query --

    @property
    def is_running(self) -> bool:
        return self.status is SearchStatus.RUNNING

    @property
    def can_search(self) -> bool:
        return self.query.is_valid() and not self.is_running

    def set_pattern(self, pattern: str):
        self.query.set_pattern(pattern)

    def set_use_regex(self, use_regex: bool):
        self.query.set_use_regex(use_regex)
        self._changed()

    def history_previous(self) -> Optional[str]:
        """Recall the previous pattern into the query; None if there is none."""
        text = self.history.previous()
        if text is not None:
            self.query.set_pattern(text)
        return text

    def history_next(self) -> str:
        """Recall the next pattern; an empty string means the blank edit slot."""
        text = self.history.next()
        self.query.set_pattern(text)
        return text

    # -- projects --

    def refresh_projects(self):
        """Re-read project roots from the host."""
        self.update_project_paths(self.roots.get_paths())

    def update_project_paths(self, paths: list[str]):
        result = self.projects.update(paths)
        if result.created or result.disposed:
            logger.debug(
                f"Projects updated: {len(result.created)} added, {len(result.disposed)} removed"
            )
        self._sync_query_path()
        self._changed()

    def select_project(self, path: str) -> bool:
        if self.projects.select(path) is None:
            return False
        self._sync_query_path()
        self._changed()
        return True

    def _sync_query_path(self):
        selected = self.projects.selected()
        self.query.set_path(selected.path if selected else None)

    # -- search --

    async def trigger_search(self) -> bool:
        """Send the current query. Returns False if nothing was dispatched."""
        if not self.query.is_valid():
            logger.debug(f"Ignoring search for invalid {self.query!r}")
            return False
        if self.is_running:
            logger.debug("Search already running, ignoring trigger")
            return False

        self.history.append(self.query.get_pattern())
        self._set_status(SearchStatus.RUNNING, "Running")

        payload = self.query.to_request()
        try:
            data = await self.backend.send(payload)
            result = parse_search_response(data)
        except BackendError as e:
            self._show_error(e)
        except Exception as e:
            logger.exception("Unexpected error while searching")
            self._show_error(BackendTransportError(f"{type(e).__name__}: {e}"))
        else:
            self._show_result(result)
        finally:
            # Cancellation skips both handlers above
            if self.is_running:
                self._set_status(SearchStatus.IDLE, "Cancelled")
        return True

    def _show_result(self, result: SearchResult):
        self.last_result = result
        self.files.replace(result.files, badge_text(result.file_matches))
        self.content.replace(result.content, badge_text(result.content_matches))

        self.extensions.update(collect_extensions(result.files, result.content))
        chip = self.extensions.selected()
        self._apply_extension(chip.ext if chip else None)

        logger.info(
            f"Search for {self.query.pattern!r} in {self.query.path}: "
            f"{self.files.badge} files, {self.content.badge} content matches in {result.time_sec:.3f}s"
        )
        self._set_status(SearchStatus.SUCCESS, format_elapsed(result.time_sec, result.used_cache))

    def _show_error(self, error: BackendError):
        logger.warning(f"Search failed: {error}")
        self.last_result = None
        self.files.reset()
        self.content.reset()
        self.extensions.clear()
        self.active_extension = None
        self.notifier.error("Search failed", str(error))
        self._set_status(SearchStatus.ERROR, "Error")

    # -- extension filter --

    def on_extension_selected(self, ext: Optional[str]):
        """Show only entries with ``ext``; None shows everything."""
        if ext is not None and self.extensions.select(ext) is None:
            logger.debug(f"No results with extension {ext!r}, showing all")
            ext = None
        if ext is None:
            self.extensions.clear_selection()
        self._apply_extension(ext)
        self._changed()

    def toggle_extension(self, ext: str):
        """Select ``ext``, or clear the filter if it is already active."""
        self.on_extension_selected(None if ext == self.active_extension else ext)

    def _apply_extension(self, ext: Optional[str]):
        self.active_extension = ext
        self.files.apply_filter(ext)
        self.content.apply_filter(ext)

    # -- persistence --

    def serialize(self) -> dict:
        return {"deserializer": DESERIALIZER, "history": self.history.serialize()}

    @classmethod
    def deserialize(
        cls,
        state: Optional[dict],
        backend: BackendProcess,
        roots: ProjectRootsProvider,
        notifier: NotificationSink,
    ) -> "SearchSession":
        history = None
        if state and state.get("deserializer") == DESERIALIZER:
            history = History.deserialize(state.get("history"))
        elif state:
            logger.warning(f"Ignoring session state for {state.get('deserializer')!r}")
        return cls(backend, roots, notifier, history=history)

    # -- internals --

    def _on_backend_exit(self, failure: Failed):
        self.notifier.error("Search server exited", failure.describe())
        self._changed()

    def _set_status(self, status: SearchStatus, text: str):
        self.status = status
        self.status_text = text
        self._changed()

    def _changed(self):
        for callback in self._listeners:
            callback(self)
