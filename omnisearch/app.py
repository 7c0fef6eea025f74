"""omnisearch TUI application."""

import logging
from typing import Optional

from textual import on, work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.widgets import Footer, Header, Input, ListView, Static

from .backend import BackendProcess
from .config import Settings
from .session import ProjectRootsProvider, SearchSession, SearchStatus
from .state import SessionStateStore
from .ui import (
    APP_CSS,
    ContentPanel,
    FileResultItem,
    ProjectItem,
    build_extension_bar,
    build_section_header,
)
from .ui.widgets import pending_mounts, truncate

logger = logging.getLogger(__name__)


class AppNotifier:
    """Routes session notifications to Textual toasts."""

    def __init__(self, app: App):
        self.app = app

    def error(self, message: str, detail: str = "") -> None:
        self.app.notify(truncate(detail or message, 600), title=message, severity="error", timeout=15)

    def info(self, message: str) -> None:
        self.app.notify(message, timeout=3)


class OmnisearchApp(App):
    """TUI for searching project roots through an external search server."""

    CSS = APP_CSS

    BINDINGS = [
        Binding("ctrl+q", "quit", "Quit", priority=True),
        Binding("ctrl+r", "toggle_regex", "Regex", priority=True),
        Binding("ctrl+f", "cycle_extension", "Filter", priority=True),
        Binding("ctrl+o", "next_project", "Project", priority=True),
        Binding("ctrl+l", "reload_projects", "Reload", priority=True),
        Binding("escape", "focus_pattern", "Pattern", show=False),
        Binding("up", "history_previous", "Older", show=False),
        Binding("down", "history_next", "Newer", show=False),
    ]

    def __init__(
        self,
        settings: Settings,
        roots: ProjectRootsProvider,
        workdir: Optional[str] = None,
        store: Optional[SessionStateStore] = None,
    ):
        super().__init__()
        self.settings = settings
        self.store = store or SessionStateStore(settings.state_path)

        backend = BackendProcess(
            settings.server_command,
            workdir=workdir,
            startup_timeout=settings.startup_timeout,
            request_timeout=settings.request_timeout,
        )
        self.session = SearchSession.deserialize(self.store.load(), backend, roots, AppNotifier(self))
        self.session.add_listener(self._on_session_changed)

        # Last rendered state, so unchanged lists are not remounted
        self._projects_rendered: tuple = ()
        self._results_rendered: tuple = ()
        self._ready = False

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)
        with Horizontal():
            with Vertical(id="left-container"):
                with Vertical(id="project-container"):
                    yield Static("[bold]Projects[/]", classes="list-header")
                    yield ListView(id="project-list")
                yield Input(placeholder="Type a pattern and press Enter to search...", id="pattern-input")
                yield Static("", id="status-bar")
                yield Static("", id="extension-bar", classes="hidden")
                with Vertical(id="file-container"):
                    yield Static(build_section_header("Files", "0", 0, 0), id="file-header", classes="list-header")
                    yield ListView(id="file-list")
            with Vertical(id="content-container"):
                yield Static(build_section_header("Content", "0", 0, 0), id="content-header", classes="list-header")
                yield ContentPanel(id="content-panel")
        yield Footer()

    def on_mount(self):
        self.title = "omnisearch"
        self._ready = True
        self.session.refresh_projects()
        self.query_one("#content-panel", ContentPanel).clear_display()
        self.query_one("#pattern-input", Input).focus()
        self._start_backend()

    async def on_unmount(self):
        self.store.save(self.session.serialize())
        # The DOM is going away, so entries must not remove their widgets
        for entry in self.session.projects:
            entry.widget = None
        self.session.close()
        await self.session.backend.aclose()

    @work(group="backend")
    async def _start_backend(self):
        """Spawn the search server without blocking the UI."""
        self._set_status("Starting search server...")
        if not await self.session.start():
            self._set_status("Search server unavailable", error=True)
        elif await self.session.backend.ping():
            self._set_status(f"Ready ({self.session.backend.address})")
        else:
            self._set_status("Search server is not answering /ping", error=True)

    @work(group="search")
    async def _run_search(self):
        await self.session.trigger_search()

    # -- rendering --

    def _on_session_changed(self, session: SearchSession):
        if not self._ready:
            return
        self._render_projects()
        self._render_results()
        self._render_status()

    def _set_status(self, message: str, error: bool = False):
        bar = self.query_one("#status-bar", Static)
        bar.set_class(error, "error")
        bar.remove_class("running")
        bar.update(message)

    def _render_status(self):
        session = self.session
        if session.status is SearchStatus.IDLE and not session.status_text:
            return
        bar = self.query_one("#status-bar", Static)
        bar.set_class(session.status is SearchStatus.RUNNING, "running")
        bar.set_class(session.status is SearchStatus.ERROR, "error")
        regex = "[b]regex[/] " if session.query.use_regex else ""
        bar.update(f"{regex}{session.status_text}")

    def _render_projects(self):
        rendered = tuple((e.key, e.selected) for e in self.session.projects)
        if rendered == self._projects_rendered:
            return
        self._projects_rendered = rendered

        # Removed entries already dropped their widgets when they were disposed
        project_list = self.query_one("#project-list", ListView)
        for entry, before in pending_mounts(list(self.session.projects)):
            entry.widget = ProjectItem(entry)
            if before is None:
                project_list.mount(entry.widget)
            else:
                project_list.mount(entry.widget, before=before)
        for entry in self.session.projects:
            entry.widget.refresh_text()

    def _render_results(self):
        session = self.session
        rendered = (
            id(session.last_result),
            session.status,
            session.active_extension,
            tuple(chip.ext for chip in session.extensions),
        )
        if rendered == self._results_rendered:
            return
        self._results_rendered = rendered

        extension_bar = self.query_one("#extension-bar", Static)
        chips = list(session.extensions)
        extension_bar.set_class(not chips, "hidden")
        extension_bar.update(build_extension_bar(chips))

        visible_files = session.files.visible()
        self.query_one("#file-header", Static).update(
            build_section_header("Files", session.files.badge, len(visible_files), len(session.files))
        )
        file_list = self.query_one("#file-list", ListView)
        file_list.clear()
        file_list.mount(*[FileResultItem(entry.item) for entry in visible_files])

        self.query_one("#content-header", Static).update(
            build_section_header(
                "Content", session.content.badge, len(session.content.visible()), len(session.content)
            )
        )
        self.query_one("#content-panel", ContentPanel).show_results(session.content)

    # -- events --

    @on(Input.Changed, "#pattern-input")
    def on_pattern_changed(self, event: Input.Changed):
        self.session.set_pattern(event.value)

    @on(Input.Submitted, "#pattern-input")
    def on_pattern_submitted(self, event: Input.Submitted):
        """Trigger a search; ignored while one is already running."""
        self.session.set_pattern(event.value)
        if self.session.is_running:
            return
        if not self.session.can_search:
            if not self.session.query.get_path():
                self.notify("No project selected", severity="warning")
            return
        self._run_search()

    @on(ListView.Selected, "#project-list")
    def on_project_selected(self, event: ListView.Selected):
        if isinstance(event.item, ProjectItem):
            self.session.select_project(event.item.entry.path)

    # -- actions --

    def action_focus_pattern(self):
        self.query_one("#pattern-input", Input).focus()

    def action_toggle_regex(self):
        use_regex = not self.session.query.use_regex
        self.session.set_use_regex(use_regex)
        self.notify("Regex enabled" if use_regex else "Regex disabled", timeout=2)

    def action_cycle_extension(self):
        """Cycle through extension filters."""
        options = [None] + self.session.extensions.keys()
        if len(options) <= 1:
            return
        try:
            current_idx = options.index(self.session.active_extension)
        except ValueError:
            current_idx = 0
        self.session.on_extension_selected(options[(current_idx + 1) % len(options)])

    def action_next_project(self):
        keys = self.session.projects.keys()
        if len(keys) <= 1:
            return
        selected = self.session.projects.selected()
        current_idx = keys.index(selected.key) if selected else -1
        self.session.select_project(keys[(current_idx + 1) % len(keys)])

    def action_reload_projects(self):
        self.session.refresh_projects()

    def action_history_previous(self):
        pattern_input = self.query_one("#pattern-input", Input)
        if not pattern_input.has_focus:
            return
        text = self.session.history_previous()
        if text is not None:
            self._show_pattern(pattern_input, text)

    def action_history_next(self):
        pattern_input = self.query_one("#pattern-input", Input)
        if not pattern_input.has_focus:
            return
        self._show_pattern(pattern_input, self.session.history_next())

    def _show_pattern(self, pattern_input: Input, text: str):
        with pattern_input.prevent(Input.Changed):
            pattern_input.value = text
        pattern_input.cursor_position = len(text)
