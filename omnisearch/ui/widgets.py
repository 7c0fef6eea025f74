"""UI widgets for the omnisearch TUI."""

from typing import Optional

from rich.text import Text
from textual.app import ComposeResult
from textual.containers import ScrollableContainer
from textual.widgets import ListItem, Static

from ..models import AFTER, BEFORE, ContentItem, FileItem
from ..search import count_match_lines
from ..session import ExtensionChip, ProjectEntry, ResultList


def truncate(text: str, max_len: int = 100) -> str:
    """Truncate text with ellipsis."""
    if len(text) <= max_len:
        return text
    return text[:max_len - 3] + "..."


class ProjectItem(ListItem):
    """List item for a project root, kept for as long as its entry lives."""

    def __init__(self, entry: ProjectEntry):
        super().__init__()
        self.entry = entry
        self._static: Optional[Static] = None

    def compose(self) -> ComposeResult:
        self._static = Static(self._build_text())
        yield self._static

    def refresh_text(self):
        """Redraw after the entry's selection changed."""
        if self._static:
            self._static.update(self._build_text())

    def _build_text(self) -> Text:
        text = Text()
        if self.entry.selected:
            text.append("▶ ", style="bold cyan")
            text.append(self.entry.path, style="bold")
        else:
            text.append("  ")
            text.append(self.entry.path, style="dim")
        return text


def pending_mounts(entries: list[ProjectEntry]) -> list[tuple[ProjectEntry, Optional[ProjectItem]]]:
    """Entries without a widget, each paired with the bound widget it goes before.

    None means append at the end. Mounting in the returned order keeps the
    list view in the same order as ``entries``.
    """
    pending = []
    next_widget = None
    for entry in reversed(entries):
        if entry.widget is None:
            pending.append((entry, next_widget))
        else:
            next_widget = entry.widget
    pending.reverse()
    return pending


class FileResultItem(ListItem):
    """List item for a file name match."""

    def __init__(self, item: FileItem):
        super().__init__()
        self.item = item

    def compose(self) -> ComposeResult:
        text = Text()
        text.append(f"{self.item.ext or '?':<6}", style="yellow")
        text.append(" │ ", style="dim")
        text.append(self.item.path)
        yield Static(text)


def build_extension_bar(chips: list[ExtensionChip]) -> Text:
    """Filter bar text, the active chip highlighted."""
    text = Text()
    text.append("Filter: ", style="dim")
    active = any(chip.selected for chip in chips)
    text.append("[●All] " if not active else "[○All] ", style="bold cyan" if not active else "dim")
    for chip in chips:
        if chip.selected:
            text.append(f"[●{chip.ext}] ", style="bold yellow")
        else:
            text.append(f"[○{chip.ext}] ", style="dim")
    return text


def build_section_header(title: str, badge: str, shown: int, total: int) -> str:
    """Markup for a result section header with its count badge."""
    if shown != total:
        return f"[bold]{title}[/] [reverse] {badge} [/] [dim]({shown} shown)[/]"
    return f"[bold]{title}[/] [reverse] {badge} [/]"


def build_content_text(item: ContentItem) -> Text:
    """Render a content match block: header plus numbered lines."""
    text = Text()
    text.append(f"{item.ext or '?'} ", style="bold yellow")
    text.append(item.path, style="bold underline")
    text.append(f"  ({count_match_lines(item)} lines)\n", style="dim")

    for i, match in enumerate(item.matches):
        if i > 0:
            text.append("  ┄┄┄\n", style="dim")
        for line in match.lines:
            text.append(f"{line.num:>6} ", style="dim" if line.kind in (BEFORE, AFTER) else "bold")
            if line.kind == BEFORE:
                text.append("› ", style="green")
            elif line.kind == AFTER:
                text.append("‹ ", style="yellow")
            else:
                text.append("● ", style="bold cyan")

            if line.has_range:
                text.append(line.before_bytes)
                text.append(line.bytes, style="bold black on yellow")
                text.append(line.after_bytes)
            else:
                text.append(line.bytes, style="dim" if not line.is_match else "")
            if line.truncated:
                text.append(" …", style="dim")
            text.append("\n")
    return text


class ContentPanel(ScrollableContainer, can_focus=True):
    """Scrollable panel with one block per content match."""

    def show_results(self, results: ResultList[ContentItem]):
        """Replace the displayed blocks with the visible entries."""
        for child in list(self.children):
            child.remove()
        visible = results.visible()
        if not visible:
            self.mount(Static(Text("No content matches", style="dim")))
            return
        self.mount(*[Static(build_content_text(entry.item), markup=False) for entry in visible])

    def clear_display(self):
        for child in list(self.children):
            child.remove()
        self.mount(Static(Text("Type a pattern and press Enter to search", style="dim")))
