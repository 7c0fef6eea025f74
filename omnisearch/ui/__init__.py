"""UI components for omnisearch."""

from .widgets import (
    ContentPanel,
    FileResultItem,
    ProjectItem,
    build_content_text,
    build_extension_bar,
    build_section_header,
)
from .styles import APP_CSS

__all__ = [
    "ContentPanel",
    "FileResultItem",
    "ProjectItem",
    "build_content_text",
    "build_extension_bar",
    "build_section_header",
    "APP_CSS",
]
