"""CSS styles for the omnisearch TUI."""

APP_CSS = """
Screen {
    layout: horizontal;
}

#left-container {
    width: 40%;
    height: 100%;
}

#project-container {
    height: auto;
    max-height: 30%;
    border: solid $primary;
}

#project-list {
    height: auto;
    max-height: 100%;
}

#pattern-input {
    height: 3;
    border: solid $warning;
    padding: 0 1;
}

#status-bar, #extension-bar {
    height: 1;
    padding: 0 1;
    background: $surface;
}

#extension-bar.hidden {
    display: none;
}

#file-container {
    height: 1fr;
    border: solid $secondary;
}

#file-list {
    height: 1fr;
}

#content-container {
    width: 60%;
    height: 100%;
    border: solid $secondary;
}

#content-panel {
    height: 1fr;
    overflow-y: auto;
    padding: 0 1;
    scrollbar-gutter: stable;
}

.list-header {
    height: auto;
    background: $surface;
    padding: 0 1;
}

ProjectItem, FileResultItem {
    height: 1;
    padding: 0 1;
}

ProjectItem:hover, FileResultItem:hover {
    background: $surface-lighten-1;
}

ListView:focus > ListItem.-active {
    background: $primary-darken-1;
}

#status-bar.running {
    color: $warning;
}

#status-bar.error {
    color: $error;
}

Footer {
    background: $surface;
}
"""
