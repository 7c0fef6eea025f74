#!/usr/bin/env python3
"""omnisearch - code search client for an external search server.

Entry point for the CLI application.
"""

import argparse
import asyncio
import logging
import os
import shlex
import sys
from pathlib import Path

from .config import Settings


class PrintNotifier:
    """Notification sink for non-interactive commands."""

    def error(self, message: str, detail: str = "") -> None:
        print(f"✗ {message}", file=sys.stderr)
        if detail:
            for line in detail.splitlines():
                print(f"    {line}", file=sys.stderr)

    def info(self, message: str) -> None:
        print(message, file=sys.stderr)


def cmd_browse(args, settings: Settings):
    """Launch the TUI browser."""
    from .app import OmnisearchApp
    from .session import StaticProjectRoots

    roots = [os.path.abspath(r) for r in (args.root or [os.getcwd()])]
    app = OmnisearchApp(settings, StaticProjectRoots(roots))
    app.run()


def cmd_search(args, settings: Settings) -> int:
    """Run a single search and print the results."""
    from .backend import BackendProcess
    from .search import count_match_lines
    from .session import SearchSession, SearchStatus, StaticProjectRoots
    from .state import SessionStateStore

    store = SessionStateStore(settings.state_path)
    backend = BackendProcess(
        settings.server_command,
        startup_timeout=settings.startup_timeout,
        request_timeout=settings.request_timeout,
    )
    session = SearchSession.deserialize(
        store.load(), backend, StaticProjectRoots([os.path.abspath(args.root)]), PrintNotifier()
    )
    session.refresh_projects()
    session.set_pattern(args.pattern)
    session.set_use_regex(args.regex)

    async def run() -> bool:
        try:
            if not await session.start():
                return False
            await session.trigger_search()
            return session.status is SearchStatus.SUCCESS
        finally:
            session.close()
            await backend.aclose()

    ok = asyncio.run(run())
    store.save(session.serialize())
    if not ok:
        return 1

    if args.ext:
        session.on_extension_selected(args.ext)

    files = session.files.visible()
    content = session.content.visible()
    print(f"Files ({session.files.badge}):")
    for entry in files[:args.limit]:
        print(f"  [{entry.ext}] {entry.path}")
    if len(files) > args.limit:
        print(f"  ... {len(files) - args.limit} more")
    print()
    print(f"Content ({session.content.badge}):")
    for entry in content[:args.limit]:
        print(f"  [{entry.ext}] {entry.path} ({count_match_lines(entry.item)} lines)")
        for match in entry.item.matches:
            for line in match.lines:
                if line.is_match:
                    print(f"      {line.num:>6}: {(line.before_bytes or '') + line.bytes + (line.after_bytes or '')}")
    if len(content) > args.limit:
        print(f"  ... {len(content) - args.limit} more")
    print()
    print(session.status_text)
    return 0


def cmd_history(args, settings: Settings):
    """Show persisted search history."""
    from .history import History
    from .state import SessionStateStore

    state = SessionStateStore(settings.state_path).load() or {}
    history = History.deserialize(state.get("history"))
    if not len(history):
        print("No search history found.")
        return

    print("Recent Searches")
    print("=" * 60)
    for i, pattern in enumerate(reversed(history.entries()[-args.limit:]), 1):
        print(f"{i:>4}  {pattern}")


def cmd_state(args, settings: Settings):
    """Manage the session state file."""
    from .state import SessionStateStore

    store = SessionStateStore(settings.state_path)
    if args.action == "clear":
        if store.clear():
            print(f"Cleared session state: {store.path}")
        else:
            print("No session state found.")
    elif args.action == "info":
        info = store.info()
        print("Session state:")
        print(f"  Path: {info['path']}")
        if info["exists"]:
            print(f"  History entries: {info['history_entries']}")
            print(f"  Size: {info['size'] / 1024:.1f} KB")
        else:
            print("  Status: not found")


def main():
    """Main entry point for omnisearch CLI."""
    parser = argparse.ArgumentParser(
        description="Search project roots through an external search server",
        prog="omnisearch",
    )
    parser.add_argument("--version", "-v", action="store_true", help="Show version")
    parser.add_argument("--server", "-s", help="Search server command (overrides OMNISEARCH_SERVER)")
    parser.add_argument("--log-file", help="Write debug logs to this file")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    browse_parser = subparsers.add_parser("browse", help="Launch TUI browser (default)")
    browse_parser.add_argument("--root", "-r", action="append", help="Project root (repeatable)")

    search_parser = subparsers.add_parser("search", help="Run one search and print results")
    search_parser.add_argument("pattern", help="Search pattern")
    search_parser.add_argument("--root", "-r", default=".", help="Directory to search")
    search_parser.add_argument("--regex", "-e", action="store_true", help="Interpret pattern as regex")
    search_parser.add_argument("--ext", "-x", help="Only show results with this extension")
    search_parser.add_argument("--limit", "-l", type=int, default=20, help="Max entries per section")

    history_parser = subparsers.add_parser("history", help="Show search history")
    history_parser.add_argument("--limit", "-l", type=int, default=20, help="Max entries to show")

    state_parser = subparsers.add_parser("state", help="Manage saved session state")
    state_parser.add_argument("action", choices=["clear", "info"], help="State action")

    args = parser.parse_args()

    if args.version:
        from . import __version__
        print(f"omnisearch {__version__}")
        return

    if args.log_file:
        logging.basicConfig(
            filename=Path(args.log_file).expanduser(),
            level=logging.DEBUG,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )

    settings = Settings.from_env()
    if args.server:
        settings.server_command = shlex.split(args.server)

    if args.command == "search":
        sys.exit(cmd_search(args, settings))
    elif args.command == "history":
        cmd_history(args, settings)
    elif args.command == "state":
        cmd_state(args, settings)
    elif args.command == "browse":
        cmd_browse(args, settings)
    else:
        cmd_browse(argparse.Namespace(root=None), settings)


if __name__ == "__main__":
    main()
