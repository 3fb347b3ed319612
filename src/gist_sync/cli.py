"""Command line front-end for gist-sync.

Subcommands mirror the lifecycle of a file group: ``config`` saves the
GitHub token, ``create`` uploads a new group, ``list`` shows the stored
groups, ``watch`` keeps groups in sync until interrupted, ``sync`` runs one
pass, and ``remove`` deletes a group and its gist.

Command output goes to stdout; logs and errors go to stderr.
"""

from __future__ import annotations

import argparse
import asyncio
import getpass
import json
import logging
import signal
import sys

from dotenv import load_dotenv

from gist_sync import __version__
from gist_sync.config import Settings, load_settings, require_token
from gist_sync.config_loader import load_hierarchical_config
from gist_sync.config_schema import FileGroup, UnifiedConfig, build_config
from gist_sync.core.client import GistClient
from gist_sync.exceptions import GistSyncError
from gist_sync.groups import create_group, remove_group
from gist_sync.logger import setup_logging
from gist_sync.store import GroupStore
from gist_sync.sync.merger import RemoteMergeEngine
from gist_sync.sync.reporter import (
    format_group_listing,
    format_sync_report,
    report_to_json,
)
from gist_sync.sync.scheduler import SyncScheduler

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gist-sync",
        description="gist-sync - keep groups of local files in sync with GitHub Gists",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Save a GitHub token (needs the "gist" scope)
  gist-sync config ghp_xxx

  # Create a group from two files and a folder
  gist-sync create dotfiles -f ~/.bashrc -f ~/.vimrc -d ~/.config/nvim

  # Watch every group continuously
  gist-sync watch

  # Check two groups every 5 minutes instead
  gist-sync watch --interval 5 dotfiles notes

  # Push pending changes once and exit
  gist-sync sync dotfiles
        """,
    )
    parser.add_argument(
        "--token",
        help="GitHub token (takes precedence over GITHUB_TOKEN, config files "
        "and the saved token)",
    )
    parser.add_argument(
        "--api-url",
        help="GitHub API base URL (default: https://api.github.com)",
    )
    parser.add_argument(
        "--store",
        help="Group store file (default: ~/.gist-sync-config.json)",
    )
    parser.add_argument(
        "--debug", action="store_true", help="Enable debug logging"
    )
    parser.add_argument("--log-file", help="Also append logs to this file")
    parser.add_argument(
        "--log-format",
        choices=["text", "json"],
        help="Log record format (default: text)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"gist-sync version {__version__}",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    p_config = sub.add_parser("config", help="Configure GitHub token")
    p_config.add_argument(
        "token_value",
        nargs="?",
        metavar="TOKEN",
        help="Token to save (prompted for if omitted)",
    )
    p_config.add_argument(
        "--validate",
        action="store_true",
        help="Check the token against GitHub before saving it",
    )

    p_create = sub.add_parser("create", help="Create a new file group")
    p_create.add_argument("name", help="Group name")
    p_create.add_argument(
        "-f",
        "--file",
        dest="files",
        action="append",
        default=[],
        help="File to watch (repeatable)",
    )
    p_create.add_argument(
        "-d",
        "--folder",
        dest="folders",
        action="append",
        default=[],
        help="Folder to watch recursively (repeatable)",
    )
    p_create.add_argument("--description", help="Gist description")

    sub.add_parser("list", help="List all file groups")

    p_watch = sub.add_parser("watch", help="Start watching file groups")
    p_watch.add_argument(
        "groups", nargs="*", help="Groups to watch (default: all)"
    )
    p_watch.add_argument(
        "-i",
        "--interval",
        type=float,
        metavar="MINUTES",
        help="Check for changes every N minutes instead of watching continuously",
    )

    p_sync = sub.add_parser("sync", help="Push pending changes once")
    p_sync.add_argument("name", help="Group name")
    p_sync.add_argument(
        "--json", action="store_true", help="Print the report as JSON"
    )

    p_remove = sub.add_parser("remove", help="Remove a file group")
    p_remove.add_argument("name", help="Group name")

    return parser


def _load_settings(
    args: argparse.Namespace, unified: UnifiedConfig
) -> tuple[Settings, GroupStore]:
    settings = load_settings(
        token=args.token,
        api_url=args.api_url,
        store_path=args.store,
        debug=args.debug,
        unified=unified,
    )
    store = GroupStore(settings.store_path)
    if not settings.token:
        settings.token = store.get_token()
    return settings, store


def _engine(settings: Settings) -> RemoteMergeEngine:
    require_token(settings)
    return RemoteMergeEngine(GistClient(settings))


def _require_group(store: GroupStore, name: str) -> FileGroup:
    group = store.get_group(name)
    if group is None:
        raise ValueError(f"Group {name} not found")
    return group


# ----------------------------------------------------------------------
# Commands
# ----------------------------------------------------------------------


def cmd_config(
    args: argparse.Namespace, settings: Settings, store: GroupStore
) -> int:
    token = args.token_value or args.token or getpass.getpass(
        "Enter your GitHub personal access token: "
    )
    token = token.strip()
    if not token:
        raise ValueError("Token cannot be empty")
    if args.validate:
        settings.token = token
        login = GistClient(settings).validate_token()
        print(f"Authenticated as {login}")
    store.set_token(token)
    print("GitHub token configured successfully!")
    return 0


def cmd_create(
    args: argparse.Namespace, settings: Settings, store: GroupStore
) -> int:
    group = FileGroup(
        name=args.name.strip(),
        description=args.description or None,
        files=args.files,
        folders=args.folders,
    )
    created = create_group(store, _engine(settings), group)
    print(f'Group "{created.name}" created successfully!')
    print(f"Gist ID: {created.gist_id}")
    return 0


def cmd_list(
    args: argparse.Namespace, settings: Settings, store: GroupStore
) -> int:
    groups = store.list_groups()
    if not groups:
        print("No groups configured.")
        return 0

    engine = _engine(settings)
    print("Configured groups:")
    for group in groups:
        metadata = None
        if group.gist_id:
            try:
                metadata = engine.get_metadata(group.gist_id, group.name)
            except GistSyncError as exc:
                logger.error(
                    "Error fetching gist metadata for %s: %s", group.name, exc
                )
        print()
        print(format_group_listing(group, metadata))
    return 0


def cmd_sync(
    args: argparse.Namespace, settings: Settings, store: GroupStore
) -> int:
    group = _require_group(store, args.name)
    scheduler = SyncScheduler(
        _engine(settings), store, debounce_seconds=settings.debounce_seconds
    )
    report = asyncio.run(scheduler.sync_now(group))
    if args.json:
        print(json.dumps(report_to_json(report), indent=2))
    else:
        print(format_sync_report(report))
    return 0 if report.success else 1


async def _watch(
    scheduler: SyncScheduler,
    groups: list[FileGroup],
    interval: float | None,
) -> int:
    started = 0
    for group in groups:
        try:
            report = await scheduler.start(group, interval_minutes=interval)
        except (GistSyncError, ValueError) as exc:
            logger.error(
                "Error setting up watching for group %s: %s", group.name, exc
            )
            continue
        started += 1
        if report.pushed:
            print(format_sync_report(report))
        print(f"Started watching group: {group.name}")

    if not started:
        scheduler.dispose_all()
        print("No groups are being watched.", file=sys.stderr)
        return 1

    mode = (
        f"checking every {interval:g} minutes"
        if interval
        else "watching continuously"
    )
    print(f"\nFiles are being monitored ({mode})... Press Ctrl+C to stop.")

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except (NotImplementedError, RuntimeError):
            # Not supported on this platform; KeyboardInterrupt still works
            pass

    try:
        await stop_event.wait()
    finally:
        scheduler.dispose_all()
        await scheduler.drain()
        print("\nStopped monitoring all groups.")
    return 0


def cmd_watch(
    args: argparse.Namespace, settings: Settings, store: GroupStore
) -> int:
    stored = store.list_groups()
    if not stored:
        print("No groups configured. Create a group first.")
        return 0
    if args.groups:
        groups = [_require_group(store, name) for name in args.groups]
    else:
        groups = stored

    scheduler = SyncScheduler(
        _engine(settings), store, debounce_seconds=settings.debounce_seconds
    )
    return asyncio.run(_watch(scheduler, groups, args.interval))


def cmd_remove(
    args: argparse.Namespace, settings: Settings, store: GroupStore
) -> int:
    group = _require_group(store, args.name)
    engine = _engine(settings) if group.gist_id else None
    if engine is None:
        store.remove_group(group.name)
    else:
        remove_group(store, engine, group.name)
    print(f'Group "{group.name}" removed successfully!')
    return 0


_COMMANDS = {
    "config": cmd_config,
    "create": cmd_create,
    "list": cmd_list,
    "watch": cmd_watch,
    "sync": cmd_sync,
    "remove": cmd_remove,
}


def main(argv: list[str] | None = None) -> int:
    """Parse *argv*, run the chosen command, and return an exit status."""
    parser = build_parser()
    args = parser.parse_args(argv)

    load_dotenv()
    try:
        unified = build_config(load_hierarchical_config())
        setup_logging(
            debug=args.debug,
            log_file=args.log_file or unified.logging.file,
            debug_format=args.log_format or unified.logging.format,
            level=unified.logging.level,
        )
        settings, store = _load_settings(args, unified)
        return _COMMANDS[args.command](args, settings, store)
    except (GistSyncError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


def run() -> None:
    """Console script entry point."""
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(0)


if __name__ == "__main__":
    run()
