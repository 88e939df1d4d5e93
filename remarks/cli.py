#!/usr/bin/env python3
"""
ReMarks - sync browser-style bookmarks with a GitHub repository.

Command-line interface: run sync cycles, pick which remote folders to
import, and move bookmarks in and out of the local store.
"""
import sys
import argparse
import json
import logging
from dataclasses import asdict
from pathlib import Path
from typing import List

from rich.console import Console
from rich.markup import escape
from rich.tree import Tree

from remarks.config import ConfigurationError, RemarksConfig, init_config, get_config
from remarks.constants import PATH_SEPARATOR
from remarks.db import get_db
from remarks.exporters import export_file
from remarks.filters import parse_path
from remarks.importers import import_file
from remarks.remote import GitHubClient
from remarks.sync import list_remote_folders, run_sync, select_paths
from remarks.tree import Folder, Node, count_nodes

logger = logging.getLogger(__name__)


console = Console()
# Progress goes here when stdout carries JSON
err_console = Console(stderr=True)


def make_client(config: RemarksConfig) -> GitHubClient:
    """Build a repository client from the configuration."""
    return GitHubClient(
        config.credentials(),
        timeout=config.timeout,
        user_agent=config.user_agent,
        commit_message=config.commit_message,
    )


def log(message: str, target: Console = console):
    """Print one progress line."""
    target.print(f"> {escape(message)}")


def build_tree(nodes: List[Node], branch: Tree) -> Tree:
    """Add nodes to a rich tree for display."""
    for node in nodes:
        if isinstance(node, Folder):
            build_tree(node.children, branch.add(f"[bold]{escape(node.title or 'Untitled')}[/bold]"))
        else:
            branch.add(f"{escape(node.title or node.url)} [dim]{escape(node.url)}[/dim]")
    return branch


def cmd_sync(args):
    """Run one sync cycle."""
    config = get_config()
    client = make_client(config)
    db = get_db(config.database)

    progress = err_console if args.output == "json" else console
    retries = args.retries if args.retries is not None else config.conflict_retries
    log("Starting Sync...", progress)
    report = run_sync(
        db, client,
        allowed_paths=config.selected_paths,
        report=lambda message: log(message, progress),
        conflict_retries=retries,
    )

    if args.output == "json":
        print(json.dumps({
            "mode": report.mode,
            "merge": asdict(report.merge) if report.merge else None,
            "written": report.written,
        }, indent=2))


def cmd_folders(args):
    """List the folders of the remote snapshot."""
    config = get_config()
    paths = list_remote_folders(make_client(config))
    if paths is None:
        console.print("[yellow]Repo is empty or file is blank. Please Sync first.[/yellow]")
        return

    selected = {parse_path(p) for p in config.selected_paths}
    if args.output == "json":
        print(json.dumps([list(p) for p in paths], indent=2))
        return

    root = Tree("[bold]Remote folders[/bold]")
    branches = {(): root}
    for path in paths:
        mark = "[green]✓[/green] " if path in selected else ""
        parent = branches.get(path[:-1], root)
        branches[path] = parent.add(f"{mark}{escape(path[-1] or 'Untitled')}")
    console.print(root)


def cmd_select(args):
    """Choose the remote folders to import."""
    config = get_config()

    if args.clear:
        config.selected_paths = []
    elif not args.paths:
        console.print("[red]Name at least one folder, or use --clear to import all folders[/red]")
        sys.exit(1)
    else:
        chosen = [p.replace("/", PATH_SEPARATOR) if args.slash else p for p in args.paths]
        try:
            available = list_remote_folders(make_client(config))
        except ConfigurationError:
            available = None
        if available:
            # Raises UnknownFolderError before anything is saved
            config.selected_paths = select_paths(available, chosen)
        else:
            config.selected_paths = chosen

    config.save(["selected_paths"])
    if not config.selected_paths:
        console.print("[green]Importing all folders[/green]")
    for path in config.selected_paths:
        console.print(f"[green]Selected {escape(' / '.join(parse_path(path)))}[/green]")


def cmd_import(args):
    """Import bookmarks into the local store."""
    db = get_db(get_config().database)
    result = import_file(db, Path(args.file), args.format)
    console.print(f"[green]Imported {escape(args.file)}: {result}[/green]")


def cmd_export(args):
    """Export the local tree to a file."""
    db = get_db(get_config().database)
    tree = db.get_tree()
    export_file(tree, Path(args.file), args.format)
    links, folders = count_nodes(tree)
    console.print(f"[green]Exported {links} links in {folders} folders to {escape(args.file)}[/green]")


def cmd_tree(args):
    """Print the local tree."""
    db = get_db(get_config().database)
    console.print(build_tree(db.roots(), Tree("[bold]Bookmarks[/bold]")))


def cmd_config(args):
    """Manage configuration."""
    config = get_config()

    if args.action == "show":
        if args.key:
            if not hasattr(config, args.key):
                console.print(f"[red]Unknown config key: {escape(args.key)}[/red]")
                sys.exit(1)
            print(getattr(config, args.key))
        else:
            data = asdict(config)
            if data["token"]:
                data["token"] = "********"
            print(json.dumps(data, indent=2))

    elif args.action == "set":
        if args.key is None or args.value is None:
            console.print("[red]Usage: remarks config set KEY VALUE[/red]")
            sys.exit(1)
        config.set(args.key, args.value)
        config.save([args.key])
        console.print(f"[green]Set {escape(args.key)}[/green]")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="remarks",
        description="ReMarks: sync bookmarks with a GitHub repository",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  remarks config set user octocat
  remarks config set repo bookmarks
  remarks config set token ghp_...
  remarks import chrome ~/.config/google-chrome/Default/Bookmarks
  remarks folders
  remarks select "Bookmarks bar###Work"
  remarks sync

Configuration:
  Config file: ~/.config/remarks/config.toml
  Environment: REMARKS_USER, REMARKS_REPO, REMARKS_TOKEN, REMARKS_SELECTED_PATHS
        """
    )

    parser.add_argument("--db", help="Database file")
    parser.add_argument("--config", help="Config file path")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show log messages")
    parser.add_argument("-o", "--output", choices=["text", "json"], default="text",
                        help="Output format")

    subparsers = parser.add_subparsers(dest="command", required=True, help="Commands")

    sync_parser = subparsers.add_parser("sync", help="Merge the remote snapshot and push the local tree")
    sync_parser.add_argument("--retries", type=int,
                             help="Restart the cycle this many times if the remote changes mid-sync")
    sync_parser.set_defaults(func=cmd_sync)

    folders_parser = subparsers.add_parser("folders", help="List folders in the remote snapshot")
    folders_parser.set_defaults(func=cmd_folders)

    select_parser = subparsers.add_parser("select", help="Choose remote folders to import")
    select_parser.add_argument("paths", nargs="*", help="Folder paths, titles joined with ###")
    select_parser.add_argument("--slash", action="store_true", help="Paths use / between titles")
    select_parser.add_argument("--clear", action="store_true", help="Import all folders")
    select_parser.set_defaults(func=cmd_select)

    import_parser = subparsers.add_parser("import", help="Import bookmarks into the local store")
    import_parser.add_argument("format", choices=["chrome", "html", "json"], help="Input format")
    import_parser.add_argument("file", help="Input file")
    import_parser.set_defaults(func=cmd_import)

    export_parser = subparsers.add_parser("export", help="Export the local tree")
    export_parser.add_argument("format", choices=["json", "html", "markdown"], help="Output format")
    export_parser.add_argument("file", help="Output file")
    export_parser.set_defaults(func=cmd_export)

    tree_parser = subparsers.add_parser("tree", help="Show the local tree")
    tree_parser.set_defaults(func=cmd_tree)

    config_parser = subparsers.add_parser("config", help="Configuration management")
    config_parser.add_argument("action", choices=["show", "set"], help="Config action")
    config_parser.add_argument("key", nargs="?", help="Config key")
    config_parser.add_argument("value", nargs="?", help="Config value (for set)")
    config_parser.set_defaults(func=cmd_config)

    return parser


def main(argv=None):
    """Main entry point."""
    args = build_parser().parse_args(argv)

    config = init_config(
        database=args.db,
        config_file=Path(args.config) if args.config else None,
    )
    logging.basicConfig(
        level=logging.INFO if args.verbose else config.log_level.upper(),
        format="%(levelname)s: %(message)s",
    )

    try:
        args.func(args)
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted[/yellow]")
        sys.exit(130)
    except Exception as e:
        logger.debug("Command failed", exc_info=True)
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
