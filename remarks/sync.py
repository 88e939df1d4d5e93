"""
One sync cycle between the local store and the remote repository.

fetch bookmarks.json -> merge into the local store -> re-read the local
tree -> render three artifacts -> push them back. Cycles must not overlap;
callers run one at a time.
"""
import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from remarks.constants import EXCHANGE_FILE, README_FILE, STRUCTURAL_FILE
from remarks.exporters import export_html, export_json, export_markdown
from remarks.filters import PathLike, format_path, is_prefix, parse_path
from remarks.flatten import folder_paths
from remarks.merge import MergeResult, merge_remote
from remarks.remote import GitHubClient, RemoteConflictError, RemoteContentError
from remarks.store import LocalStore
from remarks.tree import MalformedTreeError, load_tree

logger = logging.getLogger(__name__)

MODE_MERGE = "merge"
MODE_FIRST_SYNC = "first_sync"
MODE_RECOVERED = "recovered"


@dataclass
class SyncReport:
    """Outcome of a sync cycle."""
    mode: str
    merge: Optional[MergeResult] = None
    written: List[str] = field(default_factory=list)


def _noop(message: str):
    pass


def sync_once(store: LocalStore, client: GitHubClient,
              allowed_paths: Iterable[PathLike] = (),
              report: Callable[[str], None] = _noop) -> SyncReport:
    """
    Run a single fetch-merge-write cycle.

    A remote snapshot that is not a bookmark tree is replaced by the local
    tree instead of failing the cycle.

    Raises:
        RemoteError: if any remote request fails
    """
    report("Fetching remote bookmarks...")
    remote_tree = None
    try:
        remote = client.fetch(STRUCTURAL_FILE)
        remote_sha = remote.sha if remote else None
        if remote is not None and remote.content.strip():
            report("Merging remote changes...")
            remote_tree = load_tree(remote.content)
    except (RemoteContentError, MalformedTreeError) as e:
        if isinstance(e, RemoteContentError):
            remote_sha = e.sha
        logger.warning(f"Remote {STRUCTURAL_FILE} is not a bookmark tree: {e}")
        report("Remote file invalid/corrupt. Overwriting with local data...")
        result = SyncReport(mode=MODE_RECOVERED)
    else:
        if remote_tree is not None:
            merged = merge_remote(store, remote_tree, allowed_paths)
            report(f"Merge: {merged}")
            result = SyncReport(mode=MODE_MERGE, merge=merged)
        else:
            report("First Sync: Uploading local bookmarks...")
            result = SyncReport(mode=MODE_FIRST_SYNC)

    report("Generating updated files...")
    tree = store.get_tree()
    artifacts = [
        (STRUCTURAL_FILE, export_json(tree), remote_sha),
        (EXCHANGE_FILE, export_html(tree), None),
        (README_FILE, export_markdown(tree), None),
    ]

    report("Pushing to GitHub...")
    for filename, content, sha in artifacts:
        if sha:
            client.push(filename, content, sha=sha)
        else:
            client.push(filename, content)
        result.written.append(filename)

    report("SYNC COMPLETE!")
    return result


def run_sync(store: LocalStore, client: GitHubClient,
             allowed_paths: Iterable[PathLike] = (),
             report: Callable[[str], None] = _noop,
             conflict_retries: int = 0) -> SyncReport:
    """
    Run a sync cycle, optionally restarting it when a push hits a stale revision.

    A retry repeats the whole cycle (fetch, merge, write) so the rejected
    write is never resent with its stale revision.

    Args:
        store: Local bookmark store
        client: Remote repository client
        allowed_paths: Folder path prefixes to import; empty imports everything
        report: Callback receiving one short line per phase
        conflict_retries: Extra cycles to attempt after a conflict

    Raises:
        RemoteConflictError: if the last attempt still conflicts
        RemoteError: on any other remote failure
    """
    allowed = [parse_path(p) for p in allowed_paths]
    attempt = 0
    while True:
        try:
            return sync_once(store, client, allowed, report)
        except RemoteConflictError:
            if attempt >= conflict_retries:
                raise
            attempt += 1
            logger.warning(f"Remote changed during sync, retrying ({attempt}/{conflict_retries})")
            report("Remote changed during sync. Retrying...")


def list_remote_folders(client: GitHubClient) -> Optional[List[Tuple[str, ...]]]:
    """
    List the folder paths in the remote snapshot.

    Returns:
        Folder paths in tree order, or None if there is no snapshot yet

    Raises:
        MalformedTreeError: if the snapshot is not a bookmark tree
    """
    content = client.fetch_text(STRUCTURAL_FILE)
    if not content or not content.strip():
        return None
    return folder_paths(load_tree(content))


class UnknownFolderError(ValueError):
    """Raised when a chosen folder is not in the remote tree."""

    def __init__(self, paths: Sequence[Tuple[str, ...]],
                 available: Sequence[Tuple[str, ...]] = ()):
        self.paths = [format_path(p) for p in paths]
        # Folders whose path ends with the unknown one, e.g. "Bookmarks bar###Work" for "Work"
        self.suggestions = [
            format_path(a) for p in paths if p
            for a in available if len(a) > len(p) and tuple(a[-len(p):]) == tuple(p)
        ]
        message = f"Unknown folder: {', '.join(self.paths)}"
        if self.suggestions:
            message += f" (did you mean {', '.join(self.suggestions)}?)"
        super().__init__(message)


def select_paths(available: Sequence[Tuple[str, ...]],
                 chosen: Iterable[PathLike]) -> List[str]:
    """
    Expand chosen folders to include every folder below them.

    Args:
        available: Folder paths of the tree, in tree order
        chosen: Folders the user picked

    Returns:
        ``###``-joined paths of the selected folders, in tree order

    Raises:
        UnknownFolderError: if a chosen folder is not one of ``available``
    """
    picked = [parse_path(p) for p in chosen]
    known = {tuple(path) for path in available}
    missing = [p for p in picked if p not in known]
    if missing:
        raise UnknownFolderError(missing, available)
    return [
        format_path(path) for path in available
        if any(is_prefix(prefix, path) for prefix in picked)
    ]
