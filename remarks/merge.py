"""
Remote-to-local merge for ReMarks.

Adds the links of a remote tree that the local store does not have yet.
The merge is strictly additive: existing folders and links are left
exactly as they are.
"""
import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional

from remarks.filters import PathLike, is_allowed, parse_path
from remarks.flatten import flatten
from remarks.paths import PathResolver
from remarks.store import LocalStore
from remarks.tree import Node

logger = logging.getLogger(__name__)


@dataclass
class MergeResult:
    """Counts from one merge."""
    added: int = 0
    skipped: int = 0  # rejected by the allow-list
    duplicates: int = 0  # url already present locally

    def __str__(self):
        return f"+{self.added} added, {self.skipped} filtered, {self.duplicates} already present"


def merge_remote(store: LocalStore, remote_tree: List[Node],
                 allowed_paths: Iterable[PathLike] = (),
                 resolver: Optional[PathResolver] = None) -> MergeResult:
    """
    Merge the links of ``remote_tree`` into ``store``.

    A link is a duplicate if any local link has the same url (exact string
    match), wherever it is filed. Missing links are created under their
    remote folder path, creating folders as needed.

    Args:
        store: Local bookmark store
        remote_tree: Remote tree (with or without the synthetic root)
        allowed_paths: Folder path prefixes to import; empty imports everything
        resolver: Path resolver to use (defaults to one over ``store``)

    Returns:
        Counts of added, filtered, and duplicate links
    """
    allowed = [parse_path(p) for p in allowed_paths]
    resolver = resolver or PathResolver(store)
    result = MergeResult()

    for record in flatten(remote_tree):
        if not record.url:
            continue

        if not is_allowed(record.path, allowed):
            result.skipped += 1
            continue

        if store.search_url(record.url):
            result.duplicates += 1
            continue

        parent_id = resolver.ensure_path(record.path)
        store.create_link(parent_id, record.title, record.url)
        result.added += 1
        logger.debug(f"Added {record.url} under {'/'.join(record.path) or '(root)'}")

    logger.info(f"Merge: {result}")
    return result
