"""
Tree flattening for ReMarks.

Turns a bookmark tree into a flat list of links, each carrying the titles
of the folders above it.
"""
from typing import List, Tuple

from remarks.tree import FlatRecord, Folder, Link, Node, is_synthetic_root


def flatten(tree: List[Node], path: Tuple[str, ...] = ()) -> List[FlatRecord]:
    """
    Flatten a tree depth-first, in pre-order.

    A link's path holds the folders above it, never its own title. The
    synthetic root does not contribute a path segment.

    Args:
        tree: Top-level nodes (with or without the synthetic root)
        path: Folder titles above ``tree``

    Returns:
        One record per link, in document order
    """
    records = []
    for node in tree:
        if is_synthetic_root(node):
            records.extend(flatten(node.children, path))
        elif isinstance(node, Link):
            records.append(FlatRecord(title=node.title, url=node.url, path=path))
        elif isinstance(node, Folder):
            records.extend(flatten(node.children, path + (node.title,)))
    return records


def folder_paths(tree: List[Node], path: Tuple[str, ...] = ()) -> List[Tuple[str, ...]]:
    """List the full title path of every folder, in pre-order."""
    paths = []
    for node in tree:
        if is_synthetic_root(node):
            paths.extend(folder_paths(node.children, path))
        elif isinstance(node, Folder):
            current = path + (node.title,)
            paths.append(current)
            paths.extend(folder_paths(node.children, current))
    return paths
