"""
In-memory bookmark tree model for ReMarks.

The tree mirrors the shape returned by the browser bookmarks API: a
synthetic root (id "0") wrapping the named root collections, each holding
folders and links. Everything inside ReMarks works on the list of
top-level roots; the synthetic root is stripped once when a tree enters
the system and re-added only when writing the structural snapshot.
"""
import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union

from remarks.constants import GITHUB_API_URL, SYNTHETIC_ROOT_ID


class MalformedTreeError(Exception):
    """Raised when text or data cannot be decoded as a bookmark tree."""
    pass


@dataclass
class Link:
    """A single bookmark."""
    id: str
    title: str
    url: str
    date_added: Optional[int] = None


@dataclass
class Folder:
    """A bookmark folder holding links and other folders, in order."""
    id: str
    title: str
    children: List[Union["Folder", Link]] = field(default_factory=list)
    date_added: Optional[int] = None


Node = Union[Folder, Link]


@dataclass(frozen=True)
class FlatRecord:
    """A link together with the titles of the folders above it."""
    title: str
    url: str
    path: Tuple[str, ...] = ()


@dataclass(frozen=True)
class SyncCredentials:
    """Credentials for the remote repository. Opaque to the sync core."""
    user: str
    repo: str
    token: str
    branch: Optional[str] = None
    api_url: str = GITHUB_API_URL


@dataclass
class RemoteArtifact:
    """A file in the remote repository and the revision it was read at."""
    path: str
    content: str
    sha: Optional[str] = None


def is_synthetic_root(node: Any) -> bool:
    """True for the wrapper node that groups the named root collections."""
    return isinstance(node, Folder) and node.id == SYNTHETIC_ROOT_ID


def is_folder(node: Any) -> bool:
    return isinstance(node, Folder)


def is_link(node: Any) -> bool:
    return isinstance(node, Link)


def strip_synthetic_root(nodes: List[Node]) -> List[Node]:
    """
    Return the top-level roots of a tree.

    Any synthetic root in ``nodes`` is replaced by its children; other
    nodes are kept in place.
    """
    roots = []
    for node in nodes:
        if is_synthetic_root(node):
            roots.extend(strip_synthetic_root(node.children))
        else:
            roots.append(node)
    return roots


def wrap_roots(roots: List[Node]) -> Folder:
    """Wrap top-level roots in a synthetic root node."""
    return Folder(id=SYNTHETIC_ROOT_ID, title="", children=list(roots))


def node_from_dict(data: Dict[str, Any]) -> Optional[Node]:
    """
    Decode one node (and its descendants) from the browser API dict shape.

    A dict with a ``url`` is a link, one with ``children`` is a folder.
    Anything else (a separator, or a link whose url is empty) decodes to
    None and is left out of its parent.

    Raises:
        MalformedTreeError: if the data is not a node
    """
    if not isinstance(data, dict):
        raise MalformedTreeError(f"Expected a bookmark node, got {type(data).__name__}")

    node_id = str(data.get("id", ""))
    title = data.get("title") or ""
    if not isinstance(title, str):
        raise MalformedTreeError(f"Node {node_id!r} has a non-string title")
    date_added = data.get("dateAdded")

    if data.get("url"):
        return Link(id=node_id, title=title, url=str(data["url"]), date_added=date_added)

    children = data.get("children")
    if isinstance(children, list):
        return Folder(
            id=node_id,
            title=title,
            children=_nodes_from_list(children),
            date_added=date_added,
        )

    return None


def _nodes_from_list(items: List[Any]) -> List[Node]:
    nodes = (node_from_dict(item) for item in items)
    return [node for node in nodes if node is not None]


def node_to_dict(node: Node, parent_id: Optional[str] = None,
                 index: Optional[int] = None) -> Dict[str, Any]:
    """Encode a node (and its descendants) in the browser API dict shape."""
    data: Dict[str, Any] = {"id": node.id, "title": node.title}
    if parent_id is not None:
        data["parentId"] = parent_id
    if index is not None:
        data["index"] = index
    if node.date_added is not None:
        data["dateAdded"] = node.date_added

    if isinstance(node, Link):
        data["url"] = node.url
    else:
        data["children"] = [
            node_to_dict(child, parent_id=node.id, index=i)
            for i, child in enumerate(node.children)
        ]
    return data


def tree_from_data(data: Any) -> List[Node]:
    """
    Decode a structural snapshot (a list of nodes or a single node) and
    return its top-level roots.
    """
    if isinstance(data, dict):
        data = [data]
    if not isinstance(data, list):
        raise MalformedTreeError(f"Expected a list of bookmark nodes, got {type(data).__name__}")
    return strip_synthetic_root(_nodes_from_list(data))


def load_tree(text: str) -> List[Node]:
    """
    Parse structural JSON text into top-level roots.

    Raises:
        MalformedTreeError: if the text is not JSON or not a bookmark tree
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedTreeError(f"Invalid JSON: {e}") from e
    return tree_from_data(data)


def count_nodes(tree: List[Node]) -> Tuple[int, int]:
    """Count (links, folders) in a tree, not counting the synthetic root."""
    links = 0
    folders = 0
    for node in tree:
        if is_synthetic_root(node):
            sub_links, sub_folders = count_nodes(node.children)
        elif isinstance(node, Folder):
            sub_links, sub_folders = count_nodes(node.children)
            sub_folders += 1
        else:
            sub_links, sub_folders = 1, 0
        links += sub_links
        folders += sub_folders
    return links, folders
