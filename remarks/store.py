"""
Local bookmark store interface for ReMarks.

The sync core talks to the local bookmarks through the narrow interface of
the browser bookmarks API: read the tree, search by url, create folders and
links, list a folder's children. ``MemoryStore`` keeps everything in a
plain in-memory tree; ``remarks.db.Database`` persists it with SQLAlchemy.
"""
import copy
import itertools
import time
from typing import Dict, List, Optional

from remarks.constants import RESERVED_ROOTS, SYNTHETIC_ROOT_ID
from remarks.tree import Folder, Link, Node, strip_synthetic_root, wrap_roots


class LocalStore:
    """Base class for local bookmark stores."""

    def get_tree(self) -> List[Node]:
        """Return the full tree: the synthetic root wrapping the named roots."""
        raise NotImplementedError

    def search_url(self, url: str) -> List[Link]:
        """Return every link whose url equals ``url`` exactly."""
        raise NotImplementedError

    def create_folder(self, parent_id: str, title: str) -> Folder:
        """Create an empty folder at the end of ``parent_id``'s children."""
        raise NotImplementedError

    def create_link(self, parent_id: str, title: str, url: str) -> Link:
        """Create a link at the end of ``parent_id``'s children."""
        raise NotImplementedError

    def get_children(self, parent_id: str) -> List[Node]:
        """Return the direct children of a folder, in order."""
        raise NotImplementedError

    def roots(self) -> List[Node]:
        """Return the named root collections without the synthetic root."""
        return strip_synthetic_root(self.get_tree())


class MemoryStore(LocalStore):
    """
    A local store held entirely in memory.

    Starts with the three reserved roots. Ids are assigned from a counter
    the same way the browser does, as strings.
    """

    def __init__(self, roots: Optional[List[Node]] = None):
        if roots is None:
            roots = [Folder(id=root_id, title=title) for root_id, title in RESERVED_ROOTS]
        self._root = wrap_roots(copy.deepcopy(strip_synthetic_root(roots)))
        self._folders: Dict[str, Folder] = {}
        self._index(self._root)
        numeric = [int(i) for i in self._all_ids() if i.isdigit()]
        self._ids = itertools.count(max(numeric, default=0) + 1)

    def _index(self, folder: Folder):
        self._folders[folder.id] = folder
        for child in folder.children:
            if isinstance(child, Folder):
                self._index(child)

    def _all_ids(self):
        stack = [self._root]
        while stack:
            node = stack.pop()
            yield node.id
            if isinstance(node, Folder):
                stack.extend(node.children)

    def _parent(self, parent_id: str) -> Folder:
        folder = self._folders.get(parent_id)
        if folder is None or parent_id == SYNTHETIC_ROOT_ID:
            raise KeyError(f"No folder with id {parent_id!r}")
        return folder

    def get_tree(self) -> List[Node]:
        return [copy.deepcopy(self._root)]

    def search_url(self, url: str) -> List[Link]:
        found = []
        stack = [self._root]
        while stack:
            node = stack.pop()
            if isinstance(node, Link):
                if node.url == url:
                    found.append(copy.copy(node))
            else:
                stack.extend(reversed(node.children))
        return found

    def create_folder(self, parent_id: str, title: str) -> Folder:
        parent = self._parent(parent_id)
        folder = Folder(id=str(next(self._ids)), title=title,
                        date_added=int(time.time() * 1000))
        parent.children.append(folder)
        self._folders[folder.id] = folder
        return copy.deepcopy(folder)

    def create_link(self, parent_id: str, title: str, url: str) -> Link:
        parent = self._parent(parent_id)
        link = Link(id=str(next(self._ids)), title=title, url=url,
                    date_added=int(time.time() * 1000))
        parent.children.append(link)
        return copy.copy(link)

    def get_children(self, parent_id: str) -> List[Node]:
        folder = self._folders.get(parent_id)
        if folder is None:
            raise KeyError(f"No folder with id {parent_id!r}")
        return copy.deepcopy(folder.children)
