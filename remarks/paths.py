"""
Folder path resolution for ReMarks.

Maps a sequence of folder titles onto the local store, creating any
folders that do not exist yet. A leading root title such as
"Bookmarks bar" (in any of several browser locales) selects the matching
reserved root instead of becoming a folder.
"""
import logging
from typing import Dict, Optional, Sequence

from remarks.constants import BOOKMARKS_BAR_ID, MOBILE_BOOKMARKS_ID, OTHER_BOOKMARKS_ID
from remarks.store import LocalStore
from remarks.tree import Folder

logger = logging.getLogger(__name__)

# Lower-cased root titles as browsers name them in different locales
ROOT_ALIASES: Dict[str, str] = {
    # English
    "bookmarks bar": BOOKMARKS_BAR_ID,
    "other bookmarks": OTHER_BOOKMARKS_ID,
    "mobile bookmarks": MOBILE_BOOKMARKS_ID,
    # French
    "barre de favoris": BOOKMARKS_BAR_ID,
    "autres favoris": OTHER_BOOKMARKS_ID,
    "favoris sur mobile": MOBILE_BOOKMARKS_ID,
    # German
    "lesezeichenleiste": BOOKMARKS_BAR_ID,
    "weitere lesezeichen": OTHER_BOOKMARKS_ID,
    "mobile lesezeichen": MOBILE_BOOKMARKS_ID,
    # Spanish
    "barra de marcadores": BOOKMARKS_BAR_ID,
    "otros marcadores": OTHER_BOOKMARKS_ID,
    "marcadores del móvil": MOBILE_BOOKMARKS_ID,
}


def resolve_root(title: str) -> Optional[str]:
    """Return the reserved root id for a root title, or None."""
    return ROOT_ALIASES.get(title.lower())


class PathResolver:
    """Finds or creates the folder for a path of folder titles."""

    def __init__(self, store: LocalStore, default_root: str = BOOKMARKS_BAR_ID):
        """
        Args:
            store: Local store to search and create folders in
            default_root: Root to start from when the path does not name one
        """
        self.store = store
        self.default_root = default_root

    def ensure_path(self, segments: Sequence[str]) -> str:
        """
        Return the id of the folder at ``segments``, creating folders as needed.

        Titles are matched case-insensitively against existing folders. A
        failure part way leaves the folders created so far in place; calling
        again with the same path reuses them.
        """
        parent_id = self.default_root
        remaining = list(segments)

        if remaining:
            root_id = resolve_root(remaining[0])
            if root_id is not None:
                parent_id = root_id
                remaining = remaining[1:]

        for title in remaining:
            wanted = title.lower()
            found = next(
                (child for child in self.store.get_children(parent_id)
                 if isinstance(child, Folder) and child.title.lower() == wanted),
                None,
            )
            if found is None:
                found = self.store.create_folder(parent_id, title)
                logger.info(f"Created folder {title!r}")
            parent_id = found.id

        return parent_id
