"""
Importers for ReMarks.

Seed the local store from bookmark files: a Chromium profile ``Bookmarks``
file, a Netscape bookmark HTML file, or a structural JSON snapshot. Each
file is parsed into a tree and merged like a remote snapshot, so importing
never overwrites or duplicates existing links.
"""
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from bs4 import BeautifulSoup

from remarks.constants import RESERVED_ROOTS
from remarks.merge import MergeResult, merge_remote
from remarks.store import LocalStore
from remarks.tree import Folder, Link, MalformedTreeError, Node, tree_from_data

logger = logging.getLogger(__name__)

# Chromium "roots" keys in the order the reserved roots are listed
CHROME_ROOT_KEYS = ("bookmark_bar", "other", "synced")


class ImportFormatError(Exception):
    """Raised when an import file cannot be read as bookmarks."""
    pass


def _read_json(path: Path) -> Any:
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ImportFormatError(f"Cannot read {path}: {e}") from e


def _chrome_node(item: Dict[str, Any]) -> Optional[Node]:
    if item.get("type") == "url":
        return Link(id=str(item.get("id", "")), title=item.get("name", ""), url=item.get("url", ""))
    if item.get("type") == "folder":
        children = [_chrome_node(child) for child in item.get("children", [])]
        return Folder(
            id=str(item.get("id", "")),
            title=item.get("name", ""),
            children=[child for child in children if child is not None],
        )
    return None


def parse_chrome(data: Dict[str, Any]) -> List[Node]:
    """
    Parse a Chromium profile ``Bookmarks`` file into top-level roots.

    The roots keep the reserved root titles so their contents land in the
    matching local roots.
    """
    if not isinstance(data, dict) or not isinstance(data.get("roots"), dict):
        raise ImportFormatError("Not a Chromium bookmarks file: missing 'roots'")

    roots = []
    for key, (root_id, title) in zip(CHROME_ROOT_KEYS, RESERVED_ROOTS):
        root_data = data["roots"].get(key)
        if not isinstance(root_data, dict):
            continue
        root = _chrome_node(dict(root_data, type="folder"))
        root.id = root_id
        root.title = title
        roots.append(root)
    return roots


def parse_html(content: str) -> List[Node]:
    """
    Parse a Netscape bookmark file into top-level nodes.

    Each ``<H3>`` opens a folder whose contents are the ``<DL>`` that
    follows it. Links and folders are attached to the folder of their
    nearest enclosing ``<DL>``; anything outside a folder is top-level.
    """
    soup = BeautifulSoup(content, "html.parser")
    top: List[Node] = []
    folders_by_list: Dict[int, Folder] = {}

    def owner(element) -> Optional[Folder]:
        for dl in element.find_parents("dl"):
            folder = folders_by_list.get(id(dl))
            if folder is not None:
                return folder
        return None

    def attach(element, node: Node):
        parent = owner(element)
        (parent.children if parent is not None else top).append(node)

    for element in soup.find_all(["h3", "a"]):
        if element.name == "a":
            url = element.get("href")
            if url:
                attach(element, Link(id="", title=element.get_text().strip(), url=url))
            continue

        folder = Folder(id="", title=element.get_text().strip())
        attach(element, folder)
        contents = element.find_next_sibling("dl")
        if contents is None and element.parent is not None and element.parent.name == "dt":
            contents = element.parent.find_next_sibling("dl")
        if contents is not None:
            folders_by_list[id(contents)] = folder

    return top


def import_chrome(store: LocalStore, path: Path) -> MergeResult:
    """Import a Chromium profile ``Bookmarks`` file."""
    return _merge(store, parse_chrome(_read_json(path)), path)


def import_html(store: LocalStore, path: Path) -> MergeResult:
    """Import a Netscape bookmark HTML file."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            content = f.read()
    except OSError as e:
        raise ImportFormatError(f"Cannot read {path}: {e}") from e
    return _merge(store, parse_html(content), path)


def import_json(store: LocalStore, path: Path) -> MergeResult:
    """Import a structural snapshot (as written by ``export_json``)."""
    try:
        tree = tree_from_data(_read_json(path))
    except MalformedTreeError as e:
        raise ImportFormatError(f"Cannot read {path}: {e}") from e
    return _merge(store, tree, path)


def _merge(store: LocalStore, tree: List[Node], path: Path) -> MergeResult:
    result = merge_remote(store, tree)
    logger.info(f"Imported {path}: {result}")
    return result


IMPORTERS = {
    "chrome": import_chrome,
    "html": import_html,
    "json": import_json,
}


def import_file(store: LocalStore, path: Path, format: str) -> MergeResult:
    """
    Import bookmarks from a file.

    Args:
        store: Local store to import into
        path: Input file path
        format: Import format (chrome, html, json)
    """
    importer = IMPORTERS.get(format)
    if not importer:
        raise ValueError(f"Unknown format: {format}")
    return importer(store, Path(path))
