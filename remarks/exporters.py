"""
Exporters for ReMarks.

Renders the local bookmark tree as the three artifacts pushed on every
sync: a structural JSON snapshot, a Netscape bookmark file, and a readable
Markdown index.
"""
import html
import json
from pathlib import Path
from typing import List, Optional
from datetime import datetime

from remarks.tree import Folder, Link, Node, node_to_dict, strip_synthetic_root, wrap_roots

NETSCAPE_HEADER = [
    '<!DOCTYPE NETSCAPE-Bookmark-file-1>',
    '<META HTTP-EQUIV="Content-Type" CONTENT="text/html; charset=UTF-8">',
    '<TITLE>Bookmarks</TITLE>',
    '<H1>Bookmarks</H1>',
    '<DL><p>',
]

FOLDER_ICON = "&#x1F4C1;"
LINK_ICON = "&#x1F517;"


def export_json(tree: List[Node]) -> str:
    """Export the tree as a structural snapshot (browser API shape)."""
    root = wrap_roots(strip_synthetic_root(tree))
    return json.dumps([node_to_dict(root)], indent=2, ensure_ascii=False)


def export_html(tree: List[Node]) -> str:
    """Export the tree in Netscape HTML format (browser-compatible)."""
    lines = list(NETSCAPE_HEADER)

    def write_folder(nodes: List[Node], indent: int = 1):
        indent_str = '    ' * indent
        for node in nodes:
            title = html.escape(node.title)
            if isinstance(node, Link):
                lines.append(f'{indent_str}<DT><A HREF="{html.escape(node.url)}">{title}</A>')
            elif isinstance(node, Folder):
                lines.append(f'{indent_str}<DT><H3>{title}</H3>')
                lines.append(f'{indent_str}<DL><p>')
                write_folder(node.children, indent + 1)
                lines.append(f'{indent_str}</DL><p>')

    write_folder(strip_synthetic_root(tree))
    lines.append('</DL><p>')
    return "\n".join(lines)


def export_markdown(tree: List[Node], now: Optional[datetime] = None) -> str:
    """
    Export the tree as a Markdown index with collapsible folders.

    Folders become ``<details>`` blocks so the index stays readable on
    repository pages; every folder is listed, even an empty one.
    """
    now = now or datetime.now()

    def render(nodes: List[Node]) -> str:
        out = ""
        for node in nodes:
            title = html.escape(node.title or "Untitled")
            if isinstance(node, Link):
                out += f'<li>{LINK_ICON} <a href="{html.escape(node.url)}">{title}</a></li>\n'
            elif isinstance(node, Folder):
                out += (
                    f"<li><details><summary><strong>{FOLDER_ICON} {title}</strong></summary>"
                    f"<ul>{render(node.children)}</ul></details></li>\n"
                )
        return out

    lines = [
        "# \U0001F4D1 ReMarks: Synced Bookmarks",
        "",
        "### \U0001F4C2 Interactive Bookmark Explorer",
        "Click folders to expand.",
        "",
        "<ul>",
        render(strip_synthetic_root(tree)) + "</ul>",
        "",
        "---",
        f"*Last Updated: {now.strftime('%Y-%m-%d %H:%M:%S')}*",
    ]
    return "\n".join(lines)


EXPORTERS = {
    "json": export_json,
    "html": export_html,
    "markdown": export_markdown,
}


def export_to_string(tree: List[Node], format: str) -> str:
    """
    Export the tree to a string in the specified format.

    Args:
        tree: Bookmark tree (with or without the synthetic root)
        format: Export format (json, html, markdown)

    Returns:
        Exported content as string
    """
    exporter = EXPORTERS.get(format)
    if not exporter:
        raise ValueError(f"Unknown format: {format}")
    return exporter(tree)


def export_file(tree: List[Node], path: Path, format: str) -> None:
    """
    Export the tree to a file.

    Args:
        tree: Bookmark tree
        path: Output file path
        format: Export format (json, html, markdown)
    """
    content = export_to_string(tree, format)

    # Ensure parent directory exists
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, "w", encoding="utf-8") as f:
        f.write(content)
