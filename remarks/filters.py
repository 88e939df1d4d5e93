"""
Selective import filter for ReMarks.

Allow-list entries are folder paths. They are stored as folder titles
joined with ``###`` and compared segment by segment, so an allowed
"Work" admits "Work/Sub" but not a sibling folder named "Workshop".
"""
from typing import Iterable, Sequence, Tuple, Union

from remarks.constants import PATH_SEPARATOR

PathLike = Union[str, Sequence[str]]


def parse_path(path: PathLike) -> Tuple[str, ...]:
    """Normalize a ``###``-joined string or a sequence of titles to a tuple."""
    if isinstance(path, str):
        return tuple(path.split(PATH_SEPARATOR)) if path else ()
    return tuple(path)


def format_path(segments: Sequence[str]) -> str:
    """Join folder titles into the stored allow-list form."""
    return PATH_SEPARATOR.join(segments)


def is_prefix(prefix: Sequence[str], path: Sequence[str]) -> bool:
    """True if ``prefix`` equals the first ``len(prefix)`` segments of ``path``."""
    return len(prefix) <= len(path) and tuple(path[:len(prefix)]) == tuple(prefix)


def is_allowed(record_path: Sequence[str], allowed_paths: Iterable[PathLike]) -> bool:
    """
    Decide whether a record filed under ``record_path`` should be imported.

    An empty allow-list admits everything.
    """
    allowed = [parse_path(p) for p in allowed_paths]
    if not allowed:
        return True
    return any(is_prefix(prefix, record_path) for prefix in allowed)
