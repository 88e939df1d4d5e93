"""
SQLAlchemy-backed local bookmark store for ReMarks.

Persists the bookmark tree in a single database file and exposes it through
the ``LocalStore`` interface the sync engine uses.
"""
import logging
from pathlib import Path
from typing import Optional, List, Generator, Dict
from contextlib import contextmanager
from datetime import datetime, timezone

from sqlalchemy import create_engine, select, func, event
from sqlalchemy.engine import make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import NullPool

from remarks.constants import RESERVED_ROOTS, SYNTHETIC_ROOT_ID
from remarks.config import get_config
from remarks.models import Base, BookmarkNode
from remarks.store import LocalStore
from remarks.tree import Folder, Link, Node

logger = logging.getLogger(__name__)


def _millis(value: Optional[datetime]) -> Optional[int]:
    if value is None:
        return None
    # SQLite hands back naive datetimes
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(value.timestamp() * 1000)


def _to_node(row: BookmarkNode) -> Node:
    if row.is_folder:
        return Folder(id=str(row.id), title=row.title, date_added=_millis(row.added))
    return Link(id=str(row.id), title=row.title, url=row.url, date_added=_millis(row.added))


class Database(LocalStore):
    """
    Local bookmark store in a database file.

    The synthetic root (id 0) and the three reserved roots are created
    when the schema is first initialized.
    """

    def __init__(self, path: Optional[str] = None, url: Optional[str] = None):
        """
        Initialize database connection.

        Args:
            path: Database file path (for SQLite). Uses config default if not provided.
            url: Full SQLite database URL (overrides path).

        Raises:
            ValueError: if ``url`` names another database backend

        Examples:
            Database()  # Uses config default
            Database(path="bookmarks.db")  # SQLite file
            Database(url="sqlite://")  # In-memory SQLite
        """
        config = get_config()

        if url:
            self.url = url
            self.path = None
        else:
            self.path = Path(path) if path else config.get_database_path()
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.url = f"sqlite:///{self.path}"

        if make_url(self.url).get_backend_name() != "sqlite":
            # Fixed root ids 0-3 rely on SQLite rowids; other backends keep a separate sequence
            raise ValueError(f"Only SQLite databases are supported, got {self.url!r}")

        engine_args = {"connect_args": {"check_same_thread": False}}
        if self.path:
            # In-memory databases must keep their single connection
            engine_args["poolclass"] = NullPool
        self.engine = create_engine(self.url, echo=config.database_echo, **engine_args)
        event.listen(self.engine, "connect", self._configure_sqlite)

        self.Session = sessionmaker(bind=self.engine, autoflush=False)

        Base.metadata.create_all(self.engine)
        self._seed_roots()

    @staticmethod
    def _configure_sqlite(dbapi_conn, connection_record):
        """Configure SQLite connections."""
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys = ON")
        cursor.close()

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        """
        Context manager for database sessions.

        Yields:
            SQLAlchemy session with automatic commit/rollback
        """
        session = self.Session()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def _seed_roots(self):
        """Create the synthetic root and the reserved roots if missing."""
        with self.session() as session:
            if session.get(BookmarkNode, int(SYNTHETIC_ROOT_ID)) is not None:
                return
            session.add(BookmarkNode(id=int(SYNTHETIC_ROOT_ID), parent_id=None, title=""))
            session.flush()
            for position, (root_id, title) in enumerate(RESERVED_ROOTS):
                session.add(BookmarkNode(
                    id=int(root_id),
                    parent_id=int(SYNTHETIC_ROOT_ID),
                    position=position,
                    title=title,
                ))
            logger.debug(f"Initialized bookmark roots in {self.url}")

    @staticmethod
    def _parse_id(node_id: str) -> int:
        try:
            return int(node_id)
        except (TypeError, ValueError):
            raise ValueError(f"No folder with id {node_id!r}")

    def _get_folder(self, session: Session, parent_id: str) -> BookmarkNode:
        row = session.get(BookmarkNode, self._parse_id(parent_id))
        if row is None or not row.is_folder:
            raise ValueError(f"No folder with id {parent_id!r}")
        return row

    def _append(self, parent_id: str, title: str, url: Optional[str]) -> Node:
        with self.session() as session:
            parent = self._get_folder(session, parent_id)
            if parent.id == int(SYNTHETIC_ROOT_ID):
                raise ValueError("Cannot create nodes under the synthetic root")
            last = session.execute(
                select(func.max(BookmarkNode.position)).where(BookmarkNode.parent_id == parent.id)
            ).scalar()
            row = BookmarkNode(
                parent_id=parent.id,
                position=0 if last is None else last + 1,
                title=title,
                url=url,
            )
            session.add(row)
            session.flush()
            return _to_node(row)

    def get_tree(self) -> List[Node]:
        with self.session() as session:
            rows = session.execute(
                select(BookmarkNode).order_by(BookmarkNode.parent_id, BookmarkNode.position)
            ).scalars().all()

            nodes: Dict[int, Node] = {row.id: _to_node(row) for row in rows}
            for row in rows:
                if row.parent_id is not None and row.parent_id in nodes:
                    parent = nodes[row.parent_id]
                    if isinstance(parent, Folder):
                        parent.children.append(nodes[row.id])

            return [nodes[int(SYNTHETIC_ROOT_ID)]]

    def search_url(self, url: str) -> List[Link]:
        with self.session() as session:
            rows = session.execute(
                select(BookmarkNode).where(BookmarkNode.url == url).order_by(BookmarkNode.id)
            ).scalars().all()
            return [_to_node(row) for row in rows]

    def create_folder(self, parent_id: str, title: str) -> Folder:
        folder = self._append(parent_id, title, None)
        logger.debug(f"Created folder {title!r} under {parent_id}")
        return folder

    def create_link(self, parent_id: str, title: str, url: str) -> Link:
        link = self._append(parent_id, title, url)
        logger.debug(f"Created link {url} under {parent_id}")
        return link

    def get_children(self, parent_id: str) -> List[Node]:
        with self.session() as session:
            parent = self._get_folder(session, parent_id)
            rows = session.execute(
                select(BookmarkNode)
                .where(BookmarkNode.parent_id == parent.id)
                .order_by(BookmarkNode.position)
            ).scalars().all()
            return [_to_node(row) for row in rows]

    def stats(self) -> Dict[str, int]:
        """Count links and folders (excluding the synthetic and reserved roots)."""
        with self.session() as session:
            links = session.execute(
                select(func.count(BookmarkNode.id)).where(BookmarkNode.url.is_not(None))
            ).scalar()
            folders = session.execute(
                select(func.count(BookmarkNode.id)).where(BookmarkNode.url.is_(None))
            ).scalar()
            return {"links": links, "folders": folders - 1 - len(RESERVED_ROOTS)}


# Global database instance
_db: Optional[Database] = None


def get_db(path: Optional[str] = None, reload: bool = False) -> Database:
    """
    Get the global database instance.

    Args:
        path: Database file path
        reload: Force new connection

    Returns:
        Database instance
    """
    global _db
    if _db is None or reload or path:
        _db = Database(path)
    return _db
