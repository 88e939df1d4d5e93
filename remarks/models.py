"""
SQLAlchemy models for the ReMarks local bookmark store.

Folders and links share one adjacency-list table: a row with a url is a
link, a row without one is a folder. Siblings are ordered by ``position``.
"""
from datetime import datetime, timezone
from typing import Optional
from sqlalchemy import (
    Integer, String, DateTime, ForeignKey, Index
)
from sqlalchemy.orm import (
    DeclarativeBase, Mapped, mapped_column
)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


class BookmarkNode(Base):
    """
    A folder or link in the local bookmark tree.

    Attributes:
        id: Primary key (0 is the synthetic root, 1-3 the reserved roots)
        parent_id: Enclosing folder (None only for the synthetic root)
        position: Index among the parent's children
        title: Folder or link title (may be empty)
        url: Link target; None for folders
        added: Timestamp when the node was created
    """
    __tablename__ = 'nodes'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    parent_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey('nodes.id', ondelete='CASCADE'),
        nullable=True,
        index=True
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    title: Mapped[str] = mapped_column(String(512), nullable=False, default='')
    url: Mapped[Optional[str]] = mapped_column(String(2048), nullable=True, index=True)
    added: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc)
    )

    __table_args__ = (
        Index('ix_nodes_parent_position', 'parent_id', 'position'),
    )

    @property
    def is_folder(self) -> bool:
        return self.url is None

    def __repr__(self):
        kind = "Folder" if self.url is None else "Link"
        return f"<{kind}(id={self.id}, title='{self.title[:50]}')>"
