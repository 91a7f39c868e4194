"""
UniHelp Backend — Note SQLAlchemy Model
=========================================

What:  ORM model representing the `notes` table.
Why:   Maps study notes to database rows for type-safe database operations.
Who:   Used by NoteService for CRUD operations and by Alembic for schema management.

Table Design Rationale:
    - title: Required, max 200 chars
    - content / file_url: Optional; a note may be just a link to an attachment
    - user_id: Owner. Set once at creation and never reassigned; update
      replaces title/content/file_url only
    - ON DELETE CASCADE: A user's notes go away with the user

    Index on created_at DESC:
        Listing is always newest-first.
"""

from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from unihelp.database import Base, UTCDateTime, utcnow

if TYPE_CHECKING:
    from unihelp.models.user import User


class Note(Base):
    """A study note owned by a single user."""

    __tablename__ = "notes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    title: Mapped[str] = mapped_column(String(200), nullable=False)

    content: Mapped[Optional[str]] = mapped_column(Text, nullable=True, default=None)

    # Link to an uploaded attachment (see FileService) or any external URL
    file_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True, default=None)

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        nullable=False,
        default=utcnow,
    )

    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    user: Mapped["User"] = relationship(back_populates="notes")

    __table_args__ = (
        Index("idx_notes_created_at", created_at.desc()),
    )

    def __repr__(self) -> str:
        return f"<Note(id={self.id}, user_id={self.user_id}, title='{self.title[:30]}')>"
