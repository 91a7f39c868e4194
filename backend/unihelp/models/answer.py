"""
UniHelp Backend — Answer SQLAlchemy Model
===========================================

What:  ORM model representing the `answers` table.

Foreign Keys:
    question_id → questions.id ON DELETE CASCADE
        Removing a question removes every answer to it.
    user_id     → users.id     ON DELETE NO ACTION
        Removing the author is refused by the database while the answer
        exists; answers are never silently deleted along with their author.
"""

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from unihelp.database import Base, UTCDateTime, utcnow

if TYPE_CHECKING:
    from unihelp.models.question import Question
    from unihelp.models.user import User


class Answer(Base):
    """An answer written by a user to a question."""

    __tablename__ = "answers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    body: Mapped[str] = mapped_column(Text, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        nullable=False,
        default=utcnow,
    )

    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="NO ACTION"),
        nullable=False,
        index=True,
    )

    question_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("questions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    user: Mapped["User"] = relationship(back_populates="answers")
    question: Mapped["Question"] = relationship(back_populates="answers")

    def __repr__(self) -> str:
        return (
            f"<Answer(id={self.id}, question_id={self.question_id}, "
            f"user_id={self.user_id})>"
        )
