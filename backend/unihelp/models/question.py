"""
UniHelp Backend — Question SQLAlchemy Model
=============================================

What:  ORM model representing the `questions` table.
Who:   Written by QuestionService.create_question(); read by the question
       list/detail endpoints and by AnswerService to find the owner to notify.

Questions are append-only: there is no update or delete endpoint. Deleting
a question at the database level cascades to its answers.
"""

from datetime import datetime
from typing import TYPE_CHECKING, List

from sqlalchemy import ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from unihelp.database import Base, UTCDateTime, utcnow

if TYPE_CHECKING:
    from unihelp.models.answer import Answer
    from unihelp.models.user import User


class Question(Base):
    """A question posted by a user."""

    __tablename__ = "questions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # 10–250 chars; the lower bound is enforced by the request schema
    title: Mapped[str] = mapped_column(String(250), nullable=False)

    body: Mapped[str] = mapped_column(Text, nullable=False)

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

    user: Mapped["User"] = relationship(back_populates="questions")

    answers: Mapped[List["Answer"]] = relationship(
        back_populates="question",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Answer.created_at",
    )

    __table_args__ = (
        Index("idx_questions_created_at", created_at.desc()),
    )

    def __repr__(self) -> str:
        return f"<Question(id={self.id}, user_id={self.user_id}, title='{self.title[:30]}')>"
