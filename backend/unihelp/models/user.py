"""
UniHelp Backend — User SQLAlchemy Model
=========================================

What:  ORM model representing the `users` table.
Who:   Written by AuthService.register(); read by login and by every service
       that resolves an author username.

Credential Storage:
    password_salt holds 16 random bytes generated per user at registration.
    password_hash holds the PBKDF2-SHA512 digest computed with that salt
    (see unihelp.security). The plaintext is never stored.

Delete Rules (enforced by the database, see models.answer):
    notes      → CASCADE   (a user's notes go with the user)
    questions  → CASCADE   (and their answers, through questions → answers)
    answers    → NO ACTION (a user who has written answers cannot be deleted
                            out from under them; the DB rejects the delete)

    passive_deletes keeps the ORM from loading children and nulling their
    foreign keys itself, so those rules are the ones that actually apply.
"""

from typing import TYPE_CHECKING, List

from sqlalchemy import Index, Integer, LargeBinary, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from unihelp.database import Base

if TYPE_CHECKING:
    from unihelp.models.answer import Answer
    from unihelp.models.note import Note
    from unihelp.models.question import Question


class User(Base):
    """A registered account."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Unique case-insensitively through the lower() indexes below
    username: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)

    email: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)

    password_hash: Mapped[bytes] = mapped_column(LargeBinary, nullable=False)

    password_salt: Mapped[bytes] = mapped_column(LargeBinary, nullable=False)

    notes: Mapped[List["Note"]] = relationship(
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    questions: Mapped[List["Question"]] = relationship(
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    answers: Mapped[List["Answer"]] = relationship(
        back_populates="user",
        passive_deletes="all",
    )

    __table_args__ = (
        Index("uq_users_username_lower", func.lower(username), unique=True),
        Index("uq_users_email_lower", func.lower(email), unique=True),
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username='{self.username}')>"
