# Models package init
"""
UniHelp Backend — ORM Models
==============================

Importing this package registers every table on `Base.metadata`
(used by Alembic autogenerate and `database.create_tables()`).
"""

from unihelp.models.answer import Answer
from unihelp.models.note import Note
from unihelp.models.question import Question
from unihelp.models.user import User

__all__ = ["Answer", "Note", "Question", "User"]
