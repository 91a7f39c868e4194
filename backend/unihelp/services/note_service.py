"""
UniHelp Backend — Note Service (Business Logic)
=================================================

What:  List/get/create/update/delete for study notes.
Why:   Keeps ownership rules and query building out of the route handlers.
How:   Each call receives its AsyncSession; writes are flushed and the
       request-scoped session commits them (see database.get_db_session).
Who:   Called by the /notes route handlers.

Ownership:
    The creator of a note is its owner for life. Update and delete compare
    the caller's id with the stored owner id; a mismatch is a 403, checked
    only after the note is known to exist (so absent notes are 404 for
    everyone).

Listing:
    WHERE lower(title) LIKE %term% OR lower(content) LIKE %term%
    ORDER BY created_at DESC, id DESC
    OFFSET (page-1)*size LIMIT size
    The id tiebreaker keeps pages stable when two notes share a timestamp.
"""

import logging
from typing import List, Tuple

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from unihelp.exceptions import ForbiddenError, NotFoundError, UnauthenticatedError
from unihelp.models.note import Note
from unihelp.models.user import User
from unihelp.schemas.common import QueryParameters
from unihelp.schemas.note import NoteResponse, NoteWriteRequest

logger = logging.getLogger(__name__)


def _to_response(note: Note) -> NoteResponse:
    return NoteResponse(
        id=note.id,
        title=note.title,
        content=note.content,
        file_url=note.file_url,
        created_at=note.created_at,
        author_username=note.user.username,
    )


class NoteService:
    """
    Business logic layer for note operations.

    Responsibilities:
        - list_notes(): filtered, newest-first page plus total match count
        - get_note(): single note with not-found handling
        - create/update/delete_note(): owner-checked mutations
    """

    async def list_notes(
        self,
        db: AsyncSession,
        params: QueryParameters,
    ) -> Tuple[List[NoteResponse], int]:
        """Returns (page items, total matches before paging)."""
        filters = []
        if params.search_term:
            term = params.search_term.lower()
            filters.append(
                or_(
                    func.lower(Note.title).contains(term, autoescape=True),
                    func.lower(Note.content).contains(term, autoescape=True),
                )
            )

        count_result = await db.execute(
            select(func.count()).select_from(Note).where(*filters)
        )
        total = count_result.scalar_one()

        result = await db.execute(
            select(Note)
            .options(joinedload(Note.user))
            .where(*filters)
            .order_by(Note.created_at.desc(), Note.id.desc())
            .offset(params.offset)
            .limit(params.page_size)
        )
        notes = result.scalars().all()
        return [_to_response(n) for n in notes], total

    async def _load(self, db: AsyncSession, note_id: int) -> Note:
        result = await db.execute(
            select(Note).options(joinedload(Note.user)).where(Note.id == note_id)
        )
        note = result.scalar_one_or_none()
        if note is None:
            raise NotFoundError(resource="note", resource_id=note_id)
        return note

    async def get_note(self, db: AsyncSession, note_id: int) -> NoteResponse:
        """
        Raises:
            NotFoundError: no note with this id (→ 404)
        """
        return _to_response(await self._load(db, note_id))

    async def create_note(
        self,
        db: AsyncSession,
        user_id: int,
        data: NoteWriteRequest,
    ) -> NoteResponse:
        """
        Raises:
            UnauthenticatedError: token refers to a user that no longer exists
        """
        author = await db.get(User, user_id)
        if author is None:
            raise UnauthenticatedError(context={"user_id": user_id})

        note = Note(
            title=data.title,
            content=data.content,
            file_url=data.file_url,
            user=author,
        )
        db.add(note)
        await db.flush()
        logger.info("Note %s created by user %s", note.id, user_id)
        return _to_response(note)

    async def update_note(
        self,
        db: AsyncSession,
        user_id: int,
        note_id: int,
        data: NoteWriteRequest,
    ) -> None:
        """
        Replace title, content and fileUrl.

        Raises:
            NotFoundError:  note absent (→ 404)
            ForbiddenError: caller is not the owner (→ 403)
        """
        note = await self._load(db, note_id)
        self._check_owner(note, user_id)

        note.title = data.title
        note.content = data.content
        note.file_url = data.file_url
        await db.flush()
        logger.info("Note %s updated by its owner", note_id)

    async def delete_note(self, db: AsyncSession, user_id: int, note_id: int) -> None:
        """
        Raises:
            NotFoundError:  note absent (→ 404)
            ForbiddenError: caller is not the owner (→ 403)
        """
        note = await self._load(db, note_id)
        self._check_owner(note, user_id)

        await db.delete(note)
        await db.flush()
        logger.info("Note %s deleted by its owner", note_id)

    @staticmethod
    def _check_owner(note: Note, user_id: int) -> None:
        if note.user_id != user_id:
            logger.warning(
                "User %s denied modifying note %s (owner %s)",
                user_id,
                note.id,
                note.user_id,
            )
            raise ForbiddenError(resource="note", resource_id=note.id)


# Module-level singleton
note_service = NoteService()
