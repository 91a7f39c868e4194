"""
UniHelp Backend — Note Service Tests
======================================

What:  NoteService against a real (in-memory) database.

What we test:
    ✅ Create stores the caller as owner and returns the author username
    ✅ Create for an account that no longer exists is UnauthenticatedError
    ✅ Get of a missing note raises NotFoundError
    ✅ Only the owner may update or delete; others get ForbiddenError
    ✅ Update replaces every mutable field
    ✅ Listing is newest first, searchable, and page size is capped
"""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select

from unihelp.exceptions import ForbiddenError, NotFoundError, UnauthenticatedError, ValidationError
from unihelp.models.note import Note
from unihelp.schemas.common import QueryParameters
from unihelp.schemas.note import NoteWriteRequest
from unihelp.services.note_service import NoteService


def params(**kwargs) -> QueryParameters:
    query = {"page_number": None, "page_size": None, "search_term": None, "sort_by": None}
    query.update(kwargs)
    return QueryParameters.from_query(**query)


class TestNoteMutations:

    def setup_method(self):
        self.service = NoteService()

    @pytest.mark.asyncio
    async def test_create_sets_owner(self, db_session, make_user):
        alice = await make_user("alice")

        note = await self.service.create_note(
            db_session, alice.id, NoteWriteRequest(title="Week 1", content="Intro")
        )

        assert note.author_username == "alice"
        assert note.created_at.tzinfo is not None
        stored = await db_session.get(Note, note.id)
        assert stored.user_id == alice.id

    @pytest.mark.asyncio
    async def test_create_for_missing_account_stores_nothing(self, db_session):
        with pytest.raises(UnauthenticatedError):
            await self.service.create_note(db_session, 404, NoteWriteRequest(title="Orphan"))

        assert (await db_session.execute(select(Note))).scalars().all() == []

    @pytest.mark.asyncio
    async def test_get_missing_note(self, db_session):
        with pytest.raises(NotFoundError, match="note with ID '404' was not found"):
            await self.service.get_note(db_session, 404)

    @pytest.mark.asyncio
    async def test_update_replaces_fields(self, db_session, make_user):
        alice = await make_user("alice")
        note = await self.service.create_note(
            db_session,
            alice.id,
            NoteWriteRequest(title="Draft", content="old", file_url="/api/v1/files/a.pdf"),
        )

        await self.service.update_note(
            db_session, alice.id, note.id, NoteWriteRequest(title="Final")
        )

        updated = await self.service.get_note(db_session, note.id)
        assert updated.title == "Final"
        assert updated.content is None
        assert updated.file_url is None

    @pytest.mark.asyncio
    async def test_non_owner_cannot_update(self, db_session, make_user):
        alice = await make_user("alice")
        bob = await make_user("bob")
        note = await self.service.create_note(db_session, alice.id, NoteWriteRequest(title="Mine"))

        with pytest.raises(ForbiddenError):
            await self.service.update_note(db_session, bob.id, note.id, NoteWriteRequest(title="Stolen"))

        assert (await self.service.get_note(db_session, note.id)).title == "Mine"

    @pytest.mark.asyncio
    async def test_non_owner_cannot_delete(self, db_session, make_user):
        alice = await make_user("alice")
        bob = await make_user("bob")
        note = await self.service.create_note(db_session, alice.id, NoteWriteRequest(title="Mine"))

        with pytest.raises(ForbiddenError):
            await self.service.delete_note(db_session, bob.id, note.id)

    @pytest.mark.asyncio
    async def test_owner_deletes(self, db_session, make_user):
        alice = await make_user("alice")
        note = await self.service.create_note(db_session, alice.id, NoteWriteRequest(title="Temp"))

        await self.service.delete_note(db_session, alice.id, note.id)

        with pytest.raises(NotFoundError):
            await self.service.get_note(db_session, note.id)

    @pytest.mark.asyncio
    async def test_update_missing_note_is_not_found_even_for_strangers(self, db_session, make_user):
        bob = await make_user("bob")
        with pytest.raises(NotFoundError):
            await self.service.update_note(db_session, bob.id, 12345, NoteWriteRequest(title="x"))


class TestNoteListing:

    def setup_method(self):
        self.service = NoteService()

    async def _seed(self, db_session, owner_id: int, titles):
        base = datetime(2026, 1, 1, tzinfo=timezone.utc)
        for offset, title in enumerate(titles):
            db_session.add(
                Note(
                    title=title,
                    content=f"content of {title}",
                    user_id=owner_id,
                    created_at=base + timedelta(minutes=offset),
                )
            )
        await db_session.flush()

    @pytest.mark.asyncio
    async def test_newest_first_with_total(self, db_session, make_user):
        alice = await make_user("alice")
        await self._seed(db_session, alice.id, ["first", "second", "third"])

        items, total = await self.service.list_notes(db_session, params())

        assert total == 3
        assert [n.title for n in items] == ["third", "second", "first"]
        assert all(n.author_username == "alice" for n in items)

    @pytest.mark.asyncio
    async def test_search_matches_title_or_content_case_insensitively(self, db_session, make_user):
        alice = await make_user("alice")
        await self._seed(db_session, alice.id, ["Linear Algebra", "Databases", "Algorithms"])

        items, total = await self.service.list_notes(db_session, params(search_term="ALG"))

        assert total == 2
        assert {n.title for n in items} == {"Linear Algebra", "Algorithms"}

        items, _ = await self.service.list_notes(db_session, params(search_term="of databases"))
        assert [n.title for n in items] == ["Databases"]

    @pytest.mark.asyncio
    async def test_search_treats_wildcards_literally(self, db_session, make_user):
        alice = await make_user("alice")
        await self._seed(db_session, alice.id, ["100% done", "halfway"])

        items, _ = await self.service.list_notes(db_session, params(search_term="%"))
        assert [n.title for n in items] == ["100% done"]

    @pytest.mark.asyncio
    async def test_paging(self, db_session, make_user):
        alice = await make_user("alice")
        await self._seed(db_session, alice.id, [f"n{i}" for i in range(5)])

        items, total = await self.service.list_notes(db_session, params(page_number=2, page_size=2))

        assert total == 5
        assert [n.title for n in items] == ["n2", "n1"]

    @pytest.mark.asyncio
    async def test_page_size_capped_at_fifty(self, db_session, make_user):
        alice = await make_user("alice")
        await self._seed(db_session, alice.id, [f"n{i}" for i in range(60)])

        items, total = await self.service.list_notes(db_session, params(page_size=500))

        assert total == 60
        assert len(items) == 50


class TestQueryParameters:

    def test_defaults(self):
        query = params()
        assert (query.page_number, query.page_size, query.offset) == (1, 10, 0)

    @pytest.mark.parametrize("size,expected", [(0, 1), (-5, 1), (51, 50), (50, 50), (7, 7)])
    def test_page_size_clamped(self, size, expected):
        assert params(page_size=size).page_size == expected

    @pytest.mark.parametrize("page", [0, -3])
    def test_page_number_floor(self, page):
        query = params(page_number=page)
        assert query.page_number == 1
        assert query.offset == 0

    def test_blank_search_ignored(self):
        assert params(search_term="   ").search_term is None

    @pytest.mark.parametrize("sort_by", ["newest", "createdAt"])
    def test_supported_sorts(self, sort_by):
        assert params(sort_by=sort_by).sort_by == sort_by

    def test_unsupported_sort_rejected(self):
        with pytest.raises(ValidationError, match="Unsupported sortBy"):
            params(sort_by="title")
