"""
UniHelp Backend — HTTP API Tests
==================================

What:  End-to-end tests through the ASGI app: routing, status codes,
       headers, camelCase bodies and the standard error format.
How:   HTTPX AsyncClient over ASGITransport; the per-test SQLite database
       is wired in through dependency_overrides (see conftest.app).
"""

from typing import Tuple

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import delete

from conftest import FakeConnection, auth_header
from unihelp.config import Settings
from unihelp.models.user import User


async def register_and_login(client: AsyncClient, username: str) -> Tuple[int, str]:
    response = await client.post(
        "/api/v1/auth/register",
        json={"username": username, "email": f"{username}@test.com", "password": "password123"},
    )
    assert response.status_code == 200, response.text
    user_id = response.json()["id"]

    response = await client.post(
        "/api/v1/auth/login", json={"username": username, "password": "password123"}
    )
    assert response.status_code == 200, response.text
    return user_id, response.json()["token"]


# ══════════════════════════════════════════════════════════════════════════
# Auth
# ══════════════════════════════════════════════════════════════════════════

class TestAuthEndpoints:

    @pytest.mark.asyncio
    async def test_register_returns_user_without_secrets(self, test_client):
        response = await test_client.post(
            "/api/v1/auth/register",
            json={"username": "mislina", "email": "mislina@test.com", "password": "password123"},
        )

        assert response.status_code == 200
        body = response.json()
        assert set(body) == {"id", "username", "email"}
        assert body["username"] == "mislina"

    @pytest.mark.asyncio
    async def test_duplicate_username_is_400_conflict(self, test_client):
        await register_and_login(test_client, "mislina")

        response = await test_client.post(
            "/api/v1/auth/register",
            json={"username": "MISLINA", "email": "other@test.com", "password": "password123"},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "conflict"
        assert response.json()["message"] == "Username or email already exists."

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "payload",
        [
            {"username": "ab", "email": "ab@test.com", "password": "password123"},
            {"username": "valid", "email": "not-an-email", "password": "password123"},
            {"username": "valid", "email": "v@test.com", "password": "123"},
        ],
    )
    async def test_invalid_registration_is_400(self, test_client, payload):
        response = await test_client.post("/api/v1/auth/register", json=payload)

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "validation_error"
        assert body["details"]["errors"]

    @pytest.mark.asyncio
    async def test_bad_login_is_401_with_same_message(self, test_client):
        await register_and_login(test_client, "mislina")

        wrong_password = await test_client.post(
            "/api/v1/auth/login", json={"username": "mislina", "password": "nope-nope"}
        )
        unknown_user = await test_client.post(
            "/api/v1/auth/login", json={"username": "ghost", "password": "password123"}
        )

        assert wrong_password.status_code == unknown_user.status_code == 401
        assert wrong_password.json()["message"] == unknown_user.json()["message"] == "Invalid credentials."
        assert wrong_password.headers["WWW-Authenticate"] == "Bearer"

    @pytest.mark.asyncio
    async def test_test_auth_requires_token(self, test_client):
        response = await test_client.get("/api/v1/auth/test-auth")
        assert response.status_code == 401

        response = await test_client.get(
            "/api/v1/auth/test-auth", headers=auth_header("not-a-token")
        )
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_test_auth_greets_caller(self, test_client):
        user_id, token = await register_and_login(test_client, "mislina")

        response = await test_client.get("/api/v1/auth/test-auth", headers=auth_header(token))

        assert response.status_code == 200
        assert response.json()["userId"] == user_id
        assert "mislina" in response.json()["message"]


# ══════════════════════════════════════════════════════════════════════════
# Notes
# ══════════════════════════════════════════════════════════════════════════

class TestNoteEndpoints:

    @pytest.mark.asyncio
    async def test_create_get_list(self, test_client):
        _, token = await register_and_login(test_client, "alice")

        created = await test_client.post(
            "/api/v1/notes",
            json={"title": "Week 1", "content": "Sets and maps", "fileUrl": None},
            headers=auth_header(token),
        )
        assert created.status_code == 201
        note = created.json()
        assert created.headers["Location"] == f"/api/v1/notes/{note['id']}"
        assert note["authorUsername"] == "alice"
        assert "createdAt" in note

        fetched = await test_client.get(f"/api/v1/notes/{note['id']}")
        assert fetched.status_code == 200
        assert fetched.json()["title"] == "Week 1"

        listed = await test_client.get("/api/v1/notes", params={"searchTerm": "maps"})
        assert listed.status_code == 200
        assert listed.headers["X-Total-Count"] == "1"
        assert [n["id"] for n in listed.json()] == [note["id"]]

    @pytest.mark.asyncio
    async def test_create_requires_token(self, test_client):
        response = await test_client.post("/api/v1/notes", json={"title": "Anon"})
        assert response.status_code == 401
        assert response.json()["error"] == "unauthorized"

    @pytest.mark.asyncio
    async def test_owner_only_update_and_delete(self, test_client):
        _, alice = await register_and_login(test_client, "alice")
        _, bob = await register_and_login(test_client, "bob")
        note_id = (
            await test_client.post(
                "/api/v1/notes", json={"title": "Mine"}, headers=auth_header(alice)
            )
        ).json()["id"]

        forbidden = await test_client.put(
            f"/api/v1/notes/{note_id}", json={"title": "Stolen"}, headers=auth_header(bob)
        )
        assert forbidden.status_code == 403
        assert forbidden.json()["error"] == "forbidden"

        forbidden = await test_client.delete(f"/api/v1/notes/{note_id}", headers=auth_header(bob))
        assert forbidden.status_code == 403

        updated = await test_client.put(
            f"/api/v1/notes/{note_id}",
            json={"title": "Mine, edited", "content": "more"},
            headers=auth_header(alice),
        )
        assert updated.status_code == 204
        assert (await test_client.get(f"/api/v1/notes/{note_id}")).json()["title"] == "Mine, edited"

        deleted = await test_client.delete(f"/api/v1/notes/{note_id}", headers=auth_header(alice))
        assert deleted.status_code == 204
        assert (await test_client.get(f"/api/v1/notes/{note_id}")).status_code == 404

    @pytest.mark.asyncio
    async def test_missing_note_is_404_with_error_body(self, test_client):
        response = await test_client.get("/api/v1/notes/9999")

        assert response.status_code == 404
        body = response.json()
        assert body["error"] == "not_found"
        assert body["request_id"] == response.headers["X-Request-ID"]

    @pytest.mark.asyncio
    async def test_bad_query_parameters_are_400(self, test_client):
        assert (await test_client.get("/api/v1/notes", params={"sortBy": "title"})).status_code == 400
        assert (await test_client.get("/api/v1/notes", params={"pageNumber": "abc"})).status_code == 400

    @pytest.mark.asyncio
    async def test_zero_and_negative_paging_do_not_crash(self, test_client):
        response = await test_client.get(
            "/api/v1/notes", params={"pageNumber": 0, "pageSize": -1}
        )
        assert response.status_code == 200
        assert response.json() == []


class TestAttachmentEndpoints:

    @pytest.mark.asyncio
    async def test_upload_then_download(self, test_client):
        _, token = await register_and_login(test_client, "alice")

        uploaded = await test_client.post(
            "/api/v1/notes/attachments",
            files={"file": ("lecture.pdf", b"%PDF-1.4 lecture", "application/pdf")},
            headers=auth_header(token),
        )
        assert uploaded.status_code == 201
        file_url = uploaded.json()["fileUrl"]
        assert file_url.startswith("/api/v1/files/") and file_url.endswith(".pdf")

        downloaded = await test_client.get(file_url)
        assert downloaded.status_code == 200
        assert downloaded.content == b"%PDF-1.4 lecture"

    @pytest.mark.asyncio
    async def test_upload_requires_token(self, test_client):
        response = await test_client.post(
            "/api/v1/notes/attachments", files={"file": ("a.pdf", b"x", "application/pdf")}
        )
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_unsupported_type_rejected(self, test_client):
        _, token = await register_and_login(test_client, "alice")

        response = await test_client.post(
            "/api/v1/notes/attachments",
            files={"file": ("tool.exe", b"MZ", "application/octet-stream")},
            headers=auth_header(token),
        )
        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"

    @pytest.mark.asyncio
    async def test_renamed_executable_rejected(self, test_client):
        _, token = await register_and_login(test_client, "alice")

        response = await test_client.post(
            "/api/v1/notes/attachments",
            files={"file": ("syllabus.pdf", b"MZ\x90\x00\x03" + b"\x00" * 59, "application/pdf")},
            headers=auth_header(token),
        )
        assert response.status_code == 400
        assert "does not match" in response.json()["message"]

    @pytest.mark.asyncio
    async def test_file_path_traversal_rejected(self, test_client):
        response = await test_client.get("/api/v1/files/..%2F..%2Fetc%2Fpasswd")
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_missing_file_is_404(self, test_client):
        response = await test_client.get("/api/v1/files/2026/01/01/nothing.pdf")
        assert response.status_code == 404


# ══════════════════════════════════════════════════════════════════════════
# Questions & Answers
# ══════════════════════════════════════════════════════════════════════════

class TestQuestionEndpoints:

    @pytest.mark.asyncio
    async def test_title_length_enforced(self, test_client):
        _, token = await register_and_login(test_client, "alice")

        response = await test_client.post(
            "/api/v1/questions", json={"title": "Too short", "body": "x"}, headers=auth_header(token)
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_create_and_fetch_with_answers(self, test_client):
        _, alice = await register_and_login(test_client, "alice")
        _, bob = await register_and_login(test_client, "bob")

        created = await test_client.post(
            "/api/v1/questions",
            json={"title": "How do I study for finals?", "body": "Three exams in two days."},
            headers=auth_header(alice),
        )
        assert created.status_code == 201
        question = created.json()
        assert created.headers["Location"] == f"/api/v1/questions/{question['id']}"

        answer = await test_client.post(
            f"/api/v1/questions/{question['id']}/answers",
            json={"body": "Spaced repetition."},
            headers=auth_header(bob),
        )
        assert answer.status_code == 200
        assert answer.json()["authorUsername"] == "bob"

        detail = (await test_client.get(f"/api/v1/questions/{question['id']}")).json()
        assert detail["authorUsername"] == "alice"
        assert [a["body"] for a in detail["answers"]] == ["Spaced repetition."]

        listed = await test_client.get("/api/v1/questions", params={"pageSize": 5})
        assert listed.headers["X-Total-Count"] == "1"

    @pytest.mark.asyncio
    async def test_answer_to_missing_question_is_404(self, test_client):
        _, token = await register_and_login(test_client, "bob")

        response = await test_client.post(
            "/api/v1/questions/4242/answers", json={"body": "hello?"}, headers=auth_header(token)
        )
        assert response.status_code == 404


class TestDeletedAccountTokens:
    """A token outlives its account by up to TOKEN_EXPIRE_HOURS."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "path, payload",
        [
            ("/api/v1/notes", {"title": "Orphan note"}),
            ("/api/v1/questions", {"title": "Who owns this question?", "body": "Nobody."}),
        ],
    )
    async def test_create_with_deleted_account_is_401(self, test_client, db_session, path, payload):
        user_id, token = await register_and_login(test_client, "leaver")
        await db_session.execute(delete(User).where(User.id == user_id))
        await db_session.commit()

        response = await test_client.post(path, json=payload, headers=auth_header(token))

        assert response.status_code == 401
        assert response.json()["error"] == "unauthorized"
        assert response.headers["WWW-Authenticate"] == "Bearer"


class TestAnswerNotifications:

    async def _ask(self, client, token) -> dict:
        response = await client.post(
            "/api/v1/questions",
            json={"title": "Why is the sky blue?", "body": "Physics homework"},
            headers=auth_header(token),
        )
        return response.json()

    @pytest.mark.asyncio
    async def test_owner_receives_exactly_one_notification(self, app, test_client):
        alice_id, alice = await register_and_login(test_client, "alice")
        _, bob = await register_and_login(test_client, "bob")
        question = await self._ask(test_client, alice)

        alice_tab = FakeConnection()
        app.state.broadcaster.connect(alice_tab, alice_id)

        response = await test_client.post(
            f"/api/v1/questions/{question['id']}/answers",
            json={"body": "Rayleigh scattering."},
            headers=auth_header(bob),
        )

        assert response.status_code == 200
        assert len(alice_tab.sent) == 1
        frame = alice_tab.sent[0]
        assert frame["target"] == "ReceiveNotification"
        assert "bob" in frame["arguments"][0]
        assert "Why is the sky blue?" in frame["arguments"][0]

    @pytest.mark.asyncio
    async def test_answering_own_question_sends_nothing(self, app, test_client):
        alice_id, alice = await register_and_login(test_client, "alice")
        question = await self._ask(test_client, alice)
        alice_tab = FakeConnection()
        app.state.broadcaster.connect(alice_tab, alice_id)

        response = await test_client.post(
            f"/api/v1/questions/{question['id']}/answers",
            json={"body": "Never mind, found it."},
            headers=auth_header(alice),
        )

        assert response.status_code == 200
        assert alice_tab.sent == []

    @pytest.mark.asyncio
    async def test_broken_connection_does_not_fail_answer(self, app, test_client):
        alice_id, alice = await register_and_login(test_client, "alice")
        _, bob = await register_and_login(test_client, "bob")
        question = await self._ask(test_client, alice)
        app.state.broadcaster.connect(FakeConnection(fail=True), alice_id)

        response = await test_client.post(
            f"/api/v1/questions/{question['id']}/answers",
            json={"body": "Still saved"},
            headers=auth_header(bob),
        )

        assert response.status_code == 200
        detail = (await test_client.get(f"/api/v1/questions/{question['id']}")).json()
        assert len(detail["answers"]) == 1

    @pytest.mark.asyncio
    async def test_test_notification_endpoint(self, app, test_client):
        alice_id, alice = await register_and_login(test_client, "alice")
        tab = FakeConnection()
        app.state.broadcaster.connect(tab, alice_id)

        response = await test_client.post(
            "/api/v1/questions/1/answers/test-notification", headers=auth_header(alice)
        )

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["targetGroup"] == f"user_{alice_id}"
        assert body["delivered"] == 1
        assert tab.messages == [body["sentMessage"]]


# ══════════════════════════════════════════════════════════════════════════
# Health & Unexpected Errors
# ══════════════════════════════════════════════════════════════════════════

class TestHealthAndErrors:

    @pytest.mark.asyncio
    async def test_health(self, app, test_client):
        app.state.broadcaster.connect(FakeConnection(), 1)

        response = await test_client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["database"] == "connected"
        assert body["activeConnections"] == 1

    @staticmethod
    async def _boom(environment: str, temp_storage: str):
        from unihelp.main import create_app

        app = create_app(
            Settings(
                environment=environment,
                jwt_secret="x" * 40,
                storage_root=temp_storage,
            )
        )

        @app.get("/boom")
        async def boom():
            raise RuntimeError("kaboom")

        transport = ASGITransport(app=app, raise_app_exceptions=False)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            return await client.get("/boom")

    @pytest.mark.asyncio
    async def test_unexpected_error_in_production_is_generic(self, temp_storage):
        response = await self._boom("production", temp_storage)

        assert response.status_code == 500
        body = response.json()
        assert body["error"] == "internal_server_error"
        assert "details" not in body
        assert "kaboom" not in response.text

    @pytest.mark.asyncio
    async def test_unexpected_error_in_development_has_details(self, temp_storage):
        response = await self._boom("development", temp_storage)

        assert response.status_code == 500
        details = response.json()["details"]
        assert "RuntimeError: kaboom" == details["exception"]
        assert details["trace"]


# ══════════════════════════════════════════════════════════════════════════
# Startup
# ══════════════════════════════════════════════════════════════════════════

class TestStartup:

    @staticmethod
    def _app(temp_storage: str, **overrides):
        from unihelp.main import create_app

        return create_app(Settings(storage_root=temp_storage, **overrides))

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "secret, reason",
        [
            (Settings.model_fields["jwt_secret"].default, "development default"),
            ("too-short", "at least 32 characters"),
        ],
    )
    async def test_production_refuses_weak_signing_secret(self, temp_storage, secret, reason):
        from unihelp.main import lifespan

        app = self._app(temp_storage, environment="production", jwt_secret=secret)

        with pytest.raises(ValueError, match=reason):
            async with lifespan(app):
                pass

    @pytest.mark.asyncio
    async def test_production_with_strong_secret_starts(self, temp_storage):
        from unihelp.main import lifespan

        app = self._app(temp_storage, environment="production", jwt_secret="s" * 64)

        async with lifespan(app):
            pass

    @pytest.mark.asyncio
    async def test_development_tolerates_default_secret(self, temp_storage):
        from unihelp.main import lifespan

        app = self._app(
            temp_storage,
            environment="development",
            jwt_secret=Settings.model_fields["jwt_secret"].default,
        )

        async with lifespan(app):
            pass

    @pytest.mark.asyncio
    async def test_requests_use_the_configured_database(self, tmp_path, temp_storage):
        from unihelp.main import lifespan

        db_file = tmp_path / "isolated.db"
        app = self._app(
            temp_storage,
            environment="development",
            database_url=f"sqlite+aiosqlite:///{db_file}",
            db_create_tables=True,
        )
        assert app.state.engine.url.database == str(db_file)

        async with lifespan(app):
            transport = ASGITransport(app=app)
            async with AsyncClient(transport=transport, base_url="http://test") as client:
                registered = await client.post(
                    "/api/v1/auth/register",
                    json={"username": "dana", "email": "dana@test.com", "password": "password123"},
                )
                health = await client.get("/health")

        assert registered.status_code == 200
        assert health.json()["database"] == "connected"
        assert db_file.stat().st_size > 0
