"""
UniHelp Backend — Test Configuration (conftest.py)
====================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Every test gets its own in-memory SQLite database (aiosqlite +
       StaticPool, foreign keys enforced), so delete rules behave as they do
       in production and tests never see each other's rows.

Fixture Hierarchy:
    Function-scoped:
    ├── db_engine:        fresh in-memory database with all tables
    ├── db_session:       AsyncSession on that database (service tests)
    ├── test_settings:    Settings for the app under test
    ├── app:              create_app() with get_db_session overridden
    ├── test_client:      HTTPX AsyncClient over ASGITransport
    ├── temp_storage:     temporary directory for file operations
    ├── make_user:        inserts a user directly through the session
    └── FakeConnection:   records hub frames instead of sending them
"""

import os
import tempfile
from typing import Any, AsyncGenerator, Dict, List

# Override settings BEFORE any unihelp import: the module-level app in
# unihelp.main is built from the environment at import time
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["ENVIRONMENT"] = "development"
os.environ["JWT_SECRET"] = "test-signing-secret-that-is-long-enough-for-hs512"
os.environ["RATE_LIMIT_REQUESTS"] = "10000"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["STORAGE_ROOT"] = tempfile.mkdtemp(prefix="unihelp_test_")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession
from sqlalchemy.pool import StaticPool

from unihelp.config import Settings
from unihelp.database import build_engine, build_session_factory, create_tables, get_db_session
from unihelp.models.user import User
from unihelp.security import create_access_token, get_password_hash


# ══════════════════════════════════════════════════════════════════════════
# Database Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine, None]:
    """In-memory database; StaticPool keeps the one connection alive."""
    engine = build_engine(
        Settings(database_url="sqlite+aiosqlite://"),
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await create_tables(bind=engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return build_session_factory(db_engine)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def make_user(db_session):
    """
    Factory inserting a user with password "password123".

    Usage:
        alice = await make_user("alice")
    """

    async def _make(username: str, email: str = None) -> User:
        password_hash, password_salt = get_password_hash("password123")
        user = User(
            username=username,
            email=email or f"{username}@test.com",
            password_hash=password_hash,
            password_salt=password_salt,
        )
        db_session.add(user)
        await db_session.flush()
        return user

    return _make


# ══════════════════════════════════════════════════════════════════════════
# Application Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def temp_storage(tmp_path):
    storage_dir = tmp_path / "storage"
    storage_dir.mkdir()
    return str(storage_dir)


@pytest.fixture
def test_settings(temp_storage) -> Settings:
    return Settings(
        database_url="sqlite+aiosqlite://",
        environment="development",
        jwt_secret="test-signing-secret-that-is-long-enough-for-hs512",
        rate_limit_requests=10000,
        storage_root=temp_storage,
    )


@pytest.fixture
def app(test_settings, session_factory):
    """A fresh app whose request sessions use the per-test database."""
    from unihelp.main import create_app

    application = create_app(test_settings)

    async def _override_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    application.dependency_overrides[get_db_session] = _override_session
    return application


@pytest_asyncio.fixture
async def test_client(app) -> AsyncGenerator[AsyncClient, None]:
    """
    HTTPX AsyncClient talking to the app in-process.

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
            assert response.status_code == 200
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


def auth_header(token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def token_for(user_id: int, username: str, settings: Settings) -> str:
    return create_access_token(user_id=user_id, username=username, settings=settings)


# ══════════════════════════════════════════════════════════════════════════
# Hub Test Doubles
# ══════════════════════════════════════════════════════════════════════════

class FakeConnection:
    """Stands in for a WebSocket: records every frame sent to it."""

    def __init__(self, fail: bool = False):
        self.sent: List[Any] = []
        self.fail = fail

    async def send_json(self, payload: Any) -> None:
        if self.fail:
            raise ConnectionError("socket closed")
        self.sent.append(payload)

    @property
    def messages(self) -> List[str]:
        return [frame["arguments"][0] for frame in self.sent]
