"""
LifeMon Backend — Test Configuration (conftest.py)
====================================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixture Hierarchy (function-scoped unless noted):
    ├── uploads_root (session, autouse): temp UPLOADS_ROOT, deleted at the end
    ├── db_engine: in-memory aiosqlite database with all tables created
    │   └── session_factory → db_session, seeded_users
    ├── avatar_storage: AvatarStorage rooted in tmp_path
    ├── test_client: HTTPX AsyncClient over the real app, with the session
    │   and avatar storage dependencies overridden
    ├── auth_headers: builds a Bearer header for a user id
    └── sample_image_bytes: minimal PNG for upload tests
"""

import os
import shutil
import tempfile

# Settings are read at import time: configure the environment first
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./test.db"
os.environ["JWT_SECRET"] = "test-secret"
UPLOADS_ROOT = tempfile.mkdtemp(prefix="lifemon_test_")
os.environ["UPLOADS_ROOT"] = UPLOADS_ROOT
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["CORS_ALLOW_ALL"] = "false"

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Callable, Dict

import jwt
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from lifemon.database import Base, get_db_session
from lifemon.models.user import User
from lifemon.services.avatar_storage import AvatarStorage, get_avatar_storage

TEST_JWT_SECRET = "test-secret"


@pytest.fixture(scope="session", autouse=True)
def uploads_root():
    """The app-level uploads directory, removed once the session ends."""
    yield UPLOADS_ROOT
    shutil.rmtree(UPLOADS_ROOT, ignore_errors=True)


# ══════════════════════════════════════════════════════════════════════════
# Database
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def db_engine():
    """
    One in-memory SQLite database per test.

    StaticPool keeps a single connection, so every session sees the same
    database.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def seeded_users(session_factory) -> Dict[str, int]:
    """
    Two accounts without profile rows.

    Returns:
        {"alice": id, "bob": id}
    """
    async with session_factory() as session:
        alice = User(
            nama="Alice",
            email="alice@example.com",
            npm="2106001",
            jurusan="Informatika",
            role="user",
        )
        bob = User(
            nama="Bob",
            email="bob@example.com",
            npm="2106002",
            jurusan="Sistem Informasi",
            role="admin",
        )
        session.add_all([alice, bob])
        await session.commit()
        return {"alice": alice.id, "bob": bob.id}


# ══════════════════════════════════════════════════════════════════════════
# Files
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def avatar_storage(tmp_path) -> AvatarStorage:
    """AvatarStorage writing under a fresh temporary uploads root."""
    return AvatarStorage(uploads_root=str(tmp_path / "uploads"))


@pytest.fixture
def sample_image_bytes() -> bytes:
    """
    Provides a 1x1 transparent PNG.

    Only the declared content type is checked on upload; real bytes keep the
    static-serving tests honest.
    """
    return (
        b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR\x00\x00\x00\x01\x00\x00\x00\x01"
        b"\x08\x06\x00\x00\x00\x1f\x15\xc4\x89\x00\x00\x00\rIDATx\x9cc\xf8\x0f"
        b"\x00\x00\x01\x01\x00\x05\x18\xd8N\x00\x00\x00\x00IEND\xaeB`\x82"
    )


# ══════════════════════════════════════════════════════════════════════════
# HTTP
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def auth_headers() -> Callable[[int], Dict[str, str]]:
    """
    Builds the Authorization header the frontend sends.

    Usage:
        response = await test_client.get("/api/users/profile", headers=auth_headers(user_id))
    """

    def _headers(user_id: int) -> Dict[str, str]:
        token = jwt.encode({"id": user_id}, TEST_JWT_SECRET, algorithm="HS256")
        return {"Authorization": f"Bearer {token}"}

    return _headers


def override_dependencies(app, session_factory, storage: AvatarStorage) -> None:
    async def _test_db_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = _test_db_session
    app.dependency_overrides[get_avatar_storage] = lambda: storage


@pytest.fixture
def client_for(session_factory, avatar_storage):
    """
    Wraps any app built by create_app() in a test client with the same
    dependency overrides as test_client.

    Usage:
        async with client_for(create_app(route_groups=...)) as client:
            ...
    """

    @asynccontextmanager
    async def _client(app) -> AsyncGenerator[AsyncClient, None]:
        override_dependencies(app, session_factory, avatar_storage)
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            yield client

    return _client


@pytest_asyncio.fixture
async def test_client(session_factory, avatar_storage):
    """
    HTTPX AsyncClient talking to lifemon.main.app through ASGITransport.

    Usage:
        async def test_root(test_client):
            response = await test_client.get("/")
            assert response.status_code == 200
    """
    from lifemon.main import app

    override_dependencies(app, session_factory, avatar_storage)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
