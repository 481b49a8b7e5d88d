"""
muntanyers Backend: Test Configuration (conftest.py)
====================================================

What:  Shared pytest fixtures for the whole suite.

Fixture Hierarchy (all function-scoped):
    ├── engine:            in-memory SQLite with every table created
    ├── db_session:        AsyncSession on that engine (service tests)
    ├── make_user:         registers an account through AccountService
    ├── mock_db_session:   AsyncMock session for error-path tests
    ├── temp_storage:      temporary directory for avatar storage
    ├── sample_image_bytes: tiny PNG payload
    ├── app:               FastAPI app wired to the test engine
    └── make_client:       one httpx AsyncClient per account (own cookie jar)
"""

import os
import tempfile

# Override settings BEFORE any muntanyers import
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["SESSION_SECRET_KEY"] = "test-session-secret-not-real"
os.environ["STORAGE_ROOT"] = tempfile.mkdtemp(prefix="muntanyers_test_")
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["AUTH_RATE_LIMIT_REQUESTS"] = "10000"
os.environ["AUTO_CREATE_SCHEMA"] = "false"

from typing import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from muntanyers.database import Base, build_engine, get_db_session
from muntanyers import models  # noqa: F401
from muntanyers.services.account_service import account_service


# ══════════════════════════════════════════════════════════════════════════
# Database
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def engine():
    """
    A fresh in-memory database per test.

    StaticPool keeps the single connection alive so every session sees the
    same database.
    """
    test_engine = build_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def make_user(db_session):
    """
    Factory registering accounts through AccountService.

    Usage:
        bob = await make_user("bob", private=True)
    """

    async def _make_user(username: str, password: str = "secret123", private: bool = False):
        user = await account_service.register(
            db_session, username, f"{username}@example.com", password
        )
        if private:
            user.is_private = True
            await db_session.flush()
        return user

    return _make_user


@pytest.fixture
def mock_db_session():
    """An AsyncMock standing in for AsyncSession."""
    session = AsyncMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    return session


# ══════════════════════════════════════════════════════════════════════════
# Files
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def temp_storage(tmp_path):
    storage_dir = tmp_path / "storage"
    storage_dir.mkdir()
    return str(storage_dir)


@pytest.fixture
def sample_image_bytes():
    """PNG signature plus an IHDR chunk header; enough to look like an image."""
    return b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR\x00\x00\x00\x01\x00\x00\x00\x01"


# ══════════════════════════════════════════════════════════════════════════
# HTTP
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def app(session_factory):
    """
    A FastAPI app whose per-request sessions come from the test engine.

    The override keeps the commit-or-rollback behaviour of get_db_session.
    """
    from muntanyers.main import create_app

    application = create_app()

    async def _test_db_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    application.dependency_overrides[get_db_session] = _test_db_session
    return application


@pytest_asyncio.fixture
async def make_client(app):
    """
    Factory for HTTP clients. Each client has its own cookie jar, so each
    one can be logged in as a different account.

    Usage:
        alice = await make_client()
        await alice.post("/api/register", json={...})
    """
    clients = []

    async def _make_client() -> AsyncClient:
        client = AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver")
        clients.append(client)
        return client

    yield _make_client

    for client in clients:
        await client.aclose()


@pytest_asyncio.fixture
async def test_client(make_client):
    """A single anonymous client."""
    return await make_client()
