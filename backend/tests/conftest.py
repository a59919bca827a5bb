"""
NoteDigest Backend: Test Configuration (conftest.py)
====================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Environment variables are set before any notedigest import so the
       settings singleton never sees production values.

Fixture Hierarchy (all function-scoped):
    ├── mock_db_session:  AsyncMock session for service unit tests
    ├── make_note:        builds detached Note rows
    ├── token_factory:    signs HS256 identity tokens with the test secret
    ├── auth_headers:     Authorization header for a given principal
    ├── stub_summarizer:  Summarizer returning a fixed summary or raising
    ├── recorded_sleep:   (delays, sleep) pair for backoff assertions
    ├── session_factory:  SQLite-backed sessions with the schema created
    ├── test_app:         create_app() with DB, auth and summarizer overridden
    └── test_client:      HTTPX AsyncClient over ASGITransport
"""

import os
import tempfile
from datetime import datetime, timedelta, timezone
from typing import List, Optional
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from jose import jwt


# ══════════════════════════════════════════════════════════════════════════
# Environment Setup
# ══════════════════════════════════════════════════════════════════════════

TEST_JWT_SECRET = "test-jwt-secret-not-real"
TEST_GEMINI_KEY = "test-key-not-real"

_test_dir = tempfile.mkdtemp(prefix="notedigest_test_")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_test_dir, 'test.db')}"
os.environ["GEMINI_API_KEY"] = TEST_GEMINI_KEY
os.environ["AUTH_JWT_SECRET"] = TEST_JWT_SECRET
os.environ["AUTH_JWT_ALGORITHM"] = "HS256"
os.environ["ENVIRONMENT"] = "test"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["RATE_LIMIT_REQUESTS"] = "10000"

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402

from notedigest.database import Base, dispose_engine, get_db_session  # noqa: E402
from notedigest.models.note import Note  # noqa: E402
from notedigest.security import TokenVerifier, get_token_verifier  # noqa: E402
from notedigest.services.gemini_summarizer import get_summarizer  # noqa: E402
from notedigest.services.summarizer_base import Summarizer  # noqa: E402


# ══════════════════════════════════════════════════════════════════════════
# Unit-test fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def mock_db_session():
    """
    A mock AsyncSession.

    Usage:
        result = MagicMock()
        result.scalar_one_or_none.return_value = note
        mock_db_session.execute.return_value = result
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.delete = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def make_note():
    """Factory for detached Note instances with sensible defaults."""

    def _make(owner_id: str = "user-a", **overrides) -> Note:
        now = datetime.now(timezone.utc)
        fields = {
            "id": uuid4(),
            "owner_id": owner_id,
            "title": "Groceries",
            "content": "Milk, eggs, bread and a bag of coffee beans.",
            "created_at": now,
            "updated_at": now,
        }
        fields.update(overrides)
        return Note(**fields)

    return _make


@pytest.fixture
def token_factory():
    """Signs identity tokens the test verifier accepts."""

    def _make(
        uid: Optional[str] = "user-a",
        secret: str = TEST_JWT_SECRET,
        expires_in: int = 3600,
        **claims,
    ) -> str:
        now = datetime.now(timezone.utc)
        payload = {"iat": now, "exp": now + timedelta(seconds=expires_in), **claims}
        if uid is not None:
            payload["sub"] = uid
        return jwt.encode(payload, secret, algorithm="HS256")

    return _make


@pytest.fixture
def auth_headers(token_factory):
    def _headers(uid: str = "user-a") -> dict:
        return {"Authorization": f"Bearer {token_factory(uid)}"}

    return _headers


class StubSummarizer(Summarizer):
    """Records every input; returns `result` or raises `error`."""

    def __init__(self):
        self.result = "A short summary."
        self.error: Optional[Exception] = None
        self.calls: List[str] = []
        self.configured = True

    @property
    def is_configured(self) -> bool:
        return self.configured

    async def summarize(self, text: str) -> str:
        self.calls.append(text)
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture
def stub_summarizer():
    return StubSummarizer()


@pytest.fixture
def recorded_sleep():
    """Replacement for asyncio.sleep that only records the requested delays."""
    delays: List[float] = []

    async def _sleep(seconds: float) -> None:
        delays.append(seconds)

    return delays, _sleep


# ══════════════════════════════════════════════════════════════════════════
# API fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def session_factory(tmp_path):
    """Fresh SQLite database per test with the notes schema created."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'notes.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest_asyncio.fixture
async def test_app(session_factory, stub_summarizer):
    """
    A freshly built application (own rate limiter) wired to the test database,
    the test token secret, and the stub summarizer.
    """
    from notedigest.main import create_app

    app = create_app()

    async def override_db_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = override_db_session
    app.dependency_overrides[get_token_verifier] = lambda: TokenVerifier(key=TEST_JWT_SECRET)
    app.dependency_overrides[get_summarizer] = lambda: stub_summarizer

    yield app

    app.dependency_overrides.clear()
    # The health check uses the module-level engine; drop its connections
    # so none outlive this test's event loop.
    await dispose_engine()


@pytest_asyncio.fixture
async def test_client(test_app):
    """
    Usage:
        async def test_health(test_client):
            response = await test_client.get("/api/health")
            assert response.status_code == 200
    """
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
