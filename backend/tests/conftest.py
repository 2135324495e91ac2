"""
Test configuration

Each test gets its own SQLite file shared by an async engine (request
path) and a sync engine (index builder), so API writes and builder runs
see the same rows.
"""

import os
import tempfile
from collections.abc import AsyncGenerator
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import sessionmaker

# Set test environment variables before importing app modules
_TEST_DIR = Path(tempfile.mkdtemp(prefix="folio-tests-"))
os.environ.setdefault("DATABASE_URL", f"sqlite:///{_TEST_DIR / 'folio.db'}")
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-testing-only")
os.environ.setdefault("EMBEDDING_PROVIDER", "mock")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/15")
os.environ.setdefault("CELERY_BROKER_URL", "memory://")
os.environ.setdefault("CELERY_RESULT_BACKEND", "cache+memory://")


@pytest.fixture
def db_path(tmp_path) -> Path:
    return tmp_path / "folio_test.db"


@pytest.fixture
def sync_session_factory(db_path):
    """Sync sessions on the per-test database (tables created here)."""
    from folio.database import Base
    import folio.models  # noqa: F401 - registers models with Base

    engine = create_engine(f"sqlite:///{db_path}")
    Base.metadata.create_all(engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    yield factory
    engine.dispose()


@pytest_asyncio.fixture
async def test_db(db_path, sync_session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Async session on the same database file as sync_session_factory."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{db_path}", echo=False)
    session_factory = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with session_factory() as session:
        yield session
        await session.rollback()

    await engine.dispose()


@pytest.fixture
def build_requests(monkeypatch):
    """Capture request_search_build calls instead of touching Redis."""
    calls = []
    monkeypatch.setattr(
        "folio.api.profile.request_search_build", lambda user_id: calls.append(user_id)
    )
    return calls


@pytest_asyncio.fixture
async def test_app(test_db: AsyncSession, build_requests):
    """FastAPI app with the test database."""
    from folio.main import app
    from folio.database import get_db

    async def override_get_db():
        yield test_db

    app.dependency_overrides[get_db] = override_get_db
    yield app
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def test_client(test_app) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=test_app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest_asyncio.fixture
async def make_user(test_db: AsyncSession):
    """Insert a user with optional profile sections."""
    from folio.models import User

    async def _make_user(name: str, username: str, **fields) -> User:
        sections = {
            key: fields.pop(key, [])
            for key in ("projects", "education", "work_experiences", "contacts")
        }
        user = User(name=name, username=username, email=f"{username}@example.com", **fields)
        for key, entries in sections.items():
            getattr(user, key).extend(entries)
        test_db.add(user)
        await test_db.commit()
        return user

    return _make_user


def issue_session_token(
    user_id: str,
    secret_key: Optional[str] = None,
    expires_in: timedelta = timedelta(days=30),
) -> str:
    """Sign a token the way the external auth service does."""
    from folio.auth import ALGORITHM
    from folio.config import get_settings

    claims = {"sub": user_id, "exp": datetime.now(timezone.utc) + expires_in}
    return jwt.encode(claims, secret_key or get_settings().secret_key, algorithm=ALGORITHM)


def make_auth_headers(user_id: str) -> dict[str, str]:
    """Authorization header with a valid session token."""
    return {"Authorization": f"Bearer {issue_session_token(user_id)}"}
