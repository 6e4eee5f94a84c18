"""
Shared test fixtures for the hours ledger test suite.

Each test gets a fresh in-memory aiosqlite database; HTTP tests talk to the
app through httpx with real JWTs minted for seeded users.
"""

import os
import sys
from datetime import date
from typing import AsyncGenerator

import pytest

# Ensure project root is importable
ROOT_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

# Override environment BEFORE importing application modules
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["CORS_ORIGINS"] = '["*"]'
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["SECRET_KEY"] = "test-secret-key-for-the-hours-ledger-suite"

from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.api.v1.deps import get_db, get_today
from app.core.security import create_access_token, get_password_hash
from app.db.base import Base
from app.db.ledger_store import LedgerStore
from app.main import app
from app.models.user import User
from app.services.vacation_ledger import VacationLedger

# Wednesday; days after it are "future"
TODAY = date(2025, 6, 18)


@pytest.fixture
async def engine():
    test_engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Raw database session for direct queries in tests."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def store(db_session) -> LedgerStore:
    return LedgerStore(db_session)


@pytest.fixture
def vacations(store) -> VacationLedger:
    return VacationLedger(store)


async def _make_user(session: AsyncSession, email: str, role: str = "worker", **fields) -> User:
    user = User(
        email=email,
        hashed_password=get_password_hash("password123"),
        full_name=fields.pop("full_name", email.split("@")[0].title()),
        role=role,
        **fields,
    )
    session.add(user)
    await session.commit()
    await session.refresh(user)
    return user


@pytest.fixture
def make_user(db_session):
    async def _factory(email: str, role: str = "worker", **fields) -> User:
        return await _make_user(db_session, email, role, **fields)

    return _factory


@pytest.fixture
async def worker(db_session) -> User:
    return await _make_user(
        db_session,
        "ana@example.com",
        full_name="Ana Torres",
        worker_nif="12345678Z",
        work_center="Madrid",
    )


@pytest.fixture
async def admin(db_session) -> User:
    return await _make_user(db_session, "boss@example.com", role="admin")


@pytest.fixture
def auth_headers():
    """Bearer headers carrying a real access token for ``user``."""

    def _headers(user: User) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(user.id)}"}

    return _headers


@pytest.fixture
async def async_client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """httpx AsyncClient wired to the app with the test database and a pinned date."""

    async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_today] = lambda: TODAY
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
