"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import AsyncGenerator, Awaitable, Callable

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from fithero.auth.jwt import create_access_token
from fithero.config import get_settings
from fithero.database import close_db, get_engine, get_session_factory, init_db
from fithero.db.models import Base, User
from fithero.progression.ledger import PointLedger
from fithero.progression.locks import UserLocks
from fithero.progression.seed import seed_catalog
from fithero.progression.store import ProgressionStore
from fithero.users.service import register_user

ADMIN_KEY = "test-admin-key"


@pytest.fixture(autouse=True)
def app_settings(tmp_path, monkeypatch):
    """Point the app at a throwaway SQLite file and a known admin key."""
    monkeypatch.setenv("FITHERO_DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'fithero.db'}")
    monkeypatch.setenv("FITHERO_ADMIN_API_KEY", ADMIN_KEY)
    monkeypatch.setenv("FITHERO_SEED_CATALOG", "false")
    monkeypatch.setenv("FITHERO_LOG_FORMAT", "console")
    monkeypatch.setenv("FITHERO_JWT_SECRET", "test-secret-with-enough-bytes-for-hs256")
    get_settings.cache_clear()
    yield get_settings()
    get_settings.cache_clear()


@pytest_asyncio.fixture
async def database(app_settings) -> AsyncGenerator[None, None]:
    """Initialize the engine and build the schema from the ORM metadata."""
    await init_db(app_settings.database_url)
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    await close_db()


@pytest_asyncio.fixture
async def db_session(database) -> AsyncGenerator[AsyncSession, None]:
    """Get a direct database session for tests and assertions."""
    async with get_session_factory()() as session:
        yield session


@pytest_asyncio.fixture
async def seeded(db_session: AsyncSession) -> AsyncSession:
    """Session over a database holding the seeded task and achievement catalog."""
    await seed_catalog(db_session)
    return db_session


@pytest.fixture
def store(db_session: AsyncSession) -> ProgressionStore:
    return ProgressionStore(db_session)


@pytest.fixture
def locks() -> UserLocks:
    return UserLocks()


@pytest.fixture
def make_user(db_session: AsyncSession) -> Callable[..., Awaitable[User]]:
    """Factory: register a user and optionally give them a starting balance."""
    counter = {"n": 0}

    async def _make(points: int = 0, username: str | None = None) -> User:
        counter["n"] += 1
        name = username or f"hero{counter['n']}"
        user = await register_user(db_session, f"{name}@example.com", name)
        if points:
            await PointLedger(ProgressionStore(db_session), UserLocks()).credit(user.id, points)
        return await ProgressionStore(db_session).get_user(user.id)

    return _make


@pytest_asyncio.fixture
async def client(database) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client against the app. Redis stays uninitialized (no rate limiting)."""
    from fithero.main import create_app

    app = create_app()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def seeded_client(client: AsyncClient, seeded: AsyncSession) -> AsyncClient:
    return client


@pytest.fixture
def auth_headers() -> Callable[[User], dict[str, str]]:
    """Bearer header for a user, signed with the test secret."""

    def _headers(user: User) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(user.id, user.username)}"}

    return _headers
