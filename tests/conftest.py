"""Pytest configuration and fixtures for engine and API tests."""
import os

# Set test env BEFORE any imports that use config
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["MIN_BRACKET_PARTICIPANTS"] = "2"
os.environ["MIN_ROUND_ROBIN_PARTICIPANTS"] = "3"

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from engine.domain import Participant
from engine.models import get_async_session, init_db
from web.api.drafts import DraftStore, get_draft_store
from web.api.main import app


def make_participants(n: int) -> list[Participant]:
    return [Participant(id=f"p{i + 1}", name=f"P{i + 1}") for i in range(n)]


@pytest.fixture
def players():
    """Factory: players(n) -> [P1..Pn] with ids p1..pn."""
    return make_participants


@pytest.fixture
async def db_engine(tmp_path):
    """Fresh SQLite file per test with all tables created."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'competitions.db'}")
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as s:
        yield s


@pytest.fixture
def store():
    return DraftStore()


@pytest.fixture
async def client(session_factory, store):
    """Async HTTP client for testing the API against the per-test database and draft store."""

    async def _session():
        async with session_factory() as s:
            yield s

    app.dependency_overrides[get_async_session] = _session
    app.dependency_overrides[get_draft_store] = lambda: store
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
    app.dependency_overrides.clear()
