"""
Test configuration and fixtures.
Uses a file-backed SQLite database per test (aiosqlite) so that several
sessions can race on the same rows.
"""
import os

# Set test environment before any imports
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["ENVIRONMENT"] = "test"
os.environ["N8N_SHARED_SECRET"] = "test-n8n-secret"
os.environ.pop("N8N_AUTO_COMMENTS_WEBHOOK_URL", None)

import pytest
from typing import AsyncGenerator

from fastapi import FastAPI
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from app.ai.base import LLMProvider
from app.models.base import Base
from app.models.profile import Profile
from tests.factories import FakeProvider


@pytest.fixture(scope="function")
async def engine(tmp_path):
    """Fresh SQLite database file for each test."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture(scope="function")
def session_maker(engine):
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


@pytest.fixture(scope="function")
async def db_session(session_maker) -> AsyncGenerator[AsyncSession, None]:
    """Create database session for testing."""
    async with session_maker() as session:
        yield session


@pytest.fixture(scope="function")
async def test_user(db_session: AsyncSession) -> Profile:
    """Create a test user on a plan that includes auto-comments."""
    profile = Profile(user_id="firebase-uid-pro", email="pro@example.com", plan="pro")
    db_session.add(profile)
    await db_session.commit()
    await db_session.refresh(profile)
    return profile


@pytest.fixture(scope="function")
async def free_user(db_session: AsyncSession) -> Profile:
    """Create a test user on the free plan."""
    profile = Profile(user_id="firebase-uid-free", email="free@example.com", plan="free")
    db_session.add(profile)
    await db_session.commit()
    await db_session.refresh(profile)
    return profile


@pytest.fixture(scope="function")
async def admin_user(db_session: AsyncSession) -> Profile:
    profile = Profile(user_id="firebase-uid-admin", email="admin@example.com", plan="elite", is_admin=True)
    db_session.add(profile)
    await db_session.commit()
    await db_session.refresh(profile)
    return profile


@pytest.fixture(scope="function")
def fake_provider() -> FakeProvider:
    return FakeProvider()


def get_test_app(session_maker, profile: Profile, provider: LLMProvider) -> FastAPI:
    """Create a test FastAPI app with overridden dependencies."""
    from app.main import app
    from app.database import get_db
    from app.auth.dependencies import get_current_user
    from app.api.generation import get_provider

    async def override_get_db():
        async with session_maker() as session:
            yield session

    async def override_get_current_user():
        return profile

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_user] = override_get_current_user
    app.dependency_overrides[get_provider] = lambda: provider

    return app


async def _client(session_maker, profile, provider) -> AsyncGenerator[AsyncClient, None]:
    app = get_test_app(session_maker, profile, provider)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
async def client(session_maker, test_user: Profile, fake_provider: FakeProvider) -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client authenticated as the pro user."""
    async for ac in _client(session_maker, test_user, fake_provider):
        yield ac


@pytest.fixture(scope="function")
async def free_client(session_maker, free_user: Profile, fake_provider: FakeProvider) -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client authenticated as the free user."""
    async for ac in _client(session_maker, free_user, fake_provider):
        yield ac


@pytest.fixture(scope="function")
async def admin_client(session_maker, admin_user: Profile, fake_provider: FakeProvider) -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client authenticated as an administrator."""
    async for ac in _client(session_maker, admin_user, fake_provider):
        yield ac
