"""Shared test fixtures — single test DB for all test modules."""
from __future__ import annotations

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession

from src.db.tables import Base
from src.db.engine import get_session

# Use a shared in-memory DB with check_same_thread=False and StaticPool
# This ensures all connections see the same in-memory database.
from sqlalchemy.pool import StaticPool

TEST_DB_URL = "sqlite+aiosqlite:///file:test?mode=memory&cache=shared&uri=true"

test_engine = create_async_engine(
    TEST_DB_URL,
    echo=False,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestSession = async_sessionmaker(test_engine, expire_on_commit=False, class_=AsyncSession)


async def override_get_session():
    async with TestSession() as session:
        yield session


# Import app and override BEFORE any test module imports app
from src.api.main import app  # noqa: E402

app.dependency_overrides[get_session] = override_get_session

import src.db.engine as _engine_mod
_engine_mod.async_session = TestSession
_engine_mod.engine = test_engine


from contextlib import asynccontextmanager

@asynccontextmanager
async def get_test_session():
    """Context manager for seeding data in tests."""
    async with TestSession() as session:
        yield session


MODERATOR_PASSWORD = "secret-pass"


@pytest_asyncio.fixture(autouse=True)
async def setup_db():
    """Create tables before each test, drop after."""
    import src.db.user_tables  # noqa: F401
    import src.db.comment_tables  # noqa: F401
    import src.db.report_tables  # noqa: F401
    import src.db.rating_tables  # noqa: F401

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield

    # Reset rate limiter between tests
    from src.middleware.rate_limit import reset_store
    reset_store()

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture
async def client():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def category():
    from src.db.tables import CategoryRow
    async with get_test_session() as session:
        row = CategoryRow(name="Fantasy", genre="Epic Fantasy")
        session.add(row)
        await session.commit()
        return row


@pytest_asyncio.fixture
async def tag():
    from src.db.tables import TagRow
    async with get_test_session() as session:
        row = TagRow(name="Dragons")
        session.add(row)
        await session.commit()
        return row


@pytest_asyncio.fixture
async def story(category):
    from src.db.tables import StoryRow
    async with get_test_session() as session:
        row = StoryRow(
            title="The Long Winter",
            genre="Epic Fantasy",
            length=1200,
            content="Snow fell for a hundred days.",
            description="A kingdom waits out the cold.",
            category_id=category.id,
        )
        session.add(row)
        await session.commit()
        return row


async def make_user(role: str, email: str, name: str = "Test User"):
    from src.auth import hash_password
    from src.db.user_tables import UserRow
    async with get_test_session() as session:
        user = UserRow(name=name, email=email, password_hash=hash_password(MODERATOR_PASSWORD), role=role)
        session.add(user)
        await session.commit()
        return user


async def bearer_for(user) -> dict:
    from src.auth import issue_token
    async with get_test_session() as session:
        token = await issue_token(session, user)
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def moderator():
    return await make_user("moderator", "moderator@example.com", name="Moderator User")


@pytest_asyncio.fixture
async def moderator_headers(moderator):
    return await bearer_for(moderator)


@pytest_asyncio.fixture
async def reader_headers():
    reader = await make_user("user", "reader@example.com", name="Reader")
    return await bearer_for(reader)
