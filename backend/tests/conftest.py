"""Pytest configuration and fixtures for async testing."""
from typing import Any, AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import rentdesk.models  # noqa: F401  registers tables on Base.metadata
from rentdesk.database import Base, get_db
from rentdesk.main import app
from rentdesk.models.ipn_config import IPNConfig
from tests.utils.factories import TEST_WEBHOOK_SECRET

# In-memory SQLite shared by every connection of one test
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture(scope="function")
async def test_engine() -> AsyncGenerator[AsyncEngine, None]:
    """
    Create a fresh in-memory database for each test.

    Yields:
        AsyncEngine: Engine with all tables created
    """
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(test_engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """
    Create a database session for each test.

    Yields:
        AsyncSession: Database session for testing
    """
    session_factory = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture(scope="function")
async def async_client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """
    Create an async HTTP client bound to the test database session.

    Args:
        db_session: Test database session fixture

    Yields:
        AsyncClient: Async HTTP client for API testing
    """

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        """Override database dependency to use test database."""
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


async def _create_config(db_session: AsyncSession, **overrides: Any) -> str | None:
    data = {
        "webhook_url": "https://rentdesk.example.com/webhooks/ipn",
        "webhook_secret": TEST_WEBHOOK_SECRET,
        "is_active": True,
        "retry_attempts": 3,
        "retry_delay_seconds": 0,
        "timeout_seconds": 30,
        "require_signature": False,
    }
    data.update(overrides)

    db_session.add(IPNConfig(**data))
    await db_session.commit()
    return data["webhook_secret"]


@pytest_asyncio.fixture(scope="function")
async def active_config(db_session: AsyncSession) -> str:
    """
    Create an active IPN configuration with a secret.

    Only the secret is returned; the pipeline rolls back on failures, and a
    rolled-back ORM instance cannot be read outside a greenlet.

    Returns:
        str: Webhook secret
    """
    return await _create_config(db_session)


@pytest.fixture
def make_config(db_session: AsyncSession):
    """Factory fixture for configurations with custom fields."""

    async def _make(**overrides: Any) -> str | None:
        return await _create_config(db_session, **overrides)

    return _make


