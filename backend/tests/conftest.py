"""
Pytest configuration and fixtures.

WHY: Fixtures provide reusable test setup/teardown logic, reducing
duplication and ensuring consistent test environments.
"""

import pytest
import pytest_asyncio
from typing import AsyncGenerator
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool
from httpx import AsyncClient, ASGITransport

from quotedesk.main import app
from quotedesk.models.base import Base
from quotedesk.db.session import get_db
from quotedesk.api.maintenance import get_recompute_service
from quotedesk.services.recompute_service import RecomputeService


# Test database URL
# WHY: Using SQLite for tests eliminates external database dependencies
# and makes tests faster.
TEST_ASYNC_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    """
    Create a test database engine.

    WHY: Function scope ensures each test gets a fresh database state.
    StaticPool keeps one in-memory database shared by every session the
    test opens (request session, recompute sessions).
    """
    engine = create_async_engine(
        TEST_ASYNC_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    """
    Session factory bound to the test engine.

    WHY: The recompute task opens one session per quotation.
    """
    return async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """
    Create a test database session.

    Yields:
        AsyncSession: Database session for the test
    """
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture
async def client(db_session: AsyncSession, session_factory) -> AsyncGenerator[AsyncClient, None]:
    """
    Create a test HTTP client.

    WHY: AsyncClient allows testing FastAPI endpoints without running
    a real server. The overridden get_db keeps the production
    commit-or-rollback semantics on the test session.

    Yields:
        AsyncClient: HTTP client for making test requests
    """

    async def override_get_db():
        """Override database dependency with test session."""
        try:
            yield db_session
            await db_session.commit()
        except Exception:
            await db_session.rollback()
            raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_recompute_service] = lambda: RecomputeService(session_factory)

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def actor_headers() -> dict:
    """Headers identifying the acting salesperson."""
    return {"X-Actor": "Asha Kumar"}


@pytest.fixture
def sample_items() -> list:
    """
    Two line items used across tests.

    WHY: 2 x 100 at 10% discount and 18% tax is 212.40; the second line
    adds a plain 50.00, for a grand total of 262.40.
    """
    return [
        {"description": "Ball valve 2in", "uom": "NOS", "qty": 2, "unit_price": 100, "discount_percent": 10, "tax_rate": 18},
        {"description": "Gasket", "uom": "NOS", "qty": 1, "unit_price": 50, "discount_percent": 0, "tax_rate": 0},
    ]
