"""
Database session management.

WHAT: Engine, session factory and the unit-of-work scope shared by HTTP
requests and the recompute task.

WHY: Every quotation write (content update, version snapshot, audit entry)
must land together or not at all. Both callers open sessions the same way
so that rule holds whether a save comes from the API or from maintenance.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, AsyncIterator, Callable
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from quotedesk.core.config import settings


def _engine_options() -> dict:
    """
    Engine keyword arguments for the configured database.

    WHY: SQLite (local runs) uses a single-connection pool and rejects the
    pool sizing arguments PostgreSQL needs.
    """
    if settings.async_database_url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_pre_ping": True,
        "pool_size": settings.DB_POOL_SIZE,
        "max_overflow": settings.DB_MAX_OVERFLOW,
    }


engine = create_async_engine(
    settings.async_database_url,
    echo=settings.DEBUG,
    **_engine_options(),
)

# expire_on_commit=False keeps loaded quotations readable after commit;
# attributes cannot lazy-load under AsyncSession.
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


@asynccontextmanager
async def transaction(
    session_factory: Callable[[], AsyncSession] = AsyncSessionLocal,
) -> AsyncIterator[AsyncSession]:
    """
    Open a session whose work is committed on success, rolled back on error.

    Args:
        session_factory: Factory to open the session with

    Yields:
        AsyncSession inside one transaction
    """
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency to get database session.

    WHY: Each request runs in exactly one transaction. A failed comment
    gate or concurrent-modification check leaves the database untouched.

    Yields:
        AsyncSession: Database session for the request
    """
    async with transaction() as session:
        yield session
