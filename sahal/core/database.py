"""
Database configuration and session management
Uses SQLAlchemy with async support
"""

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.exc import OperationalError, InterfaceError
from sqlalchemy.orm.exc import StaleDataError
from sqlalchemy.pool import NullPool, StaticPool
from contextlib import asynccontextmanager
from functools import wraps
from typing import AsyncGenerator
import logging

from .config import settings
from .exceptions import InternalPersistenceError, ConcurrentModificationException

logger = logging.getLogger(__name__)

# Determine if we're using SQLite
is_sqlite = settings.database_url_async.startswith("sqlite")

# Create async engine with conditional parameters
if is_sqlite:
    # An in-memory database only lives as long as its single connection
    engine = create_async_engine(
        settings.database_url_async,
        echo=settings.DATABASE_ECHO,
        poolclass=StaticPool if ":memory:" in settings.database_url_async else NullPool,
    )
else:
    engine = create_async_engine(
        settings.database_url_async,
        echo=settings.DATABASE_ECHO,
        pool_size=settings.DATABASE_POOL_SIZE,
        max_overflow=settings.DATABASE_MAX_OVERFLOW,
        pool_timeout=settings.DATABASE_POOL_TIMEOUT,
        pool_pre_ping=True,  # Verify connections before use
    )

# Create session factory
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)

# Database dependency
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Create and yield database session
    Ensures proper cleanup after use
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

@asynccontextmanager
async def get_db_context() -> AsyncGenerator[AsyncSession, None]:
    """
    Context manager for database sessions
    Useful for scripts and background tasks
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

def persistence_retry(func):
    """
    Retry a service unit of work once on transient database errors.

    The wrapped coroutine must be a method of a service holding its session
    on ``self.db`` and must re-read everything it mutates, since the session
    is rolled back before the retry.
    """
    @wraps(func)
    async def wrapper(self, *args, **kwargs):
        attempts = settings.PERSISTENCE_RETRY_ATTEMPTS + 1
        for attempt in range(1, attempts + 1):
            try:
                return await func(self, *args, **kwargs)
            except (OperationalError, InterfaceError) as e:
                await self.db.rollback()
                if attempt == attempts:
                    logger.error(f"{func.__qualname__} failed after {attempt} attempts: {e}")
                    raise InternalPersistenceError() from e
                logger.warning(
                    f"Transient database error in {func.__qualname__} "
                    f"(attempt {attempt}/{attempts}): {e}"
                )
    return wrapper

async def init_db() -> None:
    """Initialize database tables"""
    from sahal.models import Base

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables created successfully")

async def close_db() -> None:
    """Close database connections"""
    await engine.dispose()
    logger.info("Database connections closed")

async def commit_or_conflict(db: AsyncSession, resource: str = "Record") -> None:
    """Commit, turning a lost optimistic-version race into a 409"""
    try:
        await db.commit()
    except StaleDataError as e:
        await db.rollback()
        logger.warning(f"Concurrent modification of {resource}: {e}")
        raise ConcurrentModificationException(resource) from e
