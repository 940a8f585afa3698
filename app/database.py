"""Database configuration and connection management."""

from collections.abc import AsyncGenerator, AsyncIterator, Callable
from contextlib import asynccontextmanager

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from app.config import settings
from app.core.exceptions import AppException, StorageException

# Convert sync PostgreSQL URL to async
DATABASE_URL = settings.database_url.replace("postgresql://", "postgresql+asyncpg://")

# Create async engine with connection pooling
engine: AsyncEngine = create_async_engine(
    DATABASE_URL,
    echo=settings.debug,
    pool_pre_ping=True,
    pool_size=10,
    max_overflow=20,
    pool_recycle=3600,
    connect_args={
        "server_settings": {
            "application_name": settings.app_name,
        },
    },
)

# Async session factory
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency for getting async database sessions."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


@asynccontextmanager
async def write_transaction(
    db: AsyncSession,
    on_integrity_error: Callable[[IntegrityError], AppException | None] | None = None,
) -> AsyncIterator[None]:
    """
    Commit the statements executed inside the block, or roll them back.

    Args:
        db: Database session
        on_integrity_error: Maps a constraint violation to an application error;
            returning None falls back to StorageException

    Raises:
        StorageException: On any persistence failure not mapped by the caller
    """
    try:
        yield
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        mapped = on_integrity_error(e) if on_integrity_error else None
        if mapped is not None:
            raise mapped from e
        raise StorageException() from e
    except SQLAlchemyError as e:
        await db.rollback()
        raise StorageException() from e
    except Exception:
        await db.rollback()
        raise


def integrity_error_message(exc: IntegrityError) -> str:
    """Driver error text for a constraint violation."""
    return str(exc.orig) if getattr(exc, "orig", None) is not None else str(exc)


async def check_database_connection() -> bool:
    """Check if database connection is healthy."""
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except Exception:
        return False
