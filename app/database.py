"""
Database engine and session management.

PostgreSQL (asyncpg) in deployments; SQLite (aiosqlite) for local runs and
tests. Every request gets one session that commits when the handler returns
and rolls back if it raises.
"""
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool
from typing import Any, AsyncGenerator, Dict
import logging

from app.config import settings

logger = logging.getLogger(__name__)


def _engine_options(database_url: str) -> Dict[str, Any]:
    options: Dict[str, Any] = {
        "echo": settings.DATABASE_ECHO,
        "future": True,
        "poolclass": NullPool,  # Use NullPool for better async compatibility
    }
    if make_url(database_url).get_backend_name() != "sqlite":
        options["pool_pre_ping"] = True
    return options


engine = create_async_engine(settings.DATABASE_URL, **_engine_options(settings.DATABASE_URL))

# Create async session factory
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)

# Base class for ORM models
Base = declarative_base()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Request-scoped session dependency.

    Handlers flush to get generated ids; the commit happens here once the
    handler has returned.

    Example:
        @router.get("")
        async def list_brands(db: AsyncSession = Depends(get_db)):
            result = await db.execute(select(Brand))
            return result.scalars().all()
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception as e:
            await session.rollback()
            logger.error("Database session error: %s", e)
            raise
        finally:
            await session.close()


async def init_db() -> None:
    """Create any missing tables for the brand, content and localization models."""
    backend = make_url(settings.DATABASE_URL).get_backend_name()
    try:
        async with engine.begin() as conn:
            # Import all models to ensure they're registered
            from app.models import database_models  # noqa: F401

            await conn.run_sync(Base.metadata.create_all)
            logger.info("Database tables created/verified (%s, %d tables)", backend, len(Base.metadata.tables))

    except Exception as e:
        logger.error("Error initializing %s database: %s", backend, e)
        raise


async def close_db() -> None:
    """Close database connections gracefully."""
    try:
        await engine.dispose()
        logger.info("Database connections closed")
    except Exception as e:
        logger.error("Error closing database: %s", e)
        raise
