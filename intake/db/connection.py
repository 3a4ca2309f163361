"""
Database connection management with SQLAlchemy async support.

Supports SQLite (development, tests) and PostgreSQL/MySQL (production) via DATABASE_URL.
"""
from typing import Optional

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool
from intake.db.models import Base
from intake.config import settings
import logging

logger = logging.getLogger(__name__)

# Database engine (will be initialized in init_db)
engine = None
async_session_maker = None


async def init_db(database_url: Optional[str] = None):
    """
    Initialize database connection and create tables.

    Args:
        database_url: Optional database URL override (defaults to settings)
    """
    global engine, async_session_maker

    if database_url is None:
        database_url = settings.database_url
    logger.info(f"Initializing database: {database_url.split('://')[0]}")

    # Create async engine with appropriate settings based on database type
    if database_url.startswith("sqlite") and ":memory:" in database_url:
        # In-memory SQLite only exists on one connection
        engine = create_async_engine(
            database_url,
            echo=False,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    elif database_url.startswith("sqlite"):
        # File SQLite: separate connections so concurrent lookups get their own
        engine = create_async_engine(
            database_url,
            echo=False,
            connect_args={"check_same_thread": False, "timeout": 30},
        )
    else:
        # MySQL/PostgreSQL configuration
        engine = create_async_engine(
            database_url,
            echo=False,
            pool_pre_ping=True,  # Verify connections before using
            pool_recycle=3600,   # Recycle connections after 1 hour
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
        )

    # Create session factory
    async_session_maker = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    logger.info("✅ Database initialized successfully")


def get_session_factory() -> async_sessionmaker:
    """
    Get the session factory for components that open their own sessions
    (unit of work, concurrent entity lookups).
    """
    if async_session_maker is None:
        raise RuntimeError("Database not initialized. Call init_db() first.")
    return async_session_maker


async def get_db_session() -> AsyncSession:
    """
    Get a database session that commits on success and rolls back on error.

    Usage:
        async for db in get_db_session():
            ...
    """
    if async_session_maker is None:
        raise RuntimeError("Database not initialized. Call init_db() first.")

    async with async_session_maker() as session:
        try:
            yield session
        except Exception as e:
            await session.rollback()
            logger.error(f"Database session error: {e}")
            raise
        else:
            # Only commit if no exception occurred
            await session.commit()
        finally:
            await session.close()


async def close_db():
    """Close database connection."""
    global engine, async_session_maker
    if engine:
        await engine.dispose()
        logger.info("Database connection closed")
    engine = None
    async_session_maker = None
