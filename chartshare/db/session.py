"""
Database Session Management
Engine creation and session handling
"""

from typing import AsyncGenerator, Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from chartshare.core.config import settings
from chartshare.core.logging import get_logger
from chartshare.db.base import Base

logger = get_logger(__name__)

# Engine
engine: Optional[AsyncEngine] = None
async_session_maker: Optional[async_sessionmaker] = None


def create_engine_for(url: str) -> AsyncEngine:
    """Create an async engine; pool sizing only applies to server databases"""
    if url.startswith("sqlite"):
        return create_async_engine(url, echo=settings.DEBUG)

    return create_async_engine(
        url,
        echo=settings.DEBUG,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=20,
    )


async def init_db(create_tables: Optional[bool] = None) -> None:
    """
    Initialize database engine

    Tables are created only when create_tables is true, or by default in the
    development environment. Other environments are provisioned by
    scripts/init_db.py.
    """
    global engine, async_session_maker

    url = settings.database_url
    logger.info(f"Connecting to database at {url.split('@')[-1]}")

    engine = create_engine_for(url)
    async_session_maker = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    # Import all SQLAlchemy models to ensure they're registered with Base
    from chartshare.db import models  # noqa: F401

    if create_tables is None:
        create_tables = settings.ENVIRONMENT == "development"

    if create_tables:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables created")


async def close_db() -> None:
    """Close database connections"""
    global engine, async_session_maker

    if engine:
        await engine.dispose()
        logger.info("Database connection closed")
    engine = None
    async_session_maker = None


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Get database session (dependency injection)"""
    if async_session_maker is None:
        await init_db()

    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def check_database() -> bool:
    """Check the database answers a trivial query"""
    try:
        from sqlalchemy import text

        async with async_session_maker() as session:
            await session.execute(text("SELECT 1"))
            return True
    except Exception as e:
        logger.warning(f"Database check failed: {e}")
        return False
