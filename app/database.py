# app/database.py
"""
Process-wide database engine.

The engine and session factory are created once per process by
``init_engine`` (called from the application lifespan) and reused across
requests; ``dispose_engine`` releases the pool on shutdown.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from app.core.config import get_settings

logger = logging.getLogger(__name__)

Base = declarative_base()

engine: Optional[AsyncEngine] = None
async_session: Optional[async_sessionmaker] = None


def normalize_database_url(database_url: str) -> str:
    """Convert postgres:// and postgresql:// URLs to the asyncpg driver."""
    if database_url.startswith("postgres://"):
        database_url = database_url.replace("postgres://", "postgresql://", 1)
    if database_url.startswith("postgresql://"):
        database_url = database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return database_url


def init_engine(database_url: Optional[str] = None) -> AsyncEngine:
    """Create the engine and session factory if they do not exist yet."""
    global engine, async_session

    if engine is not None:
        return engine

    url = normalize_database_url(database_url or get_settings().DATABASE_URL)
    if not url:
        raise ValueError("DATABASE_URL is not set in environment variables")

    engine_kwargs = {"echo": False, "future": True}
    if url.startswith("postgresql"):
        engine_kwargs.update(pool_size=10, max_overflow=20, pool_timeout=30, pool_recycle=1800)

    engine = create_async_engine(url, **engine_kwargs)
    async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    logger.info(f"Database engine initialised ({engine.dialect.name})")
    return engine


async def dispose_engine() -> None:
    global engine, async_session

    if engine is not None:
        await engine.dispose()
        logger.info("Database engine disposed")
    engine = None
    async_session = None


@asynccontextmanager
async def get_session() -> AsyncIterator[AsyncSession]:
    if async_session is None:
        init_engine()
    session = async_session()
    try:
        yield session
    finally:
        await session.close()
