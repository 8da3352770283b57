"""
Database Module

Async SQLAlchemy engine, session factory and declarative Base.

Every request gets its own AsyncSession through the `get_db` dependency;
services and repositories never open sessions themselves.
"""

import logging
from typing import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base

from app.core.config import settings

logger = logging.getLogger(__name__)


# ============================================================
# Engine
# ============================================================
def _engine_options() -> dict:
    options = {"echo": settings.SQLALCHEMY_ECHO}

    # Pool sizing only applies to the server-backed driver
    if settings.DATABASE_URL.startswith("postgresql"):
        options["pool_pre_ping"] = True
        if settings.DB_POOL_MIN_SIZE is not None:
            options["pool_size"] = settings.DB_POOL_MIN_SIZE
        if settings.DB_POOL_MAX_SIZE is not None:
            min_size = settings.DB_POOL_MIN_SIZE or 5
            options["max_overflow"] = max(0, settings.DB_POOL_MAX_SIZE - min_size)
    return options


engine = create_async_engine(settings.DATABASE_URL, **_engine_options())

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)

Base = declarative_base()


# ============================================================
# FastAPI dependency
# ============================================================
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Yield a session for the duration of one request.

    Services commit explicitly; anything left uncommitted when the
    request fails is rolled back here.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


# ============================================================
# Health
# ============================================================
async def check_db_connection() -> bool:
    """Run a trivial query to confirm the database is reachable."""
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return False
