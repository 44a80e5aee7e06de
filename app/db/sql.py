# app/db/sql.py
from __future__ import annotations

import logging
from typing import AsyncIterator

from fastapi import HTTPException
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from app.core.config import settings
from app.db.base import Base

logger = logging.getLogger(__name__)


engine = create_async_engine(
    settings.SQL_DSN,
    echo=settings.DB_ECHO,
    pool_size=settings.DB_POOL_SIZE,
    max_overflow=settings.DB_MAX_OVERFLOW,
    pool_pre_ping=True,
    pool_timeout=settings.DB_POOL_TIMEOUT,
)

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    expire_on_commit=False,
    autoflush=False,
    class_=AsyncSession,
)


async def get_session() -> AsyncIterator[AsyncSession]:
    """
    Provide a DB session for each request.
    Commits when the handler returns, rolls back on any exception.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except HTTPException:
            # Business rejections rendered by the router, not faults.
            await session.rollback()
            raise
        except Exception:
            await session.rollback()
            logger.exception("Request transaction rolled back")
            raise


async def init_db() -> None:
    """
    Create tables for every registered model (dev convenience; use Alembic in prod).
    """
    import app.models  # noqa: F401  registers all models on Base.metadata

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
