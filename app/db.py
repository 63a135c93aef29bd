from __future__ import annotations

import logging

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.config import settings

logger = logging.getLogger(__name__)

engine = create_async_engine(
    settings.database_url_normalized,
    pool_size=settings.db_pool_size,
    max_overflow=settings.db_max_overflow,
    pool_pre_ping=True,
    echo=settings.db_echo,
)
SessionLocal = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    # Reports run concurrently, so handlers get the factory and open one session per report.
    return SessionLocal


async def check_connection() -> bool:
    try:
        async with engine.connect() as conn:
            await conn.execute(text('SELECT 1'))
    except Exception:
        logger.exception('PostgreSQL connection check failed')
        return False
    logger.info('PostgreSQL connection established')
    return True
