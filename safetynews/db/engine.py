"""
Async SQLAlchemy wiring for the ``sql`` persistence backend.

The engine is created on first use from ``settings.async_database_url`` and
torn down by ``close_db`` during application shutdown.
"""

from typing import Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from safetynews.config import settings

logger = structlog.get_logger(__name__)


class Base(DeclarativeBase):
    pass


class _Database:
    def __init__(self):
        self.engine: Optional[AsyncEngine] = None
        self.sessions: Optional[async_sessionmaker[AsyncSession]] = None

    def connect(self) -> AsyncEngine:
        if self.engine is None:
            self.engine = create_async_engine(settings.async_database_url, echo=settings.debug)
            self.sessions = async_sessionmaker(self.engine, expire_on_commit=False)
            logger.info("sql_engine_created", url=self.engine.url.render_as_string(hide_password=True))
        return self.engine

    async def dispose(self) -> None:
        if self.engine is None:
            return
        await self.engine.dispose()
        self.engine = None
        self.sessions = None
        logger.info("sql_engine_disposed")


_db = _Database()


def get_engine() -> AsyncEngine:
    return _db.connect()


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    _db.connect()
    return _db.sessions


async def init_db(engine: Optional[AsyncEngine] = None) -> None:
    """Create the incident table on ``engine`` (default: the shared engine) if missing."""
    from safetynews.db import models  # noqa: F401

    async with (engine or get_engine()).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("sql_schema_ready")


async def close_db() -> None:
    await _db.dispose()
