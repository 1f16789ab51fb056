"""
db/session.py — Database Engine & Sessions
============================================
One async engine for the catalog and tokenization tables.

    init_db()   → main.py lifespan, creates missing tables
    reset_db()  → drop + recreate (test fixtures, local resets)
    get_db()    → FastAPI dependency, one session per request
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from config import settings

logger = logging.getLogger("propius.db")


def async_database_url(url: str) -> str:
    """Point plain Postgres URLs at the asyncpg driver; everything else passes through."""
    for prefix in ("postgres://", "postgresql://"):
        if url.startswith(prefix):
            return "postgresql+asyncpg://" + url[len(prefix):]
    return url


def _engine_options(url: str) -> dict:
    options = {"echo": settings.DEBUG}
    # In-memory SQLite runs on a static pool, which takes no sizing arguments
    if ":memory:" not in url:
        options["pool_size"] = settings.DB_POOL_SIZE
        options["max_overflow"] = settings.DB_MAX_OVERFLOW
    return options


DATABASE_URL = async_database_url(settings.DATABASE_URL)
engine = create_async_engine(DATABASE_URL, **_engine_options(DATABASE_URL))
AsyncSessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


class Base(DeclarativeBase):
    pass


def _register_models():
    from db.models import Property, TokenizationRequest  # noqa: F401  import registers the tables


async def init_db():
    _register_models()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info(f"Database ready ({engine.url.get_backend_name()}): {', '.join(Base.metadata.tables)}")


async def reset_db():
    """Drop every table and create it again. Destroys all data."""
    _register_models()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    logger.warning("Database reset: all tables dropped and recreated")


async def get_db():
    """
    Request-scoped session. Work is committed once the handler returns and
    rolled back if it raises, so handlers only flush.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        await session.commit()
