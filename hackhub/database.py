"""
hackhub/database.py
Async engine and session factory

Sessions never expire on commit: the assignment services keep using
ORM instances after committing each ledger entry.
"""
import logging

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from hackhub.orm.base import Base
import hackhub.orm  # noqa: F401  registers every model on Base.metadata
from hackhub.config.settings import Settings

logger = logging.getLogger(__name__)


def build_engine(url: str, **overrides) -> AsyncEngine:
    """Create an engine with pool settings matching the backend behind url."""
    if url.startswith("sqlite"):
        # Concurrent batch runs wait on the file lock
        options = {"connect_args": {"timeout": 30.0}}
    else:
        options = {"pool_size": 20, "max_overflow": 30, "pool_timeout": 30, "pool_recycle": 3600}
    options.update(overrides)
    return create_async_engine(url, echo=False, pool_pre_ping=True, **options)


def build_sessionmaker(bind: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(bind, class_=AsyncSession, expire_on_commit=False, autoflush=False)


engine = build_engine(Settings.DATABASE_URL)
AsyncSessionLocal = build_sessionmaker(engine)


async def get_db():
    """Dependency for getting async database session"""
    async with AsyncSessionLocal() as session:
        yield session


async def init_db():
    """Create missing tables. Production schemas come from alembic."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info(f"Database ready ({engine.url.get_backend_name()})")


async def close_db():
    await engine.dispose()
