import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool

from core.config import settings

logger = logging.getLogger(__name__)


def _engine_options(url: str) -> dict:
    # Pool sizing only applies to server databases
    if url.startswith("sqlite"):
        return {}
    return {
        "pool_size": settings.database_pool_size,
        "max_overflow": settings.database_max_overflow,
        "pool_pre_ping": True,
    }


db_engine = create_async_engine(
    settings.database_url, echo=False, **_engine_options(settings.database_url)
)


# Create async session maker to be used throughout the application
AsyncSessionLocal = async_sessionmaker(
    db_engine, class_=AsyncSession, expire_on_commit=False
)


# Base class for declarative models
class Base(DeclarativeBase):
    pass


# Dependency to get DB session
async def get_db():
    async with AsyncSessionLocal() as session:
        yield session


@asynccontextmanager
async def task_session() -> AsyncIterator[AsyncSession]:
    """
    Session for code running outside the API event loop (Celery tasks).

    Each ``asyncio.run`` gets a fresh loop, so pooled connections from a
    previous loop cannot be reused; a NullPool engine is created per task.
    """
    engine = create_async_engine(settings.database_url, poolclass=NullPool)
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    try:
        async with session_factory() as session:
            yield session
    finally:
        await engine.dispose()


def dialect_name(session: AsyncSession) -> str:
    """Name of the SQL dialect the session is bound to."""
    return session.get_bind().dialect.name


def dialect_insert(session: AsyncSession, model):
    """``INSERT`` construct with ON CONFLICT support for the bound dialect."""
    if dialect_name(session) == "postgresql":
        return postgresql.insert(model)
    return sqlite.insert(model)


# Function to initialize the database (create tables)
async def init_db():
    # Register models on the metadata
    import database.models  # noqa: F401

    logger.info("Creating database tables if missing")
    async with db_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


# Function to close database connections
async def close_db():
    """Close database engine and connections."""
    await db_engine.dispose()
