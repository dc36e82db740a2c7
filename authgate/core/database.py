"""
Database configuration with SQLAlchemy async support.
Uses SQLite for development, easily switchable to PostgreSQL for production.
"""

import os

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase

from authgate.core.config import DATABASE_URL, DB_DIR, SQL_DEBUG

class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass

def create_engine_for(url: str, echo: bool = False) -> AsyncEngine:
    """Create an async engine; SQLite connections get foreign keys enabled."""
    # Ensure the default DB directory exists
    if str(DB_DIR) in url:
        os.makedirs(DB_DIR, exist_ok=True)
    new_engine = create_async_engine(url, echo=echo, future=True)

    if new_engine.dialect.name == "sqlite":
        @event.listens_for(new_engine.sync_engine, "connect")
        def set_sqlite_pragma(dbapi_connection, connection_record):
            """Enable SQLite foreign key enforcement."""
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return new_engine

def create_session_maker(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

engine = create_engine_for(DATABASE_URL, echo=SQL_DEBUG)

# Session factory
async_session_maker = create_session_maker(engine)


async def init_db(bind: AsyncEngine = None):
    """Initialize the database tables."""
    # Register all mapped tables on Base.metadata
    import authgate.models  # noqa: F401

    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

async def close_db(bind: AsyncEngine = None):
    """Close database connections."""
    await (bind or engine).dispose()
