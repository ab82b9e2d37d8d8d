"""Database engine construction and session management.

The engine and session factory are built once by the application lifespan
(see ``survetic.main``) and stored on ``app.state``. Request handlers reach a
session through the ``get_db`` dependency; nothing here is created per request.
"""
import logging
from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from sqlalchemy.engine.url import make_url

from survetic.config import Settings

logger = logging.getLogger(__name__)

# Base class for models
Base = declarative_base()


def create_db_engine(settings: Settings) -> AsyncEngine:
    """Create the async engine for the configured database."""
    is_sqlite = make_url(settings.database_url).drivername.startswith("sqlite")

    # Determine if we need SSL (for Heroku or other cloud databases)
    connect_args = {}
    needs_ssl = not is_sqlite and (
        "heroku" in settings.database_url or
        "amazonaws" in settings.database_url or
        settings.environment == "production"
    )
    if needs_ssl:
        connect_args["ssl"] = "require"
        logger.debug("SSL connection enabled (ssl=require)")

    engine_kwargs = {
        "echo": settings.environment == "development",
        "connect_args": connect_args,
        "pool_pre_ping": True,  # Verify connections before use
    }
    if not is_sqlite:
        # Configure pool sizing to avoid exhausting limited database connections
        engine_kwargs["pool_size"] = max(1, settings.db_pool_size)
        engine_kwargs["max_overflow"] = max(0, settings.db_max_overflow)
        engine_kwargs["pool_recycle"] = 3600  # Recycle connections every hour

    try:
        engine = create_async_engine(settings.database_url, **engine_kwargs)
    except Exception as e:
        logger.error(f"Failed to create database engine: {e}")
        raise

    logger.debug("Database engine created successfully")
    return engine


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Build the session factory bound to ``engine``."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


# Dependency for FastAPI
async def get_db(request: Request):
    """FastAPI dependency to get database session."""
    session_factory: async_sessionmaker[AsyncSession] = request.app.state.session_factory
    async with session_factory() as session:
        try:
            yield session
        finally:
            await session.close()
