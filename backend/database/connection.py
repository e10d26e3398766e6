"""
Database Connection Manager
Async SQLAlchemy engine and per-request sessions
"""
from typing import AsyncGenerator
from pathlib import Path
import logging

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool

from .config import database_settings

logger = logging.getLogger(__name__)

# Create Base class for models
Base = declarative_base()

# Created on first use so importing the package never opens a connection
_engine = None
_async_session_maker = None


def get_engine():
    """Get or create the database engine"""
    global _engine

    if _engine is None:
        database_url = database_settings.database_url
        options = {"pool_pre_ping": database_settings.pool_pre_ping, "echo": False}

        if database_settings.is_sqlite:
            sqlite_file = make_url(database_url).database
            if sqlite_file and sqlite_file != ":memory:":
                Path(sqlite_file).parent.mkdir(parents=True, exist_ok=True)
        elif database_settings.use_null_pool:
            options["poolclass"] = NullPool
        else:
            options.update(
                pool_size=database_settings.pool_size,
                max_overflow=database_settings.max_overflow,
                pool_recycle=database_settings.pool_recycle,
            )

        try:
            _engine = create_async_engine(database_url, **options)
            logger.info("Database engine created successfully")
        except Exception as e:
            logger.error(f"Failed to create database engine: {e}")
            raise

    return _engine


def get_session_maker():
    """Get or create the session maker"""
    global _async_session_maker

    if _async_session_maker is None:
        _async_session_maker = async_sessionmaker(
            get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    return _async_session_maker


async def init_db() -> None:
    """
    Initialize database by creating all tables defined in models.
    This should be called during application startup.
    """
    try:
        async with get_engine().begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize database tables: {e}")
        raise


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency function that provides a database session to routes.
    The session is automatically closed after the request completes.
    """
    session_maker = get_session_maker()
    async with session_maker() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def close_db() -> None:
    """Close the database connection pool when the application shuts down."""
    global _engine, _async_session_maker
    if _engine:
        await _engine.dispose()
        logger.info("Database connection pool closed")
    _engine = None
    _async_session_maker = None
