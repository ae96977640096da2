"""Database engine and session management."""

from pathlib import Path
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

from ..config import get_settings


def get_db_path() -> Path:
    """Get database file path from settings."""
    return Path(get_settings().database_path)


def get_database_url(db_path: Optional[Path] = None) -> str:
    """Get async SQLite URL."""
    path = db_path or get_db_path()
    return f"sqlite+aiosqlite:///{path}"


# Global engine and session maker (lazy initialized)
_engine: Optional[AsyncEngine] = None
_session_maker: Optional[async_sessionmaker[AsyncSession]] = None


def create_engine_for(db_path: Optional[Path] = None) -> AsyncEngine:
    """Create a new engine for a database file."""
    return create_async_engine(
        get_database_url(db_path),
        echo=False,
        future=True,
    )


def create_session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create a session maker bound to an engine."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


def get_engine(db_path: Optional[Path] = None) -> AsyncEngine:
    """Get or create the process-wide database engine."""
    global _engine
    if _engine is None:
        _engine = create_engine_for(db_path)
    return _engine


def get_session_maker(db_path: Optional[Path] = None) -> async_sessionmaker[AsyncSession]:
    """Get the process-wide session maker."""
    global _session_maker
    if _session_maker is None:
        _session_maker = create_session_maker(get_engine(db_path))
    return _session_maker


async def init_database(engine: Optional[AsyncEngine] = None, db_path: Optional[Path] = None) -> None:
    """Initialize database (create directory and tables)."""
    path = db_path or get_db_path()
    path.parent.mkdir(parents=True, exist_ok=True)

    # Import models to register them with SQLModel
    from . import models  # noqa: F401

    engine = engine or get_engine(path)
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


async def reset_engine() -> None:
    """Dispose and forget the global engine (for testing)."""
    global _engine, _session_maker
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_maker = None
