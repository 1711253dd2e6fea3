"""SQLAlchemy async engine + session factory for the SQLite secret store."""

import logging
from pathlib import Path

from sqlalchemy import event, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from secret_mcp.errors import StartupFailure

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


def casefold(value: str | None) -> str | None:
    """Unicode case folding, shared by queries and the SQL ``casefold()`` function."""
    return value.casefold() if value is not None else None


def database_url(db_path: Path) -> str:
    return f"sqlite+aiosqlite:///{db_path}"


def create_engine(db_path: Path, echo: bool = False) -> AsyncEngine:
    engine = create_async_engine(database_url(db_path), echo=echo)

    # SQLite's LOWER() only folds ASCII
    @event.listens_for(engine.sync_engine, "connect")
    def _register_functions(dbapi_connection, connection_record):
        dbapi_connection.create_function("casefold", 1, casefold)

    return engine


def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def init_db(engine: AsyncEngine) -> None:
    """Create the secrets table if it does not exist yet."""
    import secret_mcp.models  # noqa: F401  (registers tables on Base.metadata)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def open_store(db_path: Path, echo: bool = False) -> AsyncEngine:
    """Open an existing store and probe it; never creates an empty one."""
    if not db_path.is_file():
        raise StartupFailure(f"Database not found at {db_path}")

    engine = create_engine(db_path, echo=echo)
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT id FROM secrets LIMIT 1"))
    except SQLAlchemyError as exc:
        await engine.dispose()
        raise StartupFailure(f"Error opening database: {exc}") from exc

    logger.info("Opened secret store at %s", db_path)
    return engine
