"""Shared fixtures: a fresh SQLite store per test."""

import pytest
import pytest_asyncio

from secret_mcp.database import create_engine, init_db, session_factory
from secret_mcp.schemas.secret import SecretCreate
from secret_mcp.server import ToolServer
from secret_mcp.services import secret_service


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = create_engine(tmp_path / "secrets.db")
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db(engine):
    async with session_factory(engine)() as session:
        yield session


@pytest.fixture
def tool_server(engine) -> ToolServer:
    return ToolServer(session_factory(engine))


@pytest_asyncio.fixture
async def seeded(db):
    """A handful of secrets covering quoting and description edge cases."""
    for name, description, value in [
        ("API_KEY", "Primary API key", "sk-live-123"),
        ("DATABASE_URL", "Postgres connection string", "postgres://u:p@localhost/db"),
        ("GREETING", None, 'he said "hi"'),
        ("STRIPE_SECRET", "payments", "whsec with space"),
    ]:
        await secret_service.create_secret(db, SecretCreate(name=name, description=description, value=value))
    return db
