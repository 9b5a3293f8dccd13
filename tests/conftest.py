"""
Shared fixtures: a fresh SQLite database per test and an in-process API client.
Environment is set before the first `mimi` import so Settings picks it up.
"""

import os
import tempfile

os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///" + os.path.join(
    tempfile.gettempdir(), f"mimi-test-{os.getpid()}.db"
)
os.environ["APP_ENV"] = "test"
os.environ["OPENAI_API_KEY"] = "sk-test"
os.environ["LINE_CHANNEL_ACCESS_TOKEN"] = "line-test-token"
os.environ["LINE_CHANNEL_SECRET"] = ""
os.environ["MAKE_API_KEY"] = "make-test-key"

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy import text

from mimi.database import AsyncSessionLocal, Base, create_tables, engine
from mimi.main import app


@pytest_asyncio.fixture(autouse=True)
async def setup_database():
    """Create a fresh database for each test"""
    await create_tables()
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture
async def db_session():
    """Get a database session"""
    async with AsyncSessionLocal() as session:
        yield session


@pytest_asyncio.fixture
async def client():
    """Create an async test client"""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def count_rows():
    """Count rows of a table in a separate session, so other sessions' commits are visible."""

    async def _count(table: str, where: str = "", params: dict | None = None) -> int:
        sql = f"SELECT COUNT(*) FROM {table}" + (f" WHERE {where}" if where else "")
        async with AsyncSessionLocal() as session:
            result = await session.execute(text(sql), params or {})
            return int(result.scalar_one())

    return _count
