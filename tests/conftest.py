"""
Shared pytest fixtures.

Settings are read at import time, so the environment is prepared before any
application module is imported.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ["BCRYPT_ROUNDS"] = "4"

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.database import create_tables, get_db
from app.main import app


def _memory_engine():
    return create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)


@pytest_asyncio.fixture
async def session():
    """AsyncSession bound to a fresh in-memory database."""
    engine = _memory_engine()
    await create_tables(engine)
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as db:
        yield db
    await engine.dispose()


@pytest.fixture
def client():
    """TestClient whose requests share one fresh in-memory database."""
    engine = _memory_engine()
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async def override_get_db():
        async with factory() as db:
            try:
                yield db
                await db.commit()
            except Exception:
                await db.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        test_client.portal.call(create_tables, engine)
        yield test_client
        test_client.portal.call(engine.dispose)
    app.dependency_overrides.clear()


@pytest.fixture
def register(client):
    """Register a user and return Authorization headers for them."""

    def _register(email: str, password: str = "secret") -> dict[str, str]:
        resp = client.post("/v1/users", json={"email": email, "password": password})
        assert resp.status_code == 200, resp.text
        return {"Authorization": f"Bearer {resp.json()['token']}"}

    return _register


@pytest.fixture
def alice(register):
    return register("alice@example.com")


@pytest.fixture
def bob(register):
    return register("bob@example.com")


@pytest.fixture
def create_post(client):
    """Create a post through the API and return its id."""

    def _create(headers, title="hello", content="world") -> int:
        resp = client.post("/v1/posts", json={"title": title, "content": content}, headers=headers)
        assert resp.status_code == 201, resp.text
        return int(resp.headers["location"].rsplit("/", 1)[1])

    return _create
