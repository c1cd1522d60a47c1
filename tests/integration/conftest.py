"""Integration-test fixtures.

Needs PostgreSQL (migrated with ``alembic upgrade head``) and Redis. All
integration tests share one event loop so that the module-level SQLAlchemy
engine pool and Redis pool stay valid for the whole session.
"""

import uuid
from collections.abc import AsyncGenerator, Awaitable, Callable

import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from src.main import app


@pytest_asyncio.fixture(loop_scope="session", scope="session")
async def client() -> AsyncGenerator[AsyncClient, None]:
    """Session-scoped async HTTP client; keeps the engine pool alive."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


UserFactory = Callable[[str], Awaitable[tuple[str, dict[str, str]]]]


@pytest_asyncio.fixture(loop_scope="session")
async def new_user(client: AsyncClient) -> UserFactory:
    """Register a fresh user; returns (user_id, auth headers)."""

    async def make(prefix: str) -> tuple[str, dict[str, str]]:
        username = f"{prefix}_{uuid.uuid4().hex[:8]}"
        password = "TestPass123"
        reg = await client.post("/api/v1/auth/register", json={
            "username": username,
            "student_id": uuid.uuid4().hex[:10],
            "email": f"{username}@campus.test",
            "password": password,
        })
        assert reg.status_code == 201, reg.text
        login = await client.post("/api/v1/auth/login", json={
            "username": username,
            "password": password,
        })
        token = login.json()["data"]["access_token"]
        return reg.json()["data"]["user_id"], {"Authorization": f"Bearer {token}"}

    return make
