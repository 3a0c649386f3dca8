"""Pytest fixtures for MindSage API integration tests."""

from collections.abc import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from mindsage.app import app
from mindsage.database.base import Base
from mindsage.database.session import get_db
from mindsage.middleware.rate_limit import limiter
from mindsage.modules.chat.dependencies import get_llm_gateway, get_telemetry_emitter
from mindsage.modules.chat.llm_gateway import LLMGateway
from mindsage.modules.telemetry.emitter import TelemetryEmitter

# Single in-memory SQLite database shared by every connection of a test
TEST_DATABASE_URL = "sqlite+aiosqlite://"


@pytest.fixture(autouse=True)
def reset_rate_limits():
    """Request counters are process-wide; start every test from zero."""
    limiter.reset()
    yield
    limiter.reset()


@pytest_asyncio.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker, None]:
    test_engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=StaticPool)
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)
    await test_engine.dispose()


@pytest.fixture
def llm_client() -> MagicMock:
    """Stand-in for AsyncOpenAI; tests queue responses on ``create``."""
    client = MagicMock()
    client.chat.completions.create = AsyncMock()
    return client


@pytest.fixture
def telemetry_publisher() -> MagicMock:
    return MagicMock()


@pytest_asyncio.fixture
async def async_client(
    session_factory, llm_client, telemetry_publisher
) -> AsyncGenerator[AsyncClient, None]:
    """Yield an httpx AsyncClient wired to the app with SQLite and a stubbed provider."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    gateway = LLMGateway(client=llm_client)
    telemetry = TelemetryEmitter(publisher=telemetry_publisher, enabled=True, timeout=1.0)

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_llm_gateway] = lambda: gateway
    app.dependency_overrides[get_telemetry_emitter] = lambda: telemetry

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    await TelemetryEmitter.drain()
    app.dependency_overrides.clear()
