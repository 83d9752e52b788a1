"""
Pytest configuration and shared fixtures for the Fleet Manager test suite.

This module provides:
- Database fixtures (in-memory SQLite for fast tests)
- FastAPI async test client with the DB dependency overridden
- Vehicle / maintenance factories
- A fake AI gateway for chat relay tests
"""

import os

# Must be set before anything imports core.db / middleware.rate_limit
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ.setdefault("AUTO_CREATE_SCHEMA", "false")
os.environ.setdefault("CHAT_RATE_LIMIT", "1000/minute")

from datetime import date
from typing import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import ASGITransport, AsyncClient
from langchain_core.messages import AIMessage
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import models  # noqa: F401
from core.db import Base, get_db, get_session_factory
from main import app
from models.maintenance import Maintenance, MaintenanceStatus
from models.vehicle import Vehicle, VehicleStatus
from routers.chat import get_llm_factory


# Test Database Configuration
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
async def async_engine():
    """Create async engine for testing with in-memory SQLite."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_factory(async_engine) -> async_sessionmaker:
    return async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def async_db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create async database session for testing."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def fake_llm():
    """Chat model double; ``ainvoke`` answers with a fixed AIMessage unless a test overrides it."""
    llm = MagicMock()
    llm.ainvoke = AsyncMock(return_value=AIMessage(content="🚗 Resposta do assistente"))
    return llm


@pytest.fixture
def fake_llm_factory(fake_llm):
    factory = MagicMock()
    factory.get_llm.return_value = fake_llm
    return factory


@pytest.fixture
async def async_client(async_db_session, session_factory, fake_llm_factory) -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client with database and gateway dependencies overridden."""

    async def override_get_db():
        yield async_db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_llm_factory] = lambda: fake_llm_factory

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


# Test Data Factories
@pytest.fixture
def make_vehicle(async_db_session):
    """Return a coroutine factory that persists a vehicle."""

    async def _make(
        vehicle_number: str = "V001",
        license_plate: str = "ABC-1234",
        km_current: int = 10000,
        status: str = VehicleStatus.ACTIVE.value,
        brand: str = "Fiat",
        model: str = "Uno",
        year: int = 2020,
    ) -> Vehicle:
        vehicle = Vehicle(
            vehicle_number=vehicle_number,
            license_plate=license_plate,
            brand=brand,
            model=model,
            year=year,
            km_current=km_current,
            status=status,
        )
        async_db_session.add(vehicle)
        await async_db_session.commit()
        await async_db_session.refresh(vehicle)
        return vehicle

    return _make


@pytest.fixture
async def test_vehicle(make_vehicle) -> Vehicle:
    """Create a test vehicle (V001, 10000 km)."""
    return await make_vehicle()


@pytest.fixture
async def test_scheduled_maintenance(async_db_session, test_vehicle) -> Maintenance:
    maintenance = Maintenance(
        vehicle=test_vehicle,
        service_type="Revisão",
        scheduled_date=date.today(),
        scheduled_km=test_vehicle.km_current + 300,
        status=MaintenanceStatus.SCHEDULED.value,
        is_scheduled=True,
    )
    async_db_session.add(maintenance)
    await async_db_session.commit()
    return maintenance


# Common Test Doubles
@pytest.fixture
def mock_async_session():
    """Provide a reusable AsyncSession-like test double.

    - `add` is a `MagicMock` (synchronous)
    - `flush`, `commit`, `rollback`, `refresh`, `execute`, `get` are `AsyncMock`
    Tests can override `execute.side_effect` / `commit.side_effect` as needed.
    """
    session = AsyncMock()

    # `add` is synchronous on SQLAlchemy session
    session.add = MagicMock()

    # Async methods
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.refresh = AsyncMock()
    session.execute = AsyncMock()
    session.get = AsyncMock()

    return session
