"""Pytest fixtures for payroll configuration tests."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from payroll_config.config import Settings
from payroll_config.models import Base
from payroll_config.services import CompanySettingsService, ConfigLifecycleService

# In-memory SQLite shared across the connections of one engine
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

FIXED_NOW = datetime(2026, 10, 18, 9, 30, tzinfo=timezone.utc)
TODAY = FIXED_NOW.date()

TEST_SETTINGS = Settings(
    database_url=TEST_DATABASE_URL,
    host="127.0.0.1",
    port=8000,
    debug=False,
    log_level="INFO",
    minimum_wage=Decimal("6000"),
    max_gross_multiplier=10,
    policy_lookback_years=1,
    policy_horizon_years=5,
    default_currency="EGP",
)


def fixed_clock() -> datetime:
    return FIXED_NOW


@pytest_asyncio.fixture
async def engine():
    """Create a fresh test database per test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def session(engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for each test."""
    session_factory = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture
async def service(session: AsyncSession) -> ConfigLifecycleService:
    """Lifecycle service pinned to a fixed clock."""
    return ConfigLifecycleService(session, settings=TEST_SETTINGS, clock=fixed_clock)


@pytest_asyncio.fixture
async def settings_service(session: AsyncSession) -> CompanySettingsService:
    return CompanySettingsService(session, settings=TEST_SETTINGS, clock=fixed_clock)


@pytest.fixture
def today():
    """The date the fixed clock reports."""
    return TODAY


@pytest.fixture
def policy_payload(today) -> dict:
    """A valid payroll policy payload effective today."""
    return {
        "policy_name": "Overtime Premium",
        "policy_type": "Benefit",
        "description": "Extra pay for hours beyond the monthly threshold",
        "effective_date": today.isoformat(),
        "rule_definition": {"percentage": 50, "threshold": 160},
        "applicability": "Full Time Employees",
    }


@pytest.fixture
def now():
    """The instant the fixed clock reports."""
    return FIXED_NOW


@pytest.fixture
def make_service(session: AsyncSession):
    """Build a lifecycle service with a custom guard or clock."""

    def build(reference_guard=None, clock=fixed_clock) -> ConfigLifecycleService:
        return ConfigLifecycleService(
            session, reference_guard=reference_guard, settings=TEST_SETTINGS, clock=clock
        )

    return build
