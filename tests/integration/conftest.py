"""Integration test fixtures for the HTTP API."""

from collections.abc import AsyncGenerator

import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from payroll_config.api.app import create_app
from payroll_config.api.dependencies import (
    get_company_settings_service,
    get_db_session,
    get_lifecycle_service,
)


@pytest_asyncio.fixture
async def client(session, service, settings_service) -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client bound to the test database session."""
    app = create_app()

    async def override_session():
        yield session

    app.dependency_overrides[get_db_session] = override_session
    app.dependency_overrides[get_lifecycle_service] = lambda: service
    app.dependency_overrides[get_company_settings_service] = lambda: settings_service

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
