"""FastAPI dependencies for dependency injection."""

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from payroll_config.database import init_db
from payroll_config.services import CompanySettingsService, ConfigLifecycleService


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Get database session dependency."""
    _, factory = init_db()
    async with factory() as session:
        try:
            yield session
        finally:
            await session.close()


# Type aliases for cleaner dependency injection
DbSession = Annotated[AsyncSession, Depends(get_db_session)]


def get_lifecycle_service(db: DbSession) -> ConfigLifecycleService:
    return ConfigLifecycleService(db)


def get_company_settings_service(db: DbSession) -> CompanySettingsService:
    return CompanySettingsService(db)


LifecycleService = Annotated[ConfigLifecycleService, Depends(get_lifecycle_service)]
SettingsService = Annotated[CompanySettingsService, Depends(get_company_settings_service)]
