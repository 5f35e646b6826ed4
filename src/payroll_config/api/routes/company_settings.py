"""Company-wide settings endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, status

from payroll_config.api.dependencies import SettingsService
from payroll_config.api.schemas import (
    CompanySettingsResponse,
    CompanySettingsUpsert,
    ErrorResponse,
)

router = APIRouter(prefix="/company-settings", tags=["company-settings"])


@router.post(
    "",
    response_model=CompanySettingsResponse,
    status_code=status.HTTP_200_OK,
    responses={400: {"model": ErrorResponse}},
)
async def upsert_company_settings(
    service: SettingsService,
    payload: CompanySettingsUpsert,
) -> CompanySettingsResponse:
    """Create the settings record, or merge into the existing one."""
    record = await service.upsert(payload.model_dump(exclude_unset=True))
    await service.repository.session.commit()
    return CompanySettingsResponse.model_validate(record)


@router.get("", response_model=CompanySettingsResponse | None)
async def get_company_settings(service: SettingsService) -> CompanySettingsResponse | None:
    """Get the current settings, or null when none are configured."""
    record = await service.get()
    if record is None:
        return None
    return CompanySettingsResponse.model_validate(record)


@router.patch(
    "/{settings_id}",
    response_model=CompanySettingsResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def update_company_settings(
    service: SettingsService,
    settings_id: Annotated[UUID, Path()],
    payload: CompanySettingsUpsert,
) -> CompanySettingsResponse:
    """Update a settings record by ID."""
    record = await service.update(settings_id, payload.model_dump(exclude_unset=True))
    await service.repository.session.commit()
    return CompanySettingsResponse.model_validate(record)
