"""Configuration entity API endpoints.

One router per entity type, all built from the same factory so every type
exposes the same create/list/get/update/delete/approve/reject surface.
"""

from typing import Annotated, Any, Callable
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query, status
from pydantic import BaseModel

from payroll_config.api.dependencies import LifecycleService
from payroll_config.api.schemas import (
    AllowanceCreate,
    AllowanceResponse,
    AllowanceUpdate,
    ApproveRequest,
    ErrorResponse,
    InsuranceBracketCreate,
    InsuranceBracketResponse,
    InsuranceBracketUpdate,
    PayGradeCreate,
    PayGradeResponse,
    PayGradeUpdate,
    PayrollPolicyCreate,
    PayrollPolicyResponse,
    PayrollPolicyUpdate,
    PayTypeCreate,
    PayTypeResponse,
    PayTypeUpdate,
    RejectRequest,
    SigningBonusCreate,
    SigningBonusResponse,
    SigningBonusUpdate,
    StatusUpdateRequest,
    TaxRuleCreate,
    TaxRuleResponse,
    TaxRuleUpdate,
    TerminationBenefitCreate,
    TerminationBenefitResponse,
    TerminationBenefitUpdate,
)
from payroll_config.models import ConfigStatus, PolicyType
from payroll_config.services import EntityType

ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
}


def no_filters() -> dict[str, Any]:
    return {}


def policy_filters(
    policy_type: Annotated[PolicyType | None, Query()] = None,
) -> dict[str, Any]:
    return {"policy_type": policy_type}


def build_config_router(
    entity_type: EntityType,
    prefix: str,
    create_schema: type[BaseModel],
    update_schema: type[BaseModel],
    response_schema: type[BaseModel],
    list_filters: Callable[..., dict[str, Any]] = no_filters,
) -> APIRouter:
    """Build the CRUD and approval routes for one entity type."""
    router = APIRouter(prefix=prefix, tags=[prefix.strip("/")], responses=ERROR_RESPONSES)
    RecordId = Annotated[UUID, Path()]

    @router.post("", response_model=response_schema, status_code=status.HTTP_201_CREATED)
    async def create_record(service: LifecycleService, payload: create_schema) -> Any:  # type: ignore[valid-type]
        """Create a configuration in draft status."""
        record = await service.create(entity_type, payload.model_dump(exclude_unset=True))
        await service.session.commit()
        return response_schema.model_validate(record)

    @router.get("", response_model=list[response_schema])  # type: ignore[valid-type]
    async def list_records(
        service: LifecycleService,
        filters: Annotated[dict[str, Any], Depends(list_filters)],
        status_filter: Annotated[ConfigStatus | None, Query(alias="status")] = None,
    ) -> Any:
        """List configurations, newest first unless the type orders otherwise."""
        records = await service.list(entity_type, status=status_filter, **filters)
        return [response_schema.model_validate(record) for record in records]

    @router.get("/{record_id}", response_model=response_schema)
    async def get_record(service: LifecycleService, record_id: RecordId) -> Any:
        """Get a configuration by ID."""
        record = await service.get(entity_type, record_id)
        return response_schema.model_validate(record)

    @router.patch("/{record_id}", response_model=response_schema)
    async def update_record(
        service: LifecycleService,
        record_id: RecordId,
        payload: update_schema,  # type: ignore[valid-type]
    ) -> Any:
        """Edit a draft configuration."""
        record = await service.update(
            entity_type, record_id, payload.model_dump(exclude_unset=True)
        )
        await service.session.commit()
        return response_schema.model_validate(record)

    @router.delete("/{record_id}", status_code=status.HTTP_204_NO_CONTENT)
    async def delete_record(service: LifecycleService, record_id: RecordId) -> None:
        """Delete a draft configuration."""
        await service.delete(entity_type, record_id)
        await service.session.commit()

    @router.post("/{record_id}/approve", response_model=response_schema)
    async def approve_record(
        service: LifecycleService,
        record_id: RecordId,
        payload: ApproveRequest,
    ) -> Any:
        """Approve a draft configuration."""
        record = await service.approve(entity_type, record_id, payload.approved_by)
        await service.session.commit()
        return response_schema.model_validate(record)

    @router.post("/{record_id}/reject", response_model=response_schema)
    async def reject_record(
        service: LifecycleService,
        record_id: RecordId,
        payload: RejectRequest,
    ) -> Any:
        """Reject a draft configuration with a reason."""
        record = await service.reject(
            entity_type, record_id, payload.rejected_by, payload.reason
        )
        await service.session.commit()
        return response_schema.model_validate(record)

    @router.patch("/{record_id}/status", response_model=response_schema)
    async def set_record_status(
        service: LifecycleService,
        record_id: RecordId,
        payload: StatusUpdateRequest,
    ) -> Any:
        """Approve or reject a draft configuration through a status change."""
        record = await service.set_status(
            entity_type, record_id, payload.status, payload.actor_id, payload.reason
        )
        await service.session.commit()
        return response_schema.model_validate(record)

    return router


pay_types_router = build_config_router(
    EntityType.PAY_TYPE, "/pay-types", PayTypeCreate, PayTypeUpdate, PayTypeResponse
)
pay_grades_router = build_config_router(
    EntityType.PAY_GRADE, "/pay-grades", PayGradeCreate, PayGradeUpdate, PayGradeResponse
)
payroll_policies_router = build_config_router(
    EntityType.PAYROLL_POLICY,
    "/payroll-policies",
    PayrollPolicyCreate,
    PayrollPolicyUpdate,
    PayrollPolicyResponse,
    list_filters=policy_filters,
)
allowances_router = build_config_router(
    EntityType.ALLOWANCE, "/allowances", AllowanceCreate, AllowanceUpdate, AllowanceResponse
)
insurance_brackets_router = build_config_router(
    EntityType.INSURANCE_BRACKET,
    "/insurance-brackets",
    InsuranceBracketCreate,
    InsuranceBracketUpdate,
    InsuranceBracketResponse,
)
signing_bonuses_router = build_config_router(
    EntityType.SIGNING_BONUS,
    "/signing-bonuses",
    SigningBonusCreate,
    SigningBonusUpdate,
    SigningBonusResponse,
)
tax_rules_router = build_config_router(
    EntityType.TAX_RULE, "/tax-rules", TaxRuleCreate, TaxRuleUpdate, TaxRuleResponse
)
termination_benefits_router = build_config_router(
    EntityType.TERMINATION_BENEFIT,
    "/termination-benefits",
    TerminationBenefitCreate,
    TerminationBenefitUpdate,
    TerminationBenefitResponse,
)

config_routers = [
    pay_types_router,
    pay_grades_router,
    payroll_policies_router,
    allowances_router,
    insurance_brackets_router,
    signing_bonuses_router,
    tax_rules_router,
    termination_benefits_router,
]
