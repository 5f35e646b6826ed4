"""Pydantic schemas for API request/response models.

Request schemas only check shape (types, enums, lengths); business rules
live in the lifecycle service.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from payroll_config.models import Applicability, ConfigStatus, PayTypeKind, PolicyType


# ============================================================================
# Shared schemas
# ============================================================================


class ErrorResponse(BaseModel):
    """Schema for error responses."""

    detail: str
    code: str


class ConfigRecordResponse(BaseModel):
    """Status and audit fields common to every configuration response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    status: ConfigStatus
    created_by: str | None = None
    approved_by: str | None = None
    approved_at: datetime | None = None
    rejected_by: str | None = None
    rejected_at: datetime | None = None
    rejection_reason: str | None = None
    created_at: datetime
    updated_at: datetime


class ApproveRequest(BaseModel):
    """Schema for approving a configuration."""

    approved_by: str = Field(min_length=1)


class RejectRequest(BaseModel):
    """Schema for rejecting a configuration."""

    rejected_by: str = Field(min_length=1)
    reason: str = Field(min_length=1)


class StatusUpdateRequest(BaseModel):
    """Schema for a direct status change."""

    status: ConfigStatus
    actor_id: str | None = None
    reason: str | None = None


# ============================================================================
# Pay types
# ============================================================================


class PayTypeCreate(BaseModel):
    type: PayTypeKind
    amount: Decimal
    description: str | None = None
    created_by: str | None = None


class PayTypeUpdate(BaseModel):
    type: PayTypeKind | None = None
    amount: Decimal | None = None
    description: str | None = None


class PayTypeResponse(ConfigRecordResponse):
    type: PayTypeKind
    amount: Decimal
    description: str | None = None


# ============================================================================
# Pay grades
# ============================================================================


class PayGradeCreate(BaseModel):
    grade: str = Field(min_length=1)
    base_salary: Decimal
    gross_salary: Decimal
    description: str | None = None
    position_id: str | None = None
    created_by: str | None = None


class PayGradeUpdate(BaseModel):
    grade: str | None = Field(default=None, min_length=1)
    base_salary: Decimal | None = None
    gross_salary: Decimal | None = None
    description: str | None = None
    position_id: str | None = None


class PayGradeResponse(ConfigRecordResponse):
    grade: str
    base_salary: Decimal
    gross_salary: Decimal
    description: str | None = None
    position_id: str | None = None


# ============================================================================
# Payroll policies
# ============================================================================


class RuleDefinition(BaseModel):
    """Policy rule values; at least one must be set."""

    percentage: Decimal | None = None
    fixed_amount: Decimal | None = None
    threshold: Decimal | None = None


class PayrollPolicyCreate(BaseModel):
    policy_name: str = Field(min_length=3)
    policy_type: PolicyType
    description: str = Field(min_length=1)
    effective_date: date
    rule_definition: RuleDefinition
    applicability: Applicability
    created_by: str | None = None


class PayrollPolicyUpdate(BaseModel):
    policy_name: str | None = Field(default=None, min_length=3)
    policy_type: PolicyType | None = None
    description: str | None = None
    effective_date: date | None = None
    rule_definition: RuleDefinition | None = None
    applicability: Applicability | None = None


class PayrollPolicyResponse(ConfigRecordResponse):
    policy_name: str
    policy_type: PolicyType
    description: str
    effective_date: date
    rule_definition: dict[str, Any]
    applicability: Applicability


# ============================================================================
# Allowances, signing bonuses, termination benefits
# ============================================================================


class AllowanceCreate(BaseModel):
    name: str = Field(min_length=1)
    amount: Decimal
    created_by: str | None = None


class AllowanceUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1)
    amount: Decimal | None = None


class AllowanceResponse(ConfigRecordResponse):
    name: str
    amount: Decimal


class SigningBonusCreate(AllowanceCreate):
    pass


class SigningBonusUpdate(AllowanceUpdate):
    pass


class SigningBonusResponse(AllowanceResponse):
    pass


class TerminationBenefitCreate(AllowanceCreate):
    terms: str | None = None


class TerminationBenefitUpdate(AllowanceUpdate):
    terms: str | None = None


class TerminationBenefitResponse(AllowanceResponse):
    terms: str | None = None


# ============================================================================
# Tax rules
# ============================================================================


class TaxRuleCreate(BaseModel):
    name: str = Field(min_length=1)
    description: str | None = None
    rate: Decimal
    created_by: str | None = None


class TaxRuleUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1)
    description: str | None = None
    rate: Decimal | None = None


class TaxRuleResponse(ConfigRecordResponse):
    name: str
    description: str | None = None
    rate: Decimal


# ============================================================================
# Insurance brackets
# ============================================================================


class InsuranceBracketCreate(BaseModel):
    name: str = Field(min_length=1)
    amount: Decimal
    min_salary: Decimal
    max_salary: Decimal
    employee_rate: Decimal
    employer_rate: Decimal
    created_by: str | None = None


class InsuranceBracketUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1)
    amount: Decimal | None = None
    min_salary: Decimal | None = None
    max_salary: Decimal | None = None
    employee_rate: Decimal | None = None
    employer_rate: Decimal | None = None


class InsuranceBracketResponse(ConfigRecordResponse):
    name: str
    amount: Decimal
    min_salary: Decimal
    max_salary: Decimal
    employee_rate: Decimal
    employer_rate: Decimal


# ============================================================================
# Company-wide settings
# ============================================================================


class CompanySettingsUpsert(BaseModel):
    pay_date: date | None = None
    time_zone: str | None = None
    currency: str | None = Field(default=None, min_length=3, max_length=3)


class CompanySettingsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    pay_date: date
    time_zone: str
    currency: str
    created_at: datetime
    updated_at: datetime
