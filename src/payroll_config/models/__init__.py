"""ORM models for payroll configuration."""

from payroll_config.models.approval import (
    ApprovalMixin,
    ApprovalState,
    Approved,
    ConfigStatus,
    Draft,
    Rejected,
)
from payroll_config.models.base import Base, TimestampMixin, utc_now
from payroll_config.models.configuration import (
    Allowance,
    Applicability,
    CompanyWideSettings,
    ConfigRecord,
    MONEY_PRECISION,
    RATE_PRECISION,
    InsuranceBracket,
    PayGrade,
    PayrollPolicy,
    PayType,
    PayTypeKind,
    PolicyType,
    SigningBonus,
    TaxRule,
    TerminationBenefit,
)

__all__ = [
    "MONEY_PRECISION",
    "RATE_PRECISION",
    "Allowance",
    "Applicability",
    "ApprovalMixin",
    "ApprovalState",
    "Approved",
    "Base",
    "CompanyWideSettings",
    "ConfigRecord",
    "ConfigStatus",
    "Draft",
    "InsuranceBracket",
    "PayGrade",
    "PayType",
    "PayTypeKind",
    "PayrollPolicy",
    "PolicyType",
    "Rejected",
    "SigningBonus",
    "TaxRule",
    "TerminationBenefit",
    "TimestampMixin",
    "utc_now",
]
