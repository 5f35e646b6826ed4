"""Payroll configuration entity models."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import JSON, CheckConstraint, Date, Numeric, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from payroll_config.models.approval import ApprovalMixin
from payroll_config.models.base import Base, TimestampMixin


class PayTypeKind(str, Enum):
    """How an employee is paid."""

    HOURLY = "hourly"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    CONTRACT_BASED = "contract_based"


class PolicyType(str, Enum):
    """Payroll policy categories."""

    DEDUCTION = "Deduction"
    ALLOWANCE = "Allowance"
    BENEFIT = "Benefit"
    MISCONDUCT = "Misconduct"
    LEAVE = "Leave"


class Applicability(str, Enum):
    """Which employees a payroll policy applies to."""

    ALL_EMPLOYEES = "All Employees"
    FULL_TIME = "Full Time Employees"
    PART_TIME = "Part Time Employees"
    CONTRACTORS = "Contractors"


def _enum_check(column: str, enum: type[Enum], name: str) -> CheckConstraint:
    values = ", ".join(f"'{member.value}'" for member in enum)
    return CheckConstraint(f"{column} IN ({values})", name=name)


_STATUS_VALUES = "status IN ('draft', 'approved', 'rejected')"

# (precision, scale) of stored amounts and percentage rates
MONEY_PRECISION = (14, 2)
RATE_PRECISION = (7, 4)

Money = Numeric(*MONEY_PRECISION)
Rate = Numeric(*RATE_PRECISION)
JsonDocument = JSON().with_variant(JSONB(), "postgresql")


class ConfigRecord(ApprovalMixin, TimestampMixin):
    """Columns common to every approvable configuration record."""

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)


# ===== Pay structure =====


class PayType(ConfigRecord, Base):
    """Pay type with its base amount."""

    __tablename__ = "pay_type"

    type: Mapped[str] = mapped_column(String, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        UniqueConstraint("type", name="pay_type_type_unique"),
        _enum_check("type", PayTypeKind, "pay_type_type_check"),
        CheckConstraint(_STATUS_VALUES, name="pay_type_status_check"),
    )


class PayGrade(ConfigRecord, Base):
    """Pay grade with base and gross salary."""

    __tablename__ = "pay_grade"

    grade: Mapped[str] = mapped_column(String, nullable=False)
    base_salary: Mapped[Decimal] = mapped_column(Money, nullable=False)
    gross_salary: Mapped[Decimal] = mapped_column(Money, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    position_id: Mapped[str | None] = mapped_column(String, nullable=True)

    __table_args__ = (
        UniqueConstraint("grade", name="pay_grade_grade_unique"),
        CheckConstraint("gross_salary >= base_salary", name="pay_grade_salary_check"),
        CheckConstraint(_STATUS_VALUES, name="pay_grade_status_check"),
    )


class PayrollPolicy(ConfigRecord, Base):
    """Payroll policy with its rule definition."""

    __tablename__ = "payroll_policy"

    policy_name: Mapped[str] = mapped_column(String, nullable=False)
    policy_type: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    effective_date: Mapped[date] = mapped_column(Date, nullable=False)
    rule_definition: Mapped[dict[str, Any]] = mapped_column(
        JsonDocument, nullable=False, default=dict
    )
    applicability: Mapped[str] = mapped_column(String, nullable=False)

    __table_args__ = (
        UniqueConstraint(
            "policy_name", "policy_type", name="payroll_policy_name_type_unique"
        ),
        _enum_check("policy_type", PolicyType, "payroll_policy_type_check"),
        _enum_check("applicability", Applicability, "payroll_policy_applicability_check"),
        CheckConstraint(_STATUS_VALUES, name="payroll_policy_status_check"),
    )


# ===== Allowances, insurance, bonuses =====


class Allowance(ConfigRecord, Base):
    """Fixed allowance such as housing or transport."""

    __tablename__ = "allowance"

    name: Mapped[str] = mapped_column(String, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Money, nullable=False)

    __table_args__ = (
        UniqueConstraint("name", name="allowance_name_unique"),
        CheckConstraint("amount >= 0", name="allowance_amount_check"),
        CheckConstraint(_STATUS_VALUES, name="allowance_status_check"),
    )


class InsuranceBracket(ConfigRecord, Base):
    """Insurance contribution bracket for a salary range."""

    __tablename__ = "insurance_bracket"

    name: Mapped[str] = mapped_column(String, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    min_salary: Mapped[Decimal] = mapped_column(Money, nullable=False)
    max_salary: Mapped[Decimal] = mapped_column(Money, nullable=False)
    employee_rate: Mapped[Decimal] = mapped_column(Rate, nullable=False)
    employer_rate: Mapped[Decimal] = mapped_column(Rate, nullable=False)

    __table_args__ = (
        CheckConstraint("min_salary < max_salary", name="insurance_bracket_range_check"),
        CheckConstraint(_STATUS_VALUES, name="insurance_bracket_status_check"),
    )


class SigningBonus(ConfigRecord, Base):
    """One-off signing bonus."""

    __tablename__ = "signing_bonus"

    name: Mapped[str] = mapped_column(String, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Money, nullable=False)

    __table_args__ = (
        UniqueConstraint("name", name="signing_bonus_name_unique"),
        CheckConstraint("amount >= 0", name="signing_bonus_amount_check"),
        CheckConstraint(_STATUS_VALUES, name="signing_bonus_status_check"),
    )


class TaxRule(ConfigRecord, Base):
    """Tax rule with a percentage rate."""

    __tablename__ = "tax_rule"

    name: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    rate: Mapped[Decimal] = mapped_column(Rate, nullable=False)

    __table_args__ = (
        UniqueConstraint("name", name="tax_rule_name_unique"),
        CheckConstraint("rate >= 0", name="tax_rule_rate_check"),
        CheckConstraint(_STATUS_VALUES, name="tax_rule_status_check"),
    )


class TerminationBenefit(ConfigRecord, Base):
    """Benefit paid out on termination or resignation."""

    __tablename__ = "termination_benefit"

    name: Mapped[str] = mapped_column(String, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    terms: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        CheckConstraint("amount >= 0", name="termination_benefit_amount_check"),
        CheckConstraint(_STATUS_VALUES, name="termination_benefit_status_check"),
    )


# ===== Company-wide settings =====


class CompanyWideSettings(TimestampMixin, Base):
    """Singleton company payroll settings; not subject to approval."""

    __tablename__ = "company_wide_settings"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    pay_date: Mapped[date] = mapped_column(Date, nullable=False)
    time_zone: Mapped[str] = mapped_column(String, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
