"""Per-entity-type rule table for payroll configuration.

Each approvable entity type is described by an ``EntityRules`` entry: the
fields it accepts, how raw payload values are coerced, which fields are
required, the business-rule validators run on create and update, the natural
key that must stay unique, and how listings are filtered and ordered.

Validators receive the full set of values (existing record merged with the
incoming change on update) and raise ``ValidationFailedError``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from typing import Any, Callable, Mapping

from payroll_config.config import Settings
from payroll_config.models import (
    MONEY_PRECISION,
    RATE_PRECISION,
    Allowance,
    Applicability,
    ConfigRecord,
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
from payroll_config.services.errors import UnknownEntityTypeError, ValidationFailedError


class EntityType(str, Enum):
    """Approvable configuration entity types."""

    PAY_TYPE = "pay_type"
    PAY_GRADE = "pay_grade"
    PAYROLL_POLICY = "payroll_policy"
    ALLOWANCE = "allowance"
    INSURANCE_BRACKET = "insurance_bracket"
    SIGNING_BONUS = "signing_bonus"
    TAX_RULE = "tax_rule"
    TERMINATION_BENEFIT = "termination_benefit"


# Keys owned by the lifecycle; silently dropped from caller payloads
MANAGED_FIELDS = frozenset(
    {
        "id",
        "status",
        "approved_by",
        "approved_at",
        "rejected_by",
        "rejected_at",
        "rejection_reason",
        "created_at",
        "updated_at",
    }
)

RULE_DEFINITION_FIELDS = ("percentage", "fixed_amount", "threshold")


@dataclass(frozen=True)
class RuleContext:
    """Thresholds and the reference date validators are evaluated against."""

    today: date
    minimum_wage: Decimal = Decimal("6000")
    max_gross_multiplier: int = 10
    policy_lookback_years: int = 1
    policy_horizon_years: int = 5

    @classmethod
    def from_settings(cls, settings: Settings, today: date) -> RuleContext:
        return cls(
            today=today,
            minimum_wage=settings.minimum_wage,
            max_gross_multiplier=settings.max_gross_multiplier,
            policy_lookback_years=settings.policy_lookback_years,
            policy_horizon_years=settings.policy_horizon_years,
        )


Coercer = Callable[[str, Any], Any]
Validator = Callable[[Mapping[str, Any], RuleContext], None]


def _label(name: str) -> str:
    return name.replace("_", " ").capitalize()


# ===== Coercers =====


def to_decimal(name: str, value: Any) -> Decimal:
    """Coerce a numeric payload value to Decimal."""
    if isinstance(value, bool):
        raise ValidationFailedError(f"{_label(name)} must be a number", name)
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationFailedError(f"{_label(name)} must be a number", name)
    if not result.is_finite():
        raise ValidationFailedError(f"{_label(name)} must be a number", name)
    return result


def scaled_decimal(precision: int, scale: int) -> Coercer:
    """Build a coercer that rounds to a column's scale and rejects overflow.

    Rounding happens before validation so validators see the stored value.
    """
    quantum = Decimal(1).scaleb(-scale)
    limit = Decimal(10) ** (precision - scale)

    def coerce(name: str, value: Any) -> Decimal:
        result = to_decimal(name, value)
        if abs(result) < limit:
            result = result.quantize(quantum, rounding=ROUND_HALF_UP)
        if abs(result) >= limit:
            raise ValidationFailedError(
                f"{_label(name)} must be less than {limit:,} in magnitude", name
            )
        return result

    return coerce


def to_text(name: str, value: Any) -> str:
    if not isinstance(value, str):
        raise ValidationFailedError(f"{_label(name)} must be a string", name)
    return value


def to_date(name: str, value: Any) -> date:
    """Coerce an ISO date string, datetime or date to a date."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
        except ValueError:
            pass
    raise ValidationFailedError(f"Invalid {name.replace('_', ' ')}", name)


def enum_value(enum: type[Enum]) -> Coercer:
    """Build a coercer accepting an enum member or its value."""

    def coerce(name: str, value: Any) -> str:
        try:
            return enum(value).value
        except ValueError:
            allowed = ", ".join(str(member.value) for member in enum)
            raise ValidationFailedError(
                f"{_label(name)} must be one of: {allowed}", name
            )

    return coerce


def _json_number(value: Decimal) -> int | float:
    return int(value) if value == value.to_integral_value() else float(value)


def to_rule_definition(name: str, value: Any) -> dict[str, int | float]:
    """Coerce a rule definition, keeping only populated numeric fields."""
    if not isinstance(value, Mapping):
        raise ValidationFailedError("ruleDefinition must be an object", name)
    unknown = sorted(set(value) - set(RULE_DEFINITION_FIELDS))
    if unknown:
        raise ValidationFailedError(
            f"Unknown ruleDefinition field(s): {', '.join(unknown)}", name
        )
    return {
        key: _json_number(to_decimal(key, value[key]))
        for key in RULE_DEFINITION_FIELDS
        if value.get(key) is not None
    }


# ===== Validators =====


def shift_years(day: date, years: int) -> date:
    """Move a date by whole years, clamping 29 February to the 28th."""
    try:
        return day.replace(year=day.year + years)
    except ValueError:
        return day.replace(year=day.year + years, day=28)


def at_least_minimum_wage(name: str) -> Validator:
    def validate(values: Mapping[str, Any], ctx: RuleContext) -> None:
        if values[name] < ctx.minimum_wage:
            raise ValidationFailedError(
                f"{_label(name)} must be at least {ctx.minimum_wage} "
                "to comply with the minimum wage",
                name,
            )

    return validate


def non_negative(name: str) -> Validator:
    def validate(values: Mapping[str, Any], ctx: RuleContext) -> None:
        value = values.get(name)
        if value is not None and value < 0:
            raise ValidationFailedError(
                f"{_label(name)} must be greater than or equal to 0", name
            )

    return validate


def percentage_range(name: str) -> Validator:
    def validate(values: Mapping[str, Any], ctx: RuleContext) -> None:
        value = values.get(name)
        if value is not None and not 0 <= value <= 100:
            raise ValidationFailedError(f"{_label(name)} must be between 0 and 100", name)

    return validate


def min_length(name: str, length: int) -> Validator:
    def validate(values: Mapping[str, Any], ctx: RuleContext) -> None:
        value = values.get(name)
        if value is not None and len(value.strip()) < length:
            raise ValidationFailedError(
                f"{_label(name)} must be at least {length} characters", name
            )

    return validate


def description_length(values: Mapping[str, Any], ctx: RuleContext) -> None:
    description = values.get("description")
    if description and len(description) < 10:
        raise ValidationFailedError(
            "Description must be at least 10 characters if provided", "description"
        )


def gross_salary_bounds(values: Mapping[str, Any], ctx: RuleContext) -> None:
    base, gross = values["base_salary"], values["gross_salary"]
    if gross < base:
        raise ValidationFailedError(
            "Gross salary must be greater than or equal to base salary", "gross_salary"
        )
    if gross > base * ctx.max_gross_multiplier:
        raise ValidationFailedError(
            f"Gross salary cannot exceed {ctx.max_gross_multiplier} times the base salary",
            "gross_salary",
        )


def rule_definition_complete(values: Mapping[str, Any], ctx: RuleContext) -> None:
    rule = values["rule_definition"]
    if not any(rule.get(key) is not None for key in RULE_DEFINITION_FIELDS):
        raise ValidationFailedError(
            "ruleDefinition must include at least one value "
            "(percentage, fixedAmount, or threshold)",
            "rule_definition",
        )
    percentage = rule.get("percentage")
    if percentage is not None and not 0 <= percentage <= 100:
        raise ValidationFailedError("Percentage must be between 0 and 100", "rule_definition")
    if rule.get("fixed_amount") is not None and rule["fixed_amount"] < 0:
        raise ValidationFailedError(
            "Fixed amount must be greater than or equal to 0", "rule_definition"
        )
    if rule.get("threshold") is not None and rule["threshold"] < 0:
        raise ValidationFailedError(
            "Threshold must be greater than or equal to 0", "rule_definition"
        )


def effective_date_window(values: Mapping[str, Any], ctx: RuleContext) -> None:
    effective = values["effective_date"]
    earliest = shift_years(ctx.today, -ctx.policy_lookback_years)
    latest = shift_years(ctx.today, ctx.policy_horizon_years)
    if effective < earliest:
        raise ValidationFailedError(
            f"Effective date cannot be more than {ctx.policy_lookback_years} "
            "year(s) in the past",
            "effective_date",
        )
    if effective > latest:
        raise ValidationFailedError(
            f"Effective date cannot be more than {ctx.policy_horizon_years} "
            "year(s) in the future",
            "effective_date",
        )


def salary_range(values: Mapping[str, Any], ctx: RuleContext) -> None:
    if values["min_salary"] >= values["max_salary"]:
        raise ValidationFailedError(
            "Minimum salary must be less than maximum salary", "min_salary"
        )


# ===== Rule table =====


@dataclass(frozen=True)
class EntityRules:
    """Everything the lifecycle needs to know about one entity type."""

    entity_type: EntityType
    label: str
    model: type[ConfigRecord]
    fields: tuple[str, ...]
    required: tuple[str, ...]
    coercers: Mapping[str, Coercer] = field(default_factory=dict)
    validators: tuple[Validator, ...] = ()
    natural_key: tuple[str, ...] = ()
    filters: tuple[str, ...] = ()
    # (column, descending) pairs
    order_by: tuple[tuple[str, bool], ...] = (("created_at", True),)

    def clean(self, payload: Mapping[str, Any]) -> dict[str, Any]:
        """Drop lifecycle-managed keys, reject unknown ones and coerce values."""
        accepted = set(self.fields) | {"created_by"}
        unknown = sorted(k for k in payload if k not in accepted and k not in MANAGED_FIELDS)
        if unknown:
            raise ValidationFailedError(
                f"Unknown field(s) for {self.label.lower()}: {', '.join(unknown)}"
            )

        cleaned: dict[str, Any] = {}
        for name, value in payload.items():
            if name in MANAGED_FIELDS:
                continue
            coerce = to_text if name == "created_by" else self.coercers.get(name)
            cleaned[name] = coerce(name, value) if coerce and value is not None else value
        return cleaned

    def validate(self, values: Mapping[str, Any], ctx: RuleContext) -> None:
        """Check required fields, then run every business-rule validator."""
        for name in self.required:
            if values.get(name) is None:
                raise ValidationFailedError(f"{_label(name)} is required", name)
        for validator in self.validators:
            validator(values, ctx)

    def key_of(self, values: Mapping[str, Any]) -> dict[str, Any]:
        """Natural-key columns and their values."""
        return {name: values.get(name) for name in self.natural_key}

    def touches_key(self, change: Mapping[str, Any]) -> bool:
        return any(name in change for name in self.natural_key)

    def describe_key(self, key: Mapping[str, Any]) -> str:
        return " and ".join(f'{_label(name).lower()} "{value}"' for name, value in key.items())


_money = scaled_decimal(*MONEY_PRECISION)
_rate = scaled_decimal(*RATE_PRECISION)

ENTITY_RULES: dict[str, EntityRules] = {
    rules.entity_type.value: rules
    for rules in (
        EntityRules(
            entity_type=EntityType.PAY_TYPE,
            label="Pay type",
            model=PayType,
            fields=("type", "amount", "description"),
            required=("type", "amount"),
            coercers={
                "type": enum_value(PayTypeKind),
                "amount": _money,
                "description": to_text,
            },
            validators=(at_least_minimum_wage("amount"), description_length),
            natural_key=("type",),
        ),
        EntityRules(
            entity_type=EntityType.PAY_GRADE,
            label="Pay grade",
            model=PayGrade,
            fields=("grade", "base_salary", "gross_salary", "description", "position_id"),
            required=("grade", "base_salary", "gross_salary"),
            coercers={
                "grade": to_text,
                "base_salary": _money,
                "gross_salary": _money,
                "description": to_text,
                "position_id": to_text,
            },
            validators=(at_least_minimum_wage("base_salary"), gross_salary_bounds),
            natural_key=("grade",),
            order_by=(("grade", False),),
        ),
        EntityRules(
            entity_type=EntityType.PAYROLL_POLICY,
            label="Payroll policy",
            model=PayrollPolicy,
            fields=(
                "policy_name",
                "policy_type",
                "description",
                "effective_date",
                "rule_definition",
                "applicability",
            ),
            required=(
                "policy_name",
                "policy_type",
                "description",
                "effective_date",
                "rule_definition",
                "applicability",
            ),
            coercers={
                "policy_name": to_text,
                "policy_type": enum_value(PolicyType),
                "description": to_text,
                "effective_date": to_date,
                "rule_definition": to_rule_definition,
                "applicability": enum_value(Applicability),
            },
            validators=(
                min_length("policy_name", 3),
                effective_date_window,
                rule_definition_complete,
            ),
            natural_key=("policy_name", "policy_type"),
            filters=("policy_type",),
        ),
        EntityRules(
            entity_type=EntityType.ALLOWANCE,
            label="Allowance",
            model=Allowance,
            fields=("name", "amount"),
            required=("name", "amount"),
            coercers={"name": to_text, "amount": _money},
            validators=(non_negative("amount"),),
            natural_key=("name",),
        ),
        EntityRules(
            entity_type=EntityType.INSURANCE_BRACKET,
            label="Insurance bracket",
            model=InsuranceBracket,
            fields=(
                "name",
                "amount",
                "min_salary",
                "max_salary",
                "employee_rate",
                "employer_rate",
            ),
            required=(
                "name",
                "amount",
                "min_salary",
                "max_salary",
                "employee_rate",
                "employer_rate",
            ),
            coercers={
                "name": to_text,
                "amount": _money,
                "min_salary": _money,
                "max_salary": _money,
                "employee_rate": _rate,
                "employer_rate": _rate,
            },
            validators=(
                non_negative("amount"),
                non_negative("min_salary"),
                salary_range,
                percentage_range("employee_rate"),
                percentage_range("employer_rate"),
            ),
        ),
        EntityRules(
            entity_type=EntityType.SIGNING_BONUS,
            label="Signing bonus",
            model=SigningBonus,
            fields=("name", "amount"),
            required=("name", "amount"),
            coercers={"name": to_text, "amount": _money},
            validators=(non_negative("amount"),),
            natural_key=("name",),
        ),
        EntityRules(
            entity_type=EntityType.TAX_RULE,
            label="Tax rule",
            model=TaxRule,
            fields=("name", "description", "rate"),
            required=("name", "rate"),
            coercers={"name": to_text, "description": to_text, "rate": _rate},
            validators=(non_negative("rate"),),
            natural_key=("name",),
        ),
        EntityRules(
            entity_type=EntityType.TERMINATION_BENEFIT,
            label="Termination benefit",
            model=TerminationBenefit,
            fields=("name", "amount", "terms"),
            required=("name", "amount"),
            coercers={"name": to_text, "amount": _money, "terms": to_text},
            validators=(non_negative("amount"),),
        ),
    )
}


def get_rules(entity_type: str | EntityType) -> EntityRules:
    """Look up the rules for an entity type."""
    key = entity_type.value if isinstance(entity_type, EntityType) else entity_type
    try:
        return ENTITY_RULES[key]
    except KeyError:
        raise UnknownEntityTypeError(str(key)) from None
