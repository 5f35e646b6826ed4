"""Tests for the configuration lifecycle service."""

from datetime import datetime, time, timedelta, timezone
from decimal import Decimal
from itertools import count
from uuid import UUID, uuid4

import pytest

from payroll_config.models import Approved, ConfigStatus, Rejected
from payroll_config.services import (
    ConfigLifecycleService,
    ConflictError,
    EntityType,
    InvalidStateError,
    NotFoundError,
    ReferenceInUseError,
    UnknownEntityTypeError,
    ValidationFailedError,
)
from payroll_config.services.reference_guard import PermissiveReferenceGuard, ReferenceGuard

VALID_PAYLOADS = {
    EntityType.PAY_TYPE: {"type": "monthly", "amount": 8000, "description": "Paid once a month"},
    EntityType.PAY_GRADE: {"grade": "Senior", "base_salary": 12000, "gross_salary": 15000},
    EntityType.PAYROLL_POLICY: None,  # built from the policy_payload fixture
    EntityType.ALLOWANCE: {"name": "Housing", "amount": 1500},
    EntityType.INSURANCE_BRACKET: {
        "name": "Social insurance",
        "amount": 0,
        "min_salary": 0,
        "max_salary": 1000,
        "employee_rate": 11,
        "employer_rate": 18.75,
    },
    EntityType.SIGNING_BONUS: {"name": "Engineering welcome", "amount": 5000},
    EntityType.TAX_RULE: {"name": "Income tax", "rate": 22.5, "description": "Top bracket"},
    EntityType.TERMINATION_BENEFIT: {"name": "End of service", "amount": 20000},
}


@pytest.fixture
def payloads(policy_payload) -> dict:
    return {**VALID_PAYLOADS, EntityType.PAYROLL_POLICY: policy_payload}


class RecordingGuard:
    """Reference guard that records calls and answers a fixed verdict."""

    def __init__(self, verdict: bool):
        self.verdict = verdict
        self.calls: list[tuple[str, UUID]] = []

    async def can_delete(self, entity_type: str, record_id: UUID) -> bool:
        self.calls.append((entity_type, record_id))
        return self.verdict


class TestCreate:
    @pytest.mark.parametrize("entity_type", list(EntityType))
    async def test_created_as_draft_ignoring_status(
        self, service: ConfigLifecycleService, payloads, entity_type
    ):
        payload = {**payloads[entity_type], "status": "approved", "approved_by": "someone"}

        record = await service.create(entity_type, payload)

        assert record.status == ConfigStatus.DRAFT
        assert record.approved_by is None
        assert record.approved_at is None
        assert record.rejection_reason is None
        assert isinstance(record.id, UUID)

    async def test_records_creator(self, service: ConfigLifecycleService):
        record = await service.create(
            EntityType.ALLOWANCE, {"name": "Transport", "amount": 2500}, created_by="hr-7"
        )
        assert record.created_by == "hr-7"
        assert record.amount == Decimal("2500")

    async def test_duplicate_pay_type(self, service: ConfigLifecycleService):
        await service.create(EntityType.PAY_TYPE, {"type": "hourly", "amount": 6000})

        with pytest.raises(ConflictError, match="hourly"):
            await service.create(EntityType.PAY_TYPE, {"type": "hourly", "amount": 9000})

    async def test_duplicate_policy_name_and_type(
        self, service: ConfigLifecycleService, policy_payload
    ):
        await service.create(EntityType.PAYROLL_POLICY, policy_payload)

        with pytest.raises(ConflictError):
            await service.create(EntityType.PAYROLL_POLICY, policy_payload)

    async def test_same_policy_name_different_type(
        self, service: ConfigLifecycleService, policy_payload
    ):
        await service.create(EntityType.PAYROLL_POLICY, policy_payload)
        other = await service.create(
            EntityType.PAYROLL_POLICY, {**policy_payload, "policy_type": "Deduction"}
        )
        assert other.policy_type == "Deduction"

    async def test_pay_grade_boundaries(self, service: ConfigLifecycleService):
        with pytest.raises(ValidationFailedError):
            await service.create(
                EntityType.PAY_GRADE, {"grade": "A", "base_salary": 5999, "gross_salary": 6000}
            )
        with pytest.raises(ValidationFailedError):
            await service.create(
                EntityType.PAY_GRADE, {"grade": "A", "base_salary": 6000, "gross_salary": 60001}
            )

        record = await service.create(
            EntityType.PAY_GRADE, {"grade": "A", "base_salary": 6000, "gross_salary": 6000}
        )
        assert record.status == ConfigStatus.DRAFT

    async def test_policy_requires_rule_value(
        self, service: ConfigLifecycleService, policy_payload
    ):
        with pytest.raises(ValidationFailedError) as exc_info:
            await service.create(
                EntityType.PAYROLL_POLICY, {**policy_payload, "rule_definition": {}}
            )
        message = str(exc_info.value)
        assert "percentage" in message
        assert "fixedAmount" in message
        assert "threshold" in message

    async def test_policy_effective_today(
        self, service: ConfigLifecycleService, policy_payload, today
    ):
        record = await service.create(EntityType.PAYROLL_POLICY, policy_payload)

        assert record.status == ConfigStatus.DRAFT
        assert record.effective_date == today
        assert record.rule_definition == {"percentage": 50, "threshold": 160}

    async def test_insurance_bracket_range(self, service: ConfigLifecycleService, payloads):
        payload = {**payloads[EntityType.INSURANCE_BRACKET], "min_salary": 5000, "max_salary": 3000}
        with pytest.raises(ValidationFailedError, match="Minimum salary"):
            await service.create(EntityType.INSURANCE_BRACKET, payload)

    async def test_unknown_entity_type(self, service: ConfigLifecycleService):
        with pytest.raises(UnknownEntityTypeError):
            await service.create("bonus_pool", {"name": "x"})


class TestUpdate:
    async def test_update_draft(self, service: ConfigLifecycleService):
        record = await service.create(EntityType.ALLOWANCE, {"name": "Housing", "amount": 1500})

        updated = await service.update(EntityType.ALLOWANCE, record.id, {"amount": "1750.50"})

        assert updated.amount == Decimal("1750.50")
        assert updated.name == "Housing"
        assert updated.status == ConfigStatus.DRAFT

    async def test_salary_bounds_hold_after_reload(self, service: ConfigLifecycleService, session):
        with pytest.raises(ValidationFailedError, match="cannot exceed 10 times"):
            await service.create(
                EntityType.PAY_GRADE,
                {"grade": "Entry", "base_salary": "6000.004", "gross_salary": "60000.04"},
            )

        record = await service.create(
            EntityType.PAY_GRADE,
            {"grade": "Entry", "base_salary": "6000.004", "gross_salary": "60000.00"},
        )
        await session.flush()
        session.expunge_all()

        stored = await service.get(EntityType.PAY_GRADE, record.id)
        assert stored.base_salary == Decimal("6000.00")
        assert stored.gross_salary <= stored.base_salary * 10

        updated = await service.update(
            EntityType.PAY_GRADE, record.id, {"description": "Entry level grade"}
        )
        assert updated.description == "Entry level grade"

    async def test_update_missing(self, service: ConfigLifecycleService):
        with pytest.raises(NotFoundError):
            await service.update(EntityType.ALLOWANCE, uuid4(), {"amount": 1})

    async def test_update_validates_merged_values(self, service: ConfigLifecycleService, payloads):
        record = await service.create(
            EntityType.INSURANCE_BRACKET, payloads[EntityType.INSURANCE_BRACKET]
        )

        with pytest.raises(ValidationFailedError, match="Minimum salary"):
            await service.update(EntityType.INSURANCE_BRACKET, record.id, {"min_salary": 2000})

    async def test_update_pay_grade_against_stored_base(self, service: ConfigLifecycleService):
        record = await service.create(
            EntityType.PAY_GRADE, {"grade": "B", "base_salary": 6000, "gross_salary": 7000}
        )

        with pytest.raises(ValidationFailedError, match="10 times"):
            await service.update(EntityType.PAY_GRADE, record.id, {"gross_salary": 70000})

    async def test_update_key_collision(self, service: ConfigLifecycleService):
        await service.create(EntityType.TAX_RULE, {"name": "Income tax", "rate": 10})
        other = await service.create(EntityType.TAX_RULE, {"name": "Stamp duty", "rate": 1})

        with pytest.raises(ConflictError):
            await service.update(EntityType.TAX_RULE, other.id, {"name": "Income tax"})

    async def test_update_keeping_own_key(self, service: ConfigLifecycleService):
        record = await service.create(EntityType.TAX_RULE, {"name": "Income tax", "rate": 10})

        updated = await service.update(
            EntityType.TAX_RULE, record.id, {"name": "Income tax", "rate": 12}
        )
        assert updated.rate == Decimal("12")

    async def test_update_policy_type_collision(
        self, service: ConfigLifecycleService, policy_payload
    ):
        await service.create(EntityType.PAYROLL_POLICY, policy_payload)
        other = await service.create(
            EntityType.PAYROLL_POLICY, {**policy_payload, "policy_type": "Allowance"}
        )

        with pytest.raises(ConflictError):
            await service.update(EntityType.PAYROLL_POLICY, other.id, {"policy_type": "Benefit"})

    async def test_update_cannot_change_status(self, service: ConfigLifecycleService):
        record = await service.create(EntityType.SIGNING_BONUS, {"name": "Welcome", "amount": 10})

        updated = await service.update(
            EntityType.SIGNING_BONUS, record.id, {"status": "approved", "amount": 20}
        )

        assert updated.status == ConfigStatus.DRAFT
        assert updated.amount == Decimal("20")

    async def test_update_bumps_updated_at(self, make_service, today):
        start = datetime.combine(today, time(9, 0), tzinfo=timezone.utc)
        ticks = (start + timedelta(minutes=i) for i in count())
        service = make_service(clock=lambda: next(ticks))

        record = await service.create(EntityType.ALLOWANCE, {"name": "Meal", "amount": 300})
        updated = await service.update(EntityType.ALLOWANCE, record.id, {"amount": 350})

        assert updated.created_at == record.created_at
        assert updated.updated_at > updated.created_at


class TestDecisions:
    @pytest.mark.parametrize("entity_type", list(EntityType))
    async def test_approve(self, service: ConfigLifecycleService, payloads, entity_type, now):
        record = await service.create(entity_type, payloads[entity_type])

        approved = await service.approve(entity_type, record.id, "approver-1")

        assert approved.status == ConfigStatus.APPROVED
        assert approved.approved_by == "approver-1"
        assert approved.approved_at == now
        assert approved.rejected_by is None
        assert approved.rejected_at is None
        assert approved.rejection_reason is None
        assert approved.approval == Approved(by="approver-1", at=now)

    @pytest.mark.parametrize("entity_type", list(EntityType))
    async def test_reject(self, service: ConfigLifecycleService, payloads, entity_type, now):
        record = await service.create(entity_type, payloads[entity_type])

        rejected = await service.reject(entity_type, record.id, "reviewer-2", "Out of budget")

        assert rejected.status == ConfigStatus.REJECTED
        assert rejected.rejected_by == "reviewer-2"
        assert rejected.rejected_at == now
        assert rejected.rejection_reason == "Out of budget"
        assert rejected.approved_by is None
        assert rejected.approved_at is None
        assert rejected.approval == Rejected(by="reviewer-2", at=now, reason="Out of budget")

    async def test_approve_twice(self, service: ConfigLifecycleService):
        record = await service.create(EntityType.PAY_TYPE, {"type": "daily", "amount": 6500})
        await service.approve(EntityType.PAY_TYPE, record.id, "cfo")

        with pytest.raises(InvalidStateError):
            await service.approve(EntityType.PAY_TYPE, record.id, "cfo")

    async def test_no_reapproval_after_rejection(self, service: ConfigLifecycleService):
        record = await service.create(EntityType.PAY_TYPE, {"type": "weekly", "amount": 6500})
        await service.reject(EntityType.PAY_TYPE, record.id, "cfo", "Not needed")

        with pytest.raises(InvalidStateError):
            await service.approve(EntityType.PAY_TYPE, record.id, "cfo")
        with pytest.raises(InvalidStateError):
            await service.reject(EntityType.PAY_TYPE, record.id, "cfo", "again")

    async def test_reject_requires_reason(self, service: ConfigLifecycleService):
        record = await service.create(EntityType.ALLOWANCE, {"name": "Phone", "amount": 100})

        with pytest.raises(ValidationFailedError, match="reason"):
            await service.reject(EntityType.ALLOWANCE, record.id, "cfo", "   ")

        assert (await service.get(EntityType.ALLOWANCE, record.id)).status == ConfigStatus.DRAFT

    async def test_set_status_dispatch(self, service: ConfigLifecycleService):
        first = await service.create(EntityType.ALLOWANCE, {"name": "Car", "amount": 900})
        second = await service.create(EntityType.ALLOWANCE, {"name": "Gym", "amount": 50})

        approved = await service.set_status(EntityType.ALLOWANCE, first.id, "approved", "mgr")
        rejected = await service.set_status(
            EntityType.ALLOWANCE, second.id, "rejected", "mgr", "Not a payroll item"
        )

        assert approved.status == ConfigStatus.APPROVED
        assert rejected.status == ConfigStatus.REJECTED

    async def test_set_status_to_draft(self, service: ConfigLifecycleService):
        record = await service.create(EntityType.ALLOWANCE, {"name": "Car", "amount": 900})

        with pytest.raises(InvalidStateError, match="revert to draft"):
            await service.set_status(EntityType.ALLOWANCE, record.id, "draft", "mgr")

    async def test_set_status_unknown(self, service: ConfigLifecycleService):
        record = await service.create(EntityType.ALLOWANCE, {"name": "Car", "amount": 900})

        with pytest.raises(ValidationFailedError, match="Unknown status"):
            await service.set_status(EntityType.ALLOWANCE, record.id, "archived", "mgr")

    async def test_approve_missing(self, service: ConfigLifecycleService):
        with pytest.raises(NotFoundError):
            await service.approve(EntityType.PAY_GRADE, uuid4(), "cfo")


@pytest.fixture(
    params=[
        (entity_type, decision)
        for entity_type in EntityType
        for decision in ("approved", "rejected")
    ],
    ids=lambda param: f"{param[0].value}-{param[1]}",
)
async def decided(request, service: ConfigLifecycleService, payloads):
    """A record of every type that has already been approved or rejected."""
    entity_type, decision = request.param
    record = await service.create(entity_type, payloads[entity_type])
    if decision == "approved":
        await service.approve(entity_type, record.id, "cfo")
    else:
        await service.reject(entity_type, record.id, "cfo", "No")
    return entity_type, record


class TestNonDraftRecords:
    """Approved or rejected records refuse every mutation."""

    async def test_update_refused(self, service: ConfigLifecycleService, decided, payloads):
        entity_type, record = decided
        with pytest.raises(InvalidStateError):
            await service.update(entity_type, record.id, payloads[entity_type])

    async def test_approve_refused(self, service: ConfigLifecycleService, decided):
        entity_type, record = decided
        with pytest.raises(InvalidStateError):
            await service.approve(entity_type, record.id, "cfo")

    async def test_reject_refused(self, service: ConfigLifecycleService, decided):
        entity_type, record = decided
        with pytest.raises(InvalidStateError):
            await service.reject(entity_type, record.id, "cfo", "again")

    async def test_delete_refused_before_guard(self, make_service, decided):
        entity_type, record = decided
        guard = RecordingGuard(verdict=True)
        service = make_service(reference_guard=guard)

        with pytest.raises(InvalidStateError):
            await service.delete(entity_type, record.id)

        assert guard.calls == []
        assert await service.get(entity_type, record.id) is not None


class TestDelete:
    async def test_delete_draft(self, service: ConfigLifecycleService):
        record = await service.create(EntityType.SIGNING_BONUS, {"name": "Relocation", "amount": 3000})

        await service.delete(EntityType.SIGNING_BONUS, record.id)

        with pytest.raises(NotFoundError):
            await service.get(EntityType.SIGNING_BONUS, record.id)

    async def test_delete_missing(self, service: ConfigLifecycleService):
        with pytest.raises(NotFoundError):
            await service.delete(EntityType.PAY_TYPE, uuid4())

    async def test_guard_consulted(self, make_service):
        guard = RecordingGuard(verdict=True)
        service = make_service(reference_guard=guard)
        record = await service.create(EntityType.PAY_GRADE, {"grade": "C", "base_salary": 6000, "gross_salary": 9000})

        await service.delete(EntityType.PAY_GRADE, record.id)

        assert guard.calls == [("pay_grade", record.id)]

    async def test_guard_blocks_deletion(self, make_service):
        guard = RecordingGuard(verdict=False)
        service = make_service(reference_guard=guard)
        record = await service.create(EntityType.PAY_TYPE, {"type": "hourly", "amount": 6000})

        with pytest.raises(ReferenceInUseError) as exc_info:
            await service.delete(EntityType.PAY_TYPE, record.id)

        assert isinstance(exc_info.value, ConflictError)
        assert (await service.get(EntityType.PAY_TYPE, record.id)).status == ConfigStatus.DRAFT

    async def test_key_reusable_after_delete(self, service: ConfigLifecycleService):
        record = await service.create(EntityType.ALLOWANCE, {"name": "Housing", "amount": 1})
        await service.delete(EntityType.ALLOWANCE, record.id)

        again = await service.create(EntityType.ALLOWANCE, {"name": "Housing", "amount": 2})
        assert again.id != record.id


class TestReferenceGuard:
    async def test_permissive_guard_allows_registered_types(self):
        guard = PermissiveReferenceGuard(["pay_type", "pay_grade"])
        assert isinstance(guard, ReferenceGuard)
        assert await guard.can_delete("pay_type", uuid4()) is True

    async def test_permissive_guard_unknown_type(self):
        guard = PermissiveReferenceGuard(["pay_type"])
        with pytest.raises(UnknownEntityTypeError):
            await guard.can_delete("payslip", uuid4())


class TestReads:
    async def test_list_filters_by_status(self, service: ConfigLifecycleService):
        a = await service.create(EntityType.ALLOWANCE, {"name": "A", "amount": 1})
        await service.create(EntityType.ALLOWANCE, {"name": "B", "amount": 2})
        await service.approve(EntityType.ALLOWANCE, a.id, "cfo")

        approved = await service.list(EntityType.ALLOWANCE, status="approved")
        drafts = await service.list(EntityType.ALLOWANCE, status=ConfigStatus.DRAFT)
        everything = await service.list(EntityType.ALLOWANCE)

        assert [r.name for r in approved] == ["A"]
        assert [r.name for r in drafts] == ["B"]
        assert len(everything) == 2

    async def test_list_policies_by_type(
        self, service: ConfigLifecycleService, policy_payload
    ):
        await service.create(EntityType.PAYROLL_POLICY, policy_payload)
        await service.create(
            EntityType.PAYROLL_POLICY,
            {**policy_payload, "policy_name": "Late arrival", "policy_type": "Misconduct"},
        )

        misconduct = await service.list(EntityType.PAYROLL_POLICY, policy_type="Misconduct")
        none_left = await service.list(
            EntityType.PAYROLL_POLICY, status="approved", policy_type="Misconduct"
        )

        assert [p.policy_name for p in misconduct] == ["Late arrival"]
        assert none_left == []

    async def test_pay_grades_sorted_by_grade(self, service: ConfigLifecycleService):
        for grade in ("C", "A", "B"):
            await service.create(
                EntityType.PAY_GRADE, {"grade": grade, "base_salary": 6000, "gross_salary": 6000}
            )

        grades = await service.list(EntityType.PAY_GRADE)
        assert [g.grade for g in grades] == ["A", "B", "C"]

    async def test_unsupported_filter(self, service: ConfigLifecycleService):
        with pytest.raises(ValidationFailedError, match="cannot be filtered"):
            await service.list(EntityType.ALLOWANCE, policy_type="Benefit")

    async def test_get_missing(self, service: ConfigLifecycleService):
        with pytest.raises(NotFoundError, match="Tax rule"):
            await service.get(EntityType.TAX_RULE, uuid4())
