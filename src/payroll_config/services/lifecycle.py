"""Configuration lifecycle service - draft, edit, approve, reject, delete."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Mapping
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from payroll_config.config import Settings, get_settings
from payroll_config.models import (
    Approved,
    ConfigRecord,
    ConfigStatus,
    Rejected,
    utc_now,
)
from payroll_config.services.errors import (
    ConflictError,
    NotFoundError,
    ReferenceInUseError,
    ValidationFailedError,
)
from payroll_config.services.reference_guard import PermissiveReferenceGuard, ReferenceGuard
from payroll_config.services.repository import ConfigRepository
from payroll_config.services.rules import (
    ENTITY_RULES,
    EntityRules,
    EntityType,
    RuleContext,
    get_rules,
)
from payroll_config.services.state_machine import ConfigStateMachine

logger = logging.getLogger(__name__)


def _status(value: str | ConfigStatus) -> ConfigStatus:
    try:
        return ConfigStatus(value)
    except ValueError:
        raise ValidationFailedError(f"Unknown status: {value}", "status") from None


class ConfigLifecycleService:
    """Service for managing the configuration record lifecycle.

    Every operation takes an entity type and is applied uniformly using the
    rule table:
    - create: validate, check the natural key, persist as draft
    - update: draft only; re-check the natural key and re-validate merged values
    - approve / reject: draft only; terminal decisions
    - delete: draft only, and only if the reference guard allows it
    - get / list: plain reads, never status-checked

    Each call is a single read-modify-write against one record. There is no
    locking across the load/save window; concurrent writers to the same id
    are last-writer-wins.
    """

    def __init__(
        self,
        session: AsyncSession,
        reference_guard: ReferenceGuard | None = None,
        settings: Settings | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.session = session
        self.reference_guard = reference_guard or PermissiveReferenceGuard(ENTITY_RULES)
        self.settings = settings or get_settings()
        self.clock = clock

    def repository(self, rules: EntityRules) -> ConfigRepository[ConfigRecord]:
        return ConfigRepository(self.session, rules.model)

    def rule_context(self) -> RuleContext:
        return RuleContext.from_settings(self.settings, self.clock().date())

    # ===== Reads =====

    async def get(self, entity_type: str | EntityType, record_id: UUID) -> ConfigRecord:
        """Load a record, raising NotFoundError if absent."""
        rules = get_rules(entity_type)
        return await self._load(rules, record_id)

    async def list(
        self,
        entity_type: str | EntityType,
        status: str | None = None,
        **filters: Any,
    ) -> list[ConfigRecord]:
        """List records filtered by status and the type's secondary filters."""
        rules = get_rules(entity_type)
        unsupported = sorted(set(filters) - set(rules.filters))
        if unsupported:
            raise ValidationFailedError(
                f"{rules.label} cannot be filtered by: {', '.join(unsupported)}"
            )

        criteria = {
            name: rules.coercers[name](name, value) if name in rules.coercers else value
            for name, value in filters.items()
            if value is not None
        }
        if status is not None:
            criteria["status"] = _status(status).value

        return await self.repository(rules).find_many(criteria, rules.order_by)

    # ===== Mutations =====

    async def create(
        self,
        entity_type: str | EntityType,
        payload: Mapping[str, Any],
        created_by: str | None = None,
    ) -> ConfigRecord:
        """Create a draft record; any status in the payload is ignored."""
        rules = get_rules(entity_type)
        values = rules.clean(payload)
        if created_by is not None:
            values["created_by"] = created_by
        rules.validate(values, self.rule_context())

        repository = self.repository(rules)
        await self._ensure_key_available(rules, repository, values)

        now = self.clock()
        record = await repository.create(
            {
                **values,
                "status": ConfigStatus.DRAFT.value,
                "created_at": now,
                "updated_at": now,
            }
        )
        logger.info("Created %s %s as draft", rules.entity_type.value, record.id)
        return record

    async def update(
        self,
        entity_type: str | EntityType,
        record_id: UUID,
        payload: Mapping[str, Any],
    ) -> ConfigRecord:
        """Apply a partial change to a draft record."""
        rules = get_rules(entity_type)
        repository = self.repository(rules)
        record = await self._load(rules, record_id)
        ConfigStateMachine.ensure_editable(record.status)

        change = rules.clean(payload)
        merged = {name: getattr(record, name) for name in rules.fields}
        merged.update(change)

        if rules.touches_key(change):
            await self._ensure_key_available(rules, repository, merged, excluding_id=record.id)
        rules.validate(merged, self.rule_context())

        record = await repository.update(record, {**change, "updated_at": self.clock()})
        logger.info("Updated %s %s", rules.entity_type.value, record.id)
        return record

    async def approve(
        self,
        entity_type: str | EntityType,
        record_id: UUID,
        approver_id: str,
    ) -> ConfigRecord:
        """Approve a draft record."""
        return await self.set_status(
            entity_type, record_id, ConfigStatus.APPROVED, approver_id
        )

    async def reject(
        self,
        entity_type: str | EntityType,
        record_id: UUID,
        rejecter_id: str,
        reason: str,
    ) -> ConfigRecord:
        """Reject a draft record with a reason."""
        return await self.set_status(
            entity_type, record_id, ConfigStatus.REJECTED, rejecter_id, reason
        )

    async def set_status(
        self,
        entity_type: str | EntityType,
        record_id: UUID,
        status: str | ConfigStatus,
        actor_id: str | None,
        reason: str | None = None,
    ) -> ConfigRecord:
        """Move a draft record to approved or rejected.

        Raises InvalidStateError for anything other than draft → approved or
        draft → rejected, including any attempt to go back to draft.
        """
        rules = get_rules(entity_type)
        to_status = _status(status)

        record = await self._load(rules, record_id)
        ConfigStateMachine.validate_transition(record.status, to_status)

        now = self.clock()
        if to_status == ConfigStatus.APPROVED:
            record.approval = Approved(by=actor_id, at=now)
        else:
            if not reason or not reason.strip():
                raise ValidationFailedError("A rejection reason is required", "reason")
            record.approval = Rejected(by=actor_id, at=now, reason=reason)
        record.updated_at = now

        record = await self.repository(rules).save(record)
        logger.info(
            "%s %s %s by %s",
            rules.entity_type.value,
            record.id,
            to_status.value,
            actor_id,
        )
        return record

    async def delete(self, entity_type: str | EntityType, record_id: UUID) -> None:
        """Delete a draft record that nothing references."""
        rules = get_rules(entity_type)
        record = await self._load(rules, record_id)
        ConfigStateMachine.ensure_deletable(record.status)

        if not await self.reference_guard.can_delete(rules.entity_type.value, record.id):
            logger.warning(
                "Deletion of %s %s blocked by references", rules.entity_type.value, record.id
            )
            raise ReferenceInUseError(
                f"Cannot delete {rules.label.lower()}: it is still referenced"
            )

        await self.repository(rules).delete(record)
        logger.info("Deleted %s %s", rules.entity_type.value, record_id)

    # ===== Helpers =====

    async def _load(self, rules: EntityRules, record_id: UUID) -> ConfigRecord:
        record = await self.repository(rules).find_by_id(record_id)
        if record is None:
            raise NotFoundError(rules.label, record_id)
        return record

    async def _ensure_key_available(
        self,
        rules: EntityRules,
        repository: ConfigRepository[ConfigRecord],
        values: Mapping[str, Any],
        excluding_id: UUID | None = None,
    ) -> None:
        if not rules.natural_key:
            return
        key = rules.key_of(values)
        if await repository.exists_by_natural_key(key, excluding_id=excluding_id):
            logger.warning("Duplicate %s for %s", rules.entity_type.value, key)
            raise ConflictError(f"{rules.label} with {rules.describe_key(key)} already exists")

