"""Deletion eligibility checks against records that reference configuration."""

from __future__ import annotations

from typing import Iterable, Protocol, runtime_checkable
from uuid import UUID

from payroll_config.services.errors import UnknownEntityTypeError


@runtime_checkable
class ReferenceGuard(Protocol):
    """Decides whether a configuration record may be deleted."""

    async def can_delete(self, entity_type: str, record_id: UUID) -> bool:
        """Return False when something still references the record."""
        ...


class PermissiveReferenceGuard:
    """Guard that permits every deletion of a registered entity type.

    Stands in until employee and contract records exist to check against.
    """

    def __init__(self, entity_types: Iterable[str]):
        self.entity_types = frozenset(entity_types)

    async def can_delete(self, entity_type: str, record_id: UUID) -> bool:
        if entity_type not in self.entity_types:
            raise UnknownEntityTypeError(entity_type)
        # TODO: reject pay types used by employee contracts and pay grades
        # assigned to employees once the employee module is available.
        return True
