"""Configuration approval state machine with transition validation."""

from __future__ import annotations

from payroll_config.models.approval import ConfigStatus
from payroll_config.services.errors import InvalidStateError


class ConfigStateMachine:
    """State machine for configuration approval status.

    Allowed transitions:
    - draft → approved
    - draft → rejected

    Approved and rejected are terminal; nothing returns a record to draft.
    """

    VALID_TRANSITIONS: dict[str, list[str]] = {
        ConfigStatus.DRAFT.value: [ConfigStatus.APPROVED.value, ConfigStatus.REJECTED.value],
        ConfigStatus.APPROVED.value: [],
        ConfigStatus.REJECTED.value: [],
    }

    # Statuses where fields can be edited
    EDITABLE = {ConfigStatus.DRAFT.value}

    # Statuses where the record can be deleted
    DELETABLE = {ConfigStatus.DRAFT.value}

    @staticmethod
    def _value(status: str) -> str:
        return status.value if isinstance(status, ConfigStatus) else status

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        """Check if a transition is valid."""
        allowed = cls.VALID_TRANSITIONS.get(cls._value(from_status), [])
        return cls._value(to_status) in allowed

    @classmethod
    def validate_transition(cls, from_status: str, to_status: str) -> None:
        """Validate a transition, raising InvalidStateError if invalid."""
        if to_status == ConfigStatus.DRAFT:
            raise InvalidStateError(
                from_status, "revert", "Approval status cannot revert to draft"
            )
        if not cls.can_transition(from_status, to_status):
            operation = "approve" if to_status == ConfigStatus.APPROVED else "reject"
            raise InvalidStateError(from_status, operation)

    @classmethod
    def can_edit(cls, status: str) -> bool:
        """Check if fields can be modified in this status."""
        return cls._value(status) in cls.EDITABLE

    @classmethod
    def can_delete(cls, status: str) -> bool:
        """Check if the record can be deleted in this status."""
        return cls._value(status) in cls.DELETABLE

    @classmethod
    def ensure_editable(cls, status: str) -> None:
        if not cls.can_edit(status):
            raise InvalidStateError(status, "edit")

    @classmethod
    def ensure_deletable(cls, status: str) -> None:
        if not cls.can_delete(status):
            raise InvalidStateError(status, "delete")

    @classmethod
    def get_next_statuses(cls, current_status: str) -> list[str]:
        """Get list of valid next statuses from current status."""
        return cls.VALID_TRANSITIONS.get(cls._value(current_status), [])

    @classmethod
    def is_terminal(cls, status: str) -> bool:
        """Check whether no transition leaves this status."""
        return not cls.get_next_statuses(status)
