"""Approval status columns and the tagged approval state they encode."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Union

from sqlalchemy import DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column


class ConfigStatus(str, Enum):
    """Configuration approval status values."""

    DRAFT = "draft"
    APPROVED = "approved"
    REJECTED = "rejected"


@dataclass(frozen=True)
class Draft:
    """Awaiting a decision; the only editable state."""

    status = ConfigStatus.DRAFT


@dataclass(frozen=True)
class Approved:
    """Approved by an actor at a point in time."""

    by: str | None
    at: datetime

    status = ConfigStatus.APPROVED


@dataclass(frozen=True)
class Rejected:
    """Rejected by an actor, with the reason given."""

    by: str | None
    at: datetime
    reason: str

    status = ConfigStatus.REJECTED


ApprovalState = Union[Draft, Approved, Rejected]


class ApprovalMixin:
    """Status and audit columns shared by every approvable configuration.

    The columns are only written through ``approval``, which stores one
    variant at a time, so approval and rejection fields never coexist.
    """

    status: Mapped[str] = mapped_column(
        String, nullable=False, default=ConfigStatus.DRAFT.value
    )
    created_by: Mapped[str | None] = mapped_column(String, nullable=True)
    approved_by: Mapped[str | None] = mapped_column(String, nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    rejected_by: Mapped[str | None] = mapped_column(String, nullable=True)
    rejected_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    @property
    def approval(self) -> ApprovalState:
        """Current approval state as a tagged variant."""
        if self.status == ConfigStatus.APPROVED:
            return Approved(by=self.approved_by, at=self.approved_at)
        if self.status == ConfigStatus.REJECTED:
            return Rejected(
                by=self.rejected_by,
                at=self.rejected_at,
                reason=self.rejection_reason or "",
            )
        return Draft()

    @approval.setter
    def approval(self, state: ApprovalState) -> None:
        self.status = state.status.value
        self.approved_by = state.by if isinstance(state, Approved) else None
        self.approved_at = state.at if isinstance(state, Approved) else None
        self.rejected_by = state.by if isinstance(state, Rejected) else None
        self.rejected_at = state.at if isinstance(state, Rejected) else None
        self.rejection_reason = state.reason if isinstance(state, Rejected) else None
