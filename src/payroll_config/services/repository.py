"""Persistence for configuration records."""

from __future__ import annotations

from typing import Any, Generic, Mapping, Sequence, TypeVar
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from payroll_config.models import Base
from payroll_config.services.errors import ConflictError

M = TypeVar("M", bound=Base)


class ConfigRepository(Generic[M]):
    """Single-table data access for one configuration model.

    Writes are flushed immediately so storage-level unique constraints
    surface as ``ConflictError`` inside the operation that caused them.
    Committing is left to whoever owns the session.
    """

    def __init__(self, session: AsyncSession, model: type[M]):
        self.session = session
        self.model = model

    async def create(self, values: Mapping[str, Any]) -> M:
        record = self.model(**values)
        self.session.add(record)
        await self._flush()
        return record

    async def find_by_id(self, record_id: UUID) -> M | None:
        return await self.session.get(self.model, record_id)

    async def find_first(self) -> M | None:
        result = await self.session.execute(
            select(self.model).order_by(self.model.created_at.asc()).limit(1)
        )
        return result.scalar_one_or_none()

    async def find_many(
        self,
        filters: Mapping[str, Any] | None = None,
        order_by: Sequence[tuple[str, bool]] = (),
    ) -> list[M]:
        """Load records matching equality filters in the given order."""
        query = select(self.model)
        for name, value in (filters or {}).items():
            query = query.where(getattr(self.model, name) == value)
        for name, descending in order_by:
            column = getattr(self.model, name)
            query = query.order_by(column.desc() if descending else column.asc())
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def update(self, record: M, values: Mapping[str, Any]) -> M:
        for name, value in values.items():
            setattr(record, name, value)
        await self._flush()
        return record

    async def save(self, record: M) -> M:
        await self._flush()
        return record

    async def delete(self, record: M) -> None:
        await self.session.delete(record)
        await self.session.flush()

    async def exists_by_natural_key(
        self,
        key: Mapping[str, Any],
        excluding_id: UUID | None = None,
    ) -> bool:
        """Check whether another record already holds this natural key."""
        query = select(self.model.id)
        for name, value in key.items():
            query = query.where(getattr(self.model, name) == value)
        if excluding_id is not None:
            query = query.where(self.model.id != excluding_id)
        result = await self.session.execute(query.limit(1))
        return result.first() is not None

    async def _flush(self) -> None:
        try:
            await self.session.flush()
        except IntegrityError as exc:
            raise ConflictError(
                f"{self.model.__name__} conflicts with an existing record"
            ) from exc
