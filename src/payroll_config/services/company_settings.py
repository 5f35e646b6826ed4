"""Company-wide payroll settings (singleton, no approval workflow)."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Mapping
from uuid import UUID
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sqlalchemy.ext.asyncio import AsyncSession

from payroll_config.config import Settings, get_settings
from payroll_config.models import CompanyWideSettings, utc_now
from payroll_config.services.errors import NotFoundError, ValidationFailedError
from payroll_config.services.repository import ConfigRepository
from payroll_config.services.rules import MANAGED_FIELDS, to_date, to_text

logger = logging.getLogger(__name__)

SETTINGS_FIELDS = ("pay_date", "time_zone", "currency")


class CompanySettingsService:
    """Create-or-merge access to the single company settings record."""

    def __init__(
        self,
        session: AsyncSession,
        settings: Settings | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.settings = settings or get_settings()
        self.clock = clock
        self.repository: ConfigRepository[CompanyWideSettings] = ConfigRepository(
            session, CompanyWideSettings
        )

    async def get(self) -> CompanyWideSettings | None:
        return await self.repository.find_first()

    async def upsert(self, payload: Mapping[str, Any]) -> CompanyWideSettings:
        """Merge into the existing record, or create it if none exists."""
        change = self._clean(payload)
        existing = await self.repository.find_first()
        if existing is not None:
            return await self._apply(existing, change)

        values = {"currency": self.settings.default_currency, **change}
        self._validate(values)
        now = self.clock()
        record = await self.repository.create({**values, "created_at": now, "updated_at": now})
        logger.info("Created company-wide settings %s", record.id)
        return record

    async def update(self, record_id: UUID, payload: Mapping[str, Any]) -> CompanyWideSettings:
        record = await self.repository.find_by_id(record_id)
        if record is None:
            raise NotFoundError("Company wide settings", record_id)
        return await self._apply(record, self._clean(payload))

    async def _apply(
        self, record: CompanyWideSettings, change: Mapping[str, Any]
    ) -> CompanyWideSettings:
        merged = {name: getattr(record, name) for name in SETTINGS_FIELDS}
        merged.update(change)
        self._validate(merged)
        record = await self.repository.update(record, {**change, "updated_at": self.clock()})
        logger.info("Updated company-wide settings %s", record.id)
        return record

    def _clean(self, payload: Mapping[str, Any]) -> dict[str, Any]:
        unknown = sorted(k for k in payload if k not in SETTINGS_FIELDS and k not in MANAGED_FIELDS)
        if unknown:
            raise ValidationFailedError(
                f"Unknown field(s) for company settings: {', '.join(unknown)}"
            )
        cleaned: dict[str, Any] = {}
        for name in SETTINGS_FIELDS:
            if name not in payload:
                continue
            value = payload[name]
            if value is not None:
                value = to_date(name, value) if name == "pay_date" else to_text(name, value)
            cleaned[name] = value
        return cleaned

    def _validate(self, values: Mapping[str, Any]) -> None:
        for name in ("pay_date", "time_zone"):
            if values.get(name) is None:
                raise ValidationFailedError(f"{name.replace('_', ' ').capitalize()} is required", name)

        try:
            ZoneInfo(values["time_zone"])
        except (ZoneInfoNotFoundError, ValueError):
            raise ValidationFailedError(
                f"Unknown time zone: {values['time_zone']}", "time_zone"
            ) from None

        currency = values.get("currency")
        if currency is None or len(currency) != 3 or not currency.isalpha():
            raise ValidationFailedError("Currency must be a 3-letter code", "currency")
