"""Settings store — the admin-editable scrap rate and default lookup allowance.

Backed by the single `app_settings` row. Reads go to the database every time
so a rate change applies to the very next quote.
"""

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from scrapquote.config import QuoteSettings
from scrapquote.errors import InvalidInput
from scrapquote.models.app_settings import SETTINGS_ROW_ID, AppSettings

logger = logging.getLogger(__name__)


def validate_settings_update(
    default_checks: Any = None,
    scrap_rate_per_kg: Any = None,
) -> dict[str, Any]:
    """Validate an admin settings update and return the columns to write."""
    if default_checks is None and scrap_rate_per_kg is None:
        raise InvalidInput("Please provide at least one field to update.")

    values: dict[str, Any] = {}
    if default_checks is not None:
        if isinstance(default_checks, bool):
            raise InvalidInput("defaultChecks must be a non-negative integer.")
        try:
            checks = Decimal(str(default_checks))
        except InvalidOperation as exc:
            raise InvalidInput("defaultChecks must be a non-negative integer.") from exc
        if not checks.is_finite() or checks < 0 or checks != checks.to_integral_value():
            raise InvalidInput("defaultChecks must be a non-negative integer.")
        values["default_checks"] = int(checks)

    if scrap_rate_per_kg is not None:
        if isinstance(scrap_rate_per_kg, bool):
            raise InvalidInput("scrapRatePerKg must be a non-negative number.")
        try:
            rate = Decimal(str(scrap_rate_per_kg))
        except InvalidOperation as exc:
            raise InvalidInput("scrapRatePerKg must be a non-negative number.") from exc
        if not rate.is_finite() or rate < 0:
            raise InvalidInput("scrapRatePerKg must be a non-negative number.")
        values["scrap_rate_per_kg"] = rate

    return values


class SettingsStore:
    """Reads and upserts the single AppSettings row."""

    def __init__(self, db: AsyncSession, defaults: QuoteSettings) -> None:
        self._db = db
        self._defaults = defaults

    async def get_current(self) -> AppSettings | None:
        result = await self._db.execute(select(AppSettings).where(AppSettings.id == SETTINGS_ROW_ID))
        return result.scalar_one_or_none()

    async def get_or_create(self) -> AppSettings:
        """Return the settings row, inserting the configured defaults if absent."""
        await self._db.execute(
            pg_insert(AppSettings)
            .values(
                id=SETTINGS_ROW_ID,
                default_checks=self._defaults.default_checks,
                scrap_rate_per_kg=self._defaults.default_scrap_rate_per_kg,
            )
            .on_conflict_do_nothing(index_elements=[AppSettings.id])
        )
        row = await self.get_current()
        if row is None:  # pragma: no cover - insert above guarantees the row
            raise RuntimeError("app_settings row missing after insert")
        return row

    async def update(self, default_checks: Any = None, scrap_rate_per_kg: Any = None) -> AppSettings:
        """Validate and atomically upsert the given fields."""
        values = validate_settings_update(default_checks, scrap_rate_per_kg)

        insert_values = {
            "id": SETTINGS_ROW_ID,
            "default_checks": self._defaults.default_checks,
            "scrap_rate_per_kg": self._defaults.default_scrap_rate_per_kg,
            **values,
        }
        stmt = (
            pg_insert(AppSettings)
            .values(**insert_values)
            .on_conflict_do_update(
                index_elements=[AppSettings.id],
                set_={**values, "updated_at": func.now()},
            )
            .returning(AppSettings)
            .execution_options(populate_existing=True)
        )
        result = await self._db.execute(stmt)
        row = result.scalar_one()
        logger.info("Settings updated: %s", values)
        return row
