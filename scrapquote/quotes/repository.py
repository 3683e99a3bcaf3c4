"""Quote persistence with storage-level concurrency control.

Two write paths only:
- `upsert_auto` — INSERT ... ON CONFLICT (user_id, reg_number, kind) DO UPDATE,
  so concurrent auto-quote requests converge on one row.
- `transition` — UPDATE ... WHERE id = :id AND state = :observed RETURNING,
  so a stale retry cannot regress a quote that moved on.
"""

from __future__ import annotations

import logging
import uuid
from decimal import Decimal
from typing import Any

from sqlalchemy import delete, func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from scrapquote.models.enums import ClientDecision, QuoteKind, QuoteState
from scrapquote.models.quote import UQ_USER_REG_KIND, Quote

logger = logging.getLogger(__name__)


class QuoteRepository:
    """SQLAlchemy-backed quote store bound to one request's session."""

    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def get(self, quote_id: uuid.UUID) -> Quote | None:
        result = await self._db.execute(
            select(Quote).where(Quote.id == quote_id).execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def find_for_registration(self, user_id: uuid.UUID, reg_number: str) -> list[Quote]:
        """All quotes of any kind for (user, registration), oldest first."""
        result = await self._db.execute(
            select(Quote)
            .where(Quote.user_id == user_id, Quote.reg_number == reg_number)
            .order_by(Quote.created_at.asc())
        )
        return list(result.scalars().all())

    async def list_for_user(self, user_id: uuid.UUID) -> list[Quote]:
        result = await self._db.execute(
            select(Quote).where(Quote.user_id == user_id).order_by(Quote.created_at.desc())
        )
        return list(result.scalars().all())

    async def upsert_auto(
        self,
        user_id: uuid.UUID,
        reg_number: str,
        vehicle_data: dict[str, Any],
        estimated_price: Decimal | None,
    ) -> Quote | None:
        """Create or refresh the auto quote for (user, registration).

        An existing auto row is only refreshed while still `auto_priced`;
        returns None when the conflicting row has already moved on.
        """
        stmt = (
            pg_insert(Quote)
            .values(
                user_id=user_id,
                reg_number=reg_number,
                kind=QuoteKind.AUTO.value,
                state=QuoteState.AUTO_PRICED.value,
                client_decision=ClientDecision.PENDING.value,
                vehicle_data=vehicle_data,
                estimated_price=estimated_price,
                is_reviewed_by_admin=False,
            )
            .on_conflict_do_update(
                constraint=UQ_USER_REG_KIND,
                set_={
                    "vehicle_data": vehicle_data,
                    "estimated_price": estimated_price,
                    "updated_at": func.now(),
                },
                where=Quote.state == QuoteState.AUTO_PRICED.value,
            )
            .returning(Quote)
            .execution_options(populate_existing=True)
        )
        result = await self._db.execute(stmt)
        return result.scalar_one_or_none()

    async def transition(
        self,
        quote_id: uuid.UUID,
        expected_state: QuoteState,
        values: dict[str, Any],
    ) -> Quote | None:
        """Conditionally apply `values`; None if the quote left `expected_state`."""
        stmt = (
            update(Quote)
            .where(Quote.id == quote_id, Quote.state == expected_state.value)
            .values(**values, updated_at=func.now())
            .returning(Quote)
            .execution_options(populate_existing=True, synchronize_session=False)
        )
        result = await self._db.execute(stmt)
        return result.scalar_one_or_none()

    async def delete(self, quote_id: uuid.UUID) -> bool:
        result = await self._db.execute(delete(Quote).where(Quote.id == quote_id).returning(Quote.id))
        return result.scalar_one_or_none() is not None

    async def commit(self) -> None:
        await self._db.commit()
