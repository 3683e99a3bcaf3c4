"""Per-user vehicle lookup quota ("DVLA checks"), stored on users.checks_left."""

from __future__ import annotations

import logging
import uuid

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from scrapquote.errors import InvalidInput, UserNotFound
from scrapquote.models.user import User

logger = logging.getLogger(__name__)


class QuotaLedger:
    """Remaining lookups per user. Decrements are conditional single-row UPDATEs."""

    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def remaining(self, user_id: uuid.UUID) -> int:
        result = await self._db.execute(select(User.checks_left).where(User.id == user_id))
        checks = result.scalar_one_or_none()
        if checks is None:
            raise UserNotFound(f"User not found with id: {user_id}")
        return checks

    async def decrement(self, user_id: uuid.UUID) -> bool:
        """Consume one lookup. Returns False if none was left."""
        result = await self._db.execute(
            update(User)
            .where(User.id == user_id, User.checks_left > 0)
            .values(checks_left=User.checks_left - 1, first_login=False)
            .returning(User.checks_left)
        )
        left = result.scalar_one_or_none()
        if left is None:
            logger.warning("Quota decrement found no checks left (user=%s)", user_id)
            return False
        logger.debug("Quota decremented (user=%s, left=%d)", user_id, left)
        return True

    async def refill(self, user_id: uuid.UUID, amount: int, cap: int) -> int:
        """Add `amount` lookups, never exceeding `cap`. Returns the new balance.

        One conditional UPDATE, so a concurrent decrement is never overwritten.
        A balance already above the cap is left as it is.
        """
        if isinstance(amount, bool) or not isinstance(amount, int) or amount < 0:
            raise InvalidInput("Refill amount must be a non-negative integer.")

        result = await self._db.execute(
            update(User)
            .where(User.id == user_id)
            .values(checks_left=func.greatest(User.checks_left, func.least(User.checks_left + amount, cap)))
            .returning(User.checks_left)
        )
        checks = result.scalar_one_or_none()
        if checks is None:
            raise UserNotFound(f"User not found with id: {user_id}")
        logger.info("Checks refilled (user=%s, amount=%d, now=%d)", user_id, amount, checks)
        return checks
