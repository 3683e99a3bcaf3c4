"""Admin writes to user accounts: profile edits and deletion.

Credentials live in the upstream auth service, so only the name and role can
be edited here. Deleting a user removes their quotes through the
users -> quotes ON DELETE CASCADE foreign key.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from scrapquote.errors import InvalidInput, UserNotFound
from scrapquote.models.quote import Quote
from scrapquote.models.user import User
from scrapquote.schemas.admin import UserUpdate

logger = logging.getLogger(__name__)


def validate_user_update(changes: UserUpdate) -> dict[str, Any]:
    """Columns to write; names are stripped and must not be blank."""
    values: dict[str, Any] = {}
    for field in ("first_name", "last_name"):
        raw = getattr(changes, field)
        if raw is None:
            continue
        stripped = raw.strip()
        if not stripped:
            raise InvalidInput(f"{field} must not be blank.")
        values[field] = stripped
    if changes.role is not None:
        values["role"] = changes.role.value

    if not values:
        raise InvalidInput("No valid fields provided for update.")
    return values


async def update_user(db: AsyncSession, user_id: uuid.UUID, changes: UserUpdate) -> User:
    values = validate_user_update(changes)
    result = await db.execute(
        update(User)
        .where(User.id == user_id)
        .values(**values, updated_at=func.now())
        .returning(User)
        .execution_options(populate_existing=True, synchronize_session=False)
    )
    user = result.scalar_one_or_none()
    if user is None:
        raise UserNotFound(f"User not found with id: {user_id}")
    logger.info("User updated (user=%s, fields=%s)", user_id, sorted(values))
    return user


async def delete_user(db: AsyncSession, user_id: uuid.UUID) -> int:
    """Delete a user. Returns how many quotes went with them."""
    count_result = await db.execute(select(func.count(Quote.id)).where(Quote.user_id == user_id))
    quotes = count_result.scalar() or 0

    result = await db.execute(delete(User).where(User.id == user_id).returning(User.id))
    if result.scalar_one_or_none() is None:
        raise UserNotFound(f"User not found with id: {user_id}")
    logger.info("User deleted (user=%s, quotes=%d)", user_id, quotes)
    return quotes
