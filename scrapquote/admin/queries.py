"""Read-side queries for the admin quote listings, search and user directory.

Pure filters over the quotes and users tables; nothing here mutates.
"""

from __future__ import annotations

import logging
import math
import re
import uuid
from typing import Any

from sqlalchemy import ColumnElement, and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import contains_eager

from scrapquote.errors import InvalidInput, QuoteNotFound, UserNotFound
from scrapquote.models.enums import QuoteKind, QuoteState, UserRole
from scrapquote.models.quote import Quote
from scrapquote.models.user import User
from scrapquote.schemas.admin import QuoteFilters, QuoteView, SortOrder, UserFilters, UserSort

logger = logging.getLogger(__name__)

MAX_PER_PAGE = 100

VIEW_CONDITIONS: dict[QuoteView, ColumnElement[bool] | None] = {
    QuoteView.PENDING_MANUAL: and_(
        Quote.kind == QuoteKind.MANUAL.value,
        Quote.state == QuoteState.MANUAL_REQUESTED.value,
    ),
    QuoteView.REVIEWED: Quote.state == QuoteState.MANUAL_REVIEWED.value,
    QuoteView.ACCEPTED: Quote.state == QuoteState.ACCEPTED.value,
    QuoteView.REJECTED: Quote.state == QuoteState.REJECTED.value,
    QuoteView.COLLECTED: Quote.state == QuoteState.COLLECTED.value,
    QuoteView.ALL: None,
}


def _like(value: str) -> str:
    """ILIKE pattern for a literal substring."""
    escaped = value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def build_quote_filters(filters: QuoteFilters) -> list[ColumnElement[bool]]:
    """One condition per provided filter; callers AND them together."""
    conditions: list[ColumnElement[bool]] = []
    for field, value in filters.provided().items():
        pattern = _like(value)
        if field == "reg_number":
            # Stored registrations carry no spaces
            conditions.append(Quote.reg_number.ilike(_like(value.replace(" ", "")), escape="\\"))
        elif field in ("make", "model"):
            conditions.append(Quote.vehicle_data[field].astext.ilike(pattern, escape="\\"))
        elif field == "name":
            full_name = func.concat(User.first_name, " ", User.last_name)
            conditions.append(or_(
                full_name.ilike(pattern, escape="\\"),
                User.first_name.ilike(pattern, escape="\\"),
                User.last_name.ilike(pattern, escape="\\"),
            ))
        elif field == "email":
            conditions.append(User.email.ilike(pattern, escape="\\"))
        elif field == "phone":
            conditions.append(User.phone.ilike(pattern, escape="\\"))
    return conditions


def _base_query(conditions: list[ColumnElement[bool]]) -> Any:
    return (
        select(Quote)
        .join(Quote.user)
        .options(contains_eager(Quote.user))
        .where(*conditions)
    )


async def list_quotes(
    db: AsyncSession,
    view: QuoteView,
    filters: QuoteFilters,
    page: int = 1,
    per_page: int = 20,
) -> tuple[list[Quote], int]:
    """Paginated quotes for an admin view, newest activity first.

    Returns (quotes, total).
    """
    page = max(page, 1)
    per_page = min(max(per_page, 1), MAX_PER_PAGE)

    conditions = build_quote_filters(filters)
    view_condition = VIEW_CONDITIONS[view]
    if view_condition is not None:
        conditions.append(view_condition)

    count_result = await db.execute(
        select(func.count(Quote.id)).select_from(Quote).join(Quote.user).where(*conditions)
    )
    total = count_result.scalar() or 0

    result = await db.execute(
        _base_query(conditions)
        .order_by(Quote.updated_at.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
    )
    return list(result.unique().scalars().all()), total


async def search_quotes(
    db: AsyncSession,
    filters: QuoteFilters,
    quote_id: str | None = None,
    limit: int = 50,
) -> list[Quote]:
    """Search across every state.

    An exact quote id short-circuits the text filters. At least one
    criterion is required.
    """
    if quote_id and quote_id.strip():
        try:
            parsed = uuid.UUID(quote_id.strip())
        except ValueError as exc:
            raise InvalidInput("quoteId must be a valid id.") from exc
        result = await db.execute(_base_query([Quote.id == parsed]))
        quote = result.unique().scalar_one_or_none()
        if quote is None:
            raise QuoteNotFound(f"Quote not found with id: {parsed}")
        return [quote]

    conditions = build_quote_filters(filters)
    if not conditions:
        raise InvalidInput("Please provide at least one search criterion.")

    result = await db.execute(
        _base_query(conditions).order_by(Quote.updated_at.desc()).limit(limit)
    )
    quotes = list(result.unique().scalars().all())
    logger.debug("Admin search matched %d quotes (%s)", len(quotes), filters.provided())
    return quotes


def page_count(total: int, per_page: int) -> int:
    return max(math.ceil(total / per_page), 1) if per_page else 1


# ── Users ────────────────────────────────────────────────────────────

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[A-Za-z]{2,}$")

USER_SORT_COLUMNS: dict[UserSort, Any] = {
    UserSort.CREATED_AT: User.created_at,
    UserSort.EMAIL: User.email,
    UserSort.FIRST_NAME: User.first_name,
    UserSort.LAST_NAME: User.last_name,
    UserSort.CHECKS_LEFT: User.checks_left,
}


def build_user_filters(filters: UserFilters) -> list[ColumnElement[bool]]:
    """Conditions for the admin user list.

    Each word of `name` must appear in the first or last name. `email` must be
    a complete address and matches case-insensitively. An unknown `role` is
    ignored.
    """
    conditions: list[ColumnElement[bool]] = []

    for word in (filters.name or "").split():
        pattern = _like(word)
        conditions.append(or_(
            User.first_name.ilike(pattern, escape="\\"),
            User.last_name.ilike(pattern, escape="\\"),
        ))

    email = (filters.email or "").strip()
    if email:
        if not _EMAIL_RE.match(email):
            raise InvalidInput("Invalid email format for search.")
        conditions.append(User.email.ilike(_like(email), escape="\\"))

    role = (filters.role or "").strip().lower()
    if role in {r.value for r in UserRole}:
        conditions.append(User.role == role)

    return conditions


async def list_users(
    db: AsyncSession,
    filters: UserFilters,
    page: int = 1,
    per_page: int = 10,
    sort: UserSort = UserSort.CREATED_AT,
    order: SortOrder = SortOrder.DESC,
) -> tuple[list[User], int]:
    """Paginated users for the admin directory. Returns (users, total)."""
    page = max(page, 1)
    per_page = min(max(per_page, 1), MAX_PER_PAGE)
    conditions = build_user_filters(filters)

    count_result = await db.execute(select(func.count(User.id)).where(*conditions))
    total = count_result.scalar() or 0

    column = USER_SORT_COLUMNS[sort]
    ordering = column.asc() if order == SortOrder.ASC else column.desc()
    result = await db.execute(
        select(User)
        .where(*conditions)
        .order_by(ordering, User.id)
        .offset((page - 1) * per_page)
        .limit(per_page)
    )
    return list(result.scalars().all()), total


async def get_user(db: AsyncSession, user_id: uuid.UUID) -> User:
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if user is None:
        raise UserNotFound(f"User not found with id: {user_id}")
    return user


async def list_quotes_for_user(db: AsyncSession, user_id: uuid.UUID) -> list[Quote]:
    """Every quote a user owns, newest first; 404 for an unknown user."""
    user = await get_user(db, user_id)
    result = await db.execute(
        select(Quote).where(Quote.user_id == user.id).order_by(Quote.created_at.desc())
    )
    return list(result.scalars().all())
