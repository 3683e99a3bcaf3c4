"""Admin routes: quote review and collection, listings, settings, quota refills and users.

Protected by HTTP Basic (see admin.auth); the authenticated username is
recorded as the reviewing admin.
"""

from __future__ import annotations

import logging
import uuid

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from scrapquote.admin.auth import verify_admin
from scrapquote.admin.queries import (
    get_user,
    list_quotes,
    list_quotes_for_user,
    list_users,
    page_count,
    search_quotes,
)
from scrapquote.admin.users import delete_user, update_user
from scrapquote.api.deps import get_engine
from scrapquote.config import settings
from scrapquote.db.engine import get_session
from scrapquote.notifications.events import emit
from scrapquote.quotes.engine import QuoteLifecycleEngine
from scrapquote.quotes.quota import QuotaLedger
from scrapquote.quotes.settings_store import SettingsStore
from scrapquote.schemas.admin import (
    AdminQuoteOut,
    QuoteFilters,
    QuotePage,
    QuoteView,
    RefillRequest,
    RefillResponse,
    SettingsOut,
    SettingsUpdate,
    SortOrder,
    UserFilters,
    UserOut,
    UserPage,
    UserSort,
    UserUpdate,
)
from scrapquote.schemas.events import EventType, SystemEvent
from scrapquote.schemas.quotes import QuoteOut, QuoteResponse, ReviewQuoteRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


def _filters(
    reg_number: str | None = None,
    make: str | None = None,
    model: str | None = None,
    name: str | None = None,
    email: str | None = None,
    phone: str | None = None,
) -> QuoteFilters:
    return QuoteFilters(reg_number=reg_number, make=make, model=model, name=name, email=email, phone=phone)


# ── Listings ─────────────────────────────────────────────────────────


@router.get("/quotes")
async def admin_list_quotes(
    view: QuoteView = QuoteView.PENDING_MANUAL,
    page: int = Query(default=1, ge=1),
    per_page: int = Query(default=20, ge=1, le=100),
    filters: QuoteFilters = Depends(_filters),  # noqa: B008
    db: AsyncSession = Depends(get_session),  # noqa: B008
    _admin: str = Depends(verify_admin),  # noqa: B008
) -> QuotePage:
    quotes, total = await list_quotes(db, view, filters, page=page, per_page=per_page)
    return QuotePage(
        items=[AdminQuoteOut.model_validate(q) for q in quotes],
        total=total,
        page=page,
        per_page=per_page,
        pages=page_count(total, per_page),
    )


@router.get("/quotes/search")
async def admin_search_quotes(
    quote_id: str | None = None,
    filters: QuoteFilters = Depends(_filters),  # noqa: B008
    db: AsyncSession = Depends(get_session),  # noqa: B008
    _admin: str = Depends(verify_admin),  # noqa: B008
) -> list[AdminQuoteOut]:
    quotes = await search_quotes(db, filters, quote_id=quote_id)
    return [AdminQuoteOut.model_validate(q) for q in quotes]


# ── Lifecycle actions ────────────────────────────────────────────────


@router.patch("/quotes/{quote_id}/review")
async def admin_review_quote(
    quote_id: uuid.UUID,
    body: ReviewQuoteRequest,
    engine: QuoteLifecycleEngine = Depends(get_engine),  # noqa: B008
    admin: str = Depends(verify_admin),  # noqa: B008
) -> QuoteResponse:
    result = await engine.review_manual_quote(admin, quote_id, body.offer_price, body.message)
    return QuoteResponse(status=result.status.value, message=result.message, quote=QuoteOut.model_validate(result.quote))


@router.patch("/quotes/{quote_id}/collected")
async def admin_mark_collected(
    quote_id: uuid.UUID,
    engine: QuoteLifecycleEngine = Depends(get_engine),  # noqa: B008
    admin: str = Depends(verify_admin),  # noqa: B008
) -> QuoteResponse:
    result = await engine.mark_collected(admin, quote_id)
    return QuoteResponse(status=result.status.value, message=result.message, quote=QuoteOut.model_validate(result.quote))


@router.delete("/quotes/{quote_id}", status_code=status.HTTP_204_NO_CONTENT)
async def admin_delete_quote(
    quote_id: uuid.UUID,
    engine: QuoteLifecycleEngine = Depends(get_engine),  # noqa: B008
    admin: str = Depends(verify_admin),  # noqa: B008
) -> Response:
    await engine.delete_quote(admin, quote_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ── Settings and quota ───────────────────────────────────────────────


@router.get("/settings")
async def admin_get_settings(
    db: AsyncSession = Depends(get_session),  # noqa: B008
    _admin: str = Depends(verify_admin),  # noqa: B008
) -> SettingsOut:
    row = await SettingsStore(db, settings.quotes).get_or_create()
    return SettingsOut.model_validate(row)


@router.put("/settings")
async def admin_update_settings(
    body: SettingsUpdate,
    db: AsyncSession = Depends(get_session),  # noqa: B008
    admin: str = Depends(verify_admin),  # noqa: B008
) -> SettingsOut:
    row = await SettingsStore(db, settings.quotes).update(body.default_checks, body.scrap_rate_per_kg)
    out = SettingsOut.model_validate(row)
    await db.commit()
    await emit(SystemEvent(
        event_type=EventType.SETTINGS_UPDATED,
        actor_id=admin,
        actor_role="admin",
        data=out.model_dump(mode="json"),
        source_module="admin.api",
    ))
    return out


@router.patch("/users/{user_id}/refill-checks")
async def admin_refill_checks(
    user_id: uuid.UUID,
    body: RefillRequest,
    db: AsyncSession = Depends(get_session),  # noqa: B008
    admin: str = Depends(verify_admin),  # noqa: B008
) -> RefillResponse:
    current = await SettingsStore(db, settings.quotes).get_or_create()
    checks_left = await QuotaLedger(db).refill(user_id, body.amount, cap=current.default_checks)
    await db.commit()
    await emit(SystemEvent(
        event_type=EventType.CHECKS_REFILLED,
        user_id=user_id,
        actor_id=admin,
        actor_role="admin",
        data={"amount": body.amount, "checks_left": checks_left},
        source_module="admin.api",
    ))
    return RefillResponse(user_id=user_id, checks_left=checks_left)


# ── Users ────────────────────────────────────────────────────────────


def _user_filters(name: str | None = None, email: str | None = None, role: str | None = None) -> UserFilters:
    return UserFilters(name=name, email=email, role=role)


@router.get("/users")
async def admin_list_users(
    page: int = Query(default=1, ge=1),
    per_page: int = Query(default=10, ge=1, le=100),
    sort: UserSort = UserSort.CREATED_AT,
    order: SortOrder = SortOrder.DESC,
    filters: UserFilters = Depends(_user_filters),  # noqa: B008
    db: AsyncSession = Depends(get_session),  # noqa: B008
    _admin: str = Depends(verify_admin),  # noqa: B008
) -> UserPage:
    users, total = await list_users(db, filters, page=page, per_page=per_page, sort=sort, order=order)
    return UserPage(
        items=[UserOut.model_validate(u) for u in users],
        total=total,
        page=page,
        per_page=per_page,
        pages=page_count(total, per_page),
    )


@router.get("/users/{user_id}")
async def admin_get_user(
    user_id: uuid.UUID,
    db: AsyncSession = Depends(get_session),  # noqa: B008
    _admin: str = Depends(verify_admin),  # noqa: B008
) -> UserOut:
    return UserOut.model_validate(await get_user(db, user_id))


@router.get("/users/{user_id}/quotes")
async def admin_user_quotes(
    user_id: uuid.UUID,
    db: AsyncSession = Depends(get_session),  # noqa: B008
    _admin: str = Depends(verify_admin),  # noqa: B008
) -> list[QuoteOut]:
    return [QuoteOut.model_validate(q) for q in await list_quotes_for_user(db, user_id)]


@router.put("/users/{user_id}")
async def admin_update_user(
    user_id: uuid.UUID,
    body: UserUpdate,
    db: AsyncSession = Depends(get_session),  # noqa: B008
    admin: str = Depends(verify_admin),  # noqa: B008
) -> UserOut:
    out = UserOut.model_validate(await update_user(db, user_id, body))
    await db.commit()
    await emit(SystemEvent(
        event_type=EventType.USER_UPDATED,
        user_id=user_id,
        actor_id=admin,
        actor_role="admin",
        data=body.model_dump(mode="json", exclude_none=True),
        source_module="admin.api",
    ))
    return out


@router.delete("/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def admin_delete_user(
    user_id: uuid.UUID,
    db: AsyncSession = Depends(get_session),  # noqa: B008
    admin: str = Depends(verify_admin),  # noqa: B008
) -> Response:
    quotes = await delete_user(db, user_id)
    await db.commit()
    await emit(SystemEvent(
        event_type=EventType.USER_DELETED,
        user_id=user_id,
        actor_id=admin,
        actor_role="admin",
        data={"quotes_deleted": quotes},
        source_module="admin.api",
    ))
    return Response(status_code=status.HTTP_204_NO_CONTENT)
