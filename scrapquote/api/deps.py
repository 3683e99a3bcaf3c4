"""FastAPI dependencies shared by the user and admin routers."""

from __future__ import annotations

import uuid

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from scrapquote.config import settings
from scrapquote.db.engine import get_session
from scrapquote.integrations.vehicle.client import vehicle_client
from scrapquote.quotes.engine import QuoteLifecycleEngine
from scrapquote.quotes.pricing import PricingPolicy
from scrapquote.quotes.quota import QuotaLedger
from scrapquote.quotes.repository import QuoteRepository
from scrapquote.quotes.settings_store import SettingsStore
from scrapquote.security.rate_limiter import rate_limiter


async def current_user_id(x_user_id: str | None = Header(default=None)) -> uuid.UUID:
    """Caller identity, set by the upstream auth layer."""
    if not x_user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing X-User-Id header")
    try:
        return uuid.UUID(x_user_id)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid X-User-Id header") from exc


def build_engine(db: AsyncSession) -> QuoteLifecycleEngine:
    """Wire a per-request engine around one session."""
    store = SettingsStore(db, settings.quotes)
    return QuoteLifecycleEngine(
        QuoteRepository(db),
        QuotaLedger(db),
        PricingPolicy(store, settings.quotes.default_scrap_rate_per_kg),
        vehicle_client,
        max_images=settings.quotes.max_manual_images,
    )


async def get_engine(db: AsyncSession = Depends(get_session)) -> QuoteLifecycleEngine:  # noqa: B008
    return build_engine(db)


async def enforce_auto_quote_rate_limit(
    user_id: uuid.UUID = Depends(current_user_id),  # noqa: B008
) -> None:
    """429 when the caller exceeds the auto-quote window."""
    decision = await rate_limiter.hit(user_id)
    if not decision.allowed:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=f"Too many quote requests. Try again in {decision.retry_after} seconds.",
            headers={"Retry-After": str(decision.retry_after)},
        )
