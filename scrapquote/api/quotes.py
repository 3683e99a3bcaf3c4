"""User-facing quote routes.

Each route is a thin wrapper over one QuoteLifecycleEngine operation; errors
are QuoteError subclasses rendered by the handler in main.py.
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends

from scrapquote.api.deps import current_user_id, enforce_auto_quote_rate_limit, get_engine
from scrapquote.quotes.engine import QuoteLifecycleEngine, QuoteResult
from scrapquote.schemas.quotes import (
    AutoQuoteRequest,
    ConfirmCollectionRequest,
    ManualQuoteDetails,
    QuoteOut,
    QuoteResponse,
    RejectQuoteRequest,
)

router = APIRouter(prefix="/quotes", tags=["quotes"])


def _to_response(result: QuoteResult) -> QuoteResponse:
    return QuoteResponse(
        status=result.status.value,
        message=result.message,
        quote=QuoteOut.model_validate(result.quote) if result.quote is not None else None,
        checks_left=result.checks_left,
    )


@router.post("/auto", dependencies=[Depends(enforce_auto_quote_rate_limit)])
async def request_auto_quote(
    body: AutoQuoteRequest,
    user_id: uuid.UUID = Depends(current_user_id),  # noqa: B008
    engine: QuoteLifecycleEngine = Depends(get_engine),  # noqa: B008
) -> QuoteResponse:
    return _to_response(await engine.request_auto_quote(user_id, body.reg_number))


@router.post("/manual")
async def submit_manual_quote(
    body: ManualQuoteDetails,
    user_id: uuid.UUID = Depends(current_user_id),  # noqa: B008
    engine: QuoteLifecycleEngine = Depends(get_engine),  # noqa: B008
) -> QuoteResponse:
    return _to_response(await engine.submit_manual_quote(user_id, body.reg_number, body))


@router.patch("/{quote_id}/confirm")
async def confirm_collection(
    quote_id: uuid.UUID,
    body: ConfirmCollectionRequest,
    user_id: uuid.UUID = Depends(current_user_id),  # noqa: B008
    engine: QuoteLifecycleEngine = Depends(get_engine),  # noqa: B008
) -> QuoteResponse:
    result = await engine.confirm_collection(
        user_id, quote_id, body.pickup_date, body.contact_number, body.address
    )
    return _to_response(result)


@router.patch("/{quote_id}/reject")
async def reject_quote(
    quote_id: uuid.UUID,
    body: RejectQuoteRequest,
    user_id: uuid.UUID = Depends(current_user_id),  # noqa: B008
    engine: QuoteLifecycleEngine = Depends(get_engine),  # noqa: B008
) -> QuoteResponse:
    return _to_response(await engine.reject_quote(user_id, quote_id, body.rejection_reason))


@router.get("")
async def list_my_quotes(
    user_id: uuid.UUID = Depends(current_user_id),  # noqa: B008
    engine: QuoteLifecycleEngine = Depends(get_engine),  # noqa: B008
) -> list[QuoteOut]:
    return [QuoteOut.model_validate(q) for q in await engine.list_user_quotes(user_id)]


@router.get("/{quote_id}")
async def get_my_quote(
    quote_id: uuid.UUID,
    user_id: uuid.UUID = Depends(current_user_id),  # noqa: B008
    engine: QuoteLifecycleEngine = Depends(get_engine),  # noqa: B008
) -> QuoteOut:
    return QuoteOut.model_validate(await engine.get_user_quote(user_id, quote_id))
