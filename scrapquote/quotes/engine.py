"""Quote lifecycle engine — every operation that moves a quote between states.

One engine is built per request around that request's repository, quota
ledger and pricing policy; no state survives between calls. Each operation:

1. validates input (InvalidInput, before any read),
2. loads the quote and checks preconditions against its state,
3. asks the QuoteLifecycle FSM for the target state,
4. writes with a conditional update keyed on the observed state,
5. commits, then emits a SystemEvent for notifications.

Emission happens strictly after the commit and its failures are logged and
swallowed, so a notification problem can never undo or fail a transition.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from scrapquote.errors import (
    AlreadyDecided,
    AlreadySubmitted,
    InvalidState,
    NoExistingQuote,
    QuotaExhausted,
    QuoteNotFound,
)
from scrapquote.models.enums import QuoteKind, QuoteState, QuoteStatus
from scrapquote.models.quote import Quote
from scrapquote.notifications.events import emit
from scrapquote.quotes.lifecycle import QuoteLifecycle
from scrapquote.quotes.pricing import estimate_price, manual_quote_reason
from scrapquote.quotes.states import ACCEPTED_STATES, accepted_status, state_columns, status_for_state
from scrapquote.quotes.validation import (
    normalize_registration,
    parse_offer_price,
    parse_pickup_date,
    require_text,
    validate_contact_number,
)
from scrapquote.schemas.events import EventType, SystemEvent

if TYPE_CHECKING:
    from scrapquote.integrations.vehicle.client import VehicleDataClient
    from scrapquote.quotes.pricing import PricingPolicy
    from scrapquote.quotes.quota import QuotaLedger
    from scrapquote.quotes.repository import QuoteRepository
    from scrapquote.schemas.quotes import ManualQuoteDetails

logger = logging.getLogger(__name__)

EventSink = Callable[[SystemEvent], Awaitable[None]]


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _json_number(value: Decimal | None) -> float | None:
    return float(value) if value is not None else None


@dataclass
class QuoteResult:
    """Outcome of an engine operation: status code, message and the quote."""

    status: QuoteStatus
    message: str
    quote: Quote | None = None
    checks_left: int | None = None


class QuoteLifecycleEngine:
    """Owns the quote state machine for one request."""

    def __init__(
        self,
        repository: QuoteRepository,
        quota: QuotaLedger,
        pricing: PricingPolicy,
        vehicles: VehicleDataClient,
        *,
        max_images: int = 6,
        event_sink: EventSink = emit,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._repo = repository
        self._quota = quota
        self._pricing = pricing
        self._vehicles = vehicles
        self._max_images = max_images
        self._emit = event_sink
        self._now = clock

    # ── requestAutoQuote ─────────────────────────────────────────────

    async def request_auto_quote(self, user_id: uuid.UUID, reg_number: str | None) -> QuoteResult:
        """Return the existing quote for a registration or price a new one.

        Existing quotes win in this order: accepted, auto, manual. Only when
        none exists is the quota checked and the vehicle API called.
        """
        reg = normalize_registration(reg_number)

        existing = await self._repo.find_for_registration(user_id, reg)
        resolved = self._resolve_existing(existing)
        if resolved is not None:
            logger.debug("Auto quote resolved from existing record: %s (reg=%s)", resolved.status.value, reg)
            return resolved

        remaining = await self._quota.remaining(user_id)
        if remaining <= 0:
            raise QuotaExhausted("You have no vehicle checks left. Please contact support.")

        vehicle = await self._vehicles.fetch(reg)

        # Committed on its own: a later failure does not refund the check
        if not await self._quota.decrement(user_id):
            await self._repo.commit()
            raise QuotaExhausted("You have no vehicle checks left. Please contact support.")
        await self._repo.commit()

        canonical_reg = normalize_registration(vehicle.registration) if vehicle.registration else reg
        rate = await self._pricing.current_rate()
        estimated = estimate_price(vehicle.weight, rate)

        quote = await self._repo.upsert_auto(user_id, canonical_reg, vehicle.snapshot(), estimated)
        await self._repo.commit()

        if quote is None:
            # A concurrent path moved the auto row on between our check and the upsert
            existing = await self._repo.find_for_registration(user_id, canonical_reg)
            resolved = self._resolve_existing(existing)
            if resolved is None:  # pragma: no cover - upsert conflict implies a row
                raise QuoteNotFound(f"Quote for {canonical_reg} disappeared during pricing.")
            return resolved

        logger.info(
            "Quote created: auto_priced (quote=%s, reg=%s, weight=%s, rate=%s, price=%s)",
            quote.id,
            canonical_reg,
            vehicle.weight,
            rate,
            estimated,
        )
        await self._notify(
            EventType.QUOTE_AUTO_GENERATED,
            quote,
            {"estimated_price": _json_number(estimated), "make": vehicle.make, "model": vehicle.model},
        )
        return QuoteResult(
            QuoteStatus.NEW_GENERATED,
            "Quote generated successfully.",
            quote,
            checks_left=remaining - 1,
        )

    @staticmethod
    def _resolve_existing(quotes: Iterable[Quote]) -> QuoteResult | None:
        quotes = list(quotes)

        accepted = next((q for q in quotes if QuoteState(q.state) in ACCEPTED_STATES), None)
        if accepted is not None:
            status = status_for_state(QuoteState(accepted.state))
            return QuoteResult(status, "This vehicle already has an accepted quote.", accepted)

        auto = next((q for q in quotes if q.state == QuoteState.AUTO_PRICED.value), None)
        if auto is not None:
            return QuoteResult(QuoteStatus.CACHED_QUOTE, "Existing quote returned.", auto)

        manual = next((q for q in quotes if q.kind == QuoteKind.MANUAL.value), None)
        if manual is not None:
            status = status_for_state(QuoteState(manual.state))
            messages = {
                QuoteStatus.MANUAL_PREVIOUSLY_REJECTED: "You rejected the previous offer. You may request a new review.",
                QuoteStatus.MANUAL_PENDING_REVIEW: "Your manual quote is awaiting review.",
                QuoteStatus.MANUAL_REVIEWED: "Your manual quote has been reviewed. Please accept or reject the offer.",
            }
            return QuoteResult(status, messages[status], manual)

        return None

    # ── submitManualQuote ────────────────────────────────────────────

    async def submit_manual_quote(
        self,
        user_id: uuid.UUID,
        reg_number: str | None,
        details: ManualQuoteDetails,
    ) -> QuoteResult:
        """Turn an auto quote (or a rejected manual one) into a pending manual review."""
        reg = normalize_registration(reg_number)

        existing = await self._repo.find_for_registration(user_id, reg)
        if not existing:
            raise NoExistingQuote(f"Request an automatic quote for {reg} before asking for a manual review.")

        quote = next((q for q in existing if q.kind == QuoteKind.MANUAL.value), existing[0])
        state = QuoteState(quote.state)

        if state in ACCEPTED_STATES:
            raise AlreadyDecided(
                "This quote has already been accepted.",
                status=accepted_status(QuoteKind(quote.kind), state).value,
                quote=quote,
            )
        if state == QuoteState.MANUAL_REQUESTED:
            raise InvalidState(
                "A manual review is already pending for this vehicle.",
                status=QuoteStatus.MANUAL_PENDING_REVIEW.value,
                quote=quote,
            )
        if state == QuoteState.MANUAL_REVIEWED:
            raise InvalidState(
                "Please accept or reject the current offer before requesting another review.",
                status=QuoteStatus.MANUAL_REVIEWED.value,
                quote=quote,
            )

        target = QuoteLifecycle.for_quote(quote).next_state("request_manual", quote)
        values = self._manual_request_values(quote, details)
        values.update(state_columns(target))

        updated = await self._repo.transition(quote.id, state, values)
        if updated is None:
            await self._raise_moved_on(quote.id)
        await self._repo.commit()
        self._log_transition(quote.id, state, "request_manual", target)

        await self._notify(
            EventType.QUOTE_MANUAL_REQUESTED,
            updated,
            {
                "manual_quote_reason": values["manual_details"]["manual_quote_reason"],
                "user_estimated_price": values["manual_details"].get("user_estimated_price"),
                "estimated_price": _json_number(updated.estimated_price),
                "resubmission": state == QuoteState.REJECTED,
            },
        )
        if state == QuoteState.REJECTED:
            return QuoteResult(QuoteStatus.MANUAL_INFO_APPENDED, "Manual quote resubmitted for review.", updated)
        return QuoteResult(QuoteStatus.MANUAL_SUBMITTED, "Manual quote request submitted.", updated)

    def _manual_request_values(self, quote: Quote, details: ManualQuoteDetails) -> dict[str, Any]:
        """Column values for a (re)submitted manual request, minus the state columns."""
        # Fill gaps in the vehicle snapshot; never overwrite looked-up values
        vehicle_data = dict(quote.vehicle_data or {})
        for key, value in details.vehicle_overrides().items():
            if vehicle_data.get(key) in (None, ""):
                vehicle_data[key] = value

        previous = dict(quote.manual_details or {})
        images = [*previous.get("images", []), *details.images][-self._max_images:]

        user_estimate = details.user_estimated_price
        if user_estimate is None and previous.get("user_estimated_price") is not None:
            user_estimate = Decimal(str(previous["user_estimated_price"]))

        manual_details = {
            **previous,
            "images": images,
            "user_estimated_price": _json_number(user_estimate),
            "manual_quote_reason": manual_quote_reason(quote.estimated_price, user_estimate).value,
            "last_manual_request_at": self._now().isoformat(),
        }
        if details.user_provided_weight is not None:
            manual_details["user_provided_weight"] = float(details.user_provided_weight)
        if details.message:
            manual_details["message"] = details.message.strip()

        return {
            "kind": QuoteKind.MANUAL.value,
            "vehicle_data": vehicle_data,
            "manual_details": manual_details,
            "is_reviewed_by_admin": False,
            "admin_offer_price": None,
            "admin_message": None,
            "reviewed_at": None,
            "reviewed_by": None,
            "rejection_reason": None,
            "rejected_at": None,
            "final_price": None,
        }

    # ── confirmCollection ────────────────────────────────────────────

    async def confirm_collection(
        self,
        user_id: uuid.UUID,
        quote_id: uuid.UUID,
        pickup_date: Any,
        contact_number: str | None,
        address: str | None,
    ) -> QuoteResult:
        """Accept the offered price and book the collection in one step."""
        pickup = parse_pickup_date(pickup_date, self._now())
        contact = validate_contact_number(contact_number)
        address_text = require_text(address, "Address")

        quote = await self._get_owned(user_id, quote_id)
        state = QuoteState(quote.state)

        if state in ACCEPTED_STATES:
            raise AlreadyDecided(
                "This quote has already been accepted.",
                status=status_for_state(state).value,
                quote=quote,
            )
        if (quote.collection_details or {}).get("pickup_date"):
            raise AlreadySubmitted(
                "Collection details were already submitted for this quote.",
                status=status_for_state(state).value,
                quote=quote,
            )

        target = QuoteLifecycle.for_quote(quote).next_state("accept", quote)
        final_price = quote.quoted_price
        if final_price is None:
            raise InvalidState(
                "There is no price to accept yet. Please wait for the admin review.",
                status=status_for_state(state).value,
                quote=quote,
            )

        now = self._now()
        values = {
            **state_columns(target),
            "final_price": final_price,
            "accepted_at": now,
            "collection_details": {
                "pickup_date": pickup.isoformat(),
                "contact_number": contact,
                "address": address_text,
                "collected": False,
            },
        }
        updated = await self._repo.transition(quote.id, state, values)
        if updated is None:
            await self._raise_moved_on(quote.id)
        await self._repo.commit()
        self._log_transition(quote.id, state, "accept", target)

        await self._notify(
            EventType.QUOTE_ACCEPTED,
            updated,
            {
                "final_price": _json_number(final_price),
                "pickup_date": pickup.isoformat(),
                "contact_number": contact,
                "address": address_text,
            },
        )
        return QuoteResult(QuoteStatus.QUOTE_ACCEPTED, "Quote accepted and collection booked.", updated)

    # ── rejectQuote ──────────────────────────────────────────────────

    async def reject_quote(
        self,
        user_id: uuid.UUID,
        quote_id: uuid.UUID,
        rejection_reason: str | None,
    ) -> QuoteResult:
        """Reject a reviewed manual offer; the record may later be resubmitted."""
        reason = require_text(rejection_reason, "Rejection reason")

        quote = await self._get_owned(user_id, quote_id)
        state = QuoteState(quote.state)
        status = status_for_state(state).value

        if state in ACCEPTED_STATES:
            raise AlreadyDecided("An accepted quote cannot be rejected.", status=status, quote=quote)
        if quote.kind != QuoteKind.MANUAL.value:
            raise InvalidState("Automatic quotes cannot be rejected.", status=status, quote=quote)
        if not quote.is_reviewed_by_admin:
            raise InvalidState("This quote has not been reviewed yet.", status=status, quote=quote)

        target = QuoteLifecycle.for_quote(quote).next_state("reject", quote)
        values = {
            **state_columns(target),
            "rejection_reason": reason,
            "rejected_at": self._now(),
        }
        updated = await self._repo.transition(quote.id, state, values)
        if updated is None:
            await self._raise_moved_on(quote.id)
        await self._repo.commit()
        self._log_transition(quote.id, state, "reject", target)

        await self._notify(
            EventType.QUOTE_REJECTED,
            updated,
            {"rejection_reason": reason, "admin_offer_price": _json_number(updated.admin_offer_price)},
        )
        return QuoteResult(QuoteStatus.QUOTE_REJECTED, "Quote rejected.", updated)

    # ── reviewManualQuote (admin) ────────────────────────────────────

    async def review_manual_quote(
        self,
        admin_id: str,
        quote_id: uuid.UUID,
        offer_price: Any,
        message: str | None,
    ) -> QuoteResult:
        """Record the admin's offer on a pending manual quote (once per cycle)."""
        price = parse_offer_price(offer_price)

        quote = await self._repo.get(quote_id)
        if quote is None:
            raise QuoteNotFound(f"Quote not found with id: {quote_id}")
        state = QuoteState(quote.state)
        status = status_for_state(state).value

        if quote.kind != QuoteKind.MANUAL.value:
            raise InvalidState("Only manual quotes can be reviewed.", status=status, quote=quote)
        if state in ACCEPTED_STATES:
            raise AlreadyDecided("This quote has already been accepted.", status=status, quote=quote)
        if state == QuoteState.MANUAL_REVIEWED:
            raise InvalidState("This quote has already been reviewed.", status=status, quote=quote)

        target = QuoteLifecycle.for_quote(quote).next_state("review", quote)
        values = {
            **state_columns(target),
            "admin_offer_price": price,
            "admin_message": (message or "").strip() or None,
            "is_reviewed_by_admin": True,
            "reviewed_at": self._now(),
            "reviewed_by": admin_id,
        }
        updated = await self._repo.transition(quote.id, state, values)
        if updated is None:
            await self._raise_moved_on(quote.id)
        await self._repo.commit()
        self._log_transition(quote.id, state, "review", target)

        await self._notify(
            EventType.QUOTE_REVIEWED,
            updated,
            {"admin_offer_price": _json_number(price), "admin_message": values["admin_message"]},
            actor_id=admin_id,
        )
        return QuoteResult(QuoteStatus.QUOTE_REVIEWED, "Manual quote reviewed.", updated)

    # ── markCollected (admin) ────────────────────────────────────────

    async def mark_collected(self, admin_id: str, quote_id: uuid.UUID) -> QuoteResult:
        """Flip collection_details.collected to true. Repeating it is a no-op."""
        quote = await self._repo.get(quote_id)
        if quote is None:
            raise QuoteNotFound(f"Quote not found with id: {quote_id}")
        state = QuoteState(quote.state)

        if state == QuoteState.COLLECTED:
            logger.debug("Quote %s already collected", quote.id)
            return QuoteResult(QuoteStatus.QUOTE_COLLECTED, "Vehicle already marked as collected.", quote)

        target = QuoteLifecycle.for_quote(quote).next_state("collect", quote)
        values = {
            **state_columns(target),
            "collection_details": {**(quote.collection_details or {}), "collected": True},
        }
        updated = await self._repo.transition(quote.id, state, values)
        if updated is None:
            await self._raise_moved_on(quote.id)
        await self._repo.commit()
        self._log_transition(quote.id, state, "collect", target)

        await self._notify(
            EventType.QUOTE_COLLECTED,
            updated,
            {"final_price": _json_number(updated.final_price)},
            actor_id=admin_id,
        )
        return QuoteResult(QuoteStatus.QUOTE_COLLECTED, "Vehicle marked as collected.", updated)

    # ── Reads and admin deletion ─────────────────────────────────────

    async def get_user_quote(self, user_id: uuid.UUID, quote_id: uuid.UUID) -> Quote:
        return await self._get_owned(user_id, quote_id)

    async def list_user_quotes(self, user_id: uuid.UUID) -> list[Quote]:
        return await self._repo.list_for_user(user_id)

    async def delete_quote(self, admin_id: str, quote_id: uuid.UUID) -> None:
        quote = await self._repo.get(quote_id)
        if quote is None or not await self._repo.delete(quote_id):
            raise QuoteNotFound(f"Quote not found with id: {quote_id}")
        await self._repo.commit()
        logger.info("Quote deleted by admin %s (quote=%s, reg=%s)", admin_id, quote_id, quote.reg_number)
        await self._notify(EventType.QUOTE_DELETED, quote, {}, actor_id=admin_id)

    # ── Helpers ──────────────────────────────────────────────────────

    async def _get_owned(self, user_id: uuid.UUID, quote_id: uuid.UUID) -> Quote:
        quote = await self._repo.get(quote_id)
        if quote is None or quote.user_id != user_id:
            raise QuoteNotFound(f"Quote not found with id: {quote_id}")
        return quote

    async def _raise_moved_on(self, quote_id: uuid.UUID) -> None:
        """The conditional update missed: report the state the quote is really in."""
        current = await self._repo.get(quote_id)
        if current is None:
            raise QuoteNotFound(f"Quote not found with id: {quote_id}")
        raise InvalidState(
            "This quote was updated by another request. Please refresh.",
            status=status_for_state(QuoteState(current.state)).value,
            quote=current,
        )

    @staticmethod
    def _log_transition(quote_id: uuid.UUID, old: QuoteState, trigger: str, new: QuoteState) -> None:
        logger.info("Quote transition: %s --%s--> %s (quote=%s)", old.value, trigger, new.value, quote_id)

    async def _notify(
        self,
        event_type: EventType,
        quote: Quote,
        data: dict[str, Any],
        actor_id: str | None = None,
    ) -> None:
        """Publish a post-commit event. Never raises."""
        try:
            await self._emit(SystemEvent(
                event_type=event_type,
                quote_id=quote.id,
                user_id=quote.user_id,
                actor_id=actor_id,
                actor_role="admin" if actor_id else "user",
                data={"reg_number": quote.reg_number, "kind": quote.kind, **data},
                source_module="quotes.engine",
            ))
        except Exception:
            logger.exception("Failed to publish %s for quote %s", event_type.value, quote.id)
