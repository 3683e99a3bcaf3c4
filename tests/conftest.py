"""Shared fixtures: in-memory stand-ins for the engine's collaborators.

The fakes mirror the storage semantics of the SQLAlchemy implementations:
`upsert_auto` refreshes the auto row only while it is still auto_priced, and
`transition` applies values only if the quote is still in the observed state.
"""

from __future__ import annotations

import asyncio
import uuid
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any
from unittest.mock import AsyncMock

import pytest

from scrapquote.errors import UserNotFound
from scrapquote.integrations.vehicle.schemas import VehicleAttributes
from scrapquote.models.enums import ClientDecision, QuoteKind, QuoteState
from scrapquote.models.quote import Quote
from scrapquote.quotes.engine import QuoteLifecycleEngine

NOW = datetime(2026, 10, 17, 12, 0, tzinfo=UTC)


def make_quote(**overrides: Any) -> Quote:
    """Build a detached Quote with every column populated."""
    values: dict[str, Any] = {
        "id": uuid.uuid4(),
        "user_id": uuid.uuid4(),
        "reg_number": "AB12CDE",
        "state": QuoteState.AUTO_PRICED.value,
        "kind": QuoteKind.AUTO.value,
        "client_decision": ClientDecision.PENDING.value,
        "vehicle_data": {"make": "FORD", "model": "FIESTA", "weight": 1000.0},
        "estimated_price": Decimal("250.00"),
        "final_price": None,
        "manual_details": None,
        "admin_offer_price": None,
        "admin_message": None,
        "is_reviewed_by_admin": False,
        "reviewed_at": None,
        "reviewed_by": None,
        "rejection_reason": None,
        "rejected_at": None,
        "accepted_at": None,
        "collection_details": None,
        "created_at": NOW,
        "updated_at": NOW,
    }
    values.update(overrides)
    return Quote(**values)


class FakeQuoteRepository:
    """Dict-backed QuoteRepository."""

    def __init__(self) -> None:
        self.quotes: dict[uuid.UUID, Quote] = {}
        self.commits = 0

    def add(self, quote: Quote) -> Quote:
        self.quotes[quote.id] = quote
        return quote

    async def get(self, quote_id: uuid.UUID) -> Quote | None:
        return self.quotes.get(quote_id)

    async def find_for_registration(self, user_id: uuid.UUID, reg_number: str) -> list[Quote]:
        await asyncio.sleep(0)
        matches = [q for q in self.quotes.values() if q.user_id == user_id and q.reg_number == reg_number]
        return sorted(matches, key=lambda q: q.created_at)

    async def list_for_user(self, user_id: uuid.UUID) -> list[Quote]:
        matches = [q for q in self.quotes.values() if q.user_id == user_id]
        return sorted(matches, key=lambda q: q.created_at, reverse=True)

    async def upsert_auto(
        self,
        user_id: uuid.UUID,
        reg_number: str,
        vehicle_data: dict[str, Any],
        estimated_price: Decimal | None,
    ) -> Quote | None:
        for quote in self.quotes.values():
            if (quote.user_id, quote.reg_number, quote.kind) == (user_id, reg_number, QuoteKind.AUTO.value):
                if quote.state != QuoteState.AUTO_PRICED.value:
                    return None
                quote.vehicle_data = vehicle_data
                quote.estimated_price = estimated_price
                return quote
        return self.add(make_quote(
            user_id=user_id,
            reg_number=reg_number,
            vehicle_data=vehicle_data,
            estimated_price=estimated_price,
        ))

    async def transition(
        self,
        quote_id: uuid.UUID,
        expected_state: QuoteState,
        values: dict[str, Any],
    ) -> Quote | None:
        quote = self.quotes.get(quote_id)
        if quote is None or quote.state != expected_state.value:
            return None
        for key, value in values.items():
            setattr(quote, key, value)
        return quote

    async def delete(self, quote_id: uuid.UUID) -> bool:
        return self.quotes.pop(quote_id, None) is not None

    async def commit(self) -> None:
        self.commits += 1

    def of_kind(self, user_id: uuid.UUID, reg_number: str, kind: QuoteKind) -> list[Quote]:
        return [
            q for q in self.quotes.values()
            if q.user_id == user_id and q.reg_number == reg_number and q.kind == kind.value
        ]


class FakeQuotaLedger:
    def __init__(self, balances: dict[uuid.UUID, int] | None = None) -> None:
        self.balances = dict(balances or {})

    async def remaining(self, user_id: uuid.UUID) -> int:
        if user_id not in self.balances:
            raise UserNotFound(f"User not found with id: {user_id}")
        return self.balances[user_id]

    async def decrement(self, user_id: uuid.UUID) -> bool:
        if self.balances.get(user_id, 0) <= 0:
            return False
        self.balances[user_id] -= 1
        return True


class FakePricing:
    def __init__(self, rate: Decimal = Decimal("0.25")) -> None:
        self.rate = rate

    async def current_rate(self) -> Decimal:
        return self.rate


class FakeVehicles:
    """Vehicle provider returning a fixed vehicle; counts calls."""

    def __init__(self, weight: Decimal | None = Decimal("1000"), error: Exception | None = None) -> None:
        self.weight = weight
        self.error = error
        self.calls: list[str] = []

    async def fetch(self, reg_number: str) -> VehicleAttributes:
        self.calls.append(reg_number)
        await asyncio.sleep(0)
        if self.error is not None:
            raise self.error
        return VehicleAttributes(
            registration=reg_number,
            make="FORD",
            model="FIESTA",
            colour="BLUE",
            year_of_manufacture=2009,
            fuel_type="PETROL",
            kerb_weight=self.weight,
        )


@pytest.fixture()
def user_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture()
def repo() -> FakeQuoteRepository:
    return FakeQuoteRepository()


@pytest.fixture()
def quota(user_id) -> FakeQuotaLedger:
    return FakeQuotaLedger({user_id: 5})


@pytest.fixture()
def pricing() -> FakePricing:
    return FakePricing()


@pytest.fixture()
def vehicles() -> FakeVehicles:
    return FakeVehicles()


@pytest.fixture()
def events() -> AsyncMock:
    return AsyncMock()


@pytest.fixture()
def engine(repo, quota, pricing, vehicles, events) -> QuoteLifecycleEngine:
    return QuoteLifecycleEngine(
        repo,
        quota,
        pricing,
        vehicles,
        max_images=6,
        event_sink=events,
        clock=lambda: NOW,
    )


@pytest.fixture()
def now() -> datetime:
    return NOW


@pytest.fixture()
def quote_factory():
    """Factory for detached Quote rows (see make_quote)."""
    return make_quote
