"""Scrap price estimation.

estimate = vehicle weight (kg) x live scrap rate per kg, rounded half-up to pence.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from scrapquote.models.enums import ManualQuoteReason
from scrapquote.quotes.settings_store import SettingsStore

_PENNY = Decimal("0.01")


def estimate_price(weight: Decimal | float | None, rate: Decimal) -> Decimal | None:
    """Price for `weight` kg at `rate`; None when the weight is unknown."""
    if weight is None:
        return None
    weight_dec = Decimal(str(weight))
    if weight_dec <= 0:
        return None
    return (weight_dec * rate).quantize(_PENNY, rounding=ROUND_HALF_UP)


def manual_quote_reason(
    estimated_price: Decimal | None,
    user_estimated_price: Decimal | None,
) -> ManualQuoteReason:
    """Why the user wants a human price."""
    if estimated_price is None:
        return ManualQuoteReason.AUTO_PRICE_MISSING
    if user_estimated_price is not None and user_estimated_price > estimated_price:
        return ManualQuoteReason.USER_THINKS_VALUE_HIGHER
    return ManualQuoteReason.USER_REQUESTED_REVIEW


class PricingPolicy:
    """Reads the admin-configured rate fresh on every call."""

    def __init__(self, store: SettingsStore, fallback_rate: Decimal) -> None:
        self._store = store
        self._fallback_rate = fallback_rate

    async def current_rate(self) -> Decimal:
        row = await self._store.get_current()
        if row is None:
            return self._fallback_rate
        return Decimal(row.scrap_rate_per_kg)
