"""Input normalization and validation for quote operations.

Every function raises InvalidInput with a human-readable message; nothing
here touches the database.
"""

from __future__ import annotations

import re
from datetime import UTC, date, datetime, time
from decimal import Decimal, InvalidOperation
from typing import Any

from scrapquote.errors import InvalidInput

# Loose phone shape: optional +, then 7-20 digits/spaces/dashes/parentheses
_PHONE_RE = re.compile(r"^\+?[\d\s\-()]{7,20}$")
_WHITESPACE_RE = re.compile(r"\s+")

# quotes.reg_number is String(16); prices are Numeric(10, 2)
MAX_REG_LENGTH = 16
MAX_PRICE = Decimal("99999999.99")


def normalize_registration(reg_number: str | None) -> str:
    """Trim, uppercase and drop inner spaces: " ab12 cde " -> "AB12CDE"."""
    normalized = _WHITESPACE_RE.sub("", reg_number or "").upper()
    if not normalized:
        raise InvalidInput("Registration number is required.")
    if len(normalized) > MAX_REG_LENGTH:
        raise InvalidInput(f"Registration number must be at most {MAX_REG_LENGTH} characters.")
    return normalized


def require_text(value: str | None, field: str) -> str:
    """Return the stripped value or raise if blank."""
    stripped = (value or "").strip()
    if not stripped:
        raise InvalidInput(f"{field} is required.")
    return stripped


def parse_pickup_date(value: str | date | datetime | None, now: datetime) -> datetime:
    """Parse a pickup date and require it to be strictly in the future.

    A bare date counts as its start of day (UTC), so "today" is never valid.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        raise InvalidInput("Pickup date is required.")

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time.min)
    else:
        raw = value.strip()
        try:
            parsed = datetime.fromisoformat(raw)
        except ValueError as exc:
            raise InvalidInput(f"Invalid pickup date: {raw}") from exc

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)

    if parsed <= now:
        raise InvalidInput("Pickup date must be in the future.")
    return parsed


def validate_contact_number(value: str | None) -> str:
    number = require_text(value, "Contact number")
    if not _PHONE_RE.match(number) or sum(ch.isdigit() for ch in number) < 7:
        raise InvalidInput(f"Invalid contact number: {number}")
    return number


def parse_offer_price(value: Any) -> Decimal:
    """Admin offer price: required, numeric, non-negative, 2dp, fits Numeric(10, 2)."""
    if value is None or isinstance(value, bool) or (isinstance(value, str) and not value.strip()):
        raise InvalidInput("Offer price is required.")
    try:
        price = Decimal(str(value).strip())
    except InvalidOperation as exc:
        raise InvalidInput(f"Offer price must be a number: {value}") from exc
    if not price.is_finite() or price < 0:
        raise InvalidInput("Offer price must be a non-negative number.")
    if price > MAX_PRICE:
        raise InvalidInput(f"Offer price must not exceed {MAX_PRICE}.")
    try:
        return price.quantize(Decimal("0.01"))
    except InvalidOperation as exc:
        raise InvalidInput(f"Offer price must be a number: {value}") from exc
