"""Request and response bodies for the admin API."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from scrapquote.models.enums import UserRole
from scrapquote.schemas.quotes import QuoteOut


class QuoteView(str, Enum):
    """Admin listing tabs."""

    PENDING_MANUAL = "pending_manual"
    REVIEWED = "reviewed"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    COLLECTED = "collected"
    ALL = "all"


class QuoteFilters(BaseModel):
    """Optional free-text filters, AND-ed together, case-insensitive substring."""

    reg_number: str | None = None
    make: str | None = None
    model: str | None = None
    name: str | None = None
    email: str | None = None
    phone: str | None = None

    def provided(self) -> dict[str, str]:
        """Non-blank filters, stripped."""
        return {k: v.strip() for k, v in self.model_dump().items() if v and v.strip()}


class CustomerOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    first_name: str
    last_name: str
    email: str
    phone: str | None = None


class AdminQuoteOut(QuoteOut):
    """Quote payload with the owning customer and reviewer attached."""

    reviewed_by: str | None = None
    user: CustomerOut | None = None


class QuotePage(BaseModel):
    items: list[AdminQuoteOut]
    total: int
    page: int
    per_page: int
    pages: int


class SettingsUpdate(BaseModel):
    """Partial settings update; values are validated by the settings store."""

    default_checks: Any = None
    scrap_rate_per_kg: Any = None


class SettingsOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    default_checks: int
    scrap_rate_per_kg: Decimal


class RefillRequest(BaseModel):
    amount: int = Field(..., ge=0)


class RefillResponse(BaseModel):
    user_id: uuid.UUID
    checks_left: int


# ── User management ──────────────────────────────────────────────────


class UserSort(str, Enum):
    CREATED_AT = "created_at"
    EMAIL = "email"
    FIRST_NAME = "first_name"
    LAST_NAME = "last_name"
    CHECKS_LEFT = "checks_left"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class UserFilters(BaseModel):
    """name: every word must match a first or last name. email: a complete address."""

    name: str | None = None
    email: str | None = None
    role: str | None = None


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    first_name: str
    last_name: str
    email: str
    phone: str | None = None
    role: str
    checks_left: int
    first_login: bool
    created_at: datetime | None = None


class UserPage(BaseModel):
    items: list[UserOut]
    total: int
    page: int
    per_page: int
    pages: int


class UserUpdate(BaseModel):
    """Admin edit of a profile; only these fields can change here."""

    first_name: str | None = None
    last_name: str | None = None
    role: UserRole | None = None
