"""Request and response bodies for the quote API."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, computed_field

from scrapquote.models.enums import QuoteState
from scrapquote.quotes.states import status_for_state


class AutoQuoteRequest(BaseModel):
    reg_number: str = ""


class ManualQuoteDetails(BaseModel):
    """User-supplied data for a manual review request.

    Images are URLs of already-uploaded files.
    """

    reg_number: str = ""
    user_estimated_price: Decimal | None = Field(default=None, ge=0)
    user_provided_weight: Decimal | None = Field(default=None, gt=0)
    message: str | None = Field(default=None, max_length=2000)
    images: list[str] = Field(default_factory=list)

    # Vehicle attributes the lookup may have missed
    make: str | None = None
    model: str | None = None
    colour: str | None = None
    fuel_type: str | None = None
    year: int | None = Field(default=None, ge=1900, le=2100)

    def vehicle_overrides(self) -> dict[str, Any]:
        """Attributes keyed like the vehicle snapshot, only those provided."""
        candidates: dict[str, Any] = {
            "make": self.make,
            "model": self.model,
            "colour": self.colour,
            "fuel_type": self.fuel_type,
            "year_of_manufacture": self.year,
            "weight": float(self.user_provided_weight) if self.user_provided_weight is not None else None,
        }
        return {k: v for k, v in candidates.items() if v not in (None, "")}


class ConfirmCollectionRequest(BaseModel):
    pickup_date: str | None = None
    contact_number: str | None = None
    address: str | None = None


class RejectQuoteRequest(BaseModel):
    rejection_reason: str | None = None


class ReviewQuoteRequest(BaseModel):
    offer_price: Any = None
    message: str | None = None


class QuoteOut(BaseModel):
    """Quote payload returned to clients and admins."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID | None = None
    user_id: uuid.UUID
    reg_number: str
    state: str
    kind: str
    client_decision: str
    vehicle_data: dict[str, Any] = Field(default_factory=dict)
    estimated_price: Decimal | None = None
    quoted_price: Decimal | None = None
    final_price: Decimal | None = None
    manual_details: dict[str, Any] | None = None
    admin_offer_price: Decimal | None = None
    admin_message: str | None = None
    is_reviewed_by_admin: bool = False
    reviewed_at: datetime | None = None
    rejection_reason: str | None = None
    rejected_at: datetime | None = None
    accepted_at: datetime | None = None
    collection_details: dict[str, Any] | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def status(self) -> str:
        return status_for_state(QuoteState(self.state)).value


class QuoteResponse(BaseModel):
    """Envelope for every quote operation."""

    success: bool = True
    status: str
    message: str
    quote: QuoteOut | None = None
    checks_left: int | None = None
