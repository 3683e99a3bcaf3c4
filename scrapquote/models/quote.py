"""Quote model — one vehicle registration's valuation record for one user.

The record is long-lived and mutated in place through the lifecycle
(auto price → manual review → decision → collection). The explicit `state`
column is authoritative; `kind`, `client_decision`, `is_reviewed_by_admin`
and `collection_details["collected"]` are written together with it.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Numeric, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from scrapquote.models.base import Base, TimestampMixin
from scrapquote.models.enums import ClientDecision, QuoteKind, QuoteState

if TYPE_CHECKING:
    from scrapquote.models.user import User

# Conflict target for the auto-quote upsert
UQ_USER_REG_KIND = "uq_quotes_user_reg_kind"


class Quote(TimestampMixin, Base):
    """A scrappage quote for (user, registration)."""

    __tablename__ = "quotes"
    __table_args__ = (
        UniqueConstraint("user_id", "reg_number", "kind", name=UQ_USER_REG_KIND),
        Index("ix_quotes_state_kind", "state", "kind"),
    )

    # Identity (immutable after creation)
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    reg_number: Mapped[str] = mapped_column(String(16), nullable=False, index=True)

    # Lifecycle
    state: Mapped[str] = mapped_column(String(30), default=QuoteState.AUTO_PRICED.value, nullable=False)
    kind: Mapped[str] = mapped_column(String(10), default=QuoteKind.AUTO.value, nullable=False)
    client_decision: Mapped[str] = mapped_column(
        String(10), default=ClientDecision.PENDING.value, nullable=False, index=True
    )

    # Pricing
    vehicle_data: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False, default=dict)
    estimated_price: Mapped[Decimal | None] = mapped_column(Numeric(10, 2))
    final_price: Mapped[Decimal | None] = mapped_column(Numeric(10, 2))

    # Manual review request: images, user_estimated_price, user_provided_weight,
    # message, manual_quote_reason, last_manual_request_at
    manual_details: Mapped[dict[str, Any] | None] = mapped_column(JSONB)

    # Admin review
    admin_offer_price: Mapped[Decimal | None] = mapped_column(Numeric(10, 2))
    admin_message: Mapped[str | None] = mapped_column(Text)
    is_reviewed_by_admin: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    reviewed_by: Mapped[str | None] = mapped_column(String(100), comment="Admin username")

    # Client decision
    rejection_reason: Mapped[str | None] = mapped_column(Text)
    rejected_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    accepted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Collection: pickup_date, contact_number, address, collected
    collection_details: Mapped[dict[str, Any] | None] = mapped_column(JSONB)

    # Relationships
    user: Mapped[User] = relationship("User", back_populates="quotes")

    @property
    def quoted_price(self) -> Decimal | None:
        """Price currently on offer: the admin's offer once reviewed, else the estimate."""
        if self.kind == QuoteKind.MANUAL.value and self.admin_offer_price is not None:
            return self.admin_offer_price
        return self.estimated_price

    @property
    def is_collected(self) -> bool:
        return bool((self.collection_details or {}).get("collected"))

    def __repr__(self) -> str:
        return f"<Quote id={self.id} reg={self.reg_number} state={self.state}>"
