"""SQLAlchemy ORM models for ScrapQuote.

Import all models here so Alembic and Base.metadata.create_all() discover them.
"""

from __future__ import annotations

from scrapquote.models.app_settings import AppSettings
from scrapquote.models.base import Base
from scrapquote.models.enums import (
    ClientDecision,
    ManualQuoteReason,
    QuoteKind,
    QuoteState,
    QuoteStatus,
    UserRole,
)
from scrapquote.models.quote import Quote
from scrapquote.models.user import User

__all__ = [
    # Base
    "Base",
    # Models
    "User",
    "Quote",
    "AppSettings",
    # Enums
    "UserRole",
    "QuoteKind",
    "ClientDecision",
    "QuoteState",
    "QuoteStatus",
    "ManualQuoteReason",
]
