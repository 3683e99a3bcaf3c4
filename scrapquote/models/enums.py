"""Domain enums used across SQLAlchemy models and Pydantic schemas.

All enums use str mixin for JSON serialization; values are stored as plain strings.
"""

from __future__ import annotations

from enum import Enum


class UserRole(str, Enum):
    """Account role — admins reach the /admin surface."""

    USER = "user"
    ADMIN = "admin"


class QuoteKind(str, Enum):
    """How a quote is priced. auto → manual is one-way."""

    AUTO = "auto"
    MANUAL = "manual"


class ClientDecision(str, Enum):
    """The client's answer to the offered price."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class QuoteState(str, Enum):
    """Lifecycle states for a quote record (see quotes.states)."""

    AUTO_PRICED = "auto_priced"
    MANUAL_REQUESTED = "manual_requested"
    MANUAL_REVIEWED = "manual_reviewed"
    REJECTED = "rejected"
    ACCEPTED = "accepted"
    COLLECTED = "collected"


class ManualQuoteReason(str, Enum):
    """Why a manual review was requested — derived, never user-supplied."""

    AUTO_PRICE_MISSING = "auto_price_missing"
    USER_THINKS_VALUE_HIGHER = "user_thinks_value_higher"
    USER_REQUESTED_REVIEW = "user_requested_review"


class QuoteStatus(str, Enum):
    """Status codes returned to API clients. Clients branch on these values."""

    # requestAutoQuote
    NEW_GENERATED = "new_generated"
    CACHED_QUOTE = "cached_quote"
    ACCEPTED_COLLECTED = "accepted_collected"
    ACCEPTED_PENDING_COLLECTION = "accepted_pending_collection"
    MANUAL_PENDING_REVIEW = "manual_pending_review"
    MANUAL_REVIEWED = "manual_reviewed"
    MANUAL_PREVIOUSLY_REJECTED = "manual_previously_rejected"

    # submitManualQuote
    MANUAL_SUBMITTED = "manual_submitted"
    MANUAL_INFO_APPENDED = "manual_info_appended"
    AUTO_ACCEPTED_COLLECTED = "auto_accepted_collected"
    AUTO_ACCEPTED_PENDING_COLLECTION = "auto_accepted_pending_collection"
    MANUAL_ACCEPTED_COLLECTED = "manual_accepted_collected"
    MANUAL_ACCEPTED_PENDING_COLLECTION = "manual_accepted_pending_collection"

    # decisions and admin actions
    QUOTE_ACCEPTED = "quote_accepted"
    QUOTE_REJECTED = "quote_rejected"
    QUOTE_REVIEWED = "quote_reviewed"
    QUOTE_COLLECTED = "quote_collected"

    # errors
    INVALID_INPUT = "invalid_input"
    QUOTE_NOT_FOUND = "quote_not_found"
    USER_NOT_FOUND = "user_not_found"
    NO_EXISTING_QUOTE = "no_existing_quote"
    VEHICLE_NOT_FOUND = "vehicle_not_found"
    DVLA_CHECKS_EXHAUSTED = "dvla_checks_exhausted"
    VEHICLE_API_UNAVAILABLE = "vehicle_api_unavailable"
