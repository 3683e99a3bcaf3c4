"""SystemEvent schema — the event type that flows from quote transitions to subscribers.

Quote operations emit a SystemEvent after their commit. Subscribers
(notification dispatcher, transition log) consume these asynchronously.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class EventType(str, Enum):
    """All event types emitted by the system."""

    # Quote lifecycle
    QUOTE_AUTO_GENERATED = "quote.auto_generated"
    QUOTE_MANUAL_REQUESTED = "quote.manual_requested"
    QUOTE_REVIEWED = "quote.reviewed"
    QUOTE_ACCEPTED = "quote.accepted"
    QUOTE_REJECTED = "quote.rejected"
    QUOTE_COLLECTED = "quote.collected"
    QUOTE_DELETED = "quote.deleted"

    # External API
    VEHICLE_LOOKUP = "vehicle.lookup"

    # Admin
    SETTINGS_UPDATED = "settings.updated"
    CHECKS_REFILLED = "user.checks_refilled"
    USER_UPDATED = "user.updated"
    USER_DELETED = "user.deleted"


class SystemEvent(BaseModel):
    """Immutable event record.

    Consumed by:
    - notification dispatcher → emails to the user and the admin inbox
    - transition log → structured INFO line per event
    """

    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    event_type: EventType
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    # Context
    quote_id: uuid.UUID | None = None
    user_id: uuid.UUID | None = None
    actor_id: str | None = None
    actor_role: str | None = None

    # Flexible payload
    data: dict[str, Any] = Field(default_factory=dict)

    # Metadata
    source_module: str | None = Field(default=None, description="Module that emitted this event")

    model_config = {"frozen": True}
