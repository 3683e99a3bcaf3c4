"""Notification dispatcher — turns committed quote events into emails.

Subscribed to the event bus for the quote lifecycle event types. Each rule
maps one event type to one template and one recipient (the quote owner or
the admin inbox).

Never raises — failures are logged but never propagate to the event system.
A failed email cannot roll back the transition that triggered it.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Literal

from sqlalchemy import select

from scrapquote.config import settings
from scrapquote.db.engine import async_session_factory
from scrapquote.models.user import User
from scrapquote.notifications.email import EmailNotificationSink, email_sink
from scrapquote.schemas.events import EventType, SystemEvent

logger = logging.getLogger(__name__)

UserLoader = Callable[[uuid.UUID], Awaitable[User | None]]


@dataclass(frozen=True)
class NotificationRule:
    """One email sent in response to one event type."""

    event_type: EventType
    recipient: Literal["user", "admin"]
    template: str


NOTIFICATION_RULES: list[NotificationRule] = [
    NotificationRule(EventType.QUOTE_MANUAL_REQUESTED, "user", "manual_request_received"),
    NotificationRule(EventType.QUOTE_MANUAL_REQUESTED, "admin", "admin_manual_request"),
    NotificationRule(EventType.QUOTE_REVIEWED, "user", "manual_quote_reviewed"),
    NotificationRule(EventType.QUOTE_ACCEPTED, "admin", "admin_quote_accepted"),
    NotificationRule(EventType.QUOTE_ACCEPTED, "user", "collection_confirmed"),
    NotificationRule(EventType.QUOTE_REJECTED, "admin", "admin_quote_rejected"),
    NotificationRule(EventType.QUOTE_COLLECTED, "user", "vehicle_collected"),
]


async def _load_user(user_id: uuid.UUID) -> User | None:
    async with async_session_factory() as db:
        result = await db.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()


class NotificationDispatcher:
    """Evaluates events against NOTIFICATION_RULES and sends matching emails."""

    def __init__(
        self,
        sink: EmailNotificationSink,
        user_loader: UserLoader = _load_user,
        admin_email: str | None = None,
    ) -> None:
        self._sink = sink
        self._load_user = user_loader
        self._admin_email = admin_email if admin_email is not None else settings.email.admin_email

    @property
    def watched_types(self) -> list[EventType]:
        """Event types with at least one rule — for targeted subscription."""
        return list(dict.fromkeys(rule.event_type for rule in NOTIFICATION_RULES))

    async def on_event(self, event: SystemEvent) -> None:
        """Send every email the event calls for.

        Never raises — failures are logged and swallowed.
        """
        rules = [r for r in NOTIFICATION_RULES if r.event_type == event.event_type]
        if not rules:
            return

        user: User | None = None
        if event.user_id is not None:
            try:
                user = await self._load_user(event.user_id)
            except Exception:
                logger.exception("Failed to load user %s for %s", event.user_id, event.event_type.value)

        ctx = self._build_context(event, user)
        for rule in rules:
            recipient = self._admin_email if rule.recipient == "admin" else (user.email if user else "")
            if not recipient:
                logger.warning(
                    "No %s recipient for %s (quote=%s), skipping %s",
                    rule.recipient,
                    event.event_type.value,
                    event.quote_id,
                    rule.template,
                )
                continue
            try:
                await self._sink.send(recipient, rule.template, ctx)
            except Exception:
                logger.exception(
                    "Failed to send %s for quote %s to %s",
                    rule.template,
                    event.quote_id,
                    recipient,
                )

    @staticmethod
    def _build_context(event: SystemEvent, user: User | None) -> dict[str, Any]:
        ctx: dict[str, Any] = {**event.data}
        ctx.setdefault("reg_number", "")
        ctx["quote_id"] = str(event.quote_id) if event.quote_id else ""
        ctx["first_name"] = user.first_name if user else "there"
        ctx["full_name"] = user.full_name if user else "Unknown customer"
        ctx["email"] = user.email if user else ""
        ctx["phone"] = user.phone if user else None
        return ctx


async def log_transition_event(event: SystemEvent) -> None:
    """Global subscriber: one structured INFO line per event."""
    logger.info(
        "Event %s (quote=%s, user=%s, actor=%s/%s) %s",
        event.event_type.value,
        event.quote_id,
        event.user_id,
        event.actor_role,
        event.actor_id,
        event.data,
    )


# Module-level singleton
notification_dispatcher = NotificationDispatcher(email_sink)
