"""SMTP email delivery for quote notifications.

Messages are rendered from Jinja2 text templates in ./templates. The first
line of each rendered template is the subject; the rest is the body.
With no SMTP host configured, messages are logged instead of sent.

Usage:
    from scrapquote.notifications.email import email_sink

    await email_sink.send("jane@example.com", "collection_confirmed", {"first_name": "Jane", ...})
"""

from __future__ import annotations

import asyncio
import logging
import smtplib
from email.mime.text import MIMEText
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, StrictUndefined

from scrapquote.config import EmailSettings, settings

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).parent / "templates"

# Notification kinds with a template of the same name
TEMPLATE_KINDS: frozenset[str] = frozenset({
    "manual_request_received",
    "manual_quote_reviewed",
    "collection_confirmed",
    "vehicle_collected",
    "admin_manual_request",
    "admin_quote_accepted",
    "admin_quote_rejected",
})


class EmailNotificationSink:
    """Renders notification templates and delivers them over SMTP."""

    def __init__(self, config: EmailSettings | None = None) -> None:
        self._config = config or settings.email
        self._env = Environment(
            loader=FileSystemLoader(TEMPLATES_DIR),
            undefined=StrictUndefined,
            keep_trailing_newline=True,
            autoescape=False,
        )

    def render(self, template_kind: str, data: dict[str, Any]) -> tuple[str, str]:
        """Return (subject, body) for a notification kind."""
        if template_kind not in TEMPLATE_KINDS:
            msg = f"Unknown notification template: {template_kind}"
            raise ValueError(msg)
        rendered = self._env.get_template(f"{template_kind}.txt").render(**data)
        subject, _, body = rendered.partition("\n")
        return subject.strip(), body.lstrip("\n")

    async def send(self, recipient: str, template_kind: str, data: dict[str, Any]) -> None:
        """Render and deliver one message. SMTP errors propagate to the caller."""
        subject, body = self.render(template_kind, data)

        if not self._config.smtp_host:
            logger.info("Email (log-only) to %s: %s\n%s", recipient, subject, body)
            return

        await asyncio.to_thread(self._deliver, recipient, subject, body)
        logger.info("Email sent to %s: %s (%s)", recipient, subject, template_kind)

    def _deliver(self, recipient: str, subject: str, body: str) -> None:
        message = MIMEText(body, "plain", "utf-8")
        message["From"] = self._config.email_from
        message["To"] = recipient
        message["Subject"] = subject

        with smtplib.SMTP(self._config.smtp_host, self._config.smtp_port, timeout=30) as server:
            server.starttls()
            if self._config.smtp_user:
                server.login(self._config.smtp_user, self._config.smtp_password)
            server.send_message(message)


# Module-level singleton
email_sink = EmailNotificationSink()
