"""FastAPI application entry point — wires everything together.

Usage:
    python -m scrapquote.main

Serves the user quote API and the admin API.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from scrapquote.admin.api import router as admin_router
from scrapquote.api.quotes import router as quotes_router
from scrapquote.config import settings
from scrapquote.db.engine import db_lifespan
from scrapquote.errors import QuoteError
from scrapquote.notifications.dispatcher import log_transition_event, notification_dispatcher
from scrapquote.notifications.events import start_event_system, stop_event_system, subscribe, unsubscribe
from scrapquote.schemas.quotes import QuoteOut

# ── Logging setup ────────────────────────────────────────────────────

logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
    stream=sys.stdout,
)
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.dev.ConsoleRenderer(),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
)

logger = logging.getLogger(__name__)

# ── FastAPI lifespan ─────────────────────────────────────────────────


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application startup and shutdown lifecycle."""
    logger.info("Starting ScrapQuote (env=%s)", settings.environment)

    # 1. Database
    async with db_lifespan():
        logger.info("Database initialized")

        # 2. Subscribers, then the event worker
        subscribe(log_transition_event)
        subscribe(notification_dispatcher.on_event, event_types=notification_dispatcher.watched_types)
        if not settings.email.smtp_host:
            logger.warning("SMTP_HOST not set — notification emails will only be logged")
        if not settings.email.admin_email:
            logger.warning("ADMIN_EMAIL not set — admin notifications disabled")

        await start_event_system()
        logger.info("Event system started")

        try:
            yield
        finally:
            logger.info("Shutting down ScrapQuote...")
            await stop_event_system()
            unsubscribe(notification_dispatcher.on_event)
            unsubscribe(log_transition_event)
            logger.info("Event system stopped")

    logger.info("ScrapQuote shutdown complete")


# ── FastAPI app ──────────────────────────────────────────────────────

app = FastAPI(
    title="ScrapQuote API",
    description="Scrap vehicle quotes: automatic pricing, manual review and collection",
    version="0.1.0",
    lifespan=lifespan,
)
app.include_router(quotes_router)
app.include_router(admin_router)


@app.exception_handler(QuoteError)
async def quote_error_handler(request: Request, exc: QuoteError) -> JSONResponse:
    """Render any QuoteError as the standard failure envelope."""
    if exc.http_status >= 500:
        logger.warning("%s %s failed: %s", request.method, request.url.path, exc.message)
    quote = QuoteOut.model_validate(exc.quote).model_dump(mode="json") if exc.quote is not None else None
    return JSONResponse(
        status_code=exc.http_status,
        content={"success": False, "status": exc.status, "message": exc.message, "quote": quote},
    )


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "ok", "environment": settings.environment}


# ── Entry point ──────────────────────────────────────────────────────

if __name__ == "__main__":
    uvicorn.run(
        "scrapquote.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.environment == "development",
        log_level=settings.log_level.lower(),
    )
