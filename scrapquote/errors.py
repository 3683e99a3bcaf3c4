"""Exception hierarchy for quote operations.

Each error carries the HTTP status code and the client-facing status value.
main.py registers one handler that renders any QuoteError as JSON.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from scrapquote.models.enums import QuoteStatus

if TYPE_CHECKING:
    from scrapquote.models.quote import Quote


class QuoteError(Exception):
    """Base class for errors surfaced to API callers."""

    http_status: int = 400
    status: str = QuoteStatus.INVALID_INPUT.value

    def __init__(self, message: str, *, status: str | None = None, quote: Quote | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status is not None:
            self.status = status
        self.quote = quote


class InvalidInput(QuoteError):
    """Missing or malformed request field."""

    http_status = 400
    status = QuoteStatus.INVALID_INPUT.value


class NotFound(QuoteError):
    http_status = 404
    status = QuoteStatus.QUOTE_NOT_FOUND.value


class QuoteNotFound(NotFound):
    status = QuoteStatus.QUOTE_NOT_FOUND.value


class UserNotFound(NotFound):
    status = QuoteStatus.USER_NOT_FOUND.value


class NoExistingQuote(NotFound):
    """A manual request was made for a registration that was never auto-quoted."""

    status = QuoteStatus.NO_EXISTING_QUOTE.value


class VehicleNotFound(NotFound):
    """The vehicle data provider does not know the registration."""

    status = QuoteStatus.VEHICLE_NOT_FOUND.value


class InvalidState(QuoteError):
    """Operation forbidden by the quote's current state.

    `status` is the quote's actual current status so the client can react.
    """

    http_status = 409


class AlreadyDecided(InvalidState):
    pass


class AlreadySubmitted(InvalidState):
    pass


class QuotaExhausted(QuoteError):
    http_status = 403
    status = QuoteStatus.DVLA_CHECKS_EXHAUSTED.value


class UpstreamUnavailable(QuoteError):
    """Vehicle data provider failed for reasons other than a bad registration."""

    http_status = 503
    status = QuoteStatus.VEHICLE_API_UNAVAILABLE.value
