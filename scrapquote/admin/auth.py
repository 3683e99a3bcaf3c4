"""HTTP Basic auth for the admin routes.

All reviewers share ADMIN_WEB_PASSWORD; the Basic username names the reviewer
and is written to quotes.reviewed_by, so it must be present. When
ADMIN_USERNAMES is set, only those names are accepted.
"""

from __future__ import annotations

import logging
import secrets

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from scrapquote.config import settings

logger = logging.getLogger(__name__)

security = HTTPBasic()


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Basic"},
    )


def _reviewer_allowed(reviewer: str, allowed: list[str]) -> bool:
    if not allowed:
        return True
    # Compare every entry so timing does not reveal which names exist
    matches = [secrets.compare_digest(reviewer.encode(), name.strip().lower().encode()) for name in allowed]
    return any(matches)


async def verify_admin(
    credentials: HTTPBasicCredentials = Depends(security),  # noqa: B008
) -> str:
    """FastAPI dependency: returns the reviewer name recorded on admin actions."""
    expected = settings.security.admin_web_password
    if not expected:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="ADMIN_WEB_PASSWORD not configured",
        )

    if not secrets.compare_digest(credentials.password.encode("utf-8"), expected.encode("utf-8")):
        raise _unauthorized("Invalid credentials")

    reviewer = credentials.username.strip().lower()
    if not reviewer:
        raise _unauthorized("A reviewer name is required as the Basic auth username")
    if not _reviewer_allowed(reviewer, settings.security.admin_usernames):
        logger.warning("Admin login refused for unknown reviewer %r", reviewer)
        raise _unauthorized("Invalid credentials")

    return reviewer
