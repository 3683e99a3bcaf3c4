"""AppSettings model — the single admin-editable settings row.

Holds the live scrap rate and the default lookup allowance. Always row id 1.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, Integer, Numeric, func
from sqlalchemy.orm import Mapped, mapped_column

from scrapquote.models.base import Base

SETTINGS_ROW_ID = 1

# Starting lookup allowance for a new user until an admin changes it
DEFAULT_CHECKS = 10


class AppSettings(Base):
    """Global pricing and quota settings."""

    __tablename__ = "app_settings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, default=SETTINGS_ROW_ID)
    default_checks: Mapped[int] = mapped_column(Integer, nullable=False, default=DEFAULT_CHECKS)
    scrap_rate_per_kg: Mapped[Decimal] = mapped_column(Numeric(10, 4), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    def __repr__(self) -> str:
        return f"<AppSettings rate={self.scrap_rate_per_kg} default_checks={self.default_checks}>"
