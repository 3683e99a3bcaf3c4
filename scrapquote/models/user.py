"""User model — a registered customer (or admin) requesting scrappage quotes.

Credentials and sessions live in the upstream auth service; this table only
carries the profile fields notifications need and the lookup quota.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import Boolean, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from scrapquote.models.app_settings import DEFAULT_CHECKS
from scrapquote.models.base import Base, TimestampMixin
from scrapquote.models.enums import UserRole

if TYPE_CHECKING:
    from scrapquote.models.quote import Quote


class User(TimestampMixin, Base):
    """A customer who requests quotes for their vehicles."""

    __tablename__ = "users"

    # Profile
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    phone: Mapped[str | None] = mapped_column(String(30))
    role: Mapped[str] = mapped_column(String(20), default=UserRole.USER.value, nullable=False)

    # Vehicle lookup quota ("DVLA checks")
    checks_left: Mapped[int] = mapped_column(Integer, default=DEFAULT_CHECKS, nullable=False)
    first_login: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Relationships
    quotes: Mapped[list[Quote]] = relationship(
        "Quote", back_populates="user", cascade="all, delete-orphan", passive_deletes=True
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def __repr__(self) -> str:
        return f"<User id={self.id} role={self.role} checks_left={self.checks_left}>"
