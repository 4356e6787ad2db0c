from datetime import datetime

from sqlalchemy import DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from core.clock import utcnow
from core.db import Base

BAN_PERMANENT = "permanent"
BAN_TEMPORARY = "temporary"
BAN_TYPES = (BAN_PERMANENT, BAN_TEMPORARY)


class User(Base):
    """User model with ban metadata. ``is_banned`` is derived, never stored."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    username: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    display_name: Mapped[str | None] = mapped_column(String(128), nullable=True)

    # Sanction fields
    ban_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    ban_type: Mapped[str | None] = mapped_column(String(16), nullable=True)  # permanent|temporary
    ban_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    ban_expiry_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    banned_by: Mapped[str | None] = mapped_column(String(64), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    def is_banned_at(self, now: datetime) -> bool:
        """A lapsed temporary ban reads as not banned without any write-back."""
        if self.ban_date is None:
            return False
        if self.ban_type == BAN_PERMANENT:
            return True
        return self.ban_expiry_date is not None and now < self.ban_expiry_date

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username={self.username})>"
