"""Community content (discussions/posts) subject to moderation."""

from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from core.clock import utcnow
from core.db import Base

CONTENT_PENDING = "pending"
CONTENT_APPROVED = "approved"
CONTENT_REJECTED = "rejected"
CONTENT_REMOVED = "removed"


class Content(Base):
    """A user-submitted post. Status changes only through the moderation workflow."""

    __tablename__ = "contents"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    author_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)  # None for anonymous posts
    author_name: Mapped[str | None] = mapped_column(String(128), nullable=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    body: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=CONTENT_APPROVED)
    reviewed_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    admin_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    report_context: Mapped[str | None] = mapped_column(Text, nullable=True)
    flag_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)  # Pending reports since last review
    is_flagged: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint("status IN ('pending','approved','rejected','removed')", name="chk_content_status"),
        Index("idx_contents_status", "status"),
        Index("idx_contents_flagged", "is_flagged"),
    )

    @property
    def is_visible(self) -> bool:
        """Rejected and removed content is hidden from default feeds."""
        return self.status in (CONTENT_PENDING, CONTENT_APPROVED)

    def __repr__(self) -> str:
        return f"<Content(id={self.id}, status={self.status})>"
