"""Safety & Moderation models - reports and moderation actions."""

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from core.clock import utcnow
from core.db import Base, BigIntPK

REPORT_PENDING = "pending"
REPORT_RESOLVED = "resolved"

REPORT_REASONS = (
    "Inappropriate Content",
    "Spam",
    "Harassment",
    "Misinformation",
    "Hate Speech",
    "Violence",
    "Other",
)


class Report(Base):
    """User-generated report (flag) about a piece of content."""

    __tablename__ = "reports"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    content_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("contents.id", ondelete="CASCADE"), nullable=False, index=True
    )
    reporter_identity: Mapped[str] = mapped_column(String(64), nullable=False, default="Anonymous")
    reason: Mapped[str] = mapped_column(String(32), nullable=False)
    context: Mapped[str | None] = mapped_column(Text, nullable=True)
    reported_user_id: Mapped[str | None] = mapped_column(String(64), nullable=True)  # client-supplied author hint
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=REPORT_PENDING)  # pending|resolved
    resolution: Mapped[str | None] = mapped_column(String(16), nullable=True)  # approved|rejected|removed
    reviewed_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    admin_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        # Validate status
        CheckConstraint("status IN ('pending','resolved')", name="chk_report_status"),
        # Index for the moderation queue
        Index("idx_reports_status", "status", "id"),
        # One pending report per reporter and content
        Index(
            "uq_reports_pending_per_reporter",
            "reporter_identity",
            "content_id",
            unique=True,
            postgresql_where=text("status = 'pending'"),
            sqlite_where=text("status = 'pending'"),
        ),
        # Report ids are never reused after a revoke deletes the newest row
        {"sqlite_autoincrement": True},
    )

    def __repr__(self) -> str:
        return f"<Report(id={self.id}, content={self.content_id}, status={self.status})>"


class ModerationAction(Base):
    """Admin moderation action history."""

    __tablename__ = "moderation_actions"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    target_user: Mapped[str | None] = mapped_column(String(64), nullable=True)
    report_id: Mapped[int | None] = mapped_column(BigIntPK, nullable=True)
    content_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    action: Mapped[str] = mapped_column(String(24), nullable=False)  # approve|reject|remove|ban|edit_ban|unban
    actor: Mapped[str] = mapped_column(String(64), nullable=False)  # admin username or "system"
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (Index("idx_moderation_target", "target_user"),)

    def __repr__(self) -> str:
        return f"<ModerationAction(id={self.id}, target={self.target_user}, action={self.action})>"
