"""Moderation workflow: review decisions on reports and banning a report's author.

A pending report moves its content to exactly one terminal review outcome::

    pending --approve--> approved
    pending --reject---> rejected   (hidden from default feeds)
    pending --remove---> removed    (hard-hidden)

Each new report flags its content; the review decision clears the flag
whatever the outcome.

The report becomes ``resolved`` and cannot be resolved again; the content can
be reported anew, which opens a fresh pending report. Banning the author is a
separate action and never resolves the report.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.clock import Clock, utcnow
from core.config import settings
from models.content import CONTENT_APPROVED, CONTENT_REJECTED, CONTENT_REMOVED, Content
from models.safety import REPORT_PENDING, REPORT_RESOLVED, ModerationAction, Report
from models.user import BAN_PERMANENT, BAN_TEMPORARY
from moderation.errors import AmbiguousTarget, InvalidTransition, NotFound, ValidationError
from moderation.sanctions import BanStatus, SanctionStore

logger = logging.getLogger(__name__)

# Accepts both the verb and the past tense the mobile client sends
_ACTIONS = {
    "approve": CONTENT_APPROVED,
    "approved": CONTENT_APPROVED,
    "reject": CONTENT_REJECTED,
    "rejected": CONTENT_REJECTED,
    "remove": CONTENT_REMOVED,
    "removed": CONTENT_REMOVED,
}

_AUDIT_ACTION = {CONTENT_APPROVED: "approve", CONTENT_REJECTED: "reject", CONTENT_REMOVED: "remove"}

DEFAULT_BAN_REASON = "Violation of community guidelines"


class AuthorResolver(Protocol):
    async def resolve_author(self, content_id: str) -> str | None: ...


class ContentAuthorResolver:
    """Resolves a content author from ``Content.author_id``; display names alone are not enough."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def resolve_author(self, content_id: str) -> str | None:
        result = await self.db.execute(select(Content.author_id).where(Content.id == content_id))
        return result.scalar_one_or_none()


@dataclass
class ActionOutcome:
    report_id: int
    content_id: str
    content_status: str
    report_status: str
    reviewed_by: str
    reviewed_at: datetime
    author_id: str | None


@dataclass
class BanOutcome:
    report_id: int
    user_id: str
    ban: BanStatus


class ModerationWorkflow:
    """Drives a report and its content through review outcomes."""

    def __init__(
        self,
        db: AsyncSession,
        sanctions: SanctionStore | None = None,
        resolver: AuthorResolver | None = None,
        clock: Clock = utcnow,
    ) -> None:
        self.db = db
        self.clock = clock
        self.sanctions = sanctions or SanctionStore(db, clock=clock)
        self.resolver = resolver or ContentAuthorResolver(db)

    async def _get_report(self, report_id: int) -> Report:
        report = (await self.db.execute(select(Report).where(Report.id == report_id))).scalar_one_or_none()
        if report is None:
            raise NotFound(f"Report {report_id} not found")
        return report

    async def take_action(self, report_id: int, action: str, reviewer: str, notes: str | None = None) -> ActionOutcome:
        """
        Resolve a pending report with approve, reject or remove.

        Raises:
            ValidationError: Unknown action
            NotFound: Report or its content is missing
            InvalidTransition: Report already resolved; nothing is written
        """
        new_status = _ACTIONS.get((action or "").strip().lower())
        if new_status is None:
            raise ValidationError("Action must be one of: approve, reject, remove")

        report = await self._get_report(report_id)
        if report.status != REPORT_PENDING:
            raise InvalidTransition(f"Report {report_id} is already {report.status} ({report.resolution})")

        content = (await self.db.execute(select(Content).where(Content.id == report.content_id))).scalar_one_or_none()
        if content is None:
            raise NotFound(f"Content {report.content_id} not found")

        now = self.clock()
        content.status = new_status
        content.reviewed_by = reviewer
        content.reviewed_at = now
        content.admin_notes = notes
        content.is_flagged = False
        content.flag_count = 0
        if report.context:
            content.report_context = report.context

        report.status = REPORT_RESOLVED
        report.resolution = new_status
        report.reviewed_by = reviewer
        report.reviewed_at = now
        report.admin_notes = notes

        self.db.add(
            ModerationAction(
                target_user=content.author_id,
                report_id=report.id,
                content_id=content.id,
                action=_AUDIT_ACTION[new_status],
                actor=reviewer,
                reason=notes,
            )
        )
        await self.db.commit()

        logger.info(f"Report resolved: id={report.id}, content={content.id}, status={new_status}, by={reviewer}")
        return ActionOutcome(
            report_id=report.id,
            content_id=content.id,
            content_status=new_status,
            report_status=REPORT_RESOLVED,
            reviewed_by=reviewer,
            reviewed_at=now,
            author_id=content.author_id,
        )

    async def resolve_author(self, report: Report) -> str | None:
        if report.reported_user_id:
            return report.reported_user_id
        return await self.resolver.resolve_author(report.content_id)

    async def ban_author_from_report(
        self,
        report_id: int,
        reason: str | None,
        ban_duration: str,
        banned_by: str,
        expiry_date: datetime | None = None,
    ) -> BanOutcome:
        """
        Ban the author of the reported content. Does not resolve the report.

        Temporary bans default to ``temporary_ban_days`` from now.

        Raises:
            NotFound: Report or resolved user missing
            AmbiguousTarget: No user id can be resolved; pick the user manually
        """
        if ban_duration not in (BAN_PERMANENT, BAN_TEMPORARY):
            raise ValidationError("Ban duration must be 'temporary' or 'permanent'")

        report = await self._get_report(report_id)
        user_id = await self.resolve_author(report)
        if not user_id:
            raise AmbiguousTarget(f"No user id found for the author of report {report_id}")

        if ban_duration == BAN_TEMPORARY and expiry_date is None:
            expiry_date = self.clock() + timedelta(days=settings.temporary_ban_days)

        ban = await self.sanctions.ban(
            user_id,
            (reason or "").strip() or DEFAULT_BAN_REASON,
            ban_duration,
            expiry_date=expiry_date,
            banned_by=banned_by,
            report_id=report.id,
        )
        return BanOutcome(report_id=report.id, user_id=user_id, ban=ban)
