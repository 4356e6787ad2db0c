"""Report ledger: idempotent submission, revoke and the moderation queue listing."""

import logging
from collections.abc import AsyncGenerator
from dataclasses import dataclass

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.clock import Clock, utcnow
from models.content import Content
from models.safety import REPORT_PENDING, REPORT_REASONS, REPORT_RESOLVED, Report
from moderation.errors import NotFound, ValidationError

logger = logging.getLogger(__name__)

ANONYMOUS = "Anonymous"


def normalize_reporter(reporter_identity: str | None) -> str:
    """Stored form of a reporter identity; blank or missing means anonymous."""
    return (reporter_identity or "").strip() or ANONYMOUS


@dataclass
class SubmitResult:
    """``created`` is False when the reporter already has a pending report on the content."""

    created: bool
    report_id: int


class ReportLedger:
    """Records reports against content, at most one pending per reporter and content."""

    def __init__(self, db: AsyncSession, clock: Clock = utcnow) -> None:
        self.db = db
        self.clock = clock

    async def _pending_for(self, reporter_identity: str, content_id: str) -> Report | None:
        result = await self.db.execute(
            select(Report).where(
                Report.reporter_identity == reporter_identity,
                Report.content_id == content_id,
                Report.status == REPORT_PENDING,
            )
        )
        return result.scalar_one_or_none()

    async def _lock_content(self, content_id: str) -> Content | None:
        """Load the content row for update so concurrent reports keep ``flag_count`` exact."""
        result = await self.db.execute(
            select(Content)
            .where(Content.id == content_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def submit(
        self,
        reporter_identity: str | None,
        content_id: str,
        reason: str,
        context: str | None = None,
        reported_user_id: str | None = None,
    ) -> SubmitResult:
        """
        Submit a report, or return the reporter's existing pending one.

        Raises:
            ValidationError: Unknown reason
            NotFound: Content does not exist
        """
        reporter_identity = normalize_reporter(reporter_identity)
        if reason not in REPORT_REASONS:
            raise ValidationError(f"Invalid reason. Must be one of: {', '.join(REPORT_REASONS)}")

        content = await self._lock_content(content_id)
        if content is None:
            raise NotFound(f"Content {content_id} not found")

        existing = await self._pending_for(reporter_identity, content_id)
        if existing is not None:
            report_id = existing.id
            await self.db.commit()
            logger.info(f"Report already pending: reporter={reporter_identity}, content={content_id}")
            return SubmitResult(created=False, report_id=report_id)

        report = Report(
            content_id=content_id,
            reporter_identity=reporter_identity,
            reason=reason,
            context=context or None,
            reported_user_id=reported_user_id or None,
            status=REPORT_PENDING,
            created_at=self.clock(),
        )
        self.db.add(report)
        content.flag_count += 1
        content.is_flagged = True
        try:
            await self.db.commit()
        except IntegrityError:
            # Lost a race against an identical submit; the unique index kept one row
            await self.db.rollback()
            existing = await self._pending_for(reporter_identity, content_id)
            if existing is None:
                raise
            return SubmitResult(created=False, report_id=existing.id)

        logger.info(
            f"Report created: id={report.id}, reporter={reporter_identity}, content={content_id}, reason={reason}"
        )
        return SubmitResult(created=True, report_id=report.id)

    async def revoke(self, reporter_identity: str | None, content_id: str) -> None:
        """
        Delete the reporter's pending report on the content and lower its flag count.

        Raises:
            NotFound: Nothing to revoke
        """
        reporter_identity = normalize_reporter(reporter_identity)
        content = await self._lock_content(content_id)
        result = await self.db.execute(
            delete(Report).where(
                Report.reporter_identity == reporter_identity,
                Report.content_id == content_id,
                Report.status == REPORT_PENDING,
            )
        )
        if not result.rowcount:
            await self.db.commit()
            raise NotFound("No pending report to revoke")

        if content is not None:
            content.flag_count = max(content.flag_count - 1, 0)
            content.is_flagged = content.flag_count > 0
        await self.db.commit()
        logger.info(f"Report revoked: reporter={reporter_identity}, content={content_id}")

    async def get(self, report_id: int) -> Report:
        report = (await self.db.execute(select(Report).where(Report.id == report_id))).scalar_one_or_none()
        if report is None:
            raise NotFound(f"Report {report_id} not found")
        return report

    async def has_pending(self, content_id: str, reporter_identity: str | None = None) -> bool:
        query = select(Report.id).where(Report.content_id == content_id, Report.status == REPORT_PENDING)
        if reporter_identity is not None:
            query = query.where(Report.reporter_identity == normalize_reporter(reporter_identity))
        return (await self.db.execute(query.limit(1))).first() is not None

    async def list_reports(
        self, status: str | None = REPORT_PENDING, page_size: int = 50, after_id: int = 0
    ) -> AsyncGenerator[Report, None]:
        """
        Yield reports oldest first, fetching ``page_size`` rows at a time.

        Each call starts a fresh listing after ``after_id``; ``status=None``
        lists every report.

        Raises:
            ValidationError: Unknown status filter or a page size below 1
        """
        if status is not None and status not in (REPORT_PENDING, REPORT_RESOLVED):
            raise ValidationError(f"Invalid status filter: {status}")
        if page_size < 1:
            raise ValidationError("Page size must be at least 1")

        last_id = max(after_id, 0)
        while True:
            query = select(Report).where(Report.id > last_id)
            if status is not None:
                query = query.where(Report.status == status)
            page = list((await self.db.execute(query.order_by(Report.id).limit(page_size))).scalars().all())
            for report in page:
                yield report
            if len(page) < page_size:
                return
            last_id = page[-1].id

    async def count_by_status(self) -> dict[str, int]:
        result = await self.db.execute(select(Report.status, func.count(Report.id)).group_by(Report.status))
        counts = {REPORT_PENDING: 0, REPORT_RESOLVED: 0}
        counts.update({status: count for status, count in result.all()})
        return counts
