"""Facade over the moderation components.

Every admin call is checked by the SessionGuard first; expired and unknown
sessions are both reported as ``Unauthorized`` so callers cannot tell which
tokens once existed. Reads never write. ``error_response`` is the only place
the error taxonomy is mapped to HTTP status codes.
"""

import asyncio
import logging
from collections.abc import AsyncIterator, Coroutine
from contextlib import aclosing, asynccontextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Protocol

from sqlalchemy import or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.clock import Clock, utcnow
from core.metrics import (
    admin_logins_total,
    admin_sessions_rejected_total,
    ambiguous_ban_targets_total,
    bans_total,
    moderation_actions_total,
    reports_revoked_total,
    reports_total,
    unbans_total,
)
from models.content import CONTENT_APPROVED, CONTENT_REJECTED, CONTENT_REMOVED, Content
from models.safety import ModerationAction, Report
from models.user import User
from moderation.errors import (
    AmbiguousTarget,
    Conflict,
    InvalidTransition,
    ModerationError,
    NotFound,
    StoreUnavailable,
    Unauthorized,
    ValidationError,
)
from moderation.ledger import ReportLedger, SubmitResult
from moderation.sanctions import BanStatus, SanctionStore, UnbanResult
from moderation.sessions import IssuedSession, SessionCheck, SessionGuard
from moderation.workflow import ActionOutcome, AuthorResolver, BanOutcome, ModerationWorkflow

logger = logging.getLogger(__name__)

_STATUS_CODES: dict[type[ModerationError], int] = {
    ValidationError: 400,
    Unauthorized: 401,
    NotFound: 404,
    InvalidTransition: 409,
    Conflict: 409,
    AmbiguousTarget: 422,
    StoreUnavailable: 503,
}

# Strong references so fire-and-forget tasks are not garbage collected mid-flight
_background: set[asyncio.Task[None]] = set()


def error_response(exc: ModerationError) -> tuple[int, dict[str, str]]:
    """Translate a moderation error into an HTTP status code and JSON body."""
    for error_type, status_code in _STATUS_CODES.items():
        if isinstance(exc, error_type):
            return status_code, {"error": exc.code, "message": exc.message}
    return 500, {"error": exc.code, "message": exc.message}


async def wait_for_notifications() -> None:
    """Let in-flight notifications finish (used on shutdown)."""
    if _background:
        await asyncio.gather(*_background, return_exceptions=True)


class NotificationSink(Protocol):
    async def notify(self, user_id: str, event: str, message: str) -> bool: ...

    async def alert_moderators(self, message: str) -> bool: ...


@dataclass
class QueueEntry:
    """A report joined with its content and the author's current sanction."""

    report: Report
    content: Content | None
    author_banned: bool


@dataclass
class QueuePage:
    entries: list[QueueEntry]
    total: int
    next_after_id: int | None

    @property
    def has_more(self) -> bool:
        return self.next_after_id is not None


@dataclass
class ModerationStats:
    total_reports: int
    pending_reports: int
    resolved_reports: int
    hidden_content: int
    flagged_content: int
    banned_users: int


class AdminActions:
    """Entry point for the HTTP layer into the moderation core."""

    def __init__(
        self,
        db: AsyncSession,
        clock: Clock = utcnow,
        notifier: NotificationSink | None = None,
        resolver: AuthorResolver | None = None,
    ) -> None:
        self.db = db
        self.clock = clock
        self.notifier = notifier
        self.sessions = SessionGuard(db, clock=clock)
        self.sanctions = SanctionStore(db, clock=clock)
        self.ledger = ReportLedger(db, clock=clock)
        self.workflow = ModerationWorkflow(db, sanctions=self.sanctions, resolver=resolver, clock=clock)

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def _store(self) -> AsyncIterator[None]:
        try:
            yield
        except SQLAlchemyError as e:
            logger.error(f"Backing store failure: {e}")
            await self.db.rollback()
            raise StoreUnavailable("Service temporarily unavailable, please retry") from e

    async def _authorize(self, token: str) -> SessionCheck:
        async with self._store():
            check = await self.sessions.validate(token)
        if not check.is_valid:
            admin_sessions_rejected_total.labels(reason=check.status.value).inc()
            logger.warning(f"Admin request rejected: session {check.status.value}")
            raise Unauthorized("Session expired or invalid. Please log in again.")
        return check

    def _dispatch(self, coro: Coroutine[Any, Any, Any]) -> None:
        task = asyncio.create_task(self._swallow(coro))
        _background.add(task)
        task.add_done_callback(_background.discard)

    @staticmethod
    async def _swallow(coro: Coroutine[Any, Any, Any]) -> None:
        try:
            await coro
        except Exception as e:
            logger.error(f"Notification dispatch failed: {e}")

    def _notify(self, user_id: str | None, event: str, message: str) -> None:
        if self.notifier is None or not user_id:
            return
        self._dispatch(self.notifier.notify(user_id, event, message))

    def _alert(self, message: str) -> None:
        if self.notifier is None:
            return
        self._dispatch(self.notifier.alert_moderators(message))

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    async def login(self, username: str, password: str) -> IssuedSession:
        async with self._store():
            admin = await self.sessions.authenticate(username, password)
            if admin is None:
                admin_logins_total.labels(outcome="rejected").inc()
                logger.warning(f"Admin login rejected: username={username}")
                raise Unauthorized("Invalid credentials")
            issued = await self.sessions.issue(admin)
        admin_logins_total.labels(outcome="ok").inc()
        return issued

    async def logout(self, token: str) -> None:
        await self._authorize(token)
        async with self._store():
            await self.sessions.revoke(token)

    async def refresh(self, token: str) -> SessionCheck:
        await self._authorize(token)
        async with self._store():
            if not await self.sessions.refresh(token):
                raise Unauthorized("Session expired or invalid. Please log in again.")
            return await self.sessions.validate(token)

    async def profile(self, token: str) -> SessionCheck:
        return await self._authorize(token)

    # ------------------------------------------------------------------
    # Public report operations
    # ------------------------------------------------------------------

    async def submit_report(
        self,
        reporter_identity: str | None,
        content_id: str,
        reason: str,
        context: str | None = None,
        reported_user_id: str | None = None,
    ) -> SubmitResult:
        async with self._store():
            result = await self.ledger.submit(reporter_identity, content_id, reason, context, reported_user_id)
        reports_total.labels(reason=reason, created=str(result.created).lower()).inc()
        if result.created:
            self._alert(f"New report #{result.report_id} on content {content_id}: {reason}")
        return result

    async def revoke_report(self, reporter_identity: str | None, content_id: str) -> None:
        async with self._store():
            await self.ledger.revoke(reporter_identity, content_id)
        reports_revoked_total.inc()

    async def has_pending_report(self, content_id: str, reporter_identity: str | None = None) -> bool:
        async with self._store():
            return await self.ledger.has_pending(content_id, reporter_identity)

    async def ban_status(self, user_id: str) -> BanStatus:
        async with self._store():
            return await self.sanctions.ban_status(user_id)

    # ------------------------------------------------------------------
    # Moderation queue (read only)
    # ------------------------------------------------------------------

    async def _queue(self, status: str | None, limit: int, after_id: int) -> list[QueueEntry]:
        if limit < 1:
            raise ValidationError("Limit must be at least 1")

        reports: list[Report] = []
        listing = self.ledger.list_reports(status=status, page_size=min(limit, 100), after_id=after_id)
        async with aclosing(listing):
            async for report in listing:
                reports.append(report)
                if len(reports) >= limit:
                    break

        content_ids = {r.content_id for r in reports}
        contents: dict[str, Content] = {}
        if content_ids:
            rows = await self.db.execute(select(Content).where(Content.id.in_(content_ids)))
            contents = {c.id: c for c in rows.scalars().all()}

        author_ids = {c.author_id for c in contents.values() if c.author_id}
        author_ids |= {r.reported_user_id for r in reports if r.reported_user_id}
        banned = await self.sanctions.banned_among(author_ids)

        entries = []
        for report in reports:
            content = contents.get(report.content_id)
            author_id = report.reported_user_id or (content.author_id if content else None)
            entries.append(QueueEntry(report=report, content=content, author_banned=author_id in banned))
        return entries

    async def moderation_queue(
        self, token: str, status: str | None = "pending", limit: int = 50, after_id: int = 0
    ) -> list[QueueEntry]:
        """Reports after ``after_id`` joined with content and author ban state, oldest first."""
        await self._authorize(token)
        if status == "all":
            status = None
        async with self._store():
            return await self._queue(status, limit, after_id)

    async def moderation_page(
        self, token: str, status: str | None = "pending", limit: int = 50, after_id: int = 0
    ) -> QueuePage:
        """
        One page of the moderation queue.

        ``next_after_id`` is the cursor for the following page, None on the last one.
        """
        await self._authorize(token)
        if status == "all":
            status = None
        if limit < 1:
            raise ValidationError("Limit must be at least 1")
        async with self._store():
            # One extra row tells whether another page exists
            entries = await self._queue(status, limit + 1, after_id)
            counts = await self.ledger.count_by_status()

        has_more = len(entries) > limit
        entries = entries[:limit]
        return QueuePage(
            entries=entries,
            total=sum(counts.values()) if status is None else counts.get(status, 0),
            next_after_id=entries[-1].report.id if has_more else None,
        )

    async def report_detail(self, token: str, report_id: int) -> QueueEntry:
        await self._authorize(token)
        async with self._store():
            report = await self.ledger.get(report_id)
            content = (
                await self.db.execute(select(Content).where(Content.id == report.content_id))
            ).scalar_one_or_none()
            author_id = report.reported_user_id or (content.author_id if content else None)
            banned = await self.sanctions.banned_among({author_id} if author_id else set())
        return QueueEntry(report=report, content=content, author_banned=bool(banned))

    async def stats(self, token: str) -> ModerationStats:
        await self._authorize(token)
        async with self._store():
            counts = await self.ledger.count_by_status()
            # Approved, unflagged content counts towards neither figure
            query = select(Content).where(or_(Content.status != CONTENT_APPROVED, Content.is_flagged.is_(True)))
            moderated = (await self.db.execute(query)).scalars().all()
            sanctioned = (await self.db.execute(select(User).where(User.ban_date.is_not(None)))).scalars().all()
        now = self.clock()
        return ModerationStats(
            total_reports=sum(counts.values()),
            pending_reports=counts.get("pending", 0),
            resolved_reports=counts.get("resolved", 0),
            hidden_content=sum(1 for c in moderated if not c.is_visible),
            flagged_content=sum(1 for c in moderated if c.is_flagged),
            banned_users=sum(1 for u in sanctioned if u.is_banned_at(now)),
        )

    # ------------------------------------------------------------------
    # Moderation writes
    # ------------------------------------------------------------------

    async def take_action(self, token: str, report_id: int, action: str, notes: str | None = None) -> ActionOutcome:
        session = await self._authorize(token)
        async with self._store():
            outcome = await self.workflow.take_action(report_id, action, session.username, notes)

        moderation_actions_total.labels(action=outcome.content_status).inc()
        if outcome.content_status in (CONTENT_REJECTED, CONTENT_REMOVED):
            self._notify(
                outcome.author_id,
                f"content_{outcome.content_status}",
                f"Your post was {outcome.content_status} by a moderator." + (f" Notes: {notes}" if notes else ""),
            )
        return outcome

    async def ban_author_from_report(
        self,
        token: str,
        report_id: int,
        reason: str | None,
        ban_duration: str,
        expiry_date: datetime | None = None,
    ) -> BanOutcome:
        session = await self._authorize(token)
        try:
            async with self._store():
                outcome = await self.workflow.ban_author_from_report(
                    report_id, reason, ban_duration, session.username, expiry_date=expiry_date
                )
        except AmbiguousTarget:
            ambiguous_ban_targets_total.inc()
            raise

        bans_total.labels(ban_type=outcome.ban.ban_type or ban_duration, source="report").inc()
        self._notify(outcome.user_id, "account_banned", outcome.ban.message)
        return outcome

    async def ban_user(
        self, token: str, user_id: str, reason: str, ban_type: str, expiry_date: datetime | None = None
    ) -> BanStatus:
        session = await self._authorize(token)
        async with self._store():
            status = await self.sanctions.ban(user_id, reason, ban_type, expiry_date, banned_by=session.username)
        bans_total.labels(ban_type=ban_type, source="admin").inc()
        self._notify(user_id, "account_banned", status.message)
        return status

    async def edit_ban(
        self, token: str, user_id: str, reason: str, ban_type: str, expiry_date: datetime | None = None
    ) -> BanStatus:
        session = await self._authorize(token)
        async with self._store():
            status = await self.sanctions.edit_ban(user_id, reason, ban_type, expiry_date, edited_by=session.username)
        self._notify(user_id, "ban_updated", status.message)
        return status

    async def unban_user(self, token: str, user_id: str) -> UnbanResult:
        session = await self._authorize(token)
        async with self._store():
            result = await self.sanctions.unban(user_id, actor=session.username)
        unbans_total.labels(was_banned=str(result.was_banned).lower()).inc()
        if result.was_banned:
            self._notify(user_id, "account_unbanned", "Your account ban has been lifted.")
        return result

    async def user_history(self, token: str, user_id: str) -> tuple[BanStatus, list[ModerationAction]]:
        await self._authorize(token)
        async with self._store():
            status = await self.sanctions.ban_status(user_id)
            actions = await self.sanctions.history(user_id)
        return status, actions
