"""Tests for report submission, revoke and listing."""

import pytest
from sqlalchemy import func, select

from models import Content, Report
from moderation.errors import NotFound, ValidationError
from moderation.ledger import ReportLedger


@pytest.fixture
async def ledger(db, seeded, clock) -> ReportLedger:
    return ReportLedger(db, clock=clock)


async def _pending_count(db, reporter: str, content_id: str) -> int:
    result = await db.execute(
        select(func.count(Report.id)).where(
            Report.reporter_identity == reporter, Report.content_id == content_id, Report.status == "pending"
        )
    )
    return result.scalar()


class TestSubmit:
    async def test_first_submit_creates_pending_report(self, ledger, clock):
        result = await ledger.submit("u1", "c1", "Spam", context="Posted five times")

        assert result.created is True
        report = await ledger.get(result.report_id)
        assert report.status == "pending"
        assert report.reporter_identity == "u1"
        assert report.context == "Posted five times"
        assert report.created_at == clock()

    async def test_resubmit_while_pending_is_idempotent(self, ledger, db):
        first = await ledger.submit("u1", "c1", "Spam")
        second = await ledger.submit("u1", "c1", "Harassment")

        assert second.created is False
        assert second.report_id == first.report_id
        assert await _pending_count(db, "u1", "c1") == 1

    async def test_other_reporters_get_their_own_report(self, ledger):
        first = await ledger.submit("u1", "c1", "Spam")
        second = await ledger.submit("u2", "c1", "Spam")
        assert second.created is True
        assert second.report_id != first.report_id

    async def test_missing_reporter_defaults_to_anonymous(self, ledger):
        result = await ledger.submit(None, "c1", "Spam")
        assert (await ledger.get(result.report_id)).reporter_identity == "Anonymous"
        assert (await ledger.submit("  ", "c1", "Spam")).created is False

    async def test_unknown_reason(self, ledger):
        with pytest.raises(ValidationError):
            await ledger.submit("u1", "c1", "Boring")

    async def test_unknown_content(self, ledger):
        with pytest.raises(NotFound):
            await ledger.submit("u1", "nope", "Spam")

    async def test_resolved_report_allows_new_cycle(self, ledger, db):
        first = await ledger.submit("u1", "c1", "Spam")
        report = await ledger.get(first.report_id)
        report.status = "resolved"
        await db.commit()

        again = await ledger.submit("u1", "c1", "Spam")
        assert again.created is True
        assert again.report_id != first.report_id


class TestRevoke:
    async def test_revoke_then_resubmit_creates(self, ledger, db):
        first = await ledger.submit("u1", "c1", "Spam")
        await ledger.revoke("u1", "c1")
        assert await _pending_count(db, "u1", "c1") == 0

        again = await ledger.submit("u1", "c1", "Spam")
        assert again.created is True
        assert again.report_id != first.report_id

    async def test_revoke_nothing_raises_not_found(self, ledger):
        with pytest.raises(NotFound):
            await ledger.revoke("u1", "c1")

    async def test_revoke_only_touches_own_report(self, ledger, db):
        await ledger.submit("u1", "c1", "Spam")
        await ledger.submit("u2", "c1", "Spam")
        await ledger.revoke("u1", "c1")
        assert await _pending_count(db, "u2", "c1") == 1

    async def test_has_pending(self, ledger):
        assert await ledger.has_pending("c1") is False
        await ledger.submit("u1", "c1", "Spam")
        assert await ledger.has_pending("c1") is True
        assert await ledger.has_pending("c1", "u1") is True
        assert await ledger.has_pending("c1", "u2") is False


class TestListing:
    async def test_pages_through_all_pending(self, ledger, db, session_factory):
        async with session_factory() as session:
            session.add_all([Report(content_id="c1", reporter_identity=f"r{i}", reason="Spam") for i in range(7)])
            session.add(Report(content_id="c2", reporter_identity="done", reason="Spam", status="resolved"))
            await session.commit()

        listed = [r.reporter_identity async for r in ledger.list_reports(page_size=3)]
        assert listed == [f"r{i}" for i in range(7)]

    async def test_listing_is_restartable(self, ledger):
        await ledger.submit("u1", "c1", "Spam")
        await ledger.submit("u2", "c1", "Spam")

        first = [r.id async for r in ledger.list_reports()]
        second = [r.id async for r in ledger.list_reports()]
        assert first == second and len(first) == 2

    async def test_status_filter(self, ledger, db):
        result = await ledger.submit("u1", "c1", "Spam")
        await ledger.submit("u2", "c1", "Spam")
        (await ledger.get(result.report_id)).status = "resolved"
        await db.commit()

        assert [r.reporter_identity async for r in ledger.list_reports(status="resolved")] == ["u1"]
        assert len([r async for r in ledger.list_reports(status=None)]) == 2

    async def test_invalid_status_filter(self, ledger):
        with pytest.raises(ValidationError):
            [r async for r in ledger.list_reports(status="archived")]

    async def test_empty_listing(self, ledger):
        assert [r async for r in ledger.list_reports()] == []

    async def test_count_by_status(self, ledger):
        await ledger.submit("u1", "c1", "Spam")
        assert await ledger.count_by_status() == {"pending": 1, "resolved": 0}

    async def test_page_size_below_one(self, ledger):
        await ledger.submit("u1", "c1", "Spam")
        for page_size in (0, -1):
            with pytest.raises(ValidationError):
                [r async for r in ledger.list_reports(page_size=page_size)]

    async def test_after_id_cursor(self, ledger):
        ids = [(await ledger.submit(f"r{i}", "c1", "Spam")).report_id for i in range(4)]
        assert [r.id async for r in ledger.list_reports(page_size=2, after_id=ids[1])] == ids[2:]


class TestIdentityAndIds:
    async def test_padded_identity_matches_stored_report(self, ledger):
        await ledger.submit("u1", "c1", "Spam")
        assert await ledger.has_pending("c1", " u1 ") is True
        assert (await ledger.submit("u1 ", "c1", "Spam")).created is False

    async def test_ids_are_not_reused_after_revoke(self, ledger):
        first = await ledger.submit("u1", "c1", "Spam")
        await ledger.revoke("u1", "c1")
        second = await ledger.submit("u1", "c1", "Spam")
        assert second.report_id > first.report_id


class TestFlags:
    async def _flags(self, session_factory, content_id="c1") -> tuple[int, bool]:
        async with session_factory() as fresh:
            content = (await fresh.execute(select(Content).where(Content.id == content_id))).scalar_one()
            return content.flag_count, content.is_flagged

    async def test_new_content_is_unflagged(self, ledger, session_factory):
        assert await self._flags(session_factory) == (0, False)

    async def test_each_new_report_raises_flag_count(self, ledger, session_factory):
        await ledger.submit("u1", "c1", "Spam")
        await ledger.submit("u1", "c1", "Spam")
        assert await self._flags(session_factory) == (1, True)

        await ledger.submit("u2", "c1", "Harassment")
        assert await self._flags(session_factory) == (2, True)

    async def test_flagging_leaves_status_alone(self, ledger, db):
        await ledger.submit("u1", "c1", "Spam")
        status = (await db.execute(select(Content.status).where(Content.id == "c1"))).scalar_one()
        assert status == "approved"

    async def test_revoke_lowers_count_and_unflags_at_zero(self, ledger, session_factory):
        await ledger.submit("u1", "c1", "Spam")
        await ledger.submit("u2", "c1", "Spam")

        await ledger.revoke("u1", "c1")
        assert await self._flags(session_factory) == (1, True)

        await ledger.revoke("u2", "c1")
        assert await self._flags(session_factory) == (0, False)

    async def test_failed_revoke_leaves_flags(self, ledger, session_factory):
        await ledger.submit("u1", "c1", "Spam")
        with pytest.raises(NotFound):
            await ledger.revoke("u2", "c1")
        assert await self._flags(session_factory) == (1, True)
