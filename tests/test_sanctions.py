"""Tests for bans, ban edits, unbans and the derived is-banned read."""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select

from models import ModerationAction, User
from moderation.errors import NotFound, ValidationError
from moderation.sanctions import SanctionStore


@pytest.fixture
async def store(db, seeded, clock) -> SanctionStore:
    return SanctionStore(db, clock=clock)


async def _action_count(db) -> int:
    return (await db.execute(select(func.count(ModerationAction.id)))).scalar()


class TestBan:
    async def test_permanent_ban(self, store, clock):
        status = await store.ban("author", "Hate speech", "permanent", banned_by="admin")

        assert status.is_banned
        assert status.ban_type == "permanent"
        assert status.expires_at is None
        assert status.banned_at == clock()
        assert await store.is_banned("author")

    async def test_permanent_ban_ignores_expiry(self, store, clock):
        status = await store.ban("author", "Spam", "permanent", expiry_date=clock() + timedelta(days=1))
        assert status.expires_at is None

    async def test_temporary_ban(self, store, clock):
        expiry = clock() + timedelta(days=3)
        status = await store.ban("author", "Spam", "temporary", expiry_date=expiry, banned_by="admin")

        assert status.is_banned
        assert status.expires_at == expiry
        assert status.banned_by == "admin"

    async def test_timezone_aware_expiry_is_normalised(self, store, clock):
        expiry = (clock() + timedelta(days=1)).replace(tzinfo=timezone.utc)
        status = await store.ban("author", "Spam", "temporary", expiry_date=expiry)
        assert status.expires_at == clock() + timedelta(days=1)
        assert status.expires_at.tzinfo is None

    @pytest.mark.parametrize("reason", ["", "   ", None])
    async def test_empty_reason_rejected(self, store, reason):
        with pytest.raises(ValidationError):
            await store.ban("author", reason, "permanent")

    async def test_unknown_ban_type_rejected(self, store):
        with pytest.raises(ValidationError):
            await store.ban("author", "Spam", "forever")

    async def test_temporary_without_expiry_rejected(self, store):
        with pytest.raises(ValidationError):
            await store.ban("author", "Spam", "temporary")

    async def test_temporary_expiry_must_be_strictly_future(self, store, clock):
        with pytest.raises(ValidationError):
            await store.ban("author", "Spam", "temporary", expiry_date=clock())
        with pytest.raises(ValidationError):
            await store.ban("author", "Spam", "temporary", expiry_date=clock() - timedelta(minutes=1))

    async def test_unknown_user(self, store):
        with pytest.raises(NotFound):
            await store.ban("ghost", "Spam", "permanent")

    async def test_reban_replaces_previous_ban(self, store, clock):
        await store.ban("author", "First", "permanent", banned_by="admin")
        clock.advance(hours=1)
        status = await store.ban(
            "author", "Second", "temporary", expiry_date=clock() + timedelta(days=2), banned_by="other"
        )

        assert status.reason == "Second"
        assert status.ban_type == "temporary"
        assert status.banned_by == "other"
        assert status.banned_at == clock()

    async def test_ban_is_recorded_in_history(self, store):
        await store.ban("author", "Spam", "permanent", banned_by="admin")
        history = await store.history("author")
        assert [(a.action, a.actor, a.reason) for a in history] == [("ban", "admin", "Spam")]


class TestLazyExpiry:
    async def test_lapsed_temporary_ban_reads_as_not_banned_without_write(self, store, db, session_factory, clock):
        expiry = clock() + timedelta(days=7)
        await store.ban("author", "Spam", "temporary", expiry_date=expiry)
        actions_before = await _action_count(db)

        clock.advance(days=7)
        assert await store.is_banned("author") is False
        assert (await store.ban_status("author")).is_banned is False

        assert not db.dirty and not db.new
        assert await _action_count(db) == actions_before
        async with session_factory() as fresh:
            user = (await fresh.execute(select(User).where(User.id == "author"))).scalar_one()
            assert user.ban_type == "temporary"
            assert user.ban_expiry_date == expiry

    async def test_banned_until_the_last_second(self, store, clock):
        await store.ban("author", "Spam", "temporary", expiry_date=clock() + timedelta(days=1))
        clock.advance(days=1, seconds=-1)
        assert await store.is_banned("author") is True

    async def test_never_banned_user(self, store):
        assert await store.is_banned("u1") is False

    async def test_is_banned_unknown_user(self, store):
        with pytest.raises(NotFound):
            await store.is_banned("ghost")

    async def test_banned_among(self, store, clock):
        await store.ban("author", "Spam", "permanent")
        await store.ban("u2", "Spam", "temporary", expiry_date=clock() + timedelta(hours=1))
        clock.advance(hours=2)
        assert await store.banned_among({"author", "u1", "u2", "ghost"}) == {"author"}
        assert await store.banned_among(set()) == set()


class TestEditBan:
    async def test_edit_existing_ban_keeps_ban_date(self, store, clock):
        await store.ban("author", "Spam", "permanent", banned_by="admin")
        banned_at = clock()
        clock.advance(hours=3)

        status = await store.edit_ban("author", "Spam (edited)", "temporary", expiry_date=clock() + timedelta(days=1))

        assert status.reason == "Spam (edited)"
        assert status.ban_type == "temporary"
        assert status.banned_at == banned_at
        assert status.banned_by == "admin"

    async def test_edit_without_existing_ban_still_writes(self, store, clock):
        status = await store.edit_ban("u1", "Late edit", "permanent", edited_by="admin")
        assert status.is_banned
        assert status.banned_at == clock()

    async def test_edit_validates_like_ban(self, store):
        with pytest.raises(ValidationError):
            await store.edit_ban("author", "", "permanent")
        with pytest.raises(ValidationError):
            await store.edit_ban("author", "Spam", "temporary")


class TestUnban:
    async def test_unban_clears_fields(self, store, db):
        await store.ban("author", "Spam", "permanent")
        result = await store.unban("author", actor="admin")

        assert result.was_banned is True
        assert await store.is_banned("author") is False
        user = (await db.execute(select(User).where(User.id == "author"))).scalar_one()
        assert user.ban_date is None and user.ban_reason is None and user.ban_type is None

    async def test_unban_is_idempotent(self, store):
        first = await store.unban("u1")
        second = await store.unban("u1")
        assert first.was_banned is False
        assert second.was_banned is False

    async def test_unban_twice_after_ban(self, store):
        await store.ban("author", "Spam", "permanent")
        assert (await store.unban("author")).was_banned is True
        assert (await store.unban("author")).was_banned is False

    async def test_unban_unknown_user(self, store):
        with pytest.raises(NotFound):
            await store.unban("ghost")

    async def test_history_newest_first(self, store):
        await store.ban("author", "Spam", "permanent", banned_by="admin")
        await store.unban("author", actor="admin")
        assert [a.action for a in await store.history("author")] == ["unban", "ban"]


def test_ban_message_for_temporary_ban():
    from moderation.sanctions import BanStatus

    status = BanStatus(
        user_id="u1", is_banned=True, ban_type="temporary", reason="Spam", expires_at=datetime(2026, 3, 8)
    )
    assert status.message == "Your account is temporarily banned until 2026-03-08. Reason: Spam"
