"""User sanctions: ban, edit, unban and the derived is-banned read."""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.clock import Clock, utcnow
from models.safety import ModerationAction
from models.user import BAN_PERMANENT, BAN_TEMPORARY, BAN_TYPES, User
from moderation.errors import NotFound, ValidationError

logger = logging.getLogger(__name__)


@dataclass
class BanStatus:
    """Read-time view of a user's sanction."""

    user_id: str
    is_banned: bool
    ban_type: str | None = None
    reason: str | None = None
    banned_at: datetime | None = None
    expires_at: datetime | None = None
    banned_by: str | None = None

    @property
    def message(self) -> str:
        if not self.is_banned:
            return "Account is in good standing."
        if self.ban_type == BAN_TEMPORARY and self.expires_at is not None:
            return f"Your account is temporarily banned until {self.expires_at:%Y-%m-%d}. Reason: {self.reason}"
        return f"Your account has been permanently banned. Reason: {self.reason}"


@dataclass
class UnbanResult:
    user_id: str
    was_banned: bool


def as_naive_utc(value: datetime | None) -> datetime | None:
    """Normalise client-supplied datetimes to the naive UTC stored in the database."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


class SanctionStore:
    """Authoritative state for user bans.

    Writes are last-writer-wins: a second ban replaces the first, and
    concurrent ban/unban calls settle on whichever commits last.
    """

    def __init__(self, db: AsyncSession, clock: Clock = utcnow) -> None:
        self.db = db
        self.clock = clock

    async def _get_user(self, user_id: str) -> User:
        user = (await self.db.execute(select(User).where(User.id == user_id))).scalar_one_or_none()
        if user is None:
            raise NotFound(f"User {user_id} not found")
        return user

    def _validate(self, reason: str, ban_type: str, expiry_date: datetime | None) -> tuple[str, datetime | None]:
        reason = (reason or "").strip()
        if not reason:
            raise ValidationError("Ban reason is required")
        if ban_type not in BAN_TYPES:
            raise ValidationError(f"Invalid ban type. Must be one of: {', '.join(BAN_TYPES)}")
        if ban_type == BAN_PERMANENT:
            return reason, None

        expiry_date = as_naive_utc(expiry_date)
        if expiry_date is None:
            raise ValidationError("Temporary bans require an expiry date")
        if expiry_date <= self.clock():
            raise ValidationError("Ban expiry date must be in the future")
        return reason, expiry_date

    def _status(self, user: User) -> BanStatus:
        if not user.is_banned_at(self.clock()):
            return BanStatus(user_id=user.id, is_banned=False)
        return BanStatus(
            user_id=user.id,
            is_banned=True,
            ban_type=user.ban_type,
            reason=user.ban_reason,
            banned_at=user.ban_date,
            expires_at=user.ban_expiry_date,
            banned_by=user.banned_by,
        )

    async def ban(
        self,
        user_id: str,
        reason: str,
        ban_type: str,
        expiry_date: datetime | None = None,
        banned_by: str = "system",
        report_id: int | None = None,
    ) -> BanStatus:
        """Ban a user, replacing any existing ban."""
        reason, expiry_date = self._validate(reason, ban_type, expiry_date)
        user = await self._get_user(user_id)

        user.ban_reason = reason
        user.ban_type = ban_type
        user.ban_date = self.clock()
        user.ban_expiry_date = expiry_date
        user.banned_by = banned_by
        self.db.add(
            ModerationAction(target_user=user_id, report_id=report_id, action="ban", actor=banned_by, reason=reason)
        )
        await self.db.commit()

        logger.info(f"User banned: user={user_id}, type={ban_type}, expires={expiry_date}, by={banned_by}")
        return self._status(user)

    async def edit_ban(
        self,
        user_id: str,
        reason: str,
        ban_type: str,
        expiry_date: datetime | None = None,
        edited_by: str | None = None,
    ) -> BanStatus:
        """
        Rewrite the ban fields of a user.

        Does not require an existing ban: editing an unbanned user writes the
        fields and therefore bans them.
        """
        reason, expiry_date = self._validate(reason, ban_type, expiry_date)
        user = await self._get_user(user_id)

        if not user.is_banned_at(self.clock()):
            logger.warning(f"Editing ban of user without an active ban: user={user_id}")

        user.ban_reason = reason
        user.ban_type = ban_type
        user.ban_expiry_date = expiry_date
        if user.ban_date is None:
            user.ban_date = self.clock()
        if edited_by:
            user.banned_by = edited_by
        self.db.add(
            ModerationAction(target_user=user_id, action="edit_ban", actor=edited_by or "system", reason=reason)
        )
        await self.db.commit()

        logger.info(f"Ban edited: user={user_id}, type={ban_type}, expires={expiry_date}")
        return self._status(user)

    async def unban(self, user_id: str, actor: str | None = None) -> UnbanResult:
        """Clear the ban fields. Unbanning an unbanned user succeeds."""
        user = await self._get_user(user_id)
        was_banned = user.is_banned_at(self.clock())

        if user.ban_date is not None or user.ban_type is not None:
            user.ban_reason = None
            user.ban_type = None
            user.ban_date = None
            user.ban_expiry_date = None
            user.banned_by = None
            self.db.add(ModerationAction(target_user=user_id, action="unban", actor=actor or "system"))
            await self.db.commit()

        logger.info(f"User unbanned: user={user_id}, was_banned={was_banned}")
        return UnbanResult(user_id=user_id, was_banned=was_banned)

    async def is_banned(self, user_id: str) -> bool:
        """Pure read; a lapsed temporary ban is not banned."""
        return (await self._get_user(user_id)).is_banned_at(self.clock())

    async def ban_status(self, user_id: str) -> BanStatus:
        return self._status(await self._get_user(user_id))

    async def banned_among(self, user_ids: set[str]) -> set[str]:
        """Subset of ``user_ids`` currently banned. Unknown ids are ignored."""
        if not user_ids:
            return set()
        now = self.clock()
        users = (await self.db.execute(select(User).where(User.id.in_(user_ids)))).scalars().all()
        return {user.id for user in users if user.is_banned_at(now)}

    async def history(self, user_id: str) -> list[ModerationAction]:
        """Moderation actions targeting a user, newest first."""
        await self._get_user(user_id)
        result = await self.db.execute(
            select(ModerationAction)
            .where(ModerationAction.target_user == user_id)
            .order_by(ModerationAction.id.desc())
        )
        return list(result.scalars().all())
