"""Admin bearer sessions with a sliding, lazily evaluated expiry."""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.clock import Clock, utcnow
from core.config import settings
from core.security import generate_token, hash_token, verify_password
from models.admin import Admin, AdminSession

logger = logging.getLogger(__name__)


class SessionStatus(str, Enum):
    valid = "valid"
    expired = "expired"
    not_found = "not_found"


@dataclass
class SessionCheck:
    """Outcome of validating a bearer token."""

    status: SessionStatus
    username: str = ""
    role: str = ""
    admin_id: int | None = None
    expires_at: datetime | None = None

    @property
    def is_valid(self) -> bool:
        return self.status is SessionStatus.valid


@dataclass
class IssuedSession:
    """A freshly issued session. ``token`` is only ever available here."""

    token: str
    username: str
    role: str
    issued_at: datetime
    expires_at: datetime


class SessionGuard:
    """Issues, validates, refreshes and revokes admin sessions."""

    def __init__(self, db: AsyncSession, clock: Clock = utcnow, timeout: timedelta | None = None) -> None:
        self.db = db
        self.clock = clock
        self.timeout = timeout if timeout is not None else timedelta(hours=settings.session_timeout_hours)

    async def authenticate(self, username: str, password: str) -> Admin | None:
        """Return the active admin matching the credentials, or None."""
        if not username or not password:
            return None
        admin = (await self.db.execute(select(Admin).where(Admin.username == username))).scalar_one_or_none()
        if admin is None or not admin.is_active:
            return None
        if not verify_password(password, admin.password_hash):
            return None
        return admin

    async def issue(self, admin: Admin) -> IssuedSession:
        """Create a new session. Tokens are never reused."""
        token = generate_token()
        now = self.clock()
        self.db.add(
            AdminSession(
                admin_id=admin.id,
                token_hash=hash_token(token),
                username=admin.username,
                role=admin.role,
                issued_at=now,
            )
        )
        await self.db.commit()

        logger.info(f"Admin session issued: username={admin.username}")
        return IssuedSession(
            token=token, username=admin.username, role=admin.role, issued_at=now, expires_at=now + self.timeout
        )

    async def _lookup(self, token: str) -> tuple[AdminSession, Admin] | None:
        if not token:
            return None
        row = (
            await self.db.execute(
                select(AdminSession, Admin)
                .join(Admin, Admin.id == AdminSession.admin_id)
                .where(AdminSession.token_hash == hash_token(token))
            )
        ).first()
        if row is None:
            return None
        return row[0], row[1]

    def _expired(self, session: AdminSession, now: datetime) -> bool:
        return now - session.issued_at > self.timeout

    async def validate(self, token: str) -> SessionCheck:
        """
        Check a bearer token without writing anything.

        Returns:
            ``expired`` when a record exists but is older than the timeout,
            ``not_found`` for unknown tokens or deactivated admins
        """
        found = await self._lookup(token)
        if found is None:
            return SessionCheck(status=SessionStatus.not_found)

        session, admin = found
        if not admin.is_active:
            return SessionCheck(status=SessionStatus.not_found)
        if self._expired(session, self.clock()):
            return SessionCheck(status=SessionStatus.expired, username=session.username, role=session.role)

        return SessionCheck(
            status=SessionStatus.valid,
            username=session.username,
            role=session.role,
            admin_id=session.admin_id,
            expires_at=session.issued_at + self.timeout,
        )

    async def refresh(self, token: str) -> bool:
        """Slide the expiry window forward. No-op returning False once expired."""
        found = await self._lookup(token)
        if found is None:
            return False

        session, admin = found
        now = self.clock()
        if not admin.is_active or self._expired(session, now):
            return False

        session.issued_at = now
        await self.db.commit()
        return True

    async def revoke(self, token: str) -> bool:
        """Logout: destroy the session record."""
        if not token:
            return False
        result = await self.db.execute(delete(AdminSession).where(AdminSession.token_hash == hash_token(token)))
        await self.db.commit()
        return bool(result.rowcount)
