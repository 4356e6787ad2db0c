"""Notification service: in-app notifications for users, Telegram alerts for moderators."""

import logging

from aiogram import Bot
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.config import settings
from core.db import AsyncSessionLocal
from core.metrics import notifications_failed_total
from models import Notification

logger = logging.getLogger(__name__)


class Notifier:
    """Service for sending notifications. Never raises to the caller."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession] = AsyncSessionLocal) -> None:
        self.session_factory = session_factory
        self._bot: Bot | None = None

    @property
    def bot(self) -> Bot | None:
        if self._bot is None and settings.alerts_enabled:
            self._bot = Bot(token=settings.telegram_bot_token)
        return self._bot

    async def notify(self, user_id: str, event: str, message: str) -> bool:
        """
        Store an in-app notification for a user.

        Args:
            user_id: User receiving notification
            event: Event name, e.g. ``account_banned``
            message: Text shown to the user

        Returns:
            True if stored successfully
        """
        try:
            async with self.session_factory() as db:
                db.add(Notification(user_id=user_id, event=event, message=message))
                await db.commit()
            logger.info(f"Notification stored: user={user_id}, event={event}")
            return True

        except Exception as e:
            notifications_failed_total.labels(channel="in_app").inc()
            logger.error(f"Failed to store notification for user {user_id}: {e}")
            return False

    async def alert_moderators(self, message: str) -> bool:
        """
        Post an alert to the moderators' Telegram chat, if configured.

        Returns:
            True if sent successfully
        """
        bot = self.bot
        if bot is None:
            return False

        try:
            await bot.send_message(chat_id=settings.mod_chat_id, text=f"🚩 {message}")
            return True

        except Exception as e:
            notifications_failed_total.labels(channel="telegram").inc()
            logger.error(f"Failed to send moderator alert: {e}")
            return False

    async def close(self) -> None:
        """Close bot session."""
        if self._bot is not None:
            await self._bot.session.close()
            self._bot = None


# Global notifier instance
notifier = Notifier()
