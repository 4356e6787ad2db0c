"""Database models."""

from models.admin import Admin, AdminSession
from models.content import Content
from models.notification import Notification
from models.safety import ModerationAction, Report
from models.user import User

__all__ = [
    "Admin",
    "AdminSession",
    "User",
    "Content",
    "Report",
    "ModerationAction",
    "Notification",
]
