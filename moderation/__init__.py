"""Content moderation and user sanction lifecycle."""

from moderation.admin_api import AdminActions, error_response
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
from moderation.ledger import ReportLedger
from moderation.sanctions import SanctionStore
from moderation.sessions import SessionGuard
from moderation.workflow import ModerationWorkflow

__all__ = [
    "AdminActions",
    "error_response",
    "ModerationWorkflow",
    "ReportLedger",
    "SanctionStore",
    "SessionGuard",
    "ModerationError",
    "ValidationError",
    "NotFound",
    "Unauthorized",
    "InvalidTransition",
    "AmbiguousTarget",
    "Conflict",
    "StoreUnavailable",
]
