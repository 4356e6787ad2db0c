"""Error taxonomy for the moderation core.

Components raise these for failures; idempotent outcomes (already reported,
already unbanned, lapsed ban) are returned as results instead. The admin
facade is the only place that turns them into HTTP status codes.
"""


class ModerationError(Exception):
    """Base class for moderation failures."""

    code = "moderation_error"

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message or self.code


class ValidationError(ModerationError):
    """Bad input shape or values, e.g. a missing ban reason."""

    code = "validation_error"


class NotFound(ModerationError):
    """Referenced entity does not exist."""

    code = "not_found"


class Unauthorized(ModerationError):
    """Session missing, unknown or expired."""

    code = "unauthorized"


class InvalidTransition(ModerationError):
    """State machine rule violated, e.g. resolving a resolved report."""

    code = "invalid_transition"


class AmbiguousTarget(ModerationError):
    """The author behind a report cannot be resolved to a user id."""

    code = "ambiguous_target"


class Conflict(ModerationError):
    """Reserved for optimistic-lock failures."""

    code = "conflict"


class StoreUnavailable(ModerationError):
    """The backing store failed while serving a request."""

    code = "store_unavailable"
