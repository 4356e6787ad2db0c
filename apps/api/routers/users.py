"""User sanction endpoints."""

from datetime import datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from apps.api.deps import get_admin_actions
from core.auth import admin_bearer_token
from moderation import AdminActions
from moderation.sanctions import BanStatus

router = APIRouter(prefix="/users", tags=["users"])


class BanIn(BaseModel):
    """Ban parameters. ``expiry_date`` is required for temporary bans."""

    reason: str
    ban_type: str = "permanent"  # permanent|temporary
    expiry_date: datetime | None = None


def _ban_to_dict(status: BanStatus) -> dict[str, object]:
    return {
        "user_id": status.user_id,
        "is_banned": status.is_banned,
        "ban_type": status.ban_type,
        "ban_reason": status.reason,
        "ban_date": status.banned_at.isoformat() if status.banned_at else None,
        "ban_expiry_date": status.expires_at.isoformat() if status.expires_at else None,
        "banned_by": status.banned_by,
    }


@router.post("/{user_id}/ban")
async def ban_user(
    user_id: str,
    body: BanIn,
    token: str = Depends(admin_bearer_token),
    actions: AdminActions = Depends(get_admin_actions),
) -> dict[str, object]:
    """Ban a user. Re-banning replaces the previous ban."""
    status = await actions.ban_user(token, user_id, body.reason, body.ban_type, body.expiry_date)
    return {"message": "User banned successfully", "user": _ban_to_dict(status)}


@router.put("/{user_id}/ban")
async def edit_ban(
    user_id: str,
    body: BanIn,
    token: str = Depends(admin_bearer_token),
    actions: AdminActions = Depends(get_admin_actions),
) -> dict[str, object]:
    """Update ban reason, type or expiry."""
    status = await actions.edit_ban(token, user_id, body.reason, body.ban_type, body.expiry_date)
    return {"message": "Ban details updated successfully", "user": _ban_to_dict(status)}


@router.post("/{user_id}/unban")
async def unban_user(
    user_id: str, token: str = Depends(admin_bearer_token), actions: AdminActions = Depends(get_admin_actions)
) -> dict[str, object]:
    """Lift a ban. Succeeds for users that were not banned."""
    result = await actions.unban_user(token, user_id)
    message = "User unbanned successfully" if result.was_banned else "User was not banned"
    return {"ok": True, "message": message, "was_banned": result.was_banned}


@router.get("/{user_id}/moderation")
async def moderation_history(
    user_id: str, token: str = Depends(admin_bearer_token), actions: AdminActions = Depends(get_admin_actions)
) -> dict[str, object]:
    status, history = await actions.user_history(token, user_id)
    return {
        "ban": _ban_to_dict(status),
        "actions": [
            {
                "id": a.id,
                "action": a.action,
                "actor": a.actor,
                "reason": a.reason,
                "report_id": a.report_id,
                "content_id": a.content_id,
                "created_at": a.created_at.isoformat(),
            }
            for a in history
        ],
    }


@router.get("/{user_id}/ban-status")
async def ban_status(user_id: str, actions: AdminActions = Depends(get_admin_actions)) -> dict[str, object]:
    """Public ban check used by login and content-visibility callers."""
    status = await actions.ban_status(user_id)
    return {**_ban_to_dict(status), "message": status.message}
