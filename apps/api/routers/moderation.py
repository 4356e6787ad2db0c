"""Admin moderation queue and review endpoints."""

from datetime import datetime
from typing import Literal

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from apps.api.deps import get_admin_actions
from core.auth import admin_bearer_token
from moderation import AdminActions
from moderation.admin_api import QueueEntry

router = APIRouter(tags=["moderation"])


class ActionIn(BaseModel):
    """Review decision on a report."""

    action: str  # approve|reject|remove
    notes: str | None = None


class BanAuthorIn(BaseModel):
    """Ban the author of the reported content."""

    reason: str | None = None
    ban_duration: Literal["temporary", "permanent"] = "temporary"
    expiry_date: datetime | None = None


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _entry_to_dict(entry: QueueEntry) -> dict[str, object]:
    report, content = entry.report, entry.content
    return {
        "id": report.id,
        "content_id": report.content_id,
        "reporter_identity": report.reporter_identity,
        "reason": report.reason,
        "context": report.context,
        "status": report.status,
        "resolution": report.resolution,
        "reviewed_by": report.reviewed_by,
        "reviewed_at": _iso(report.reviewed_at),
        "admin_notes": report.admin_notes,
        "created_at": _iso(report.created_at),
        "content": (
            {
                "id": content.id,
                "title": content.title,
                "status": content.status,
                "author_id": content.author_id,
                "author_name": content.author_name,
                "visible": content.is_visible,
                "is_flagged": content.is_flagged,
                "flag_count": content.flag_count,
            }
            if content
            else None
        ),
        "reported_user_id": report.reported_user_id or (content.author_id if content else None),
        "author_banned": entry.author_banned,
    }


@router.get("/reports")
async def list_reports(
    status: Literal["pending", "resolved", "all"] = "pending",
    limit: int = Query(50, ge=1, le=500),
    after_id: int = Query(0, ge=0),
    token: str = Depends(admin_bearer_token),
    actions: AdminActions = Depends(get_admin_actions),
) -> dict[str, object]:
    """
    Moderation queue: reports joined with their content and the author's ban state.

    Pass ``next_after_id`` from one response as ``after_id`` to get the next page.
    """
    page = await actions.moderation_page(token, status=status, limit=limit, after_id=after_id)
    return {
        "reports": [_entry_to_dict(e) for e in page.entries],
        "count": len(page.entries),
        "total": page.total,
        "has_more": page.has_more,
        "next_after_id": page.next_after_id,
    }


@router.get("/reports/{report_id}")
async def get_report(
    report_id: int, token: str = Depends(admin_bearer_token), actions: AdminActions = Depends(get_admin_actions)
) -> dict[str, object]:
    return _entry_to_dict(await actions.report_detail(token, report_id))


@router.post("/reports/{report_id}/action")
async def take_action(
    report_id: int,
    body: ActionIn,
    token: str = Depends(admin_bearer_token),
    actions: AdminActions = Depends(get_admin_actions),
) -> dict[str, object]:
    """Approve, reject or remove the reported content and resolve the report."""
    outcome = await actions.take_action(token, report_id, body.action, body.notes)
    return {
        "message": f"Report {outcome.content_status} successfully",
        "report_id": outcome.report_id,
        "report_status": outcome.report_status,
        "content_id": outcome.content_id,
        "content_status": outcome.content_status,
        "reviewed_by": outcome.reviewed_by,
        "reviewed_at": _iso(outcome.reviewed_at),
    }


@router.post("/reports/{report_id}/ban-author")
async def ban_author(
    report_id: int,
    body: BanAuthorIn,
    token: str = Depends(admin_bearer_token),
    actions: AdminActions = Depends(get_admin_actions),
) -> dict[str, object]:
    """Ban the author of the reported content. 422 means the author must be picked manually."""
    outcome = await actions.ban_author_from_report(
        token, report_id, body.reason, body.ban_duration, expiry_date=body.expiry_date
    )
    return {
        "message": "User banned successfully",
        "report_id": outcome.report_id,
        "user": {
            "id": outcome.user_id,
            "is_banned": outcome.ban.is_banned,
            "ban_type": outcome.ban.ban_type,
            "ban_reason": outcome.ban.reason,
            "ban_expiry_date": _iso(outcome.ban.expires_at),
        },
    }


@router.get("/moderation/stats")
async def moderation_stats(
    token: str = Depends(admin_bearer_token), actions: AdminActions = Depends(get_admin_actions)
) -> dict[str, int]:
    stats = await actions.stats(token)
    return {
        "total_reports": stats.total_reports,
        "pending_reports": stats.pending_reports,
        "resolved_reports": stats.resolved_reports,
        "hidden_content": stats.hidden_content,
        "flagged_content": stats.flagged_content,
        "banned_users": stats.banned_users,
    }
