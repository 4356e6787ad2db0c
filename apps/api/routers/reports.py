"""Public report endpoints: submit, revoke and check."""

import logging
import time

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from pydantic import BaseModel

from apps.api.deps import RateLimiter, get_admin_actions, get_rate_limiter
from core.config import settings
from core.metrics import reports_latency_seconds
from moderation import AdminActions
from moderation.ledger import ANONYMOUS, normalize_reporter

router = APIRouter(prefix="/report", tags=["reports"])
logger = logging.getLogger(__name__)


def _rate_limit_key(reporter: str, request: Request) -> str:
    """Per reporter; anonymous reporters are told apart by client address."""
    if reporter == ANONYMOUS:
        host = request.client.host if request.client else "unknown"
        return f"rl:report:anon:{host}"
    return f"rl:report:{reporter}"


class ReportIn(BaseModel):
    """Input model for creating a report."""

    reporter_identity: str | None = None
    content_id: str
    reason: str
    context: str | None = None
    reported_user_id: str | None = None


class RevokeIn(BaseModel):
    """Input model for revoking a pending report."""

    reporter_identity: str | None = None
    content_id: str


@router.post("", status_code=201)
async def create_report(
    body: ReportIn,
    request: Request,
    response: Response,
    actions: AdminActions = Depends(get_admin_actions),
    rate_limit: RateLimiter = Depends(get_rate_limiter),
) -> dict[str, object]:
    """
    Report a piece of content.

    Submitting again while the first report is pending is not an error: it
    returns 200 with the existing report id and ``created: false``.

    Returns:
        {"created": bool, "report_id": int, "message": str}

    Raises:
        HTTPException: 429 when the reporter is over the rate limit
    """
    t0 = time.perf_counter()
    try:
        # Repeat submits of a pending report are answered idempotently, not throttled
        reporter = normalize_reporter(body.reporter_identity)
        if not await actions.has_pending_report(body.content_id, reporter):
            if not await rate_limit(_rate_limit_key(reporter, request), settings.report_rate_limit_seconds):
                raise HTTPException(429, "Too many reports. Please wait before reporting again.")

        result = await actions.submit_report(
            body.reporter_identity, body.content_id, body.reason, body.context, body.reported_user_id
        )
        if not result.created:
            response.status_code = 200
            return {"created": False, "report_id": result.report_id, "message": "already reported"}

        return {"created": True, "report_id": result.report_id, "message": "Report submitted successfully"}

    finally:
        reports_latency_seconds.observe(time.perf_counter() - t0)


@router.post("/revoke")
async def revoke_report(body: RevokeIn, actions: AdminActions = Depends(get_admin_actions)) -> dict[str, object]:
    """Withdraw the caller's pending report. 404 means there was nothing to revoke."""
    await actions.revoke_report(body.reporter_identity, body.content_id)
    return {"ok": True, "message": "Report revoked successfully"}


@router.get("/check")
async def check_report(
    content_id: str,
    reporter_identity: str | None = None,
    actions: AdminActions = Depends(get_admin_actions),
) -> dict[str, bool]:
    """Whether the content (optionally: from this reporter) has a pending report."""
    return {"has_pending_report": await actions.has_pending_report(content_id, reporter_identity)}
