"""Admin session endpoints."""

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from apps.api.deps import get_admin_actions
from core.auth import admin_bearer_token
from moderation import AdminActions

router = APIRouter(prefix="/admin", tags=["admin"])


class LoginIn(BaseModel):
    username: str
    password: str


@router.post("/login")
async def login(body: LoginIn, actions: AdminActions = Depends(get_admin_actions)) -> dict[str, object]:
    """Exchange admin credentials for a bearer token valid for the session timeout."""
    issued = await actions.login(body.username, body.password)
    return {
        "token": issued.token,
        "token_type": "bearer",
        "expires_at": issued.expires_at.isoformat(),
        "admin": {"username": issued.username, "role": issued.role},
    }


@router.post("/logout")
async def logout(
    token: str = Depends(admin_bearer_token), actions: AdminActions = Depends(get_admin_actions)
) -> dict[str, str]:
    await actions.logout(token)
    return {"message": "Logout successful"}


@router.post("/refresh")
async def refresh(
    token: str = Depends(admin_bearer_token), actions: AdminActions = Depends(get_admin_actions)
) -> dict[str, object]:
    """Slide the session window forward from now."""
    check = await actions.refresh(token)
    return {"ok": True, "expires_at": check.expires_at.isoformat() if check.expires_at else None}


@router.get("/profile")
async def profile(
    token: str = Depends(admin_bearer_token), actions: AdminActions = Depends(get_admin_actions)
) -> dict[str, object]:
    check = await actions.profile(token)
    return {
        "admin": {"username": check.username, "role": check.role},
        "expires_at": check.expires_at.isoformat() if check.expires_at else None,
    }
