"""Authentication utilities for admin API endpoints."""

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

# Bearer security for admin endpoints; validation happens in the admin facade
_security = HTTPBearer(auto_error=False)


async def admin_bearer_token(credentials: HTTPAuthorizationCredentials | None = Depends(_security)) -> str:
    """
    Extract the admin bearer token from the Authorization header.

    Missing or malformed headers yield an empty token, which the admin facade
    rejects with the same 401 as an unknown or expired one.

    Args:
        credentials: Parsed ``Authorization: Bearer <token>`` header

    Returns:
        Raw token string, or "" when absent
    """
    if credentials is None or credentials.scheme.lower() != "bearer":
        return ""
    return credentials.credentials.strip()
