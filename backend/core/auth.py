"""
Identity context for the goal API.

Verifies HS256 Bearer tokens when AUTH_JWT_SECRET is configured and
falls back to the X-User-Id header (local development and tests).
The returned user_id is trusted verbatim by every service.
"""
from fastapi import Header, HTTPException, Request
from typing import Optional
import jwt
import logging

from backend.core.config import settings

logger = logging.getLogger("goalkeeper")


def verify_jwt(token: str, secret: Optional[str] = None) -> Optional[str]:
    """
    Verify a Bearer JWT and extract user_id from its 'sub' claim.

    Returns None when no secret is configured.

    Raises:
        HTTPException 401: Invalid or expired token
    """
    key = secret or settings.AUTH_JWT_SECRET
    if not key:
        logger.debug("No AUTH_JWT_SECRET configured, skipping JWT validation")
        return None

    try:
        payload = jwt.decode(
            token,
            key,
            algorithms=["HS256"],
            options={"verify_signature": True, "verify_exp": True},
        )
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.InvalidTokenError as e:
        logger.debug(f"Invalid token: {e}")
        raise HTTPException(status_code=401, detail="Invalid token")

    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(status_code=401, detail="Token has no subject")
    return str(user_id)


async def get_current_user_id(
    request: Request,
    x_user_id: Optional[str] = Header(None, description="Development/test user ID"),
) -> str:
    """
    Extract current user ID from request context.

    Priority:
    1. Bearer JWT from Authorization header (when a secret is configured)
    2. X-User-Id header
    3. Raise 401 Unauthorized
    """
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        user_id = verify_jwt(auth_header[7:])
        if user_id:
            return user_id

    if x_user_id and x_user_id.strip():
        return x_user_id.strip()

    raise HTTPException(
        status_code=401,
        detail="Missing Authorization (Bearer JWT) or X-User-Id header",
    )
