import logging
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from jose import JWTError, jwt
from pydantic import BaseModel

from . import config
from .roles import has_permission

logger = logging.getLogger(__name__)


class AuthContext(BaseModel):
    """Who is calling, as stated by the identity provider's session token."""

    user_id: str
    role: Optional[str] = None
    school_id: Optional[str] = None
    state_id: Optional[str] = None
    team_id: Optional[str] = None


def _session_token(request: Request) -> Optional[str]:
    header = request.headers.get("Authorization", "")
    if header.lower().startswith("bearer "):
        return header[7:].strip() or None
    return request.cookies.get(config.SESSION_COOKIE_NAME)


def decode_session_token(token: str) -> Optional[AuthContext]:
    """Verify a session token and read its claims; None when invalid."""
    if not config.CLERK_JWT_KEY:
        logger.debug("CLERK_JWT_KEY not set; treating request as anonymous")
        return None
    try:
        claims = jwt.decode(
            token,
            config.CLERK_JWT_KEY,
            algorithms=config.CLERK_JWT_ALGORITHMS,
            options={"verify_aud": False},
        )
    except JWTError as exc:
        logger.info("Rejected session token: %s", exc)
        return None

    user_id = claims.get("sub")
    if not user_id:
        return None
    metadata = claims.get("metadata") or {}
    return AuthContext(
        user_id=user_id,
        role=metadata.get("role"),
        school_id=metadata.get("schoolId"),
        state_id=metadata.get("stateId"),
        team_id=metadata.get("teamId"),
    )


async def get_auth_context(request: Request) -> Optional[AuthContext]:
    """Get the caller's auth context, or None if not signed in."""
    token = _session_token(request)
    if not token:
        return None
    return decode_session_token(token)


async def require_auth(
    ctx: Optional[AuthContext] = Depends(get_auth_context)
) -> AuthContext:
    if ctx is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized"
        )
    return ctx


def require_permission(permission: str):
    """Dependency factory: signed in and allowed to use ``permission``."""

    async def checker(ctx: AuthContext = Depends(require_auth)) -> AuthContext:
        if not has_permission(ctx.role, permission):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Forbidden"
            )
        return ctx

    return checker
