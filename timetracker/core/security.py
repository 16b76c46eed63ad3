"""
Authentication helpers.

Admin routes expect a bearer JWT issued by the identity provider; the group
claim decides authorization. Trigger routes called by the external scheduler
authenticate with a shared token instead.
"""

import secrets
from typing import Annotated, Optional

import jwt
from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel

from timetracker.core.config import settings
from timetracker.core.logging import get_logger

logger = get_logger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


class TokenData(BaseModel):
    sub: str
    username: Optional[str] = None
    email: Optional[str] = None
    groups: list[str] = []


def decode_token(token: str) -> TokenData:
    try:
        claims = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
            audience=settings.JWT_AUDIENCE,
            options={"verify_aud": settings.JWT_AUDIENCE is not None},
        )
    except jwt.PyJWTError as e:
        logger.warning(f"Rejected token: {e}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    groups = claims.get("groups") or []
    if isinstance(groups, str):
        groups = [groups]
    return TokenData(
        sub=str(claims.get("sub", "")),
        username=claims.get("username") or claims.get("preferred_username"),
        email=claims.get("email"),
        groups=groups,
    )


async def get_current_active_user(
    credentials: Annotated[
        Optional[HTTPAuthorizationCredentials], Depends(bearer_scheme)
    ],
) -> TokenData:
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return decode_token(credentials.credentials)


def require_role(*roles: str):
    """Dependency factory that allows only users in one of ``roles``."""

    async def checker(
        current_user: Annotated[TokenData, Depends(get_current_active_user)],
    ) -> TokenData:
        if not any(role in current_user.groups for role in roles):
            logger.warning(
                f"User {current_user.email or current_user.sub} denied, requires one of {roles}"
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return current_user

    return checker


async def verify_trigger_token(
    x_trigger_token: Annotated[Optional[str], Header()] = None,
) -> None:
    expected = settings.TRIGGER_TOKEN
    if not expected:
        # No token configured: trigger routes are closed
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Trigger endpoints are disabled",
        )
    if not x_trigger_token or not secrets.compare_digest(x_trigger_token, expected):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid trigger token",
        )
