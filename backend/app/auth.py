"""Authentication utilities for the OmniDev backend."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from . import database
from .config import Settings, get_settings
from .logging_config import log_auth_event

# Cookie name for httpOnly auth
AUTH_COOKIE_NAME = "omnidev_auth"

# Bearer token scheme
# Make bearer optional to allow cookie fallback
security = HTTPBearer(auto_error=False)


def decode_token(token: str, settings: Settings) -> dict:
    """Decode and validate a JWT token."""
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
        return payload
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )


class AuthContext:
    """Authenticated caller. `is_admin` is only resolved for admin routes."""

    def __init__(self, user_id: str, is_admin: bool = False):
        self.user_id = user_id
        self.is_admin = is_admin


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    settings: Annotated[Settings, Depends(get_settings)],
    request: Request,
) -> AuthContext:
    """Get the authenticated caller from the bearer token or auth cookie."""
    token = None
    if credentials:
        token = credentials.credentials
    else:
        token = request.cookies.get(AUTH_COOKIE_NAME)

    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated - provide Authorization header or auth cookie",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = decode_token(token, settings)
    user_id = payload.get("sub")
    if not user_id or payload.get("type") != "access":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return AuthContext(user_id=user_id)


# Type alias for dependency injection
CurrentUser = Annotated[AuthContext, Depends(get_current_user)]


async def get_admin_user(user: CurrentUser, db: database.Database) -> AuthContext:
    """Require the caller's user record to carry the admin flag."""
    record = await database.get_user(db, user.user_id)
    if not record or not record.get("is_admin"):
        log_auth_event("admin_check", user.user_id, False, "not an admin")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied",
        )
    user.is_admin = True
    return user


AdminUser = Annotated[AuthContext, Depends(get_admin_user)]
