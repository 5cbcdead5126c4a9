from typing import Annotated, Callable, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from pydantic import ValidationError

from libs.auth.models import ADMIN, SELLER, AuthUser
from libs.common.config import get_settings
from libs.common.errors import ForbiddenError, UnauthorizedError

security = HTTPBearer(auto_error=False)


def decode_token(token: str) -> AuthUser:
    """
    Verify a bearer token and build the principal from its claims.
    """
    settings = get_settings()
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
            options={"verify_aud": False},  # Supabase audiences vary per project
        )
        return AuthUser(**payload)
    except (JWTError, ValidationError):
        raise UnauthorizedError("Could not validate credentials")


async def get_current_user(
    request: Request,
    token: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
) -> AuthUser:
    """
    Validate the bearer token and return the authenticated user.
    """
    if token is None or not token.credentials:
        raise UnauthorizedError("Authentication required")

    user = decode_token(token.credentials)
    # Exposed for the rate limiter key function
    request.state.user = user
    return user


def require_role(*roles: str) -> Callable:
    """
    Build a dependency that only lets the given roles through.

    Usage:
        current_user: AuthUser = Depends(require_role("admin", "seller"))
    """

    async def _require_role(
        current_user: Annotated[AuthUser, Depends(get_current_user)],
    ) -> AuthUser:
        if current_user.role not in roles:
            raise ForbiddenError(
                f"This action requires one of the roles: {', '.join(roles)}"
            )
        return current_user

    return _require_role


require_admin = require_role(ADMIN)
require_staff = require_role(ADMIN, SELLER)
