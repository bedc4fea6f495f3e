from datetime import timedelta
from typing import Annotated, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import APIKeyCookie, HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from pydantic import ValidationError

from libs.auth.models import AuthUser
from libs.common.config import get_settings
from libs.common.datetime_utils import utc_now

settings = get_settings()
cookie_scheme = APIKeyCookie(name=settings.AUTH_COOKIE_NAME, auto_error=False)
bearer_scheme = HTTPBearer(auto_error=False)


def decode_token(token: str) -> AuthUser:
    """Decode and validate a session token. Raises ``JWTError``/``ValidationError``."""
    payload = jwt.decode(
        token,
        settings.JWT_SECRET,
        algorithms=[settings.JWT_ALGORITHM],
    )
    return AuthUser(**payload)


def create_access_token(user: AuthUser, expires_in: timedelta = timedelta(days=1)) -> str:
    """
    Sign a session token with the same claims the auth service issues.

    Used by the seed script and tests; login itself lives in the auth service.
    """
    claims = {
        "userId": user.user_id,
        "role": user.role,
        "exp": utc_now() + expires_in,
    }
    if user.shop_id:
        claims["shopId"] = str(user.shop_id)
    if user.email:
        claims["email"] = user.email
    return jwt.encode(claims, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


async def get_current_user(
    cookie_token: Annotated[Optional[str], Depends(cookie_scheme)],
    bearer: Annotated[Optional[HTTPAuthorizationCredentials], Depends(bearer_scheme)],
) -> AuthUser:
    """
    Resolve the caller from the session cookie, falling back to a bearer token.
    """
    token = cookie_token or (bearer.credentials if bearer else None)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="No token provided",
        )

    try:
        return decode_token(token)
    except (JWTError, ValidationError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        )


async def require_admin(
    current_user: Annotated[AuthUser, Depends(get_current_user)]
) -> AuthUser:
    """Allow only admins through."""
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied. Admin only",
        )
    return current_user


async def require_sales_person(
    current_user: Annotated[AuthUser, Depends(get_current_user)]
) -> AuthUser:
    """Allow only sales persons through. Admins cannot create orders."""
    if not current_user.is_sales_person:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only sales personnel can create orders",
        )
    return current_user
