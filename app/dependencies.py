"""FastAPI dependencies."""

from collections.abc import Callable, Coroutine
from typing import Annotated, Any

import redis
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.exceptions import ForbiddenException, RateLimitException
from app.core.redis_client import RateLimiter, get_redis_client
from app.core.security import decode_access_token
from app.database import get_db
from app.schemas.users import AuthenticatedUser, UserRole

# Security
security = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> AuthenticatedUser:
    """
    Extract the caller's identity and role from the bearer token.

    Args:
        credentials: Bearer token credentials

    Returns:
        Authenticated caller

    Raises:
        HTTPException: If the token is missing, invalid or expired
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = decode_access_token(credentials.credentials)

    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    subject = payload.get("sub")
    role = payload.get("role")
    if not isinstance(subject, str) or not isinstance(role, str):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    username = payload.get("username")
    return AuthenticatedUser(
        id=subject,
        role=role,
        username=username if isinstance(username, str) else None,
    )


def require_roles(
    *roles: UserRole,
) -> Callable[[AuthenticatedUser], Coroutine[Any, Any, AuthenticatedUser]]:
    """Build a dependency that admits only callers holding one of ``roles``."""
    allowed = {role.value for role in roles}

    async def checker(
        user: Annotated[AuthenticatedUser, Depends(get_current_user)],
    ) -> AuthenticatedUser:
        if user.role not in allowed:
            raise ForbiddenException("Insufficient permissions for this action")
        return user

    return checker


async def enforce_rate_limit(
    user: Annotated[AuthenticatedUser, Depends(get_current_user)],
    redis_client: Annotated[redis.Redis, Depends(get_redis_client)],
) -> None:
    """
    Limit each caller to ``RATE_LIMIT_PER_MINUTE`` requests.

    Raises:
        RateLimitException: If the caller exceeded the limit
    """
    limiter = RateLimiter(redis_client)
    if not limiter.check_rate_limit(
        f"rate_limit:{user.id}",
        limit=settings.rate_limit_per_minute,
        window=60,
    ):
        raise RateLimitException()


# Type aliases for dependency injection
DatabaseSession = Annotated[AsyncSession, Depends(get_db)]
FrontDeskUser = Annotated[
    AuthenticatedUser,
    Depends(require_roles(UserRole.ADMIN, UserRole.STAFF)),
]
