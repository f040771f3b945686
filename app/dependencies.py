"""FastAPI dependencies."""

from collections.abc import Callable, Coroutine
from typing import Annotated, Any
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import Clock, get_clock
from app.core.redis_client import CacheManager, get_redis_client
from app.core.security import decode_access_token
from app.database import get_db
from app.schemas.users import STAFF_ROLES, UserRole
from app.services.user_service import UserService

# Security
security = HTTPBearer()


def get_cache_manager() -> CacheManager:
    """Cache manager bound to the shared Redis client."""
    return CacheManager(get_redis_client())


async def get_current_user_id(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
) -> UUID:
    """
    Extract and validate user ID from JWT token.

    Raises:
        HTTPException: If token is invalid or expired
    """
    payload = decode_access_token(credentials.credentials)

    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user_id_str = payload.get("sub")
    if user_id_str is None or not isinstance(user_id_str, str):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        return UUID(user_id_str)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid user ID format",
            headers={"WWW-Authenticate": "Bearer"},
        )


async def get_current_user(
    user_id: Annotated[UUID, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db)],
    cache: Annotated[CacheManager, Depends(get_cache_manager)],
) -> dict:
    """
    Get current user from database.

    Raises:
        HTTPException: If user not found or inactive
    """
    user = await UserService(cache).get_user_by_id(db, user_id)

    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user["is_active"]:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User account is deactivated",
        )

    return user


def require_roles(*roles: str) -> Callable[..., Coroutine[Any, Any, dict]]:
    """Build a dependency that admits only users holding one of ``roles``."""
    allowed = frozenset(roles)

    async def dependency(current_user: Annotated[dict, Depends(get_current_user)]) -> dict:
        if current_user.get("role") not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=(
                    f"User role '{current_user.get('role')}' "
                    "is not authorized to access this route"
                ),
            )
        return current_user

    return dependency


require_admin = require_roles(UserRole.ADMIN.value)
require_staff = require_roles(*STAFF_ROLES)


def is_staff(user: dict) -> bool:
    """Whether the user holds a staff role."""
    return user.get("role") in STAFF_ROLES


# Type aliases for dependency injection
DatabaseSession = Annotated[AsyncSession, Depends(get_db)]
CurrentUserId = Annotated[UUID, Depends(get_current_user_id)]
CurrentUser = Annotated[dict, Depends(get_current_user)]
StaffUser = Annotated[dict, Depends(require_staff)]
AdminUser = Annotated[dict, Depends(require_admin)]
CacheManagerDep = Annotated[CacheManager, Depends(get_cache_manager)]
ClockDep = Annotated[Clock, Depends(get_clock)]


def user_id_of(user: dict) -> UUID:
    """User ID from a user dict, which may have come back from the JSON cache."""
    return UUID(str(user["id"]))
