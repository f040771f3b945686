"""Authentication service for password login and JWT issuance."""

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import UnauthorizedException
from app.core.redis_client import CacheManager
from app.core.security import (
    create_access_token,
    create_refresh_token,
    decode_refresh_token,
    verify_password,
)
from app.schemas.auth import Token
from app.schemas.users import UserCreate, UserRole
from app.services.user_service import UserService

logger = structlog.get_logger()


class AuthService:
    """Authentication service for handling credentials and JWT operations."""

    def __init__(self, cache_manager: CacheManager | None = None):
        """Initialize auth service with cache manager."""
        self.cache = cache_manager
        self.users = UserService(cache_manager)

    async def register_patient(self, db: AsyncSession, user_data: UserCreate) -> tuple[dict, Token]:
        """
        Self-register a patient account.

        The requested role is ignored; staff accounts are created by admins.
        """
        user_data = user_data.model_copy(update={"role": UserRole.PATIENT})
        user = await self.users.create_user(db, user_data)
        logger.info("user_registered", user_id=str(user["id"]), role=user["role"])
        return user, self.create_tokens(str(user["id"]), user["role"])

    async def login(self, db: AsyncSession, email: str, password: str) -> tuple[dict, Token]:
        """
        Check credentials and issue a token pair.

        Raises:
            UnauthorizedException: If the credentials are wrong or the account is disabled
        """
        user = await self.users.get_user_by_email(db, email)
        if not user or not verify_password(password, user["password_hash"]):
            logger.info("login_failed", email=email)
            raise UnauthorizedException("Invalid email or password")

        if not user["is_active"]:
            raise UnauthorizedException("User account is deactivated")

        await self.users.update_last_login(db, user["id"])
        user.pop("password_hash", None)
        logger.info("login_succeeded", user_id=str(user["id"]), role=user["role"])
        return user, self.create_tokens(str(user["id"]), user["role"])

    def create_tokens(self, user_id: str, role: str) -> Token:
        """
        Create access and refresh tokens for a user.

        Args:
            user_id: User identifier (internal UUID)
            role: User role, embedded for clients that render by role

        Returns:
            Token pair (access and refresh)
        """
        claims = {"sub": user_id, "role": role}
        return Token(
            access_token=create_access_token(data=claims),
            refresh_token=create_refresh_token(data=claims),
            token_type="bearer",
        )

    def refresh_access_token(self, refresh_token: str) -> Token:
        """
        Create new token pair from a refresh token.

        Raises:
            UnauthorizedException: If refresh token is invalid or revoked
        """
        payload = decode_refresh_token(refresh_token)

        if payload is None or payload.get("sub") is None:
            raise UnauthorizedException("Invalid refresh token")

        if self.cache and self.cache.get_json(f"blacklist:{refresh_token}"):
            raise UnauthorizedException("Token has been revoked")

        return self.create_tokens(payload["sub"], payload.get("role", UserRole.PATIENT.value))

    def revoke_token(self, token: str, ttl: int = 86400 * 7) -> None:
        """Revoke a refresh token by adding it to the blacklist."""
        if self.cache:
            self.cache.set_json(f"blacklist:{token}", True, ttl=ttl)
