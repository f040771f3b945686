"""User service for business logic."""

from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConflictException
from app.core.redis_client import CacheManager
from app.core.security import get_password_hash
from app.models.users import users
from app.schemas.users import UserCreate


def _public(user: dict) -> dict:
    """Drop credential columns before a user dict leaves the service."""
    return {k: v for k, v in user.items() if k != "password_hash"}


class UserService:
    """Service for user operations."""

    # Cache TTL in seconds (30 minutes for user profiles)
    USER_CACHE_TTL = 1800

    def __init__(self, cache_manager: CacheManager | None = None):
        """Initialize service with optional cache manager."""
        self.cache = cache_manager

    @staticmethod
    def _get_user_cache_key(user_id: UUID) -> str:
        """Generate cache key for user."""
        return f"user:{user_id}"

    def _invalidate(self, user_id: UUID) -> None:
        if self.cache:
            self.cache.delete(self._get_user_cache_key(user_id))

    async def create_user(self, db: AsyncSession, user_data: UserCreate) -> dict:
        """Create a new user with a hashed password."""
        query = (
            users.insert()
            .values(
                email=user_data.email.lower(),
                password_hash=get_password_hash(user_data.password),
                full_name=user_data.full_name,
                phone=user_data.phone,
                role=user_data.role.value,
            )
            .returning(users)
        )

        try:
            result = await db.execute(query)
        except IntegrityError:
            await db.rollback()
            raise ConflictException("A user with this email already exists")
        await db.commit()

        user = result.mappings().first()
        if not user:
            raise ValueError("Failed to create user")

        return _public(dict(user))

    async def get_user_by_id(self, db: AsyncSession, user_id: UUID) -> dict | None:
        """Get user by ID with caching."""
        if self.cache:
            cached_user = self.cache.get_json(self._get_user_cache_key(user_id))
            if cached_user:
                return cached_user

        query = select(users).where(users.c.id == user_id)
        result = await db.execute(query)
        user = result.mappings().first()

        if not user:
            return None

        user_dict = _public(dict(user))

        if self.cache:
            self.cache.set_json(
                self._get_user_cache_key(user_id), user_dict, ttl=self.USER_CACHE_TTL
            )

        return user_dict

    async def get_user_by_email(self, db: AsyncSession, email: str) -> dict | None:
        """Get user by email, including the password hash for login checks."""
        query = select(users).where(users.c.email == email.lower())
        result = await db.execute(query)
        user = result.mappings().first()
        return dict(user) if user else None

    async def update_last_login(self, db: AsyncSession, user_id: UUID) -> None:
        """Update user's last login timestamp."""
        query = update(users).where(users.c.id == user_id).values(last_login_at=datetime.now(UTC))
        await db.execute(query)
        await db.commit()
        self._invalidate(user_id)
