"""User service — registration and credential checks.

Learn: Service layer separates business logic from HTTP routing.
API routes call services, services call the database. Errors are
raised as dogapi.errors types and mapped to responses in one place.

Username uniqueness: the lookup before insert gives a friendly early
answer, but two concurrent registrations can both pass it. The unique
index on users.username settles the race: the loser's commit raises
IntegrityError, which is reported as the same DuplicateUsername.
"""

import uuid
from typing import Optional

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from dogapi.auth.password import hash_password, verify_password
from dogapi.db.models import User
from dogapi.errors import (
    DuplicateUsername,
    InvalidCredentials,
    StorageError,
    UserNotFound,
    ValidationError,
)

logger = structlog.get_logger()

PASSWORD_MIN_LENGTH = 6
PASSWORD_MAX_LENGTH = 20


class UserService:
    """Business logic for user accounts."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_username(self, username: str) -> Optional[User]:
        try:
            result = await self.db.execute(
                select(User).where(User.username == username)
            )
        except SQLAlchemyError as e:
            raise StorageError("Server error") from e
        return result.scalars().first()

    async def get(self, user_id: str) -> Optional[User]:
        try:
            uid = uuid.UUID(str(user_id))
        except ValueError:
            return None
        try:
            return await self.db.get(User, uid)
        except SQLAlchemyError as e:
            raise StorageError("Server error") from e

    async def register(self, username: Optional[str], password: Optional[str]) -> User:
        """Create a new account. Exactly one insert, or none."""
        if not username or not password:
            raise ValidationError("Username and password are required.")
        if not PASSWORD_MIN_LENGTH <= len(password) <= PASSWORD_MAX_LENGTH:
            raise ValidationError(
                "Password length must be between 6 to 20 characters."
            )

        if await self.get_by_username(username):
            raise DuplicateUsername("Username already exists.")

        user = User(username=username, password_hash=hash_password(password))
        self.db.add(user)
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            logger.info("auth.register_race_lost", username=username)
            raise DuplicateUsername("Username already exists.") from e
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise StorageError("Server error") from e

        logger.info("auth.registered", user_id=str(user.id), username=username)
        return user

    async def authenticate(self, username: Optional[str], password: Optional[str]) -> User:
        """Check a username/password pair and return the matching user."""
        if not username or not password:
            raise ValidationError("Username and password are required")

        user = await self.get_by_username(username)
        if not user:
            raise UserNotFound("User not found.")
        if not verify_password(password, user.password_hash):
            logger.info("auth.login_failed", username=username)
            raise InvalidCredentials("Invalid credentials")
        return user
