"""
Credential Service - account registration and login checks.
"""

import re

from loguru import logger
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from agora.core.config import settings
from agora.core.database import transaction
from agora.core.exceptions import (
    DuplicateEmailError,
    DuplicateUsernameError,
    InvalidCredentialsError,
    InvalidInputError,
    NotFoundError,
    StorageError,
)
from agora.models.user import User
from agora.modules.auth.security import hash_password, verify_password

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class CredentialService:
    """
    Registers and authenticates users.

    Usage:
        credentials = CredentialService(db_session)
        user_id = await credentials.register("a@x.com", "alice", "secret1")
        user_id = await credentials.authenticate("a@x.com", "secret1")
    """

    def __init__(self, db: AsyncSession) -> None:
        """Initialize credential service with database session."""
        self.db = db

    @staticmethod
    def validate_registration(email: str, username: str, password: str) -> None:
        """Raise InvalidInputError for the first malformed field."""
        if not _EMAIL_RE.match(email):
            raise InvalidInputError("Invalid email format")
        if not username.strip():
            raise InvalidInputError("Username cannot be empty")
        if any(ch.isspace() for ch in username):
            raise InvalidInputError("Username cannot contain spaces")
        if len(password) < settings.password_min_length:
            raise InvalidInputError(
                f"Password must be at least {settings.password_min_length} characters long"
            )

    async def email_exists(self, email: str) -> bool:
        result = await self.db.execute(select(User.id).where(User.email == email))
        return result.first() is not None

    async def username_exists(self, username: str) -> bool:
        result = await self.db.execute(select(User.id).where(User.username == username))
        return result.first() is not None

    async def _raise_if_taken(self, email: str, username: str) -> None:
        if await self.email_exists(email):
            raise DuplicateEmailError()
        if await self.username_exists(username):
            raise DuplicateUsernameError()

    async def register(self, email: str, username: str, password: str) -> int:
        """
        Create a new user account.

        Args:
            email: Login email, must be unique
            username: Display name, unique and without spaces
            password: Plain text password (stored as a bcrypt hash)

        Returns:
            ID of the created user

        Raises:
            InvalidInputError: Malformed email, username or password
            DuplicateEmailError: Email already registered
            DuplicateUsernameError: Username already taken
        """
        email = email.strip()
        self.validate_registration(email, username, password)
        await self._raise_if_taken(email, username)

        user = User(
            email=email,
            username=username,
            password_hash=hash_password(password),
        )
        try:
            async with transaction(self.db):
                self.db.add(user)
                await self.db.flush()
        except StorageError as e:
            # Lost a race against a concurrent registration
            if isinstance(e.__cause__, IntegrityError):
                await self._raise_if_taken(email, username)
            raise

        logger.info(f"User registered: {username} (id={user.id})")
        return user.id

    async def authenticate(self, email: str, password: str) -> int:
        """
        Check login credentials.

        Unknown email and wrong password fail identically.

        Returns:
            ID of the authenticated user

        Raises:
            InvalidCredentialsError: Email unknown or password mismatch
        """
        result = await self.db.execute(
            select(User.id, User.password_hash).where(User.email == email.strip())
        )
        row = result.first()

        if not verify_password(password, row.password_hash if row else None):
            logger.info("Failed login attempt")
            raise InvalidCredentialsError()

        return row.id

    async def get_user(self, user_id: int) -> User:
        """Get user by ID or raise NotFoundError."""
        user = await self.db.get(User, user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user
