"""
UniHelp Backend — Auth Service (Registration & Login)
======================================================

What:  Creates accounts and exchanges credentials for a signed token.
Who:   Called by the /auth route handlers.

Rules:
    - Username and email are unique case-insensitively at registration;
      "Mislina" and "mislina" cannot both exist.
    - Login resolves the username case-insensitively.
    - An unknown username and a wrong password fail identically, so the
      response never reveals which accounts exist.
"""

import asyncio
import logging

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from unihelp.config import Settings
from unihelp.exceptions import ConflictError, UnauthenticatedError
from unihelp.models.user import User
from unihelp.schemas.auth import TokenResponse, UserResponse
from unihelp.security import create_access_token, get_password_hash, verify_password

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid credentials."


class AuthService:
    """Stateless; takes the session and settings on every call."""

    async def register(
        self,
        db: AsyncSession,
        username: str,
        email: str,
        password: str,
    ) -> UserResponse:
        """
        Create a user with a freshly salted password hash.

        Raises:
            ConflictError: username or email already taken (any letter case)
        """
        result = await db.execute(
            select(User.id).where(
                or_(
                    func.lower(User.username) == username.lower(),
                    func.lower(User.email) == email.lower(),
                )
            ).limit(1)
        )
        if result.scalar_one_or_none() is not None:
            logger.info("Registration rejected: duplicate username/email for '%s'", username)
            raise ConflictError()

        # PBKDF2 is CPU-bound; keep it off the event loop
        password_hash, password_salt = await asyncio.to_thread(get_password_hash, password)
        user = User(
            username=username,
            email=email,
            password_hash=password_hash,
            password_salt=password_salt,
        )
        db.add(user)
        try:
            await db.flush()
        except IntegrityError:
            # Lost a race with a concurrent registration of the same name
            await db.rollback()
            raise ConflictError()

        logger.info("User registered: id=%s username=%s", user.id, user.username)
        return UserResponse(id=user.id, username=user.username, email=user.email)

    async def login(
        self,
        db: AsyncSession,
        username: str,
        password: str,
        settings: Settings,
    ) -> TokenResponse:
        """
        Verify credentials and issue an access token.

        Raises:
            UnauthenticatedError: unknown user or wrong password (same message)
        """
        result = await db.execute(
            select(User).where(func.lower(User.username) == username.lower())
        )
        user = result.scalars().first()

        valid = user is not None and await asyncio.to_thread(
            verify_password, password, user.password_hash, user.password_salt
        )
        if not valid:
            logger.info("Failed login for username '%s'", username)
            raise UnauthenticatedError(message=INVALID_CREDENTIALS)

        token = create_access_token(user_id=user.id, username=user.username, settings=settings)
        logger.info("User logged in: id=%s", user.id)
        return TokenResponse(token=token)


# Module-level singleton
auth_service = AuthService()
