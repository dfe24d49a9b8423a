"""
Task API — Account Service
===========================

What:  Registration, login and profile lookup.
Why:   Keeps credential rules (uniqueness, hashing, undifferentiated login
       failure) out of the route handlers.
How:   Stateless methods that receive the per-request AsyncSession; hashing is
       delegated to PasswordHasher and token minting to TokenService.
Who:   Called by routes/auth.py.

Login flow:
    ┌──────────┐    ┌──────────────┐    ┌──────────────┐    ┌──────────┐
    │ username │───▶│ lookup user  │───▶│ verify hash  │───▶│  issue   │
    │ password │    │ (exact match)│    │ (threadpool) │    │  token   │
    └──────────┘    └──────┬───────┘    └──────┬───────┘    └──────────┘
                           │ not found         │ mismatch
                           ▼                   ▼
                     InvalidCredentialsError (one error, one message)
"""

import logging

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from taskapi.database import utcnow
from taskapi.exceptions import (
    ConflictError,
    DatabaseError,
    InvalidCredentialsError,
    NotFoundError,
    ValidationError,
)
from taskapi.models.user import User
from taskapi.schemas.auth import (
    Identity,
    LoginResponse,
    ProfileResponse,
    UserResponse,
)
from taskapi.services.password_service import PasswordHasher, password_hasher
from taskapi.services.token_service import TokenService

logger = logging.getLogger(__name__)

USERNAME_MAX_LENGTH = 50
EMAIL_MAX_LENGTH = 255
PASSWORD_MIN_LENGTH = 6


class AccountService:
    """
    Business logic for user accounts.

    Responsibilities:
        - register(): validate, enforce uniqueness, hash, persist
        - login(): check credentials, issue a token
        - get_profile(): public fields of the authenticated user
    """

    def __init__(self, hasher: PasswordHasher = password_hasher):
        self._hasher = hasher

    async def register(
        self,
        db: AsyncSession,
        username: str,
        email: str,
        password: str,
    ) -> UserResponse:
        """
        Create a new account.

        Username and email are trimmed; email is lower-cased so uniqueness is
        case-insensitive. The password is used as given.

        Raises:
            ValidationError: a field is missing, empty or malformed
            ConflictError: username or email already registered
            DatabaseError: unexpected store failure
        """
        username = (username or "").strip()
        email = (email or "").strip().lower()
        password = password or ""

        if not username:
            raise ValidationError("Username is required", field="username")
        if not email:
            raise ValidationError("Email is required", field="email")
        if not password:
            raise ValidationError("Password is required", field="password")
        if len(username) > USERNAME_MAX_LENGTH:
            raise ValidationError(
                f"Username must be at most {USERNAME_MAX_LENGTH} characters",
                field="username",
            )
        if len(email) > EMAIL_MAX_LENGTH:
            raise ValidationError(
                f"Email must be at most {EMAIL_MAX_LENGTH} characters",
                field="email",
            )
        if "@" not in email or email.startswith("@") or email.endswith("@"):
            raise ValidationError("Email address is not valid", field="email")
        if len(password) < PASSWORD_MIN_LENGTH:
            raise ValidationError(
                f"Password must be at least {PASSWORD_MIN_LENGTH} characters",
                field="password",
            )

        try:
            result = await db.execute(
                select(User).where(or_(User.username == username, User.email == email))
            )
            existing = result.scalars().first()
            if existing is not None:
                field = "username" if existing.username == username else "email"
                raise ConflictError(
                    message=f"That {field} is already registered",
                    field=field,
                )

            user = User(
                username=username,
                email=email,
                password_hash=await self._hasher.hash_async(password),
                created_at=utcnow(),
            )
            db.add(user)
            # Commit inside the try: a concurrent registration that slipped
            # past the SELECT hits the UNIQUE constraint here, and the client
            # never sees 201 for a row that was not stored
            await db.commit()
        except ConflictError:
            raise
        except IntegrityError as e:
            logger.info("Registration lost a uniqueness race for %r", username)
            raise ConflictError(context={"constraint": type(e.orig).__name__}) from e
        except SQLAlchemyError as e:
            logger.error("Database error during registration: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not create the account. Please try again.",
                context={"error_type": type(e).__name__},
            ) from e

        logger.info("Registered user %s (%s)", user.id, user.username)
        return UserResponse.model_validate(user)

    async def login(
        self,
        db: AsyncSession,
        username: str,
        password: str,
        tokens: TokenService,
    ) -> LoginResponse:
        """
        Exchange a username and password for an access token.

        Raises:
            InvalidCredentialsError: unknown user OR wrong password (identical)
            DatabaseError: unexpected store failure
        """
        username = (username or "").strip()
        password = password or ""

        try:
            result = await db.execute(select(User).where(User.username == username))
            user = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Database error during login: %s", str(e), exc_info=True)
            raise DatabaseError(context={"error_type": type(e).__name__}) from e

        if user is None:
            await self._hasher.burn_async(password)
            raise InvalidCredentialsError(context={"reason": "unknown_user"})

        if not await self._hasher.verify_async(password, user.password_hash):
            raise InvalidCredentialsError(context={"reason": "wrong_password", "user_id": user.id})

        logger.info("User %s logged in", user.id)
        return LoginResponse(token=tokens.issue(user.id))

    async def get_profile(self, db: AsyncSession, identity: Identity) -> ProfileResponse:
        """
        Public profile of the authenticated user.

        The authentication dependency already loaded this user, so a miss here
        means the row vanished mid-request.

        Raises:
            NotFoundError: the user record no longer exists
        """
        try:
            user = await db.get(User, identity.id)
        except SQLAlchemyError as e:
            logger.error("Database error fetching profile %s: %s", identity.id, str(e))
            raise DatabaseError(context={"user_id": identity.id}) from e

        if user is None:
            raise NotFoundError(resource="user", resource_id=str(identity.id))
        return ProfileResponse(username=user.username, email=user.email)


account_service = AccountService()
