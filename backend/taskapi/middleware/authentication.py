"""
Task API — Authentication Middleware
=====================================

What:  Turns an `Authorization: Bearer <token>` header into an Identity.
Why:   Every protected route needs the same checks; doing them in one
       dependency means a route cannot forget one.
How:   A FastAPI dependency rather than Starlette middleware: it only runs on
       routes that declare it, it shares the request's database session, and
       its AuthenticationError flows through the global exception handlers.
Who:   Declared by /auth/profile and every /api/tasks route.

Steps:
    1. Extract the bearer credential (HTTPBearer, auto_error off so that a
       missing header yields our own 401 body)
    2. TokenService.verify()  → user id
    3. Load the user          → a deleted account is 401, not 404, so a
                                stale token cannot probe which ids exist
    4. Attach the Identity to request.state and return it to the route

Side effects: none on the store.
"""

import logging
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from taskapi.database import get_db_session
from taskapi.exceptions import AuthenticationError, DatabaseError
from taskapi.models.user import User
from taskapi.schemas.auth import Identity
from taskapi.services.token_service import (
    TokenService,
    TokenVerificationError,
    get_token_service,
)

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False, description="Access token from POST /auth/login")


async def get_current_identity(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db_session),
    tokens: TokenService = Depends(get_token_service),
) -> Identity:
    """
    Resolve the caller of a protected route.

    Raises:
        AuthenticationError: missing/invalid/expired token or vanished user
        DatabaseError: the user lookup itself failed
    """
    if credentials is None:
        raise AuthenticationError(reason="missing_bearer_token")

    try:
        user_id = tokens.verify(credentials.credentials)
    except TokenVerificationError as e:
        logger.warning("Rejected token on %s: %s", request.url.path, e.failure.value)
        raise AuthenticationError(
            message="Invalid or expired token",
            reason=e.failure.value,
        ) from e

    try:
        user = await db.get(User, user_id)
    except SQLAlchemyError as e:
        logger.error("Database error resolving token subject %s: %s", user_id, str(e))
        raise DatabaseError(context={"user_id": user_id}) from e

    if user is None:
        logger.warning("Valid token for missing user %s", user_id)
        raise AuthenticationError(message="Invalid or expired token", reason="unknown_subject")

    identity = Identity.model_validate(user)
    request.state.identity = identity
    return identity
