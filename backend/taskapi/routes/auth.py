"""
Task API — Account Route Handlers
==================================

What:  POST /auth/register, POST /auth/login, GET /auth/profile.
How:   Thin handlers: parse the body, call AccountService, pick the status.
       Errors are raised as application exceptions and rendered by the
       global handlers in main.py.
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from taskapi.database import get_db_session
from taskapi.middleware.authentication import get_current_identity
from taskapi.schemas.auth import (
    Identity,
    LoginRequest,
    LoginResponse,
    ProfileResponse,
    RegisterRequest,
    UserResponse,
)
from taskapi.schemas.common import ErrorResponse
from taskapi.services.account_service import account_service
from taskapi.services.token_service import TokenService, get_token_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.post(
    "/register",
    status_code=201,
    response_model=UserResponse,
    responses={
        400: {"description": "Invalid input or username/email taken", "model": ErrorResponse},
        429: {"description": "Too many attempts", "model": ErrorResponse},
    },
    summary="Register a new user",
)
async def register(
    body: RegisterRequest,
    db: AsyncSession = Depends(get_db_session),
) -> UserResponse:
    return await account_service.register(
        db=db,
        username=body.username,
        email=body.email,
        password=body.password,
    )


@router.post(
    "/login",
    response_model=LoginResponse,
    responses={
        400: {"description": "Invalid username or password", "model": ErrorResponse},
        429: {"description": "Too many attempts", "model": ErrorResponse},
    },
    summary="Exchange credentials for a bearer token",
)
async def login(
    body: LoginRequest,
    db: AsyncSession = Depends(get_db_session),
    tokens: TokenService = Depends(get_token_service),
) -> LoginResponse:
    return await account_service.login(
        db=db,
        username=body.username,
        password=body.password,
        tokens=tokens,
    )


@router.get(
    "/profile",
    response_model=ProfileResponse,
    responses={
        401: {"description": "Missing, invalid or expired token", "model": ErrorResponse},
        404: {"description": "User record no longer exists", "model": ErrorResponse},
    },
    summary="Profile of the authenticated user",
)
async def get_profile(
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db_session),
) -> ProfileResponse:
    return await account_service.get_profile(db=db, identity=identity)
