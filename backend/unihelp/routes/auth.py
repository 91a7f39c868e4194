"""
UniHelp Backend — Auth Route Handlers
=======================================

What:  POST /api/v1/auth/register, POST /api/v1/auth/login and the
       GET /api/v1/auth/test-auth token smoke test.
How:   Thin handlers; AuthService owns uniqueness and credential rules.
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from unihelp.config import Settings
from unihelp.database import get_db_session
from unihelp.dependencies import get_app_settings, get_current_user
from unihelp.schemas.auth import TokenResponse, UserLoginRequest, UserRegisterRequest, UserResponse
from unihelp.schemas.common import ErrorResponse
from unihelp.security import TokenClaims
from unihelp.services.auth_service import auth_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/auth", tags=["Auth"])


@router.post(
    "/register",
    response_model=UserResponse,
    responses={
        400: {"description": "Invalid input, or username/email taken", "model": ErrorResponse},
    },
    summary="Create an account",
)
async def register(
    payload: UserRegisterRequest,
    db: AsyncSession = Depends(get_db_session),
) -> UserResponse:
    return await auth_service.register(
        db=db,
        username=payload.username,
        email=payload.email,
        password=payload.password,
    )


@router.post(
    "/login",
    response_model=TokenResponse,
    responses={
        401: {"description": "Invalid credentials", "model": ErrorResponse},
    },
    summary="Exchange username and password for a bearer token",
)
async def login(
    payload: UserLoginRequest,
    db: AsyncSession = Depends(get_db_session),
    settings: Settings = Depends(get_app_settings),
) -> TokenResponse:
    return await auth_service.login(
        db=db,
        username=payload.username,
        password=payload.password,
        settings=settings,
    )


@router.get(
    "/test-auth",
    responses={401: {"description": "Missing or invalid token", "model": ErrorResponse}},
    summary="Check that a bearer token is accepted",
)
async def test_auth(current_user: TokenClaims = Depends(get_current_user)) -> dict:
    return {
        "message": f"Hello {current_user.username}, your token is valid.",
        "userId": current_user.user_id,
        "username": current_user.username,
    }
