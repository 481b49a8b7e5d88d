"""
muntanyers Backend: Authentication Routes
=========================================

What:  Register, login, logout and session status.
How:   Credentials are checked by AccountService; on success the account id
       and username are written into the signed session cookie.
"""

import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from muntanyers.database import get_db_session
from muntanyers.schemas.accounts import (
    AuthResponse,
    AuthStatusResponse,
    LoginRequest,
    RegisterRequest,
)
from muntanyers.schemas.common import ErrorResponse, SuccessResponse
from muntanyers.security import (
    SESSION_USERNAME,
    current_user_id,
    login_session,
    logout_session,
)
from muntanyers.services.account_service import account_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Auth"])


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=201,
    responses={
        400: {"description": "Missing field", "model": ErrorResponse},
        409: {"description": "Username or email taken", "model": ErrorResponse},
        429: {"description": "Too many attempts", "model": ErrorResponse},
    },
    summary="Create an account and log in",
)
async def register(
    body: RegisterRequest,
    request: Request,
    db: AsyncSession = Depends(get_db_session),
) -> AuthResponse:
    user = await account_service.register(db, body.username, body.email, body.password)
    login_session(request, user.id, user.username)
    return AuthResponse(user_id=user.id, username=user.username)


@router.post(
    "/login",
    response_model=AuthResponse,
    responses={
        401: {"description": "Invalid credentials", "model": ErrorResponse},
        429: {"description": "Too many attempts", "model": ErrorResponse},
    },
    summary="Log in with username and password",
)
async def login(
    body: LoginRequest,
    request: Request,
    db: AsyncSession = Depends(get_db_session),
) -> AuthResponse:
    user = await account_service.authenticate(db, body.username, body.password)
    login_session(request, user.id, user.username)
    logger.info("Login: %s (id=%s)", user.username, user.id)
    return AuthResponse(user_id=user.id, username=user.username)


@router.post("/logout", response_model=SuccessResponse, summary="Clear the session")
async def logout(request: Request) -> SuccessResponse:
    logout_session(request)
    return SuccessResponse()


@router.get(
    "/check-auth",
    response_model=AuthStatusResponse,
    summary="Report whether the caller is logged in",
)
async def check_auth(request: Request) -> AuthStatusResponse:
    user_id = current_user_id(request)
    if user_id is None:
        return AuthStatusResponse(authenticated=False)
    return AuthStatusResponse(
        authenticated=True,
        user_id=user_id,
        username=request.session.get(SESSION_USERNAME),
    )
