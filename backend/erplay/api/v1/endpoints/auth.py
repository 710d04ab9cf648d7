from fastapi import APIRouter, BackgroundTasks, Depends, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from erplay.core.database import get_db
from erplay.core.rate_limiter import limiter, LOGIN_LIMIT, FORGOT_PASSWORD_LIMIT
from erplay.models.user import User
from erplay.modules.auth.dependencies import get_current_user
from erplay.schemas.auth import (
    ForgotPasswordRequest,
    LoginRequest,
    LoginResponse,
    RefreshTokenRequest,
    ResetPasswordRequest,
    TokenPair,
)
from erplay.services.auth_service import AuthService


router = APIRouter()


@router.post("/login", response_model=LoginResponse)
@limiter.limit(LOGIN_LIMIT)
async def login(
    request: Request,
    credentials: LoginRequest,
    db: AsyncSession = Depends(get_db)
):
    """Login with email and password (rate limited: 10/min)"""
    client_ip = request.client.host if request.client else "unknown"
    return await AuthService(db).login(credentials.email, credentials.password, client_ip)


@router.post("/refresh", response_model=TokenPair)
async def refresh_token(
    body: RefreshTokenRequest,
    db: AsyncSession = Depends(get_db)
):
    """Exchange a refresh token for a new token pair"""
    return await AuthService(db).refresh(body.refresh_token)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(
    body: RefreshTokenRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    await AuthService(db).logout(current_user.id, body.refresh_token)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/forgot-password")
@limiter.limit(FORGOT_PASSWORD_LIMIT)
async def forgot_password(
    request: Request,
    body: ForgotPasswordRequest,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db)
):
    """Always answers the same message so accounts cannot be enumerated"""
    await AuthService(db, background_tasks).forgot_password(body.email)
    return {"message": "If the email exists, you will receive a link to reset your password"}


@router.post("/reset-password")
async def reset_password(
    body: ResetPasswordRequest,
    db: AsyncSession = Depends(get_db)
):
    await AuthService(db).reset_password(body.token, body.new_password)
    return {"message": "Password updated"}
