"""
Authentication Service
======================
Login with persisted refresh tokens, refresh rotation, logout and the
password reset flow.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from erplay.core.config import settings
from erplay.core.exceptions import (
    InvalidCredentialsError,
    InvalidTokenError,
    UserNotFoundError,
    ValidationError,
)
from erplay.core.logging_config import logger
from erplay.core.security import (
    create_access_token,
    create_refresh_token,
    create_reset_token,
    decode_typed_token,
    get_password_hash,
    refresh_token_expiry,
    verify_password,
)
from erplay.models.refresh_token import RefreshToken
from erplay.models.user import User
from erplay.services.email_service import email_service, queue_email


def _access_token_for(user: User) -> str:
    return create_access_token({"sub": str(user.id), "role": user.role.value})


class AuthService:
    """Token issuing and password recovery"""

    def __init__(self, db: AsyncSession, background_tasks=None):
        self.db = db
        self.background_tasks = background_tasks

    async def _find_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.email == email.strip().lower()))
        return result.scalar_one_or_none()

    async def login(self, email: str, password: str, client_ip: str = "unknown") -> Dict[str, Any]:
        user = await self._find_by_email(email)
        if not user or not verify_password(password, user.password_hash):
            logger.log_auth_event(
                event="login",
                success=False,
                user_email=email,
                reason="Invalid credentials",
                client_ip=client_ip,
            )
            raise InvalidCredentialsError()

        access_token = _access_token_for(user)
        refresh_token = create_refresh_token({"sub": str(user.id)})
        self.db.add(RefreshToken(token=refresh_token, user_id=user.id, expires_at=refresh_token_expiry()))
        await self.db.commit()

        logger.log_auth_event(
            event="login",
            success=True,
            user_email=user.email,
            client_ip=client_ip,
            user_role=user.role.value,
        )
        return {"accessToken": access_token, "refreshToken": refresh_token, "user": user}

    async def refresh(self, token: str) -> Dict[str, str]:
        """Rotate a refresh token; any failure is a 401"""
        payload = decode_typed_token(token, settings.JWT_REFRESH_SECRET_KEY, "refresh")
        if payload is None:
            raise InvalidTokenError()

        result = await self.db.execute(select(RefreshToken).where(RefreshToken.token == token))
        stored = result.scalar_one_or_none()
        if not stored or stored.revoked or stored.expires_at < datetime.utcnow():
            raise InvalidTokenError()

        user = await self.db.get(User, stored.user_id)
        if not user:
            raise InvalidTokenError()

        new_refresh = create_refresh_token({"sub": str(user.id)})
        stored.token = new_refresh
        stored.expires_at = refresh_token_expiry()
        await self.db.commit()

        logger.log_auth_event(event="refresh", success=True, user_email=user.email)
        return {"accessToken": _access_token_for(user), "refreshToken": new_refresh}

    async def logout(self, user_id: str, token: str) -> None:
        await self.db.execute(
            delete(RefreshToken).where(RefreshToken.token == token, RefreshToken.user_id == user_id)
        )
        await self.db.commit()
        logger.log_auth_event(event="logout", success=True, user_id=user_id)

    async def forgot_password(self, email: str) -> None:
        """Email a reset link when the account exists; silent otherwise"""
        user = await self._find_by_email(email)
        if not user:
            logger.info("[Auth] Password reset requested for unknown email")
            return

        token = create_reset_token(str(user.id))
        display_name = (user.name or "").strip() or user.email
        await queue_email(
            self.background_tasks,
            email_service.send_password_reset_email,
            to_email=user.email,
            user_name=display_name,
            reset_token=token,
        )
        logger.log_auth_event(event="forgot_password", success=True, user_email=user.email)

    async def reset_password(self, token: str, new_password: str) -> None:
        payload = decode_typed_token(token, settings.JWT_RESET_SECRET_KEY, "reset")
        if payload is None:
            raise ValidationError("Invalid or expired token", field="token")

        user = await self.db.get(User, payload["sub"])
        if not user:
            raise UserNotFoundError()

        user.password_hash = get_password_hash(new_password)
        # Sessions opened with the old password are revoked
        await self.db.execute(delete(RefreshToken).where(RefreshToken.user_id == user.id))
        await self.db.commit()
        logger.log_auth_event(event="reset_password", success=True, user_email=user.email)
