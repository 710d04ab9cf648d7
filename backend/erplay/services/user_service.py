"""
User Service
============
Profile management for every user and student administration for
supervisors (listing, batch creation with emailed credentials, deletion).
"""

from typing import Any, Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from erplay.core.config import settings
from erplay.core.exceptions import (
    AuthorizationError,
    EmailInUseError,
    UserNotFoundError,
    ValidationError,
)
from erplay.core.logging_config import logger
from erplay.core.security import generate_password, get_password_hash, verify_password
from erplay.models.user import User, UserRole
from erplay.services.email_service import email_service, queue_email


def user_to_dict(user: User) -> Dict[str, Any]:
    return {
        "id": user.id,
        "name": user.name,
        "lastName": user.last_name,
        "email": user.email,
        "role": user.role.value,
        "createdAt": user.created_at,
        "updatedAt": user.updated_at,
    }


async def supervisor_emails(db: AsyncSession) -> List[str]:
    """Review notification recipients: the configured address, else every supervisor"""
    if settings.SUPERVISOR_NOTIFY_EMAIL:
        return [settings.SUPERVISOR_NOTIFY_EMAIL]
    result = await db.execute(select(User.email).where(User.role == UserRole.SUPERVISOR))
    return [email for email in result.scalars().all() if email]


class UserService:
    """Service for user and student management"""

    def __init__(self, db: AsyncSession, background_tasks=None):
        self.db = db
        self.background_tasks = background_tasks

    async def get_user(self, user_id: str) -> User:
        user = await self.db.get(User, user_id)
        if not user:
            raise UserNotFoundError()
        return user

    async def _ensure_email_free(self, email: str, user_id: str) -> None:
        result = await self.db.execute(select(User).where(func.lower(User.email) == email))
        existing = result.scalar_one_or_none()
        if existing and existing.id != user_id:
            raise EmailInUseError()

    # ==================== Own profile ====================

    async def update_me(self, user_id: str, name: str, last_name: Optional[str], email: str) -> User:
        email_lower = email.strip().lower()
        await self._ensure_email_free(email_lower, user_id)

        user = await self.get_user(user_id)
        user.name = name.strip()
        user.last_name = (last_name or "").strip()
        user.email = email_lower
        await self.db.commit()
        await self.db.refresh(user)
        return user

    async def change_password(self, user_id: str, current_password: str, new_password: str) -> None:
        user = await self.get_user(user_id)
        if not verify_password(current_password, user.password_hash):
            raise ValidationError("Current password is incorrect", field="currentPassword")
        user.password_hash = get_password_hash(new_password)
        await self.db.commit()
        logger.log_auth_event(event="change_password", success=True, user_email=user.email)

    # ==================== Students ====================

    async def list_students(self) -> List[User]:
        result = await self.db.execute(
            select(User).where(User.role == UserRole.ALUMNO).order_by(User.created_at.desc())
        )
        return list(result.scalars().all())

    async def batch_create_students(self, payload: List[Dict[str, Any]]) -> Dict[str, Any]:
        """
        Create students in bulk.

        Emails are trimmed and lowercased. Addresses already registered are
        skipped, and repeated addresses in the payload are created once.
        A password is generated when none is given.
        """
        rows = [
            {
                "name": (item.get("name") or "").strip(),
                "last_name": (item.get("last_name") or "").strip(),
                "email": (item.get("email") or "").strip().lower(),
                "password": item.get("password") or generate_password(),
            }
            for item in payload
        ]

        seen_count: Dict[str, int] = {}
        payload_duplicates: List[str] = []
        for row in rows:
            seen_count[row["email"]] = seen_count.get(row["email"], 0) + 1
            if seen_count[row["email"]] == 2:
                payload_duplicates.append(row["email"])

        emails = list({row["email"] for row in rows})
        result = await self.db.execute(select(User.email).where(func.lower(User.email).in_(emails)))
        existing = [email.lower() for email in result.scalars().all()]
        existing_set = set(existing)

        to_create = []
        created_emails = set()
        for row in rows:
            if row["email"] in existing_set or row["email"] in created_emails:
                continue
            created_emails.add(row["email"])
            to_create.append(row)

        users = [
            User(
                name=row["name"],
                last_name=row["last_name"],
                email=row["email"],
                password_hash=get_password_hash(row["password"]),
                role=UserRole.ALUMNO,
            )
            for row in to_create
        ]
        self.db.add_all(users)
        await self.db.commit()

        if to_create:
            await queue_email(
                self.background_tasks,
                email_service.send_credentials_emails,
                [
                    {"email": row["email"], "name": row["name"] or row["email"], "password": row["password"]}
                    for row in to_create
                ],
            )

        logger.info(
            f"[Users] Batch created {len(users)} students "
            f"({len(existing_set)} existing, {len(payload_duplicates)} duplicated)"
        )
        return {
            "created": [user_to_dict(u) for u in users],
            "skipped": {"exists": sorted(existing_set), "payloadDuplicates": payload_duplicates},
        }

    async def update_user(self, user_id: str, changes: Dict[str, Any], changed_by: Optional[User] = None) -> User:
        user = await self.get_user(user_id)

        if changes.get("email"):
            email_lower = changes["email"].strip().lower()
            await self._ensure_email_free(email_lower, user.id)
            user.email = email_lower
        if changes.get("name") is not None:
            user.name = changes["name"].strip()
        if changes.get("last_name") is not None:
            user.last_name = changes["last_name"].strip()

        new_password = changes.get("password")
        if new_password:
            user.password_hash = get_password_hash(new_password)

        await self.db.commit()
        await self.db.refresh(user)

        if new_password and changed_by is not None and changed_by.id != user.id:
            await queue_email(
                self.background_tasks,
                email_service.send_password_updated_email,
                user.email,
                user.name,
                new_password,
            )
        return user

    async def delete_student(self, user_id: str) -> None:
        user = await self.get_user(user_id)
        if user.role != UserRole.ALUMNO:
            raise AuthorizationError("Only students can be deleted")
        await self.db.delete(user)
        await self.db.commit()
        logger.info(f"[Users] Deleted student {user_id}")
