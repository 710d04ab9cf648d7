from sqlalchemy import Column, String, DateTime, Enum as SQLEnum
from datetime import datetime
import enum

from erplay.core.database import Base
from erplay.core.types import GUID, generate_uuid


def enum_values(enum_cls):
    """Persist enum values (e.g. 'alumno') instead of member names"""
    return [member.value for member in enum_cls]


class UserRole(str, enum.Enum):
    """User roles"""
    ALUMNO = "alumno"
    SUPERVISOR = "supervisor"


class User(Base):
    """User model"""
    __tablename__ = "users"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)

    role = Column(
        SQLEnum(UserRole, name="user_role", values_callable=enum_values),
        default=UserRole.ALUMNO,
        nullable=False,
    )

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @property
    def full_name(self) -> str:
        return f"{self.name or ''} {self.last_name or ''}".strip() or self.email

    def __repr__(self):
        return f"<User {self.email}>"
