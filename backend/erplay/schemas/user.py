from datetime import datetime
from typing import List, Optional

from pydantic import EmailStr, Field, field_validator

from erplay.models.user import UserRole
from erplay.schemas.base import CamelModel


class UserResponse(CamelModel):
    """User without credentials"""
    id: str
    name: str
    last_name: Optional[str] = None
    email: str
    role: UserRole
    created_at: datetime
    updated_at: Optional[datetime] = None


class UpdateMeRequest(CamelModel):
    name: str = Field(..., min_length=1)
    last_name: Optional[str] = ""
    email: EmailStr

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v):
        if not v.strip():
            raise ValueError("Name is required")
        return v.strip()


class ChangePasswordRequest(CamelModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=6)


class BatchStudentItem(CamelModel):
    name: str = Field(..., min_length=1)
    last_name: Optional[str] = ""
    email: EmailStr
    password: Optional[str] = Field(None, min_length=6)


class BatchCreateRequest(CamelModel):
    users: List[BatchStudentItem] = Field(..., min_length=1)


class UpdateUserRequest(CamelModel):
    name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(None, min_length=6)

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v):
        if v is not None and not v.strip():
            raise ValueError("Name is required")
        return v
