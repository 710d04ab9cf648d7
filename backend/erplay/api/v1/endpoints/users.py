from typing import List

from fastapi import APIRouter, BackgroundTasks, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from erplay.core.database import get_db
from erplay.core.exceptions import AuthorizationError
from erplay.models.user import User, UserRole
from erplay.modules.auth.dependencies import get_current_user, require_supervisor
from erplay.schemas.user import (
    BatchCreateRequest,
    ChangePasswordRequest,
    UpdateMeRequest,
    UpdateUserRequest,
    UserResponse,
)
from erplay.services.user_service import UserService


router = APIRouter()


def _ensure_self_or_supervisor(current_user: User, user_id: str) -> None:
    if current_user.role == UserRole.ALUMNO and current_user.id != user_id:
        raise AuthorizationError()


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: User = Depends(get_current_user)):
    return current_user


@router.put("/me", response_model=UserResponse)
async def update_me(
    body: UpdateMeRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await UserService(db).update_me(current_user.id, body.name, body.last_name, body.email)


@router.post("/me/password")
async def change_password(
    body: ChangePasswordRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    await UserService(db).change_password(current_user.id, body.current_password, body.new_password)
    return {"message": "Password updated"}


@router.get("", response_model=List[UserResponse])
@router.get("/", response_model=List[UserResponse], include_in_schema=False)
async def list_students(
    current_user: User = Depends(require_supervisor),
    db: AsyncSession = Depends(get_db)
):
    """Students, newest first"""
    return await UserService(db).list_students()


@router.post("/batch", status_code=status.HTTP_201_CREATED)
async def batch_create(
    body: BatchCreateRequest,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(require_supervisor),
    db: AsyncSession = Depends(get_db)
):
    payload = [item.model_dump() for item in body.users]
    return await UserService(db, background_tasks).batch_create_students(payload)


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    _ensure_self_or_supervisor(current_user, user_id)
    return await UserService(db).get_user(user_id)


@router.put("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: str,
    body: UpdateUserRequest,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    _ensure_self_or_supervisor(current_user, user_id)
    return await UserService(db, background_tasks).update_user(
        user_id, body.model_dump(exclude_unset=True), changed_by=current_user
    )


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_student(
    user_id: str,
    current_user: User = Depends(require_supervisor),
    db: AsyncSession = Depends(get_db)
):
    await UserService(db).delete_student(user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
