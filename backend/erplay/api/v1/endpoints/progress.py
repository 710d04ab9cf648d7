from datetime import date
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from erplay.core.database import get_db
from erplay.models.user import User
from erplay.modules.auth.dependencies import get_current_user
from erplay.services.progress_service import ProgressService


router = APIRouter()


@router.get("/overview")
async def overview(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await ProgressService(db).overview(current_user.id)


@router.get("/trends")
async def trends(
    date_from: Optional[date] = Query(None, alias="from"),
    date_to: Optional[date] = Query(None, alias="to"),
    bucket: Literal["day", "week"] = "day",
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await ProgressService(db).trends(current_user.id, date_from, date_to, bucket)


@router.get("/errors")
async def errors(
    limit: int = Query(5, ge=1, le=50),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await ProgressService(db).errors(current_user.id, limit)


@router.get("/habits")
async def habits(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await ProgressService(db).habits(current_user.id)


@router.get("/claims")
async def claims(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await ProgressService(db).claims_stats(current_user.id)


@router.get("/badges")
async def badges(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await ProgressService(db).badges(current_user.id)


@router.get("/weekly-goal/progress")
async def weekly_goal_progress(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Progress towards the current weekly goal, null when none is set"""
    return await ProgressService(db).weekly_goal_progress(current_user.id)
