from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from erplay.core.database import get_db
from erplay.models.user import User
from erplay.modules.auth.dependencies import require_student
from erplay.services.exam_service import ExamService


router = APIRouter()


@router.get("/start")
async def start_exam(
    limit: int = Query(10, ge=1, le=50),
    current_user: User = Depends(require_student),
    db: AsyncSession = Depends(get_db)
):
    """Random diagram with up to `limit` approved questions; nothing is recorded"""
    return await ExamService(db).start_random_exam(limit)
