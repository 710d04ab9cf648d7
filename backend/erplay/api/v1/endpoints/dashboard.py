from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from erplay.core.database import get_db
from erplay.models.user import User
from erplay.modules.auth.dependencies import get_current_user
from erplay.services.dashboard_service import DashboardService


router = APIRouter()


@router.get("/recent")
async def recent_activity(
    limit: int = Query(8, ge=1, le=50),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await DashboardService(db).recent(current_user.id, limit, offset)
