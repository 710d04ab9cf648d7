from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from erplay.core.database import get_db
from erplay.models.user import User
from erplay.modules.auth.dependencies import require_student, require_supervisor
from erplay.schemas.claim import CreateClaimRequest, VerifyClaimRequest
from erplay.services.claim_service import ClaimService


router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED)
@router.post("/", status_code=status.HTTP_201_CREATED, include_in_schema=False)
async def create_claim(
    body: CreateClaimRequest,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(require_student),
    db: AsyncSession = Depends(get_db)
):
    return await ClaimService(db, background_tasks).create_claim(body, current_user)


@router.get("/mine")
async def list_mine(
    current_user: User = Depends(require_student),
    db: AsyncSession = Depends(get_db)
):
    return await ClaimService(db).list_mine(current_user.id)


@router.get("/pending")
async def list_pending(
    current_user: User = Depends(require_supervisor),
    db: AsyncSession = Depends(get_db)
):
    return await ClaimService(db).list_pending()


@router.get("/pending/count")
async def pending_count(
    current_user: User = Depends(require_supervisor),
    db: AsyncSession = Depends(get_db)
):
    return {"count": await ClaimService(db).pending_count()}


@router.post("/{claim_id}/verify")
async def verify_claim(
    claim_id: str,
    body: VerifyClaimRequest,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(require_supervisor),
    db: AsyncSession = Depends(get_db)
):
    return await ClaimService(db, background_tasks).decide_claim(
        claim_id, current_user, body.decision, body.comment
    )
