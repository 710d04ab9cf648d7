from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from erplay.core.database import get_db
from erplay.models.user import User
from erplay.modules.auth.dependencies import get_current_user, require_supervisor
from erplay.schemas.question import CreateQuestionRequest, VerifyQuestionRequest
from erplay.services.question_service import QuestionService


router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED)
@router.post("/", status_code=status.HTTP_201_CREATED, include_in_schema=False)
async def create_question(
    body: CreateQuestionRequest,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Supervisors add catalog questions; students propose questions for review"""
    return await QuestionService(db, background_tasks).create_question(body, current_user)


@router.get("/pending")
async def list_pending(
    current_user: User = Depends(require_supervisor),
    db: AsyncSession = Depends(get_db)
):
    return await QuestionService(db).list_pending()


@router.get("/pending/count")
async def pending_count(
    current_user: User = Depends(require_supervisor),
    db: AsyncSession = Depends(get_db)
):
    return {"count": await QuestionService(db).pending_count()}


@router.post("/{question_id}/verify")
async def verify_question(
    question_id: str,
    body: VerifyQuestionRequest,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(require_supervisor),
    db: AsyncSession = Depends(get_db)
):
    await QuestionService(db, background_tasks).verify_question(
        question_id, current_user, body.decision, body.comment
    )
    message = "Question approved" if body.decision == "approve" else "Question rejected"
    return {"message": message}


@router.get("/mine")
async def list_mine(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await QuestionService(db).list_mine(current_user.id)
