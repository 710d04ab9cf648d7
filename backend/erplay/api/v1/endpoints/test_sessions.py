from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from erplay.core.database import get_db
from erplay.models.test_session import TestMode
from erplay.models.user import User
from erplay.modules.auth.dependencies import get_current_user
from erplay.schemas.test_session import LogEventRequest, PatchResultRequest, StartSessionRequest
from erplay.services.test_session_service import TestSessionService


router = APIRouter()


@router.post("/start")
async def start_session(
    body: StartSessionRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await TestSessionService(db).start_session(current_user.id, body.mode, body.limit)


@router.patch("/{session_id}/results/{result_id}")
async def patch_result(
    session_id: str,
    result_id: str,
    body: PatchResultRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await TestSessionService(db).patch_result(current_user.id, session_id, result_id, body)


@router.post("/{session_id}/events")
async def log_event(
    session_id: str,
    body: LogEventRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await TestSessionService(db).log_event(
        current_user.id, session_id, body.type, body.result_id, body.payload
    )


@router.post("/{session_id}/finish")
async def finish_session(
    session_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await TestSessionService(db).finish_session(current_user.id, session_id)


@router.get("/mine")
async def list_mine(
    mode: Optional[TestMode] = None,
    date_from: Optional[date] = Query(None, alias="dateFrom"),
    date_to: Optional[date] = Query(None, alias="dateTo"),
    q: Optional[str] = None,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await TestSessionService(db).list_mine(current_user.id, mode, date_from, date_to, q)


@router.get("/{session_id}")
async def get_session(
    session_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await TestSessionService(db).get_one(current_user.id, session_id)
