"""
Supervisor views over one student, plus weekly goal management.

Diagram image paths are returned as absolute URLs so the supervisor panel can
render them from another origin.
"""

import re
from datetime import date
from typing import Any, Dict, Literal, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from erplay.core.config import settings
from erplay.core.database import get_db
from erplay.core.exceptions import StudentNotFoundError
from erplay.models.test_session import TestMode
from erplay.models.user import User, UserRole
from erplay.modules.auth.dependencies import require_supervisor
from erplay.schemas.user import UserResponse
from erplay.schemas.weekly_goal import WeeklyGoalRequest
from erplay.services.claim_service import ClaimService
from erplay.services.progress_service import ProgressService
from erplay.services.question_service import QuestionService
from erplay.services.test_session_service import TestSessionService
from erplay.services.weekly_goal_service import WeeklyGoalService, goal_to_dict


router = APIRouter()

_ABSOLUTE_URL = re.compile(r"^https?://", re.IGNORECASE)


def service_base_url(request: Request) -> str:
    return (settings.PUBLIC_API_BASE_URL or str(request.base_url)).rstrip("/")


def with_base(request: Request, path: Optional[str]) -> Optional[str]:
    if not path:
        return None
    if _ABSOLUTE_URL.match(path):
        return path
    return f"{service_base_url(request)}{'' if path.startswith('/') else '/'}{path}"


def _absolute_diagram(request: Request, diagram: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if not diagram:
        return None
    return {**diagram, "path": with_base(request, diagram.get("path"))}


# ==================== Student ====================

@router.get("/students/{student_id}", response_model=UserResponse)
async def get_student(
    student_id: str,
    current_user: User = Depends(require_supervisor),
    db: AsyncSession = Depends(get_db)
):
    student = await db.get(User, student_id)
    if not student or student.role != UserRole.ALUMNO:
        raise StudentNotFoundError()
    return student


@router.get("/students/{student_id}/progress/overview")
async def student_overview(
    student_id: str,
    current_user: User = Depends(require_supervisor),
    db: AsyncSession = Depends(get_db)
):
    return await ProgressService(db).overview(student_id)


@router.get("/students/{student_id}/progress/trends")
async def student_trends(
    student_id: str,
    date_from: Optional[date] = Query(None, alias="from"),
    date_to: Optional[date] = Query(None, alias="to"),
    bucket: Literal["day", "week"] = "day",
    current_user: User = Depends(require_supervisor),
    db: AsyncSession = Depends(get_db)
):
    return await ProgressService(db).trends(student_id, date_from, date_to, bucket)


@router.get("/students/{student_id}/progress/errors")
async def student_errors(
    student_id: str,
    limit: int = Query(5, ge=1, le=50),
    current_user: User = Depends(require_supervisor),
    db: AsyncSession = Depends(get_db)
):
    return await ProgressService(db).errors(student_id, limit)


@router.get("/students/{student_id}/claims/stats")
async def student_claims_stats(
    student_id: str,
    current_user: User = Depends(require_supervisor),
    db: AsyncSession = Depends(get_db)
):
    return await ProgressService(db).claims_stats(student_id)


@router.get("/students/{student_id}/claims")
async def student_claims(
    student_id: str,
    request: Request,
    current_user: User = Depends(require_supervisor),
    db: AsyncSession = Depends(get_db)
):
    claims = await ClaimService(db).list_for_student(student_id)
    items = []
    for c in claims:
        options = c.options_snapshot or []
        diagram = None
        if c.diagram is not None:
            diagram = {"id": c.diagram.id, "title": c.diagram.title, "path": with_base(request, c.diagram.path)}
        items.append({
            "id": c.id,
            "status": c.status.value.lower(),
            "createdAt": c.created_at,
            "reviewedAt": c.reviewed_at,
            "reviewerComment": c.reviewer_comment,
            "resolution": {"decidedAt": c.reviewed_at, "comment": c.reviewer_comment},
            "promptSnapshot": c.prompt_snapshot,
            "prompt": c.prompt_snapshot,
            "optionsSnapshot": options,
            "options": options,
            "chosenIndex": c.chosen_index,
            "correctIndexAtSubmission": c.correct_index_at_submission,
            "correctIndex": c.correct_index_at_submission,
            "diagram": diagram,
        })
    return items


@router.get("/students/{student_id}/badges")
async def student_badges(
    student_id: str,
    current_user: User = Depends(require_supervisor),
    db: AsyncSession = Depends(get_db)
):
    return await ProgressService(db).badges(student_id)


@router.get("/students/{student_id}/questions")
async def student_questions(
    student_id: str,
    request: Request,
    limit: int = Query(100, ge=1, le=500),
    current_user: User = Depends(require_supervisor),
    db: AsyncSession = Depends(get_db)
):
    """Questions the student proposed"""
    rows = await QuestionService(db).list_mine(student_id, limit)
    return [
        {
            "id": q["id"],
            "prompt": q["prompt"],
            "status": q["status"],
            "createdAt": q["createdAt"],
            "diagram": _absolute_diagram(request, q["diagram"]),
            "options": q["options"],
            "correctIndex": q["correctIndex"],
        }
        for q in rows
    ]


@router.get("/students/{student_id}/tests")
async def student_tests(
    student_id: str,
    request: Request,
    mode: Optional[TestMode] = None,
    date_from: Optional[date] = Query(None, alias="dateFrom"),
    date_to: Optional[date] = Query(None, alias="dateTo"),
    q: Optional[str] = None,
    current_user: User = Depends(require_supervisor),
    db: AsyncSession = Depends(get_db)
):
    rows = await TestSessionService(db).list_mine(student_id, mode, date_from, date_to, q)
    return [{**s, "diagram": _absolute_diagram(request, s["diagram"])} for s in rows]


@router.get("/students/{student_id}/tests/{session_id}")
async def student_test_detail(
    student_id: str,
    session_id: str,
    request: Request,
    current_user: User = Depends(require_supervisor),
    db: AsyncSession = Depends(get_db)
):
    data = await TestSessionService(db).get_one(student_id, session_id)
    data["diagram"] = _absolute_diagram(request, data["diagram"])
    return data


# ==================== Weekly goal ====================

@router.get("/weekly-goal")
async def get_weekly_goal(
    current_user: User = Depends(require_supervisor),
    db: AsyncSession = Depends(get_db)
):
    goal = await WeeklyGoalService(db).get_current()
    if goal is None:
        return {"weekStart": None, "weekEnd": None, "targetTests": 0}
    return goal_to_dict(goal)


@router.put("/weekly-goal")
@router.post("/weekly-goal")
async def set_weekly_goal(
    body: WeeklyGoalRequest,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(require_supervisor),
    db: AsyncSession = Depends(get_db)
):
    """Create or update the goal of a week; students are notified by email"""
    goal = await WeeklyGoalService(db, background_tasks).upsert(
        current_user,
        body.target_tests,
        week_start=body.week_start,
        week_end=body.week_end,
        notify=body.notify,
    )
    return goal_to_dict(goal)


@router.get("/weekly-goal/progress")
async def weekly_goal_progress(
    week_start: Optional[date] = Query(None, alias="weekStart"),
    week_end: Optional[date] = Query(None, alias="weekEnd"),
    user_id: Optional[str] = Query(None, alias="userId"),
    current_user: User = Depends(require_supervisor),
    db: AsyncSession = Depends(get_db)
):
    return await WeeklyGoalService(db).list_weekly_progress(week_start, week_end, user_id)
