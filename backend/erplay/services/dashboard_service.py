"""
Recent activity feed of a user: test sessions, created questions and claims
merged newest first.
"""

from typing import Any, Dict, List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from erplay.models.claim import Claim
from erplay.models.diagram import Diagram
from erplay.models.question import Question
from erplay.models.test_session import TestSession


class DashboardService:
    """Service for the dashboard feed"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def recent(self, user_id: str, limit: int = 8, offset: int = 0) -> List[Dict[str, Any]]:
        take_each = max(limit + offset, 40)

        sessions = await self.db.execute(
            select(TestSession, Diagram.title)
            .outerjoin(Diagram, TestSession.diagram_id == Diagram.id)
            .where(TestSession.user_id == user_id)
            .order_by(TestSession.created_at.desc())
            .limit(take_each)
        )
        items = [
            {
                "kind": "session",
                "id": s.id,
                "createdAt": s.created_at,
                "completedAt": s.completed_at,
                "mode": s.mode.value,
                "diagramTitle": title,
                "totalQuestions": s.total_questions or 0,
                "correctCount": s.correct_count or 0,
                "score": s.score,
                "durationSec": s.duration_seconds,
            }
            for s, title in sessions.all()
        ]

        questions = await self.db.execute(
            select(Question.id, Question.status, Question.prompt, Question.created_at)
            .where(Question.creator_id == user_id)
            .order_by(Question.created_at.desc())
            .limit(take_each)
        )
        items.extend(
            {
                "kind": "question",
                "id": q.id,
                "createdAt": q.created_at,
                "status": q.status.value,
                "title": q.prompt or "",
            }
            for q in questions.all()
        )

        claims = await self.db.execute(
            select(Claim.id, Claim.status, Claim.prompt_snapshot, Claim.created_at)
            .where(Claim.student_id == user_id)
            .order_by(Claim.created_at.desc())
            .limit(take_each)
        )
        items.extend(
            {
                "kind": "claim",
                "id": c.id,
                "createdAt": c.created_at,
                "status": c.status.value,
                "title": c.prompt_snapshot or "",
            }
            for c in claims.all()
        )

        items.sort(key=lambda item: item["createdAt"], reverse=True)
        return items[offset:offset + limit]
