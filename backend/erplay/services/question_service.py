"""
Question Service
================
Question proposals and the supervisor review queue.
"""

from datetime import datetime
from typing import Any, Dict, List

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from erplay.core.exceptions import DiagramNotFoundError, QuestionNotFoundError
from erplay.core.logging_config import logger
from erplay.models.diagram import Diagram
from erplay.models.question import Question, ReviewStatus
from erplay.models.user import User
from erplay.schemas.question import CreateQuestionRequest
from erplay.services.diagram_service import build_question
from erplay.services.email_service import email_service, queue_email
from erplay.services.user_service import supervisor_emails


def _diagram_ref(diagram: Diagram) -> Dict[str, Any]:
    if diagram is None:
        return None
    return {"id": diagram.id, "title": diagram.title, "path": diagram.path}


class QuestionService:
    """Service for question submission and review"""

    def __init__(self, db: AsyncSession, background_tasks=None):
        self.db = db
        self.background_tasks = background_tasks

    async def _load(self, question_id: str) -> Question:
        result = await self.db.execute(
            select(Question)
            .options(
                selectinload(Question.options),
                selectinload(Question.creator),
                selectinload(Question.diagram),
            )
            .where(Question.id == question_id)
        )
        question = result.scalar_one_or_none()
        if not question:
            raise QuestionNotFoundError()
        return question

    async def create_question(self, data: CreateQuestionRequest, author: User) -> Dict[str, Any]:
        diagram = await self.db.get(Diagram, data.diagram_id)
        if not diagram:
            raise DiagramNotFoundError()

        question = build_question(data, diagram.id, author)
        self.db.add(question)
        await self.db.commit()

        if question.status == ReviewStatus.PENDING:
            recipients = await supervisor_emails(self.db)
            await queue_email(
                self.background_tasks,
                email_service.notify_new_pending_question,
                recipients=recipients,
                author_name=author.full_name,
                author_email=author.email,
                diagram_title=diagram.title,
                prompt=question.prompt,
                options=[o.strip() for o in data.options],
                correct_index=question.correct_option_index,
            )

        logger.info(f"[Questions] {author.role.value} {author.id} created question {question.id} ({question.status.value})")
        return {"id": question.id, "status": question.status.value}

    async def pending_count(self) -> int:
        result = await self.db.execute(
            select(func.count(Question.id)).where(Question.status == ReviewStatus.PENDING)
        )
        return result.scalar() or 0

    async def list_pending(self) -> List[Dict[str, Any]]:
        result = await self.db.execute(
            select(Question)
            .options(
                selectinload(Question.options),
                selectinload(Question.creator),
                selectinload(Question.diagram),
            )
            .where(Question.status == ReviewStatus.PENDING)
            .order_by(Question.created_at.desc())
        )
        return [
            {
                "id": q.id,
                "prompt": q.prompt,
                "hint": q.hint or "",
                "correctIndex": q.correct_option_index or 0,
                "options": q.option_texts,
                "createdAt": q.created_at,
                "creator": (
                    {"id": q.creator.id, "email": q.creator.email, "name": q.creator.name}
                    if q.creator else None
                ),
                "diagram": _diagram_ref(q.diagram),
            }
            for q in result.scalars().all()
        ]

    async def verify_question(self, question_id: str, reviewer: User, decision: str, comment: str = None) -> None:
        question = await self._load(question_id)

        if decision == "approve":
            question.status = ReviewStatus.APPROVED
            question.review_comment = None
        else:
            question.status = ReviewStatus.REJECTED
            question.review_comment = (comment or "").strip() or None
        question.reviewed_by_id = reviewer.id
        question.reviewed_at = datetime.utcnow()
        await self.db.commit()

        logger.log_review_event("question", question.id, decision, reviewer.id)

        if question.creator and question.creator.email:
            await queue_email(
                self.background_tasks,
                email_service.notify_question_reviewed,
                to_email=question.creator.email,
                approved=question.status == ReviewStatus.APPROVED,
                diagram_title=question.diagram.title if question.diagram else "",
                prompt=question.prompt,
                comment=question.review_comment,
            )

    async def list_mine(self, creator_id: str, limit: int = None) -> List[Dict[str, Any]]:
        query = (
            select(Question)
            .options(selectinload(Question.options), selectinload(Question.diagram))
            .where(Question.creator_id == creator_id)
            .order_by(Question.created_at.desc())
        )
        if limit:
            query = query.limit(limit)
        result = await self.db.execute(query)
        return [
            {
                "id": q.id,
                "prompt": q.prompt,
                "status": q.status.value,
                "source": q.source.value,
                "reviewComment": q.review_comment,
                "createdAt": q.created_at,
                "reviewedAt": q.reviewed_at,
                "diagram": _diagram_ref(q.diagram),
                "options": q.option_texts,
                "correctIndex": q.correct_option_index or 0,
            }
            for q in result.scalars().all()
        ]
