"""
Claim Service
=============
Students dispute the official answer of a question they were tested on.
While a claim is open the question goes back to ``pending``; the supervisor
decision either moves the correct answer to the student's choice (approve)
or re-approves the question unchanged (reject).
"""

import re
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from erplay.core.exceptions import (
    AuthorizationError,
    ClaimNotFoundError,
    ConflictError,
    DiagramNotFoundError,
    ValidationError,
)
from erplay.core.logging_config import logger
from erplay.models.claim import Claim, ClaimStatus
from erplay.models.diagram import Diagram
from erplay.models.question import Question, ReviewStatus
from erplay.models.test_session import TestResult, TestSession
from erplay.models.user import User, UserRole
from erplay.schemas.claim import CreateClaimRequest
from erplay.services.email_service import email_service, queue_email
from erplay.services.user_service import supervisor_emails

_WS_RE = re.compile(r"\s+")


def _norm(value) -> str:
    return _WS_RE.sub(" ", str(value or "").strip())


def _diagram_ref(diagram: Optional[Diagram]) -> Optional[Dict[str, Any]]:
    if diagram is None:
        return None
    return {"id": diagram.id, "title": diagram.title, "path": diagram.path}


class ClaimService:
    """Service for answer disputes"""

    def __init__(self, db: AsyncSession, background_tasks=None):
        self.db = db
        self.background_tasks = background_tasks

    async def _question_with_options(self, question_id: str) -> Optional[Question]:
        result = await self.db.execute(
            select(Question)
            .options(selectinload(Question.options))
            .where(Question.id == question_id)
            .with_for_update()
        )
        return result.scalar_one_or_none()

    async def _match_question(self, diagram_id: str, prompt: str, options: List[str]) -> Optional[Question]:
        """Question of the diagram with the same prompt and options, ignoring whitespace"""
        result = await self.db.execute(
            select(Question)
            .options(selectinload(Question.options))
            .where(Question.diagram_id == diagram_id)
        )
        wanted_prompt = _norm(prompt)
        wanted_options = [_norm(o) for o in options]
        for candidate in result.scalars().all():
            if _norm(candidate.prompt) == wanted_prompt and [_norm(o) for o in candidate.option_texts] == wanted_options:
                return candidate
        return None

    # ==================== Create ====================

    async def create_claim(self, data: CreateClaimRequest, student: User) -> Dict[str, Any]:
        diagram = await self.db.get(Diagram, data.diagram_id)
        if not diagram:
            raise DiagramNotFoundError()

        test_result = None
        if data.test_result_id:
            result = await self.db.execute(
                select(TestResult)
                .join(TestSession, TestResult.session_id == TestSession.id)
                .where(TestResult.id == data.test_result_id, TestSession.user_id == student.id)
            )
            test_result = result.scalar_one_or_none()
            if not test_result:
                raise ValidationError("Result not valid for a claim", field="testResultId")

            existing = await self.db.execute(
                select(Claim).where(Claim.test_result_id == test_result.id).order_by(Claim.created_at.asc())
            )
            duplicate = existing.scalars().first()
            if duplicate:
                return {"id": duplicate.id, "status": duplicate.status.value, "testResultId": test_result.id}

        question = None
        if data.question_id:
            question = await self._question_with_options(data.question_id)
        elif test_result is not None and test_result.question_id:
            question = await self._question_with_options(test_result.question_id)
        if question is None:
            question = await self._match_question(diagram.id, data.prompt, data.options)

        if question is not None:
            question.status = ReviewStatus.PENDING

        claim = Claim(
            status=ClaimStatus.PENDING,
            question_id=question.id if question else None,
            diagram_id=diagram.id,
            student_id=student.id,
            test_result_id=test_result.id if test_result else None,
            prompt_snapshot=data.prompt.strip(),
            options_snapshot=[o.strip() for o in data.options],
            chosen_index=data.chosen_index,
            correct_index_at_submission=data.correct_index,
            explanation=data.explanation.strip(),
        )
        self.db.add(claim)
        await self.db.commit()

        logger.info(f"[Claims] Student {student.id} opened claim {claim.id} on diagram {diagram.id}")

        recipients = await supervisor_emails(self.db)
        await queue_email(
            self.background_tasks,
            email_service.notify_new_claim,
            recipients=recipients,
            student_name=student.full_name,
            student_email=student.email,
            diagram_title=diagram.title,
            prompt=claim.prompt_snapshot,
            options=claim.options_snapshot,
            chosen_index=claim.chosen_index,
            correct_index=claim.correct_index_at_submission,
            explanation=claim.explanation,
            submitted_at=claim.created_at,
        )
        return {"id": claim.id, "status": claim.status.value, "testResultId": claim.test_result_id}

    # ==================== Lists ====================

    async def pending_count(self) -> int:
        result = await self.db.execute(
            select(func.count(Claim.id)).where(Claim.status == ClaimStatus.PENDING)
        )
        return result.scalar() or 0

    async def list_pending(self) -> List[Dict[str, Any]]:
        result = await self.db.execute(
            select(Claim)
            .options(selectinload(Claim.student), selectinload(Claim.diagram))
            .where(Claim.status == ClaimStatus.PENDING)
            .order_by(Claim.created_at.desc())
        )
        return [
            {
                "id": c.id,
                "testResultId": c.test_result_id,
                "questionId": c.question_id,
                "prompt": c.prompt_snapshot,
                "options": c.options_snapshot,
                "chosenIndex": c.chosen_index,
                "correctIndex": c.correct_index_at_submission,
                "explanation": c.explanation,
                "createdAt": c.created_at,
                "student": {
                    "id": c.student.id,
                    "email": c.student.email,
                    "name": c.student.name or "",
                    "lastName": c.student.last_name or "",
                },
                "diagram": _diagram_ref(c.diagram),
            }
            for c in result.scalars().all()
        ]

    async def list_for_student(self, student_id: str) -> List[Claim]:
        result = await self.db.execute(
            select(Claim)
            .options(selectinload(Claim.diagram))
            .where(Claim.student_id == student_id)
            .order_by(Claim.created_at.desc())
        )
        return list(result.scalars().all())

    async def list_mine(self, student_id: str) -> List[Dict[str, Any]]:
        return [
            {
                "id": c.id,
                "status": c.status.value,
                "testResultId": c.test_result_id,
                "createdAt": c.created_at,
                "reviewedAt": c.reviewed_at,
                "reviewerComment": c.reviewer_comment,
                "prompt": c.prompt_snapshot,
                "options": c.options_snapshot,
                "chosenIndex": c.chosen_index,
                "correctIndex": c.correct_index_at_submission,
                "diagram": _diagram_ref(c.diagram),
            }
            for c in await self.list_for_student(student_id)
        ]

    # ==================== Decide ====================

    async def decide_claim(self, claim_id: str, reviewer: User, decision: str, comment: str = None) -> Dict[str, Any]:
        if reviewer.role != UserRole.SUPERVISOR:
            raise AuthorizationError()

        result = await self.db.execute(
            select(Claim)
            .options(selectinload(Claim.student), selectinload(Claim.diagram))
            .where(Claim.id == claim_id)
            .with_for_update()
        )
        claim = result.scalar_one_or_none()
        if not claim:
            raise ClaimNotFoundError()
        if claim.status != ClaimStatus.PENDING:
            raise ConflictError("Claim already resolved")

        question = await self._question_with_options(claim.question_id) if claim.question_id else None

        claim.reviewer_id = reviewer.id
        claim.reviewer_comment = (comment or "").strip() or None
        claim.reviewed_at = datetime.utcnow()

        if decision == "approve":
            claim.status = ClaimStatus.APPROVED
            if question is not None:
                snapshot = claim.options_snapshot or []
                chosen_text = snapshot[claim.chosen_index] if 0 <= claim.chosen_index < len(snapshot) else None
                new_index = claim.chosen_index
                if chosen_text:
                    current = [_norm(o) for o in question.option_texts]
                    if _norm(chosen_text) in current:
                        new_index = current.index(_norm(chosen_text))
                question.correct_option_index = new_index
                question.status = ReviewStatus.APPROVED
        else:
            claim.status = ClaimStatus.REJECTED
            if question is not None:
                question.status = ReviewStatus.APPROVED

        await self.db.commit()
        logger.log_review_event("claim", claim.id, decision, reviewer.id)

        approved = claim.status == ClaimStatus.APPROVED
        await queue_email(
            self.background_tasks,
            email_service.notify_claim_decision,
            to_email=claim.student.email,
            approved=approved,
            diagram_title=claim.diagram.title if claim.diagram else "",
            prompt=claim.prompt_snapshot,
            options=claim.options_snapshot or [],
            chosen_index=claim.chosen_index,
            correct_index_now=claim.chosen_index if approved else claim.correct_index_at_submission,
            reviewer_comment=claim.reviewer_comment,
        )
        return {"id": claim.id, "status": claim.status.value}
