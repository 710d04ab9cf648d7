"""
Diagram Service
===============
CRUD for diagrams and the questions attached to them. Questions written by
a supervisor through the diagram form are approved on creation.
"""

import re
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import UploadFile
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from erplay.core.exceptions import ConflictError, DiagramNotFoundError, ValidationError
from erplay.core.logging_config import logger
from erplay.models.diagram import Diagram
from erplay.models.question import Option, Question, QuestionSource, ReviewStatus
from erplay.models.user import User, UserRole
from erplay.schemas.diagram import QuestionInput
from erplay.services.upload_service import delete_diagram_image, save_diagram_image

_WS_RE = re.compile(r"\s+")


def _norm(value: Optional[str]) -> str:
    return _WS_RE.sub(" ", (value or "").strip())


def question_signature(prompt: str, hint: str, options: List[str], correct_index: int) -> str:
    """Whitespace-insensitive identity of a question's content"""
    opts = "||".join(_norm(o) for o in options or [])
    return f"{_norm(prompt)}|{_norm(hint)}|{opts}|#{correct_index}"


def build_question(data: QuestionInput, diagram_id: str, author: User) -> Question:
    """New question with options; supervisors' questions start approved"""
    supervisor = author.role == UserRole.SUPERVISOR
    question = Question(
        prompt=data.prompt.strip(),
        hint=data.hint.strip(),
        correct_option_index=data.correct_index,
        diagram_id=diagram_id,
        creator_id=author.id,
        status=ReviewStatus.APPROVED if supervisor else ReviewStatus.PENDING,
        source=QuestionSource.CATALOG if supervisor else QuestionSource.STUDENT,
        reviewed_by_id=author.id if supervisor else None,
        reviewed_at=datetime.utcnow() if supervisor else None,
        review_comment=None,
    )
    question.options = [
        Option(text=text.strip(), order_index=idx) for idx, text in enumerate(data.options)
    ]
    return question


class DiagramService:
    """Service for diagram management"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_diagram(self, diagram_id: str) -> Diagram:
        diagram = await self.db.get(Diagram, diagram_id)
        if not diagram:
            raise DiagramNotFoundError()
        return diagram

    async def _ensure_title_free(self, title: str, diagram_id: Optional[str] = None) -> None:
        result = await self.db.execute(select(Diagram.id).where(Diagram.title == title))
        existing = result.scalar_one_or_none()
        if existing and existing != diagram_id:
            raise ConflictError("A diagram with this title already exists")

    async def list_diagrams(self) -> List[Dict[str, Any]]:
        """Newest first, with the number of approved questions"""
        approved_count = (
            select(func.count(Question.id))
            .where(Question.diagram_id == Diagram.id, Question.status == ReviewStatus.APPROVED)
            .correlate(Diagram)
            .scalar_subquery()
        )
        result = await self.db.execute(
            select(Diagram, approved_count.label("questions_count")).order_by(Diagram.created_at.desc())
        )
        return [
            {
                "id": diagram.id,
                "title": diagram.title,
                "path": diagram.path,
                "createdAt": diagram.created_at,
                "questionsCount": count or 0,
            }
            for diagram, count in result.all()
        ]

    async def get_diagram_detail(self, diagram_id: str) -> Dict[str, Any]:
        diagram = await self.get_diagram(diagram_id)
        result = await self.db.execute(
            select(Question)
            .options(selectinload(Question.options))
            .where(Question.diagram_id == diagram.id, Question.status == ReviewStatus.APPROVED)
            .order_by(Question.created_at.asc())
        )
        return {
            "id": diagram.id,
            "title": diagram.title,
            "path": diagram.path,
            "createdAt": diagram.created_at,
            "questions": [
                {
                    "id": q.id,
                    "prompt": q.prompt,
                    "hint": q.hint,
                    "correctIndex": q.correct_option_index,
                    "options": q.option_texts,
                }
                for q in result.scalars().all()
            ],
        }

    async def create_diagram(
        self,
        title: str,
        questions: List[QuestionInput],
        image: Optional[UploadFile],
        creator: User,
    ) -> Dict[str, str]:
        title = (title or "").strip()
        if not title:
            raise ValidationError("Title is required", field="title")
        if not questions:
            raise ValidationError("At least one question is required", field="questions")
        await self._ensure_title_free(title)

        filename, public_path = await save_diagram_image(image)
        diagram = Diagram(title=title, filename=filename, path=public_path)
        self.db.add(diagram)
        await self.db.flush()

        for data in questions:
            self.db.add(build_question(data, diagram.id, creator))

        try:
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            await delete_diagram_image(public_path)
            raise

        logger.info(f"[Diagrams] Created '{title}' with {len(questions)} questions")
        return {"id": diagram.id, "path": diagram.path}

    async def update_diagram(
        self,
        diagram_id: str,
        title: str,
        questions: List[QuestionInput],
        image: Optional[UploadFile],
        actor: User,
    ) -> None:
        """
        Replace title, question set and optionally the image.

        Questions whose content signature matches an existing one are kept as
        they are (creator, source, status and history preserved); the rest of
        the previous questions are removed and new ones are created.
        """
        diagram = await self.get_diagram(diagram_id)
        title = (title or "").strip()
        if not title:
            raise ValidationError("Title is required", field="title")
        if not questions:
            raise ValidationError("At least one question is required", field="questions")
        await self._ensure_title_free(title, diagram.id)

        result = await self.db.execute(
            select(Question)
            .options(selectinload(Question.options))
            .where(Question.diagram_id == diagram.id)
            .order_by(Question.created_at.asc())
        )
        existing = list(result.scalars().all())
        existing_by_sig: Dict[str, Question] = {}
        for q in existing:
            sig = question_signature(q.prompt, q.hint, q.option_texts, q.correct_option_index or 0)
            existing_by_sig.setdefault(sig, q)

        old_path = None
        new_path = None
        if image is not None and image.filename:
            filename, public_path = await save_diagram_image(image)
            new_path = public_path
            old_path = diagram.path
            diagram.filename = filename
            diagram.path = public_path
        diagram.title = title

        kept = set()
        for data in questions:
            sig = question_signature(data.prompt, data.hint, data.options, data.correct_index)
            match = existing_by_sig.get(sig)
            if match is not None and match.id not in kept:
                kept.add(match.id)
                continue
            self.db.add(build_question(data, diagram.id, actor))

        removed = 0
        for q in existing:
            if q.id not in kept:
                await self.db.delete(q)
                removed += 1

        try:
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            if new_path:
                await delete_diagram_image(new_path)
            raise

        if old_path:
            await delete_diagram_image(old_path)
        logger.info(
            f"[Diagrams] Updated '{title}': kept {len(kept)}, removed {removed}, "
            f"added {len(questions) - len(kept)} questions"
        )

    async def delete_diagram(self, diagram_id: str) -> None:
        diagram = await self.get_diagram(diagram_id)
        old_path = diagram.path
        await self.db.delete(diagram)
        await self.db.commit()
        await delete_diagram_image(old_path)
        logger.info(f"[Diagrams] Deleted diagram {diagram_id}")
