"""
Random diagram picking shared by exams and test sessions.
"""

import random
from typing import Any, Dict, List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from erplay.core.exceptions import NoTestsAvailableError
from erplay.models.diagram import Diagram
from erplay.models.question import Question, ReviewStatus


async def pick_random_diagram(db: AsyncSession) -> Diagram:
    """A random diagram having at least one approved question"""
    result = await db.execute(
        select(Question.diagram_id).where(Question.status == ReviewStatus.APPROVED).distinct()
    )
    diagram_ids = list(result.scalars().all())
    if not diagram_ids:
        raise NoTestsAvailableError()
    return await db.get(Diagram, random.choice(diagram_ids))


async def approved_questions(db: AsyncSession, diagram_id: str) -> List[Question]:
    result = await db.execute(
        select(Question)
        .options(selectinload(Question.options))
        .where(Question.diagram_id == diagram_id, Question.status == ReviewStatus.APPROVED)
    )
    return list(result.scalars().all())


def sample_questions(questions: List[Question], limit: int) -> List[Question]:
    chosen = list(questions)
    random.shuffle(chosen)
    return chosen[:min(limit, len(chosen))]


class ExamService:
    """Stateless exam: questions are returned but nothing is recorded"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def start_random_exam(self, limit: int = 10) -> Dict[str, Any]:
        diagram = await pick_random_diagram(self.db)
        questions = await approved_questions(self.db, diagram.id)
        if not questions:
            raise NoTestsAvailableError("The test has no approved questions")

        items = []
        for q in sample_questions(questions, limit):
            options = q.option_texts
            correct_index = q.correct_option_index or 0
            if not 0 <= correct_index < len(options):
                correct_index = 0
            items.append({
                "id": q.id,
                "prompt": q.prompt,
                "hint": q.hint or None,
                "correctIndex": correct_index,
                "options": options,
            })

        return {
            "diagram": {"id": diagram.id, "title": diagram.title, "path": diagram.path},
            "questions": items,
        }
