"""
Progress Service
================
Per-student learning analytics: overview KPIs, accuracy trends, weakest
questions, study habits, claim counts, weekly goal badges and the progress
of the current weekly goal.

Rows are loaded and aggregated in Python so the numbers are identical on
SQLite and MySQL.
"""

from datetime import date, datetime, time
from typing import Any, Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from erplay.models.claim import Claim, ClaimStatus
from erplay.models.question import Question
from erplay.models.test_session import TestMode, TestResult, TestSession
from erplay.models.weekly_goal import WeeklyGoal
from erplay.utils.psychometrics import (
    best_streak,
    group_by,
    iso_week_start,
    js_round,
    modal_value,
    round1,
    round2,
)


def _pct(part: int, total: int) -> Optional[float]:
    return round1(part / total * 100) if total else None


class ProgressService:
    """Service for the progress of one user"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _results(self, user_id: str, start: datetime = None, end: datetime = None):
        query = (
            select(
                TestResult.created_at,
                TestSession.mode,
                TestResult.is_correct,
                TestResult.selected_index,
                TestResult.time_spent_seconds,
                TestResult.used_hint,
                TestResult.question_id,
            )
            .join(TestSession, TestResult.session_id == TestSession.id)
            .where(TestSession.user_id == user_id)
        )
        if start is not None:
            query = query.where(TestResult.created_at >= start)
        if end is not None:
            query = query.where(TestResult.created_at <= end)
        return (await self.db.execute(query)).all()

    async def _completed_sessions(self, user_id: str) -> List[TestSession]:
        result = await self.db.execute(
            select(TestSession).where(
                TestSession.user_id == user_id, TestSession.completed_at.isnot(None)
            )
        )
        return list(result.scalars().all())

    # ==================== Overview ====================

    async def overview(self, user_id: str) -> Dict[str, Any]:
        rows = await self._results(user_id)

        learning = [r for r in rows if r.mode == TestMode.LEARNING]
        exam = [r for r in rows if r.mode == TestMode.EXAM]
        learning_ok = len([r for r in learning if r.is_correct is True])
        exam_ok = len([r for r in exam if r.is_correct is True])

        learning_pct = learning_ok / len(learning) * 100 if learning else 0
        exam_pct = exam_ok / len(exam) * 100 if exam else 0
        times = [r.time_spent_seconds or 0 for r in rows]

        completed = await self.db.execute(
            select(func.count(TestSession.id)).where(
                TestSession.user_id == user_id, TestSession.completed_at.isnot(None)
            )
        )

        return {
            "accuracyLearningPct": round1(learning_pct),
            "examScoreAvg": round2(exam_ok / len(exam) * 10) if exam else 0,
            "answeredCount": len([r for r in rows if r.selected_index is not None]),
            "avgTimePerQuestionSec": round2(sum(times) / len(times)) if times else 0,
            "sessionsCompleted": completed.scalar() or 0,
            "deltaExamVsLearningPts": round1(exam_pct - learning_pct),
            "bestStreakDays": best_streak(r.created_at.date() for r in rows),
        }

    # ==================== Trends ====================

    async def trends(
        self,
        user_id: str,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        bucket: str = "day",
    ) -> List[Dict[str, Any]]:
        start = datetime.combine(date_from, time.min) if date_from else None
        end = datetime.combine(date_to, time.max) if date_to else None
        rows = await self._results(user_id, start, end)

        def bucket_key(r) -> date:
            if bucket == "week":
                return iso_week_start(r.created_at)
            return r.created_at.date()

        points = []
        for key, items in sorted(group_by(rows, bucket_key).items()):
            learning = [r for r in items if r.mode == TestMode.LEARNING]
            exam = [r for r in items if r.mode == TestMode.EXAM]
            correct = len([r for r in items if r.is_correct is True])
            points.append({
                "date": key.isoformat(),
                "accuracyLearningPct": _pct(len([r for r in learning if r.is_correct is True]), len(learning)),
                "examScorePct": _pct(len([r for r in exam if r.is_correct is True]), len(exam)),
                "correctCount": correct,
                "incorrectCount": max(0, len(items) - correct),
            })
        return points

    # ==================== Errors ====================

    async def errors(self, user_id: str, limit: int = 5, min_attempts: int = 3) -> List[Dict[str, Any]]:
        """Questions the user fails most, among those attempted min_attempts times"""
        result = await self.db.execute(
            select(TestResult.question_id, TestResult.is_correct, TestResult.selected_index, Question.prompt)
            .join(TestSession, TestResult.session_id == TestSession.id)
            .join(Question, TestResult.question_id == Question.id)
            .where(TestSession.user_id == user_id)
        )

        ranked = []
        for question_id, items in group_by(result.all(), lambda r: r.question_id).items():
            attempts = len(items)
            if attempts < min_attempts:
                continue
            wrong = [r for r in items if r.is_correct is False]
            ranked.append((len(wrong) / attempts, attempts, {
                "id": question_id,
                "title": (items[0].prompt or "")[:60],
                "errorRatePct": round1(len(wrong) / attempts * 100),
                "commonChosenIndex": modal_value(
                    r.selected_index for r in wrong if r.selected_index is not None
                ),
            }))

        ranked.sort(key=lambda item: (-item[0], -item[1]))
        return [item[2] for item in ranked[:limit]]

    # ==================== Habits ====================

    async def habits(self, user_id: str) -> Dict[str, Any]:
        rows = await self._results(user_id)

        by_hour = [0] * 24
        for r in rows:
            by_hour[r.created_at.hour] += 1

        durations = []
        for s in await self._completed_sessions(user_id):
            if s.duration_seconds is not None:
                durations.append(s.duration_seconds)

        learning = [r for r in rows if r.mode == TestMode.LEARNING]
        hints = len([r for r in learning if r.used_hint])

        return {
            "byHour": [{"hour": h, "answered": n} for h, n in enumerate(by_hour)],
            "avgSessionDurationSec": js_round(sum(durations) / len(durations)) if durations else 0,
            "hintsPerQuestionPct": round1(hints / len(learning) * 100) if learning else 0,
        }

    # ==================== Claims ====================

    async def claims_stats(self, user_id: str) -> Dict[str, int]:
        result = await self.db.execute(
            select(Claim.status).where(Claim.student_id == user_id)
        )
        statuses = list(result.scalars().all())
        return {
            "submitted": len(statuses),
            "approved": len([s for s in statuses if s == ClaimStatus.APPROVED]),
        }

    # ==================== Weekly goals ====================

    async def _completed_between(self, user_id: str, week_start: date, week_end: date) -> int:
        sessions = await self._completed_sessions(user_id)
        return len([s for s in sessions if week_start <= s.completed_at.date() <= week_end])

    async def badges(self, user_id: str) -> List[Dict[str, Any]]:
        """One badge per weekly goal whose target the user reached"""
        result = await self.db.execute(select(WeeklyGoal).order_by(WeeklyGoal.week_start.asc()))
        goals = result.scalars().all()
        if not goals:
            return []

        completed_days = [s.completed_at.date() for s in await self._completed_sessions(user_id)]

        badges = []
        for g in goals:
            done = len([d for d in completed_days if g.week_start <= d <= g.week_end])
            if g.target_tests > 0 and done >= g.target_tests:
                ws, we = g.week_start.isoformat(), g.week_end.isoformat()
                badges.append({
                    "id": f"{ws}_{we}",
                    "label": f"Week {ws} - {we}",
                    "weekStart": ws,
                    "weekEnd": we,
                    "earnedAt": we,
                })
        return badges

    async def weekly_goal_progress(self, user_id: str, today: Optional[date] = None) -> Optional[Dict[str, Any]]:
        today = today or datetime.utcnow().date()
        result = await self.db.execute(
            select(WeeklyGoal)
            .where(WeeklyGoal.week_start <= today, WeeklyGoal.week_end >= today)
            .order_by(WeeklyGoal.week_start.desc())
        )
        goal = result.scalars().first()
        if goal is None:
            return None

        done = await self._completed_between(user_id, goal.week_start, goal.week_end)
        target = goal.target_tests
        return {
            "userId": user_id,
            "target": target,
            "done": done,
            "pct": js_round(done / target * 100) if target else 0,
            "completed": target > 0 and done >= target,
            "weekStart": goal.week_start.isoformat(),
            "weekEnd": goal.week_end.isoformat(),
        }
