"""
Weekly goals set by supervisors: a number of tests every student should
complete between two dates (an ISO week unless given explicitly).
"""

from datetime import date, datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from erplay.core.exceptions import ValidationError
from erplay.core.logging_config import logger
from erplay.models.test_session import TestSession
from erplay.models.user import User, UserRole
from erplay.models.weekly_goal import WeeklyGoal
from erplay.services.email_service import email_service, queue_email
from erplay.utils.psychometrics import current_iso_week, js_round


def goal_to_dict(goal: WeeklyGoal) -> Dict[str, Any]:
    return {
        "id": goal.id,
        "weekStart": goal.week_start.isoformat(),
        "weekEnd": goal.week_end.isoformat(),
        "targetTests": goal.target_tests,
        "createdAt": goal.created_at,
        "updatedAt": goal.updated_at,
    }


class WeeklyGoalService:
    """Service for weekly goals"""

    def __init__(self, db: AsyncSession, background_tasks=None):
        self.db = db
        self.background_tasks = background_tasks

    async def get_current(self, today: Optional[date] = None) -> Optional[WeeklyGoal]:
        """Goal whose range contains today, latest start first"""
        today = today or datetime.utcnow().date()
        result = await self.db.execute(
            select(WeeklyGoal)
            .where(WeeklyGoal.week_start <= today, WeeklyGoal.week_end >= today)
            .order_by(WeeklyGoal.week_start.desc())
        )
        return result.scalars().first()

    async def _goal_for_week(self, week_start: date, week_end: date) -> Optional[WeeklyGoal]:
        result = await self.db.execute(
            select(WeeklyGoal).where(
                WeeklyGoal.week_start == week_start, WeeklyGoal.week_end == week_end
            )
        )
        return result.scalar_one_or_none()

    async def upsert(
        self,
        admin: User,
        target_tests: float,
        week_start: Optional[date] = None,
        week_end: Optional[date] = None,
        notify: bool = True,
    ) -> WeeklyGoal:
        if target_tests is None or target_tests <= 0:
            raise ValidationError("Target must be a number greater than 0", field="targetTests")

        if week_start and week_end:
            start, end = week_start, week_end
        else:
            start, end = current_iso_week()

        target = js_round(target_tests)
        goal = await self._goal_for_week(start, end)
        if goal:
            goal.target_tests = target
        else:
            goal = WeeklyGoal(
                week_start=start,
                week_end=end,
                target_tests=target,
                created_by_id=admin.id,
            )
            self.db.add(goal)
        await self.db.commit()

        logger.info(f"[WeeklyGoal] {admin.email} set {target} tests for {start} - {end}")

        if notify:
            result = await self.db.execute(select(User.email).where(User.role == UserRole.ALUMNO))
            recipients = [e for e in result.scalars().all() if e]
            if recipients:
                await queue_email(
                    self.background_tasks,
                    email_service.notify_weekly_goal,
                    recipients=recipients,
                    week_start=start.isoformat(),
                    week_end=end.isoformat(),
                    target_tests=target,
                )
        return goal

    async def list_weekly_progress(
        self,
        week_start: Optional[date] = None,
        week_end: Optional[date] = None,
        user_id: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """Completed tests of every student within a week against its target"""
        if not week_start or not week_end:
            current = await self.get_current()
            if current is None:
                return []
            week_start, week_end = current.week_start, current.week_end

        query = (
            select(User)
            .where(User.role == UserRole.ALUMNO)
            .order_by(User.name.asc(), User.last_name.asc())
        )
        if user_id:
            query = query.where(User.id == user_id)
        students = list((await self.db.execute(query)).scalars().all())
        if not students:
            return []

        result = await self.db.execute(
            select(TestSession.user_id, TestSession.completed_at).where(
                TestSession.completed_at.isnot(None)
            )
        )
        done_by_user: Dict[str, int] = {}
        for uid, completed_at in result.all():
            if week_start <= completed_at.date() <= week_end:
                done_by_user[uid] = done_by_user.get(uid, 0) + 1

        goal = await self._goal_for_week(week_start, week_end)
        target = goal.target_tests if goal else 0

        rows = []
        for u in students:
            done = done_by_user.get(u.id, 0)
            rows.append({
                "userId": u.id,
                "name": u.full_name,
                "email": u.email,
                "done": done,
                "target": target,
                "pct": min(100, js_round(100 * done / target)) if target else 0,
                "completed": target > 0 and done >= target,
            })
        return rows
