from datetime import date
from typing import Optional

from erplay.schemas.base import CamelModel


class WeeklyGoalRequest(CamelModel):
    """Week defaults to the current ISO week when either date is missing"""
    target_tests: int
    week_start: Optional[date] = None
    week_end: Optional[date] = None
    notify: bool = True
