from sqlalchemy import Column, Date, DateTime, Integer, ForeignKey, UniqueConstraint
from datetime import datetime

from erplay.core.database import Base
from erplay.core.types import GUID, generate_uuid


class WeeklyGoal(Base):
    """Supervisor-set number of tests to complete within a week"""
    __tablename__ = "weekly_goals"
    __table_args__ = (
        UniqueConstraint("week_start", "week_end", name="uq_weekly_goals_week"),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    week_start = Column(Date, nullable=False, index=True)
    week_end = Column(Date, nullable=False)
    target_tests = Column(Integer, nullable=False)
    created_by_id = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
