# Re-export all models for convenient imports
from erplay.models.user import User, UserRole
from erplay.models.diagram import Diagram
from erplay.models.question import Question, Option, ReviewStatus, QuestionSource
from erplay.models.test_session import TestSession, TestResult, TestEvent, TestMode
from erplay.models.claim import Claim, ClaimStatus
from erplay.models.refresh_token import RefreshToken
from erplay.models.weekly_goal import WeeklyGoal
from erplay.models.rating import Rating

__all__ = [
    # Users
    "User",
    "UserRole",
    "RefreshToken",
    # Content
    "Diagram",
    "Question",
    "Option",
    "ReviewStatus",
    "QuestionSource",
    "Rating",
    # Sessions
    "TestSession",
    "TestResult",
    "TestEvent",
    "TestMode",
    # Review
    "Claim",
    "ClaimStatus",
    # Goals
    "WeeklyGoal",
]
