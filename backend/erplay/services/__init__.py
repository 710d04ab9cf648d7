from erplay.services.email_service import EmailService, email_service
from erplay.services.auth_service import AuthService
from erplay.services.user_service import UserService

# Content and review
from erplay.services.diagram_service import DiagramService
from erplay.services.question_service import QuestionService
from erplay.services.claim_service import ClaimService

# Quizzes
from erplay.services.exam_service import ExamService
from erplay.services.test_session_service import TestSessionService

# Analytics
from erplay.services.progress_service import ProgressService
from erplay.services.dashboard_service import DashboardService
from erplay.services.diagram_stats_service import DiagramStatsService
from erplay.services.weekly_goal_service import WeeklyGoalService

__all__ = [
    # Core services
    "EmailService",
    "email_service",
    "AuthService",
    "UserService",
    # Content and review
    "DiagramService",
    "QuestionService",
    "ClaimService",
    # Quizzes
    "ExamService",
    "TestSessionService",
    # Analytics
    "ProgressService",
    "DashboardService",
    "DiagramStatsService",
    "WeeklyGoalService",
]
