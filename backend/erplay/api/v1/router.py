from fastapi import APIRouter

from erplay.api.v1.endpoints import (
    auth,
    claims,
    dashboard,
    diagram_stats,
    diagrams,
    exams,
    progress,
    questions,
    supervisor,
    test_sessions,
    users,
)

api_router = APIRouter()

api_router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
api_router.include_router(users.router, prefix="/users", tags=["Users"])
api_router.include_router(diagrams.router, prefix="/diagrams", tags=["Diagrams"])
api_router.include_router(questions.router, prefix="/questions", tags=["Questions"])
api_router.include_router(exams.router, prefix="/exams", tags=["Exams"])
api_router.include_router(test_sessions.router, prefix="/test-sessions", tags=["Test Sessions"])
api_router.include_router(claims.router, prefix="/claims", tags=["Claims"])
api_router.include_router(progress.router, prefix="/progress", tags=["Progress"])
api_router.include_router(dashboard.router, prefix="/dashboard", tags=["Dashboard"])
api_router.include_router(supervisor.router, prefix="/supervisor", tags=["Supervisor"])
api_router.include_router(diagram_stats.router, prefix="/admin", tags=["Diagram Statistics"])
