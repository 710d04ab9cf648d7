import re
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from erplay.core.database import get_db
from erplay.core.exceptions import ValidationError
from erplay.models.user import User
from erplay.modules.auth.dependencies import require_supervisor
from erplay.services.diagram_stats_service import DiagramStatsService


router = APIRouter()

_DAY = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def parse_day(value: Optional[str], field: str) -> Optional[date]:
    if value is None or value == "":
        return None
    try:
        if not _DAY.match(value):
            raise ValueError(value)
        return date.fromisoformat(value)
    except ValueError:
        raise ValidationError("Expected format YYYY-MM-DD", field=field)


@router.get("/diagrams/{diagram_id}/stats")
async def get_diagram_stats(
    diagram_id: str,
    response: Response,
    date_from: Optional[str] = Query(None, alias="from"),
    date_to: Optional[str] = Query(None, alias="to"),
    current_user: User = Depends(require_supervisor),
    db: AsyncSession = Depends(get_db)
):
    """Psychometric dashboard of a diagram over an optional date range"""
    start = parse_day(date_from, "from")
    end = parse_day(date_to, "to")
    if start and end and start > end:
        start, end = end, start

    stats = await DiagramStatsService(db).get_stats(diagram_id, start, end)
    response.headers["Cache-Control"] = "no-store"
    return stats
