from typing import Any, Optional

from pydantic import Field

from erplay.models.test_session import TestMode
from erplay.schemas.base import CamelModel


class StartSessionRequest(CamelModel):
    mode: TestMode
    limit: int = Field(10, ge=1, le=50)


class PatchResultRequest(CamelModel):
    """Only the fields present in the body are applied"""
    selected_index: Optional[int] = Field(None, ge=0)
    attempts_delta: Optional[int] = None
    used_hint: Optional[bool] = None
    revealed_answer: Optional[bool] = None
    time_spent_seconds_delta: Optional[int] = None


class LogEventRequest(CamelModel):
    type: str = Field(..., min_length=1, max_length=80)
    result_id: Optional[str] = None
    payload: Optional[Any] = None
