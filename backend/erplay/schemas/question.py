from typing import Literal, Optional

from pydantic import Field

from erplay.schemas.base import CamelModel
from erplay.schemas.diagram import QuestionInput


class CreateQuestionRequest(QuestionInput):
    diagram_id: str = Field(..., min_length=1)


class VerifyQuestionRequest(CamelModel):
    decision: Literal["approve", "reject"]
    comment: Optional[str] = Field(None, max_length=1000)
