from typing import List, Literal, Optional

from pydantic import Field, model_validator

from erplay.schemas.base import CamelModel


class CreateClaimRequest(CamelModel):
    test_result_id: Optional[str] = None
    question_id: Optional[str] = None
    diagram_id: str = Field(..., min_length=1)
    prompt: str = Field(..., min_length=1)
    options: List[str] = Field(..., min_length=2)
    chosen_index: int = Field(..., ge=0)
    correct_index: int = Field(..., ge=0)
    explanation: str = Field(..., min_length=5)

    @model_validator(mode="after")
    def check_indexes(self):
        if not self.prompt.strip():
            raise ValueError("Prompt is required")
        if len(self.explanation.strip()) < 5:
            raise ValueError("Explanation must have at least 5 characters")
        if self.chosen_index >= len(self.options):
            raise ValueError("chosenIndex out of range")
        if self.correct_index >= len(self.options):
            raise ValueError("correctIndex out of range")
        return self


class VerifyClaimRequest(CamelModel):
    decision: Literal["approve", "reject"]
    comment: Optional[str] = Field(None, max_length=2000)
