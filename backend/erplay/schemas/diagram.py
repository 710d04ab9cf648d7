import json
from typing import List

from pydantic import Field, TypeAdapter, ValidationError as PydanticValidationError, model_validator

from erplay.core.exceptions import ValidationError
from erplay.schemas.base import CamelModel


class QuestionInput(CamelModel):
    """Question as sent in the diagram form and in question proposals"""
    prompt: str = Field(..., min_length=1)
    hint: str = Field(..., min_length=1)
    options: List[str] = Field(..., min_length=2)
    correct_index: int = Field(..., ge=0)

    @model_validator(mode="after")
    def check_contents(self):
        if not self.prompt.strip():
            raise ValueError("Each question needs a prompt")
        if not self.hint.strip():
            raise ValueError("Each question needs a hint")
        if any(not (o or "").strip() for o in self.options):
            raise ValueError("Options cannot be empty")
        if self.correct_index >= len(self.options):
            raise ValueError("correctIndex out of range")
        return self


_questions_adapter = TypeAdapter(List[QuestionInput])


def parse_questions_field(raw: str) -> List[QuestionInput]:
    """Parse the multipart ``questions`` field (a JSON array)"""
    try:
        data = json.loads(raw or "")
    except ValueError:
        raise ValidationError("questions must be valid JSON", field="questions")
    try:
        questions = _questions_adapter.validate_python(data)
    except PydanticValidationError as e:
        messages = "; ".join(err["msg"].removeprefix("Value error, ") for err in e.errors())
        raise ValidationError(messages or "Invalid questions", field="questions")
    if not questions:
        raise ValidationError("At least one question is required", field="questions")
    return questions
