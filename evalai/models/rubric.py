# evalai/models/rubric.py
import json
from typing import List, Sequence

from pydantic import BaseModel, Field, TypeAdapter, ValidationError, field_validator

from evalai.core.exceptions import ValidationException


class RubricEntry(BaseModel):
    criterion: str = Field(min_length=1, description="What the grader checks")
    points: int = Field(ge=0, description="Points awarded for this criterion")

    @field_validator("criterion")
    @classmethod
    def strip_criterion(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("criterion cannot be blank")
        return v.strip()


# 전체 루브릭은 List[RubricEntry] (최소 1개)
Rubric = List[RubricEntry]

_rubric_adapter = TypeAdapter(List[RubricEntry])


def total_points(rubric: Sequence[RubricEntry]) -> int:
    return sum(entry.points for entry in rubric)


def parse_rubric(raw: str | list) -> List[RubricEntry]:
    """Validate a rubric coming from a form field or a JSON body.

    Raises ValidationException for bad JSON, an empty list, or any entry
    without a criterion or with negative points.
    """
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ValidationException("Rubric must be a JSON array.", field="rubric") from e
    if not isinstance(raw, list) or not raw:
        raise ValidationException("A valid rubric with at least one criterion is required.", field="rubric")
    try:
        return _rubric_adapter.validate_python(raw)
    except ValidationError as e:
        raise ValidationException(
            "Every rubric entry needs a criterion and non-negative points.",
            field="rubric",
            details={"errors": e.errors(include_url=False)},
        ) from e
