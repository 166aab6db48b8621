from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from evalai.models.rubric import RubricEntry


class SubmissionContext(BaseModel):
    """Who submitted what; copied verbatim into the submission record."""
    user_id: Optional[str] = None
    assignment_id: Optional[str] = None
    subject_id: Optional[str] = None
    teacher_uid: Optional[str] = None


class CustomRubricEntry(BaseModel):
    criterion: Optional[str] = None
    points: Optional[int] = None


class AssignmentGenerationRequest(BaseModel):
    # The web client sends camelCase keys; snake_case is accepted as well
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "topic": "Newton's laws of motion",
                "assignmentType": "Short essay",
                "totalMarks": 20,
                "customRubric": [{"criterion": "Correct statement of the laws", "points": 8}],
            }
        },
    )

    topic: str = Field(min_length=1, max_length=500)
    assignment_type: Optional[str] = None
    total_marks: int = Field(default=10, ge=1, le=1000)
    custom_rubric: List[CustomRubricEntry] = Field(default_factory=list)

    @field_validator("topic")
    @classmethod
    def validate_topic(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Topic is required.")
        return v.strip()

    def usable_rubric(self) -> List[RubricEntry]:
        # Entries missing a criterion or points are dropped, not rejected
        return [
            RubricEntry(criterion=r.criterion, points=r.points)
            for r in self.custom_rubric
            if r.criterion and r.criterion.strip() and r.points
        ]


class ChatRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    submission_id: str = Field(min_length=1)
    message: str = Field(min_length=1, max_length=4000)
    is_rag_mode: bool = False
