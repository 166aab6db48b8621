from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from evalai.models.rubric import RubricEntry


class EvaluationResult(BaseModel):
    """Structured verdict parsed from the model. All four fields or nothing."""
    model_config = ConfigDict(frozen=True, extra="ignore")

    score: str = Field(description="e.g. '8/10'")
    evaluation: str = Field(description="One-sentence summary")
    mistakes: List[str]
    feedback: str


class EvaluationOutcome(BaseModel):
    result: EvaluationResult
    submission_id: Optional[str] = None
    persisted: bool = False


class AssignmentDraft(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    question: str
    rubric: List[RubricEntry]
    model_answer: str = Field(alias="modelAnswer")


class ChatReply(BaseModel):
    response: str
