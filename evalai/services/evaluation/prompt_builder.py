from __future__ import annotations

from typing import Sequence

from evalai.models.content import ExtractedContent, GenerationRequest
from evalai.models.rubric import RubricEntry, total_points

STRICT_PERSONA = "You are a strict, logical grading machine."
GENERAL_PERSONA = "You are a helpful and fair professor."


def render_schema(points: int) -> str:
    return (
        '{"score": "string (e.g., \'<score>/' + str(points) + '\')",'
        '"evaluation": "string (A brief, one-sentence summary.)",'
        '"mistakes": "array of strings",'
        '"feedback": "string (Detailed, constructive feedback.)"}'
    )


def render_rubric(rubric: Sequence[RubricEntry]) -> str:
    return "\n".join(f"- {entry.criterion} ({entry.points} points)" for entry in rubric)


def build(question: str, rubric: Sequence[RubricEntry], content: ExtractedContent, strict: bool) -> GenerationRequest:
    """Assemble the grading request. Pure; same inputs give the same text.

    The rubric must already be validated (non-empty, every entry has a
    criterion).
    """
    persona = STRICT_PERSONA if strict else GENERAL_PERSONA
    rubric_summary = render_rubric(rubric)
    instructions = (
        f"{persona}\n\n"
        f'Evaluate the student\'s submission for the question: "{question}".\n'
        f"The scoring guide is:\n{rubric_summary}\n\n"
        f"You MUST respond with ONLY a valid JSON object matching this schema:\n"
        f"{render_schema(total_points(rubric))}"
    )
    return GenerationRequest(
        system_instructions=instructions,
        rubric_summary=rubric_summary,
        content=content,
    )
