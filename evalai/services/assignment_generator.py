from __future__ import annotations

import logging

from pydantic import ValidationError

from evalai.core.exceptions import ResultShapeMismatch
from evalai.models.content import GenerationRequest
from evalai.models.request import AssignmentGenerationRequest
from evalai.models.response import AssignmentDraft
from evalai.models.rubric import RubricEntry
from evalai.services.evaluation.model_invoker import ModelInvoker
from evalai.services.evaluation.prompt_builder import render_rubric
from evalai.services.evaluation.result_extractor import extract_json_object

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are an expert educator creating assignments. You MUST follow these rules:
1. ONLY create content about the specified topic
2. NEVER create content about unrelated subjects
3. If topic is physics/math related, create physics/math content
4. If topic is literature related, create literature content
5. If topic is history related, create history content
6. Stay strictly within the academic domain of the topic"""


def build_request(req: AssignmentGenerationRequest) -> GenerationRequest:
    custom = render_rubric(req.usable_rubric())
    custom_block = f"CUSTOM RUBRIC:\n{custom}\n" if custom else ""
    user_prompt = (
        "Create an assignment with these specifications:\n\n"
        f"TOPIC: {req.topic}\n"
        f"ASSIGNMENT TYPE: {req.assignment_type or 'General Assignment'}\n"
        f"TOTAL MARKS: {req.total_marks}\n"
        f"{custom_block}\n"
        "REQUIREMENTS:\n"
        f"- Question must be about: {req.topic}\n"
        f"- Model answer must be about: {req.topic}\n"
        f"- Rubric must be relevant to: {req.topic}\n"
        "- Do NOT create content about social media, politics, or unrelated subjects\n\n"
        "Respond with ONLY a JSON object in this format:\n"
        "{\n"
        f'  "question": "Your assignment question about {req.topic}",\n'
        '  "rubric": [{"criterion": "string", "points": number}],\n'
        f'  "modelAnswer": "Your model answer about {req.topic}"\n'
        "}"
    )
    return GenerationRequest(system_instructions=f"{SYSTEM_PROMPT}\n\n{user_prompt}", rubric_summary=custom)


def parse_draft(raw_text: str) -> AssignmentDraft:
    content = extract_json_object(raw_text)
    try:
        return AssignmentDraft.model_validate(content)
    except ValidationError as e:
        raise ResultShapeMismatch(
            "AI response JSON does not match the assignment schema",
            {"errors": e.errors(include_url=False, include_context=False)},
        ) from e


def is_on_topic(draft: AssignmentDraft, topic: str) -> bool:
    question = draft.question.lower()
    answer = draft.model_answer.lower()
    topic_lower = topic.lower()
    if topic_lower in question or topic_lower in answer:
        return True
    return any(kw in question or kw in answer for kw in topic_lower.split())


def fallback_draft(topic: str, total_marks: int) -> AssignmentDraft:
    understanding = total_marks * 4 // 10
    analysis = total_marks * 3 // 10
    clarity = total_marks * 2 // 10
    return AssignmentDraft(
        question=(
            f"Create a comprehensive assignment about {topic}. "
            "Please provide detailed analysis and examples related to this topic."
        ),
        rubric=[
            RubricEntry(criterion="Understanding of the topic", points=understanding),
            RubricEntry(criterion="Analysis and critical thinking", points=analysis),
            RubricEntry(criterion="Clarity and organization", points=clarity),
            RubricEntry(
                criterion="Use of examples and evidence",
                points=total_marks - understanding - analysis - clarity,
            ),
        ],
        model_answer=(
            f"This is a model answer template for the topic: {topic}. Please replace this with "
            f"specific content related to {topic} based on your expertise and the assignment requirements."
        ),
    )


class AssignmentGenerator:
    def __init__(self, invoker: ModelInvoker):
        self.invoker = invoker

    async def generate(self, req: AssignmentGenerationRequest) -> AssignmentDraft:
        logger.info(f"AI assignment generation request: topic={req.topic!r} marks={req.total_marks}")
        draft: AssignmentDraft = await self.invoker.invoke(build_request(req), expect_json=True, parser=parse_draft)
        if not is_on_topic(draft, req.topic):
            logger.info(f"Generated content is off-topic for {req.topic!r}, using fallback")
            return fallback_draft(req.topic, req.total_marks)
        return draft
