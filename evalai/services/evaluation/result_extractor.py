from __future__ import annotations

import json
import logging
from typing import Any, Dict

from pydantic import ValidationError

from evalai.core.exceptions import InvalidJsonSyntax, NoJsonFound, ResultShapeMismatch
from evalai.models.response import EvaluationResult

logger = logging.getLogger(__name__)


def extract_json_object(raw_text: str) -> Dict[str, Any]:
    """Parse the JSON object embedded in ``raw_text``.

    Takes the slice from the first ``{`` to the last ``}``. This is not a
    brace matcher; it only tolerates prose or code fences around a single
    object.
    """
    start = raw_text.find("{")
    end = raw_text.rfind("}")
    if start == -1 or end == -1 or end < start:
        raise NoJsonFound("Valid JSON object not found in the AI's response.")

    candidate = raw_text[start:end + 1]
    try:
        parsed = json.loads(candidate)
    except json.JSONDecodeError as e:
        raise InvalidJsonSyntax("AI response contains malformed JSON", {"error": str(e)}) from e
    if not isinstance(parsed, dict):
        raise InvalidJsonSyntax("AI response JSON is not an object")
    return parsed


def extract_evaluation(raw_text: str) -> EvaluationResult:
    content = extract_json_object(raw_text)
    try:
        return EvaluationResult.model_validate(content)
    except ValidationError as e:
        raise ResultShapeMismatch(
            "AI response JSON does not match the evaluation schema",
            {"errors": e.errors(include_url=False, include_context=False)},
        ) from e
