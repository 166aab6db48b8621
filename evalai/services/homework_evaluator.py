from __future__ import annotations

import asyncio
import logging
from time import perf_counter
from typing import Dict, Optional, Sequence

from evalai.core.exceptions import PersistenceFailure
from evalai.models.content import InlineBinaryContent, SubmissionFile, TextContent
from evalai.models.request import SubmissionContext
from evalai.models.response import EvaluationOutcome, EvaluationResult
from evalai.models.rubric import RubricEntry
from evalai.services.evaluation import content_extractor, prompt_builder
from evalai.services.evaluation.model_invoker import ModelInvoker
from evalai.services.persistence import SubmissionRecord, SubmissionStore

logger = logging.getLogger(__name__)


class HomeworkEvaluator:
    """Top-level orchestration for one homework submission.

    Flow (strictly sequential):
      extract → build prompt → invoke model → parse verdict → persist
    """

    def __init__(self, invoker: ModelInvoker, store: SubmissionStore):
        self.invoker = invoker
        self.store = store

    async def evaluate(
        self,
        file: SubmissionFile,
        rubric: Sequence[RubricEntry],
        question: str,
        strict: bool = False,
        context: Optional[SubmissionContext] = None,
    ) -> EvaluationOutcome:
        context = context or SubmissionContext()
        timings_ms: Dict[str, float] = {}

        t0 = perf_counter()
        # PyMuPDF and python-docx parsing is blocking
        content = await asyncio.to_thread(content_extractor.extract, file)
        t1 = perf_counter()
        timings_ms["extract"] = (t1 - t0) * 1000.0

        request = prompt_builder.build(question, rubric, content, strict)
        result: EvaluationResult = await self.invoker.invoke(request, expect_json=True)
        t2 = perf_counter()
        timings_ms["model"] = (t2 - t1) * 1000.0

        record = SubmissionRecord(
            user_id=context.user_id,
            assignment_id=context.assignment_id,
            subject_id=context.subject_id,
            teacher_uid=context.teacher_uid,
            question=question,
            ai_feedback=result,
            mode="Strict" if strict else "General",
            base64_image=content.stored_copy if isinstance(content, InlineBinaryContent) else None,
            file_name=file.filename,
            file_type=file.media_type,
            extracted_text=content.value if isinstance(content, TextContent) else "",
        )

        # The grade is returned even when the write fails
        submission_id: Optional[str] = None
        try:
            submission_id = await self.store.put(record)
        except PersistenceFailure as e:
            logger.error(
                f"Failed to persist submission for assignment {context.assignment_id}: "
                f"{e.message} {e.details}"
            )
        timings_ms["persist"] = (perf_counter() - t2) * 1000.0
        timings_ms["total"] = (perf_counter() - t0) * 1000.0

        logger.info(
            f"Evaluated {file.media_type} submission score={result.score} "
            f"persisted={submission_id is not None} timings={timings_ms}"
        )
        return EvaluationOutcome(result=result, submission_id=submission_id, persisted=submission_id is not None)
