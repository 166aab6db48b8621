"""
Unit tests for services/homework_evaluator.py
"""
import asyncio
import threading
from unittest.mock import AsyncMock, patch

import pytest

from conftest import ScriptedModelClient, server_error
from evalai.core.exceptions import (
    ExtractionFailure,
    ModelInvocationFailed,
    NoJsonFound,
    PersistenceFailure,
    UnsupportedMediaType,
)
from evalai.models.content import InlineBinaryPart, SubmissionFile, TextPart
from evalai.models.request import SubmissionContext
from evalai.services.evaluation import content_extractor
from evalai.services.evaluation.model_invoker import ModelInvoker
from evalai.services.homework_evaluator import HomeworkEvaluator
from evalai.services.persistence import InMemorySubmissionStore


def make_evaluator(client, store=None) -> HomeworkEvaluator:
    invoker = ModelInvoker(client, max_retries=3, initial_delay_ms=1000, deadline_s=30, sleep=AsyncMock())
    return HomeworkEvaluator(invoker, store if store is not None else InMemorySubmissionStore())


@pytest.mark.unit
class TestHomeworkEvaluator:

    @pytest.mark.asyncio
    async def test_pdf_submission_is_graded_and_stored(self, pdf_file, rubric, valid_client):
        store = InMemorySubmissionStore()
        context = SubmissionContext(user_id="u1", assignment_id="a1", subject_id="s1", teacher_uid="t1")

        outcome = await make_evaluator(valid_client, store).evaluate(
            pdf_file, rubric, "Explain Newton's second law", strict=True, context=context
        )

        assert outcome.result.score == "8/10"
        assert outcome.result.mistakes == ["missed units"]
        assert outcome.persisted is True

        record = await store.get(outcome.submission_id)
        assert record.mode == "Strict"
        assert record.user_id == "u1"
        assert record.teacher_uid == "t1"
        assert record.file_name == "hw.pdf"
        assert record.base64_image is None
        assert "Force equals mass times acceleration" in record.extracted_text
        assert record.ai_feedback == outcome.result

    @pytest.mark.asyncio
    async def test_document_text_goes_into_prompt(self, docx_file, rubric, valid_client):
        await make_evaluator(valid_client).evaluate(docx_file, rubric, "Q")
        parts = valid_client.calls[0]["parts"]
        assert len(parts) == 1
        assert "Photosynthesis converts light" in parts[0].text
        assert valid_client.calls[0]["json_mode"] is True

    @pytest.mark.asyncio
    async def test_image_is_sent_as_binary_part(self, image_file, rubric, valid_client):
        store = InMemorySubmissionStore()
        outcome = await make_evaluator(valid_client, store).evaluate(image_file, rubric, "Q")

        parts = valid_client.calls[0]["parts"]
        assert [type(p) for p in parts] == [TextPart, InlineBinaryPart]
        assert parts[1].data == image_file.data

        record = await store.get(outcome.submission_id)
        assert record.base64_image.startswith("data:image/png;base64,")
        assert record.extracted_text == ""
        assert record.mode == "General"

    @pytest.mark.asyncio
    async def test_persistence_failure_still_returns_result(self, pdf_file, rubric, valid_client):
        store = AsyncMock()
        store.put.side_effect = PersistenceFailure("Failed to save submission")

        outcome = await make_evaluator(valid_client, store).evaluate(pdf_file, rubric, "Q")

        assert outcome.result.score == "8/10"
        assert outcome.persisted is False
        assert outcome.submission_id is None

    @pytest.mark.asyncio
    async def test_unsupported_type_never_reaches_model(self, rubric, valid_client):
        with pytest.raises(UnsupportedMediaType):
            await make_evaluator(valid_client).evaluate(
                SubmissionFile(data=b"plain", media_type="text/plain"), rubric, "Q"
            )
        assert valid_client.calls == []

    @pytest.mark.asyncio
    async def test_corrupt_document_never_reaches_model(self, rubric, valid_client):
        with pytest.raises(ExtractionFailure):
            await make_evaluator(valid_client).evaluate(
                SubmissionFile(data=b"this is not a pdf document", media_type="application/pdf"), rubric, "Q"
            )
        assert valid_client.calls == []

    @pytest.mark.asyncio
    async def test_model_failure_stores_nothing(self, pdf_file, rubric):
        store = InMemorySubmissionStore()
        client = ScriptedModelClient([server_error(503)])
        with pytest.raises(ModelInvocationFailed):
            await make_evaluator(client, store).evaluate(pdf_file, rubric, "Q")
        assert len(client.calls) == 3
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_malformed_output_stores_nothing(self, pdf_file, rubric):
        store = InMemorySubmissionStore()
        with pytest.raises(NoJsonFound):
            await make_evaluator(ScriptedModelClient(["no verdict today"]), store).evaluate(pdf_file, rubric, "Q")
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_extraction_does_not_block_other_requests(self, pdf_file, rubric, valid_client):
        other_request_ran = threading.Event()
        extract_threads = []
        real_extract = content_extractor.extract

        def slow_extract(file):
            extract_threads.append(threading.current_thread())
            # Returns only once the concurrent coroutine has had a turn on the loop
            assert other_request_ran.wait(timeout=2)
            return real_extract(file)

        async def other_request():
            await asyncio.sleep(0)
            other_request_ran.set()

        with patch.object(content_extractor, "extract", side_effect=slow_extract):
            outcome, _ = await asyncio.gather(
                make_evaluator(valid_client).evaluate(pdf_file, rubric, "Q"),
                other_request(),
            )

        assert outcome.result.score == "8/10"
        assert extract_threads[0] is not threading.main_thread()
