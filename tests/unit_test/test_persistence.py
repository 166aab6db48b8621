"""
Unit tests for services/persistence.py
"""
from unittest.mock import MagicMock

import pytest

from evalai.core.exceptions import PersistenceFailure
from evalai.models.response import EvaluationResult
from evalai.services.persistence import (
    FirestoreSubmissionStore,
    InMemorySubmissionStore,
    SubmissionRecord,
    SubmissionStore,
    build_store,
)

FEEDBACK = EvaluationResult(score="8/10", evaluation="ok", mistakes=["m"], feedback="f")


def make_record(**overrides) -> SubmissionRecord:
    fields = dict(
        user_id="u1",
        assignment_id="a1",
        subject_id="s1",
        teacher_uid="t1",
        question="Explain inertia",
        ai_feedback=FEEDBACK,
        mode="General",
        file_name="hw.pdf",
        file_type="application/pdf",
        extracted_text="my answer",
    )
    fields.update(overrides)
    return SubmissionRecord(**fields)


@pytest.mark.unit
class TestInMemoryStore:

    @pytest.mark.asyncio
    async def test_put_then_get(self):
        store = InMemorySubmissionStore()
        record = make_record()
        record_id = await store.put(record)
        assert await store.get(record_id) == record
        assert len(store) == 1

    @pytest.mark.asyncio
    async def test_every_put_adds_a_record(self):
        store = InMemorySubmissionStore()
        first = await store.put(make_record())
        second = await store.put(make_record())
        assert first != second
        assert len(store) == 2

    @pytest.mark.asyncio
    async def test_unknown_id(self):
        assert await InMemorySubmissionStore().get("missing") is None

    def test_satisfies_protocol(self):
        assert isinstance(InMemorySubmissionStore(), SubmissionStore)


@pytest.mark.unit
class TestFirestoreStore:

    @pytest.mark.asyncio
    async def test_put_maps_fields(self):
        client = MagicMock()
        ref = MagicMock()
        ref.id = "doc-123"
        client.collection.return_value.add.return_value = (None, ref)

        store = FirestoreSubmissionStore(client=client, collection="submissions")
        record_id = await store.put(make_record(base64_image="data:image/png;base64,AAAA"))

        assert record_id == "doc-123"
        client.collection.assert_called_with("submissions")
        doc = client.collection.return_value.add.call_args.args[0]
        assert doc["userId"] == "u1"
        assert doc["assignmentId"] == "a1"
        assert doc["teacherUid"] == "t1"
        assert doc["aiFeedback"] == FEEDBACK.model_dump()
        assert doc["mode"] == "General"
        assert doc["base64Image"] == "data:image/png;base64,AAAA"
        assert doc["fileType"] == "application/pdf"
        assert doc["extractedText"] == "my answer"
        assert "createdAt" in doc

    @pytest.mark.asyncio
    async def test_write_failure_becomes_persistence_failure(self):
        client = MagicMock()
        client.collection.return_value.add.side_effect = RuntimeError("quota exceeded")
        store = FirestoreSubmissionStore(client=client, collection="submissions")
        with pytest.raises(PersistenceFailure) as exc_info:
            await store.put(make_record())
        assert "quota exceeded" in exc_info.value.details["error"]

    @pytest.mark.asyncio
    async def test_get_round_trips_document(self):
        client = MagicMock()
        snapshot = MagicMock()
        snapshot.exists = True
        snapshot.to_dict.return_value = {
            "userId": "u1",
            "question": "Explain inertia",
            "aiFeedback": FEEDBACK.model_dump(),
            "mode": "Strict",
            "base64Image": None,
            "fileName": "hw.docx",
            "fileType": "application/pdf",
            "extractedText": "context text",
            "unknownField": "ignored",
        }
        client.collection.return_value.document.return_value.get.return_value = snapshot

        record = await FirestoreSubmissionStore(client=client, collection="c").get("doc-1")

        client.collection.return_value.document.assert_called_with("doc-1")
        assert record.user_id == "u1"
        assert record.ai_feedback == FEEDBACK
        assert record.mode == "Strict"
        assert record.base64_image is None
        assert record.extracted_text == "context text"

    @pytest.mark.asyncio
    async def test_get_missing_document(self):
        client = MagicMock()
        client.collection.return_value.document.return_value.get.return_value.exists = False
        assert await FirestoreSubmissionStore(client=client, collection="c").get("nope") is None

    @pytest.mark.asyncio
    async def test_read_failure_becomes_persistence_failure(self):
        client = MagicMock()
        client.collection.return_value.document.return_value.get.side_effect = RuntimeError("unavailable")
        with pytest.raises(PersistenceFailure):
            await FirestoreSubmissionStore(client=client, collection="c").get("doc-1")


@pytest.mark.unit
class TestBuildStore:

    def test_memory_backend(self):
        assert isinstance(build_store("memory"), InMemorySubmissionStore)

    def test_backend_name_is_case_insensitive(self):
        assert isinstance(build_store("Memory"), InMemorySubmissionStore)

    def test_unknown_backend(self):
        with pytest.raises(ValueError):
            build_store("redis")
