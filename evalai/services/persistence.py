from __future__ import annotations

import asyncio
import json
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Literal, Optional, Protocol, runtime_checkable

import firebase_admin
from firebase_admin import credentials, firestore
from pydantic import BaseModel, Field

from evalai.core.config import settings
from evalai.core.exceptions import PersistenceFailure
from evalai.models.response import EvaluationResult

logger = logging.getLogger(__name__)


class SubmissionRecord(BaseModel):
    user_id: Optional[str] = None
    assignment_id: Optional[str] = None
    subject_id: Optional[str] = None
    teacher_uid: Optional[str] = None
    question: str
    ai_feedback: EvaluationResult
    mode: Literal["Strict", "General"]
    base64_image: Optional[str] = None
    file_name: Optional[str] = None
    file_type: str
    extracted_text: str = ""
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


@runtime_checkable
class SubmissionStore(Protocol):
    async def put(self, record: SubmissionRecord) -> str: ...

    async def get(self, record_id: str) -> Optional[SubmissionRecord]: ...


class InMemorySubmissionStore:
    """Process-local store for development, the CLI and tests."""

    def __init__(self) -> None:
        self._records: Dict[str, SubmissionRecord] = {}
        self._lock = asyncio.Lock()

    async def put(self, record: SubmissionRecord) -> str:
        async with self._lock:
            record_id = uuid.uuid4().hex
            self._records[record_id] = record
        logger.debug(f"Stored submission {record_id} in memory")
        return record_id

    async def get(self, record_id: str) -> Optional[SubmissionRecord]:
        return self._records.get(record_id)

    def __len__(self) -> int:
        return len(self._records)


# Firestore field names used by the existing frontend
_FIELD_MAP = {
    "user_id": "userId",
    "assignment_id": "assignmentId",
    "subject_id": "subjectId",
    "teacher_uid": "teacherUid",
    "question": "question",
    "ai_feedback": "aiFeedback",
    "mode": "mode",
    "base64_image": "base64Image",
    "file_name": "fileName",
    "file_type": "fileType",
    "extracted_text": "extractedText",
    "created_at": "createdAt",
}


class FirestoreSubmissionStore:
    """Firestore-backed store. Every put() adds a new document."""

    def __init__(self, client: Any = None, collection: Optional[str] = None):
        self.client = client or firestore.client(app=_firebase_app())
        self.collection = collection or settings.FIRESTORE_COLLECTION

    def _to_document(self, record: SubmissionRecord) -> Dict[str, Any]:
        data = record.model_dump(mode="json", exclude={"created_at"})
        doc = {_FIELD_MAP[k]: v for k, v in data.items()}
        doc["createdAt"] = firestore.SERVER_TIMESTAMP
        return doc

    def _from_document(self, data: Dict[str, Any]) -> SubmissionRecord:
        reverse = {v: k for k, v in _FIELD_MAP.items()}
        fields = {reverse[k]: v for k, v in data.items() if k in reverse and v is not None}
        return SubmissionRecord.model_validate(fields)

    async def put(self, record: SubmissionRecord) -> str:
        def _add() -> str:
            _, ref = self.client.collection(self.collection).add(self._to_document(record))
            return ref.id

        try:
            return await asyncio.to_thread(_add)
        except Exception as e:  # noqa: BLE001
            raise PersistenceFailure("Failed to save submission", {"error": str(e)}) from e

    async def get(self, record_id: str) -> Optional[SubmissionRecord]:
        def _get() -> Optional[Dict[str, Any]]:
            snapshot = self.client.collection(self.collection).document(record_id).get()
            return snapshot.to_dict() if snapshot.exists else None

        try:
            data = await asyncio.to_thread(_get)
        except Exception as e:  # noqa: BLE001
            raise PersistenceFailure("Failed to load submission", {"error": str(e)}) from e
        return self._from_document(data) if data is not None else None


def _firebase_app() -> firebase_admin.App:
    try:
        return firebase_admin.get_app()
    except ValueError:
        pass
    if settings.GOOGLE_SERVICE_ACCOUNT_KEY:
        cred = credentials.Certificate(json.loads(settings.GOOGLE_SERVICE_ACCOUNT_KEY))
    else:
        cred = credentials.ApplicationDefault()
    app = firebase_admin.initialize_app(cred)
    logger.info("Firebase Admin initialized successfully.")
    return app


def build_store(backend: Optional[str] = None) -> SubmissionStore:
    backend = (backend or settings.STORE_BACKEND).lower()
    if backend == "firestore":
        return FirestoreSubmissionStore()
    if backend == "memory":
        return InMemorySubmissionStore()
    raise ValueError(f"Unknown STORE_BACKEND: {backend}")
