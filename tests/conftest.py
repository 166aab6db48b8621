"""
Shared fixtures: scripted model clients and in-memory submission files
"""
import io
import os
import sys
from typing import List, Optional, Sequence, Union

import fitz
import pytest
from docx import Document

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from evalai.core.config import DOCX_MEDIA_TYPE, PDF_MEDIA_TYPE
from evalai.core.exceptions import ModelCallError
from evalai.models.content import ContentPart, SubmissionFile
from evalai.models.rubric import RubricEntry

VALID_RESPONSE = (
    'Sure! Here is the result:\n```json\n'
    '{"score":"8/10","evaluation":"ok","mistakes":["missed units"],"feedback":"x"}\n```'
)


class ScriptedModelClient:
    """Plays back a list of responses; exceptions in the list are raised."""

    def __init__(self, script: Sequence[Union[str, Exception]], deployment: Optional[str] = "test-deployment"):
        self.script = list(script)
        self.deployment = deployment
        self.calls: List[dict] = []

    async def generate(self, parts: Sequence[ContentPart], *, json_mode: bool = False) -> str:
        self.calls.append({"parts": list(parts), "json_mode": json_mode})
        item = self.script[min(len(self.calls), len(self.script)) - 1]
        if isinstance(item, Exception):
            raise item
        return item


def server_error(status: int = 503) -> ModelCallError:
    return ModelCallError(f"provider returned {status}", status_code=status)


def make_pdf(text: Optional[str] = None, pages: int = 1) -> bytes:
    doc = fitz.open()
    for i in range(pages):
        page = doc.new_page()
        if text:
            page.insert_text((72, 72), f"{text} {i + 1}")
    data = doc.tobytes()
    doc.close()
    return data


def make_docx(paragraphs: Sequence[str]) -> bytes:
    doc = Document()
    for p in paragraphs:
        doc.add_paragraph(p)
    buf = io.BytesIO()
    doc.save(buf)
    return buf.getvalue()


@pytest.fixture
def rubric() -> List[RubricEntry]:
    return [RubricEntry(criterion="A", points=5), RubricEntry(criterion="B", points=5)]


@pytest.fixture
def pdf_file() -> SubmissionFile:
    return SubmissionFile(data=make_pdf("Force equals mass times acceleration"), media_type=PDF_MEDIA_TYPE, filename="hw.pdf")


@pytest.fixture
def docx_file() -> SubmissionFile:
    return SubmissionFile(
        data=make_docx(["Photosynthesis converts light", "into chemical energy"]),
        media_type=DOCX_MEDIA_TYPE,
        filename="hw.docx",
    )


@pytest.fixture
def image_file() -> SubmissionFile:
    return SubmissionFile(data=b"\x89PNG\r\n\x1a\nfake-image-bytes", media_type="image/png", filename="hw.png")


@pytest.fixture
def valid_client() -> ScriptedModelClient:
    return ScriptedModelClient([VALID_RESPONSE])
