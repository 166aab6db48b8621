# evalai/models/content.py
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

SUBMISSION_TEXT_HEADER = "--- STUDENT'S SUBMISSION TEXT ---"


class SubmissionFile(BaseModel):
    model_config = ConfigDict(frozen=True)

    data: bytes
    media_type: str
    filename: Optional[str] = None


class TextContent(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["text"] = "text"
    value: str


class InlineBinaryContent(BaseModel):
    """Image bytes sent to the model as-is.

    ``stored_copy`` is the data URI kept for the submission record; it is None
    when the encoded form would not fit into a single store field.
    """
    model_config = ConfigDict(frozen=True)

    kind: Literal["inline_binary"] = "inline_binary"
    data: bytes
    media_type: str
    stored_copy: Optional[str] = None


ExtractedContent = Annotated[Union[TextContent, InlineBinaryContent], Field(discriminator="kind")]


class TextPart(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["text"] = "text"
    text: str


class InlineBinaryPart(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["inline_binary"] = "inline_binary"
    data: bytes
    media_type: str


ContentPart = Annotated[Union[TextPart, InlineBinaryPart], Field(discriminator="type")]


class GenerationRequest(BaseModel):
    """Everything the model sees for one call. Built once, never mutated."""
    model_config = ConfigDict(frozen=True)

    system_instructions: str
    rubric_summary: str = ""
    content: Optional[ExtractedContent] = None

    def prompt_text(self) -> str:
        """Full text part: instructions plus any extracted text section."""
        if isinstance(self.content, TextContent):
            return f"{self.system_instructions}\n\n{SUBMISSION_TEXT_HEADER}\n{self.content.value}"
        return self.system_instructions

    def parts(self) -> List[ContentPart]:
        parts: List[ContentPart] = [TextPart(text=self.prompt_text())]
        if isinstance(self.content, InlineBinaryContent):
            parts.append(InlineBinaryPart(data=self.content.data, media_type=self.content.media_type))
        return parts
