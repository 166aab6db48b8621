from __future__ import annotations

import logging

from evalai.core.exceptions import SubmissionNotFound
from evalai.models.content import GenerationRequest
from evalai.models.request import ChatRequest
from evalai.models.response import ChatReply
from evalai.services.evaluation.model_invoker import ModelInvoker
from evalai.services.persistence import SubmissionStore

logger = logging.getLogger(__name__)

NO_CONTEXT_REPLY = (
    "Answering based on document context is only available for text files (PDF, DOCX). "
    "You can turn off this setting to ask general questions about the image."
)

RAG_PROMPT = """IMPORTANT: You are an expert assistant. Your task is to answer the user's question based *only* on the provided document context. Do not use any external knowledge. If the answer cannot be found in the context, you must respond with 'I'm sorry, but I cannot answer that question based on the provided document.'

--- DOCUMENT CONTEXT ---
{context}
--- END OF CONTEXT ---

User's Question: {message}"""

GENERAL_PROMPT = "You are a helpful AI assistant. Please answer the user's question: {message}"


class SubmissionChat:
    """Free-text Q&A about a stored submission."""

    def __init__(self, invoker: ModelInvoker, store: SubmissionStore):
        self.invoker = invoker
        self.store = store

    async def reply(self, req: ChatRequest) -> ChatReply:
        record = await self.store.get(req.submission_id)
        if record is None:
            raise SubmissionNotFound(req.submission_id)

        if req.is_rag_mode:
            if not record.extracted_text:
                return ChatReply(response=NO_CONTEXT_REPLY)
            prompt = RAG_PROMPT.format(context=record.extracted_text, message=req.message)
        else:
            prompt = GENERAL_PROMPT.format(message=req.message)

        text = await self.invoker.invoke(GenerationRequest(system_instructions=prompt), expect_json=False)
        return ChatReply(response=text)
