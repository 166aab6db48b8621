import asyncio
import base64
import logging
from typing import Any, Dict, List, Optional, Sequence

import openai
from openai import AzureOpenAI

from evalai.core.config import settings
from evalai.core.exceptions import ModelCallError
from evalai.models.content import ContentPart, InlineBinaryPart

logger = logging.getLogger(__name__)


def to_message_content(parts: Sequence[ContentPart]) -> List[Dict[str, Any]]:
    """Map content parts onto chat-completions content blocks."""
    content: List[Dict[str, Any]] = []
    for part in parts:
        if isinstance(part, InlineBinaryPart):
            encoded = base64.b64encode(part.data).decode("ascii")
            content.append({
                "type": "image_url",
                "image_url": {"url": f"data:{part.media_type};base64,{encoded}"},
            })
        else:
            content.append({"type": "text", "text": part.text})
    return content


class AzureOpenAIModelClient:
    """Minimal text/vision wrapper; one call per generate(), no SDK retries."""

    def __init__(self, client: Optional[AzureOpenAI] = None, deployment: Optional[str] = None):
        self.client = client or AzureOpenAI(
            api_key=settings.AZURE_OPENAI_API_KEY,
            api_version=settings.AZURE_OPENAI_API_VERSION,
            azure_endpoint=settings.AZURE_OPENAI_ENDPOINT,
            timeout=settings.API_TIMEOUT_S,
            # Retries are owned by the invoker
            max_retries=0,
        )
        self.deployment = deployment or settings.AZURE_OPENAI_DEPLOYMENT

    async def complete(self, parts: Sequence[ContentPart], *, json_mode: bool = False) -> Dict[str, Any]:
        """One chat completion; returns ``{"content": str, "usage": {...}}``."""

        def _invoke_sync() -> Dict[str, Any]:
            kwargs: Dict[str, Any] = {
                "model": self.deployment,
                "messages": [{"role": "user", "content": to_message_content(parts)}],
            }
            if json_mode:
                kwargs["response_format"] = {"type": "json_object"}

            try:
                resp = self.client.chat.completions.create(**kwargs)
            except openai.APIStatusError as e:
                raise ModelCallError(
                    f"Azure OpenAI returned {e.status_code}",
                    status_code=e.status_code,
                    details={"provider_message": e.message},
                ) from e
            except openai.APIError as e:
                # Connection errors and timeouts carry no status code
                raise ModelCallError(f"Azure OpenAI request failed: {e}") from e

            content = resp.choices[0].message.content if resp.choices else None
            if not content:
                logger.warning(f"Empty content received from Azure OpenAI. Finish reason: "
                               f"{resp.choices[0].finish_reason if resp.choices else 'n/a'}")
                content = ""

            usage = getattr(resp, "usage", None)
            return {
                "content": content,
                "usage": {
                    "prompt_tokens": usage.prompt_tokens if usage else 0,
                    "completion_tokens": usage.completion_tokens if usage else 0,
                    "total_tokens": usage.total_tokens if usage else 0,
                },
            }

        return await asyncio.to_thread(_invoke_sync)

    async def generate(self, parts: Sequence[ContentPart], *, json_mode: bool = False) -> str:
        result = await self.complete(parts, json_mode=json_mode)
        return result["content"]
