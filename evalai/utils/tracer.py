# evalai/utils/tracer.py
from typing import Any, Dict, List, Optional, Protocol, Sequence, runtime_checkable
import logging, os

from langfuse import Langfuse

from evalai.models.content import ContentPart, InlineBinaryPart

logger = logging.getLogger(__name__)

public_key = os.getenv("LANGFUSE_PUBLIC_KEY")
secret_key = os.getenv("LANGFUSE_SECRET_KEY")
host = os.getenv("LANGFUSE_HOST", "https://cloud.langfuse.com")

LANGFUSE_AVAILABLE = bool(public_key and secret_key)

lf: Optional[Langfuse] = None

if LANGFUSE_AVAILABLE:
    try:
        lf = Langfuse(public_key=public_key, secret_key=secret_key, host=host, release="v6.0.0")
        logger.info(f"Langfuse initialized. Host: {host}")
    except Exception as e:
        logger.warning(f"Langfuse initialization failed: {e}. Tracing disabled.")
        LANGFUSE_AVAILABLE = False
else:
    logger.warning("Langfuse credentials not set. Tracing disabled.")


@runtime_checkable
class ModelClient(Protocol):
    """One call to a text/vision model. Raises ModelCallError on failure."""
    deployment: Optional[str]

    async def generate(self, parts: Sequence[ContentPart], *, json_mode: bool = False) -> str: ...


def _describe_parts(parts: Sequence[ContentPart]) -> List[Dict[str, Any]]:
    # Image bytes are summarized, never shipped to the tracing backend
    described: List[Dict[str, Any]] = []
    for part in parts:
        if isinstance(part, InlineBinaryPart):
            described.append({"type": "inline_binary", "media_type": part.media_type, "bytes": len(part.data)})
        else:
            described.append({"type": "text", "text": part.text})
    return described


class ObservedModelClient:
    def __init__(self, inner: ModelClient, service: str = "azure-openai"):
        self.inner = inner
        self.service = service
        self.deployment = getattr(inner, "deployment", None)

    async def generate(
        self,
        parts: Sequence[ContentPart],
        *,
        json_mode: bool = False,
        name: str = "generate",
        metadata: Optional[Dict[str, Any]] = None,
    ) -> str:
        if not (LANGFUSE_AVAILABLE and lf):
            return await self.inner.generate(parts, json_mode=json_mode)

        model_name = self.deployment or os.getenv("AZURE_OPENAI_DEPLOYMENT") or "azure-openai"
        with lf.start_as_current_generation(name=f"llm.{name}", model=model_name) as gen:
            md = {"service": self.service, "json_mode": json_mode, **(metadata or {})}
            gen.update(input={"parts": _describe_parts(parts)}, metadata=md)
            try:
                complete = getattr(self.inner, "complete", None)
                if complete is None:
                    text = await self.inner.generate(parts, json_mode=json_mode)
                    gen.update(output=text)
                    return text

                result = await complete(parts, json_mode=json_mode)
                usage_info = result.get("usage", {})
                gen.update(
                    output=result["content"],
                    usage_details={
                        "input": usage_info.get("prompt_tokens", 0),
                        "output": usage_info.get("completion_tokens", 0),
                        "total": usage_info.get("total_tokens", 0),
                    },
                )
                return result["content"]
            except Exception as e:
                gen.update(level="ERROR", status_message=str(e))
                raise
            finally:
                try:
                    lf.flush()
                except Exception as e:
                    logger.debug(f"Langfuse flush failed: {e}")
