from typing import Optional

from evalai.client.azure_openai import AzureOpenAIModelClient
from evalai.utils.tracer import ModelClient, ObservedModelClient

_client_singleton: Optional[ModelClient] = None


def build_model_client() -> ModelClient:
    global _client_singleton
    if _client_singleton is None:
        base = AzureOpenAIModelClient()                 # 순수 모델 클라이언트
        _client_singleton = ObservedModelClient(base)   # Langfuse 관측 래퍼
    return _client_singleton
