# evalai/core/dependencies.py
import logging
import time
from collections.abc import AsyncIterator
from typing import Optional

from fastapi import Depends, HTTPException, Request

from evalai.client.bootstrap import build_model_client
from evalai.core.config import settings
from evalai.services.assignment_generator import AssignmentGenerator
from evalai.services.evaluation.model_invoker import ModelInvoker
from evalai.services.homework_evaluator import HomeworkEvaluator
from evalai.services.persistence import SubmissionStore, build_store
from evalai.services.submission_chat import SubmissionChat
from evalai.utils.tracer import ModelClient

logger = logging.getLogger(__name__)


class PerformanceMonitor:
    """Request counters reported by the ping endpoint"""

    def __init__(self):
        self.request_count = 0
        self.total_response_time = 0.0
        self.slow_requests = 0
        self.error_count = 0

    def record_request(self, response_time: float, success: bool = True):
        self.request_count += 1
        self.total_response_time += response_time

        if response_time > settings.SLOW_REQUEST_MS:
            self.slow_requests += 1

        if not success:
            self.error_count += 1

    def get_stats(self) -> dict:
        if self.request_count == 0:
            return {
                "total_requests": 0,
                "average_response_time": 0,
                "slow_request_ratio": 0,
                "error_ratio": 0
            }

        return {
            "total_requests": self.request_count,
            "average_response_time": self.total_response_time / self.request_count,
            "slow_request_ratio": self.slow_requests / self.request_count,
            "error_ratio": self.error_count / self.request_count
        }


_performance_monitor: Optional[PerformanceMonitor] = None


def get_performance_monitor() -> PerformanceMonitor:
    global _performance_monitor
    if _performance_monitor is None:
        _performance_monitor = PerformanceMonitor()
    return _performance_monitor


async def route_timer(request: Request) -> AsyncIterator[None]:
    start = time.perf_counter()
    method = request.method
    path = request.url.path
    request_id = request.headers.get("X-Request-ID") or f"req_{int(time.time() * 1000)}"
    request.state.request_id = request_id

    logger.info(f"[{request_id}] → {method} {path}")
    perf_monitor = get_performance_monitor()
    success = True

    try:
        yield
    except Exception as e:
        success = False
        logger.error(f"[{request_id}] Request failed: {e}")
        raise
    finally:
        dur_ms = (time.perf_counter() - start) * 1000.0
        slow_tag = " SLOW" if dur_ms > settings.SLOW_REQUEST_MS else ""
        perf_monitor.record_request(dur_ms, success)
        logger.info(f"[{request_id}] ← {method} {path} {dur_ms:.1f}ms{slow_tag}")


def get_request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or f"req_{int(time.time() * 1000)}"


# Process-wide resources live on app.state; main.py's lifespan fills them in
def get_model_client(request: Request) -> ModelClient:
    client = getattr(request.app.state, "model_client", None)
    if client is not None:
        return client
    try:
        client = build_model_client()
    except Exception as e:
        logger.error(f"Failed to initialize model client: {e}")
        raise HTTPException(
            status_code=503,
            detail={
                "error": "Failed to initialize AI service",
                "type": "ServiceInitializationError",
            },
        )
    request.app.state.model_client = client
    return client


def get_store(request: Request) -> SubmissionStore:
    store = getattr(request.app.state, "store", None)
    if store is None:
        store = build_store()
        request.app.state.store = store
    return store


def get_invoker(client: ModelClient = Depends(get_model_client)) -> ModelInvoker:
    return ModelInvoker(client)


def get_evaluator(
    invoker: ModelInvoker = Depends(get_invoker),
    store: SubmissionStore = Depends(get_store),
) -> HomeworkEvaluator:
    return HomeworkEvaluator(invoker, store)


def get_assignment_generator(invoker: ModelInvoker = Depends(get_invoker)) -> AssignmentGenerator:
    return AssignmentGenerator(invoker)


def get_submission_chat(
    invoker: ModelInvoker = Depends(get_invoker),
    store: SubmissionStore = Depends(get_store),
) -> SubmissionChat:
    return SubmissionChat(invoker, store)
