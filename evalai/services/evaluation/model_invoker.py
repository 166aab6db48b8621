from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from evalai.core.config import settings
from evalai.core.exceptions import (
    MalformedModelOutput,
    ModelCallError,
    ModelInvocationFailed,
    is_transient,
)
from evalai.models.content import GenerationRequest
from evalai.services.evaluation.result_extractor import extract_evaluation
from evalai.utils.tracer import ModelClient

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[Any]]


@dataclass
class RetryState:
    attempt: int = 0
    delay: float = 1.0  # seconds


async def _call_with_retries(
    client: ModelClient,
    request: GenerationRequest,
    json_mode: bool,
    max_retries: int,
    state: RetryState,
    sleep: Sleep,
) -> str:
    parts = request.parts()
    while True:
        state.attempt += 1
        try:
            return await client.generate(parts, json_mode=json_mode)
        except ModelCallError as e:
            if is_transient(e) and state.attempt < max_retries:
                logger.warning(
                    f"Model call failed with status {e.status_code} "
                    f"(attempt {state.attempt}/{max_retries}). Retrying in {state.delay:.2f}s..."
                )
                await sleep(state.delay)
                state.delay *= 2
                continue
            logger.error(
                f"Model call failed after {state.attempt} attempt(s): {e.message} "
                f"(status={e.status_code}, details={e.details})"
            )
            raise ModelInvocationFailed(state.attempt, e.status_code) from e
        except Exception as e:  # noqa: BLE001
            logger.error(f"Unexpected model client error on attempt {state.attempt}: {e}", exc_info=True)
            raise ModelInvocationFailed(state.attempt) from e


async def invoke(
    client: ModelClient,
    request: GenerationRequest,
    expect_json: bool,
    max_retries: int = 3,
    initial_delay_ms: int = 1000,
    *,
    deadline_s: Optional[float] = None,
    parser: Callable[[str], Any] = extract_evaluation,
    sleep: Sleep = asyncio.sleep,
) -> Any:
    """Send ``request`` to the model, retrying server-side failures.

    Waits ``initial_delay_ms`` before the second attempt and doubles the wait
    each time after, for at most ``max_retries`` attempts in total. 4xx and
    status-less failures end the call immediately.

    With ``expect_json`` false the raw text comes back untouched. Otherwise
    ``parser`` (EvaluationResult by default) is applied once; malformed output
    raises MalformedModelOutput and is not retried.

    ``deadline_s`` bounds the whole sequence including backoff waits; None or 0
    disables it.
    """
    if max_retries < 1:
        raise ValueError("max_retries must be at least 1")

    deadline_s = deadline_s or None
    state = RetryState(attempt=0, delay=initial_delay_ms / 1000.0)
    try:
        async with asyncio.timeout(deadline_s):
            raw = await _call_with_retries(client, request, expect_json, max_retries, state, sleep)
    except TimeoutError as e:
        logger.error(f"Model invocation exceeded deadline of {deadline_s}s after {state.attempt} attempt(s)")
        raise ModelInvocationFailed(state.attempt) from e

    if not expect_json:
        return raw

    try:
        return parser(raw)
    except MalformedModelOutput as e:
        logger.error(f"AI response text (unparseable: {e.message}): {raw}")
        raise


class ModelInvoker:
    """Binds a model client to the configured retry policy."""

    def __init__(
        self,
        client: ModelClient,
        max_retries: Optional[int] = None,
        initial_delay_ms: Optional[int] = None,
        deadline_s: Optional[float] = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self.client = client
        self.max_retries = max_retries if max_retries is not None else settings.MODEL_MAX_RETRIES
        self.initial_delay_ms = initial_delay_ms if initial_delay_ms is not None else settings.MODEL_INITIAL_DELAY_MS
        if deadline_s is None:
            deadline_s = settings.EVALUATION_DEADLINE_S
        # 0 disables the deadline
        self.deadline_s = deadline_s or None
        self.sleep = sleep

    async def invoke(self, request: GenerationRequest, expect_json: bool, parser: Callable[[str], Any] = extract_evaluation) -> Any:
        return await invoke(
            self.client,
            request,
            expect_json,
            self.max_retries,
            self.initial_delay_ms,
            deadline_s=self.deadline_s,
            parser=parser,
            sleep=self.sleep,
        )
