import logging
import time
import traceback
from typing import Any, Optional

from fastapi import APIRouter, Depends, File, Form, Request, Response, UploadFile

from evalai.core.config import settings
from evalai.core.dependencies import (
    PerformanceMonitor,
    get_evaluator,
    get_performance_monitor,
    get_request_id,
    get_store,
    route_timer,
)
from evalai.core.exceptions import (
    EvaluationException,
    UploadTooLarge,
    create_error_response,
    to_http_exception,
)
from evalai.models.content import SubmissionFile
from evalai.models.request import SubmissionContext
from evalai.models.response import EvaluationResult
from evalai.models.rubric import parse_rubric
from evalai.services.homework_evaluator import HomeworkEvaluator
from evalai.services.persistence import SubmissionStore

logger = logging.getLogger(__name__)

HTTP_INTERNAL_SERVER_ERROR = 500

router = APIRouter(dependencies=[Depends(route_timer)])


async def read_upload(upload: UploadFile, limit: int) -> SubmissionFile:
    """Read an upload into memory, refusing anything over ``limit`` bytes."""
    if upload.size is not None and upload.size > limit:
        raise UploadTooLarge(upload.size, limit)
    data = await upload.read(limit + 1)
    if len(data) > limit:
        raise UploadTooLarge(len(data), limit)
    return SubmissionFile(data=data, media_type=upload.content_type or "", filename=upload.filename)


@router.post("/evaluate", response_model=EvaluationResult)
async def evaluate(
    request: Request,
    response: Response,
    file: UploadFile = File(...),
    question: str = Form(..., min_length=1),
    rubric: str = Form(..., description="JSON array of {criterion, points}"),
    is_strict_mode: bool = Form(False, alias="isStrictMode"),
    assignment_id: Optional[str] = Form(None, alias="assignmentId"),
    subject_id: Optional[str] = Form(None, alias="subjectId"),
    teacher_uid: Optional[str] = Form(None, alias="teacherUid"),
    user_id: Optional[str] = Form(None, alias="userId"),
    evaluator: HomeworkEvaluator = Depends(get_evaluator),
) -> EvaluationResult:
    """Grade one uploaded homework file against a rubric."""
    request_id = get_request_id(request)
    logger.info(f"[{request_id}] Evaluating {file.content_type} upload for assignment {assignment_id}")

    try:
        # Rubric and size are checked before any extraction work
        entries = parse_rubric(rubric)
        submission = await read_upload(file, settings.MAX_UPLOAD_BYTES)
        outcome = await evaluator.evaluate(
            submission,
            entries,
            question,
            strict=is_strict_mode,
            context=SubmissionContext(
                user_id=user_id,
                assignment_id=assignment_id,
                subject_id=subject_id,
                teacher_uid=teacher_uid,
            ),
        )
    except EvaluationException as e:
        logger.error(f"[{request_id}] {type(e).__name__}: {e.message}")
        raise to_http_exception(e, request_id)
    except Exception as e:
        logger.error(f"[{request_id}] Unexpected error: {e}")
        logger.error(f"[{request_id}] Traceback: {traceback.format_exc()}")
        raise create_error_response(
            HTTP_INTERNAL_SERVER_ERROR, "InternalError", "Internal server error", request_id
        )

    response.headers["X-Request-ID"] = request_id
    response.headers["X-Submission-Persisted"] = "true" if outcome.persisted else "false"
    if outcome.submission_id:
        response.headers["X-Submission-ID"] = outcome.submission_id
    return outcome.result


@router.get("/ping")
async def ping(
    store: SubmissionStore = Depends(get_store),
    performance_monitor: PerformanceMonitor = Depends(get_performance_monitor),
) -> dict[str, Any]:
    """Liveness check; does not call the model endpoint."""
    return {
        "status": "healthy",
        "ok": True,
        "version": settings.APP_VERSION,
        "timestamp": time.time(),
        "services": {
            "store": type(store).__name__,
            "model_deployment": settings.AZURE_OPENAI_DEPLOYMENT or None,
        },
        "performance": performance_monitor.get_stats(),
    }
