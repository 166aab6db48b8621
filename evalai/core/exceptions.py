# evalai/core/exceptions.py
from typing import Any, Dict, Optional
import logging

from fastapi import HTTPException, status

logger = logging.getLogger(__name__)

SAFE_MODEL_FAILURE_MESSAGE = (
    "The AI model may be overloaded or the request is invalid. Please try again later."
)


class EvaluationException(Exception):
    """Base exception for evaluation errors"""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class ValidationException(EvaluationException):
    """Input validation errors (rubric, form fields, upload size)"""
    def __init__(self, message: str, field: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        self.field = field
        super().__init__(message, details)


class UploadTooLarge(ValidationException):
    def __init__(self, size: int, limit: int):
        super().__init__(
            f"File too large. Maximum upload size is {limit // (1024 * 1024)} MiB.",
            field="file",
            details={"size": size, "limit": limit},
        )


class UnsupportedMediaType(EvaluationException):
    """File type outside the accepted set"""
    def __init__(self, media_type: str):
        self.media_type = media_type
        super().__init__(f"Unsupported file type: {media_type or 'unknown'}", {"media_type": media_type})


class ExtractionFailure(EvaluationException):
    """Extraction library failed mid-parse (corrupt or truncated file)"""
    pass


class ModelCallError(EvaluationException):
    """A single failed call to the model provider.

    ``status_code`` is None when the failure never produced an HTTP status
    (connection reset, DNS, client-side validation).
    """
    def __init__(self, message: str, status_code: Optional[int] = None, details: Optional[Dict[str, Any]] = None):
        self.status_code = status_code
        super().__init__(message, details)


class ModelInvocationFailed(EvaluationException):
    """Retries exhausted or the provider rejected the request"""
    def __init__(self, attempts: int, last_status: Optional[int] = None):
        self.attempts = attempts
        self.last_status = last_status
        super().__init__(SAFE_MODEL_FAILURE_MESSAGE, {"attempts": attempts})


class MalformedModelOutput(EvaluationException):
    """The call succeeded but the returned text holds no usable JSON object"""
    pass


class NoJsonFound(MalformedModelOutput):
    pass


class InvalidJsonSyntax(MalformedModelOutput):
    pass


class ResultShapeMismatch(InvalidJsonSyntax):
    """Parsed JSON object is missing fields or has wrong field types"""
    pass


class PersistenceFailure(EvaluationException):
    """Submission record could not be written or read"""
    pass


class SubmissionNotFound(EvaluationException):
    def __init__(self, submission_id: str):
        super().__init__("Submission not found.", {"submission_id": submission_id})


def is_transient(error: BaseException) -> bool:
    """Server-side (5xx) provider failures are retryable; nothing else is."""
    if isinstance(error, ModelCallError) and error.status_code is not None:
        return 500 <= error.status_code <= 599
    return False


def create_error_response(status_code: int, error_type: str, message: str, request_id: str, **extra_details) -> HTTPException:
    """Create standardized error response"""
    detail = {
        "error": message,
        "type": error_type,
        "request_id": request_id,
        **extra_details
    }
    return HTTPException(status_code=status_code, detail=detail)


def to_http_exception(exc: EvaluationException, request_id: str) -> HTTPException:
    """Map a pipeline error onto the HTTP error contract.

    Provider internals and raw model output are logged by the raising stage
    and never copied into the response.
    """
    if isinstance(exc, UnsupportedMediaType):
        return create_error_response(
            status.HTTP_415_UNSUPPORTED_MEDIA_TYPE, "UnsupportedMediaType",
            "Unsupported file type.", request_id, media_type=exc.media_type,
        )
    if isinstance(exc, UploadTooLarge):
        return create_error_response(
            status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, "UploadTooLarge", exc.message, request_id,
            max_bytes=exc.details.get("limit"),
        )
    if isinstance(exc, ValidationException):
        return create_error_response(
            status.HTTP_422_UNPROCESSABLE_ENTITY, "ValidationError", exc.message, request_id,
            field=exc.field,
        )
    if isinstance(exc, ExtractionFailure):
        return create_error_response(
            status.HTTP_422_UNPROCESSABLE_ENTITY, "ExtractionFailure",
            "The uploaded file could not be read. It may be corrupt.", request_id,
        )
    if isinstance(exc, ModelInvocationFailed):
        err = create_error_response(
            status.HTTP_503_SERVICE_UNAVAILABLE, "ModelInvocationFailed", exc.message, request_id,
            retry_after=30,
        )
        err.headers = {"Retry-After": "30"}
        return err
    if isinstance(exc, MalformedModelOutput):
        return create_error_response(
            status.HTTP_502_BAD_GATEWAY, "MalformedModelOutput",
            "The AI returned a response that could not be understood. Please try again.", request_id,
        )
    if isinstance(exc, SubmissionNotFound):
        return create_error_response(
            status.HTTP_404_NOT_FOUND, "SubmissionNotFound", exc.message, request_id,
        )
    if isinstance(exc, PersistenceFailure):
        return create_error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "PersistenceFailure",
            "Failed to access stored submissions.", request_id,
        )
    logger.error(f"[{request_id}] Unmapped evaluation error: {exc.message}")
    return create_error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR, "InternalError", "Internal server error", request_id,
    )
