import logging
import traceback

from fastapi import APIRouter, Depends, Request

from evalai.core.dependencies import (
    get_assignment_generator,
    get_request_id,
    get_submission_chat,
    route_timer,
)
from evalai.core.exceptions import EvaluationException, create_error_response, to_http_exception
from evalai.models.request import AssignmentGenerationRequest, ChatRequest
from evalai.models.response import AssignmentDraft, ChatReply
from evalai.services.assignment_generator import AssignmentGenerator
from evalai.services.submission_chat import SubmissionChat

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(route_timer)])


@router.post("/generate-assignment", response_model=AssignmentDraft, response_model_by_alias=True)
async def generate_assignment(
    req: AssignmentGenerationRequest,
    request: Request,
    generator: AssignmentGenerator = Depends(get_assignment_generator),
) -> AssignmentDraft:
    request_id = get_request_id(request)
    try:
        return await generator.generate(req)
    except EvaluationException as e:
        logger.error(f"[{request_id}] Assignment generation failed: {e.message}")
        raise to_http_exception(e, request_id)
    except Exception as e:
        logger.error(f"[{request_id}] Unexpected error in assignment generator: {e}")
        logger.error(f"[{request_id}] Traceback: {traceback.format_exc()}")
        raise create_error_response(500, "InternalError", "Failed to generate assignment.", request_id)


@router.post("/chat", response_model=ChatReply)
async def chat(
    req: ChatRequest,
    request: Request,
    chat_service: SubmissionChat = Depends(get_submission_chat),
) -> ChatReply:
    request_id = get_request_id(request)
    try:
        return await chat_service.reply(req)
    except EvaluationException as e:
        logger.error(f"[{request_id}] Chat failed: {e.message}")
        raise to_http_exception(e, request_id)
    except Exception as e:
        logger.error(f"[{request_id}] Unexpected error in chat: {e}")
        logger.error(f"[{request_id}] Traceback: {traceback.format_exc()}")
        raise create_error_response(500, "InternalError", "Failed to get a response from the AI.", request_id)
