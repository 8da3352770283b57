"""
Attempt Endpoints

HTTP API for taking quizzes and reviewing attempts.

Endpoints:
----------
- GET    /quizzes/{quiz_id}/attempts               - Completed attempts with stats
- POST   /quizzes/{quiz_id}/attempts               - Start an attempt
- PUT    /quizzes/{quiz_id}/attempts/{attempt_id}  - Finalise with score
- GET    /attempts/{attempt_id}                    - Attempt review
- POST   /attempts/{attempt_id}/responses          - Save (replace) responses
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.database import get_db
from app.api.deps import get_current_user_id
from app.api.v1.endpoints.quizzes import parse_quiz_id, quiz_error_to_http
from app.schemas.attempt import (
    AttemptCompleteRequest,
    AttemptDetailResponse,
    AttemptListResponse,
    QuizAttemptResponse,
    ResponsesSavedResponse,
    ResponsesSubmitRequest,
)
from app.services.attempt_service import AttemptService, AttemptError
from app.services.quiz_service import QuizNotFoundError, QuizForbiddenError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Attempts"])


def get_attempt_service(db: AsyncSession = Depends(get_db)) -> AttemptService:
    return AttemptService(db)


def parse_attempt_id(attempt_id: str) -> UUID:
    try:
        return UUID(attempt_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid attempt ID format",
        )


def attempt_error_to_http(error: AttemptError) -> HTTPException:
    return HTTPException(status_code=error.status_code, detail=error.message)


# ============================================================
# LIST ATTEMPTS
# ============================================================

@router.get(
    "/quizzes/{quiz_id}/attempts",
    response_model=AttemptListResponse,
    summary="List your completed attempts of a quiz",
    description="Newest first, with best and average percentage.",
)
async def list_attempts(
    quiz_id: str,
    current_user_id: UUID = Depends(get_current_user_id),
    service: AttemptService = Depends(get_attempt_service),
):
    try:
        return await service.list_attempts(parse_quiz_id(quiz_id), current_user_id)
    except (QuizNotFoundError, QuizForbiddenError) as e:
        raise quiz_error_to_http(e)


# ============================================================
# START ATTEMPT
# ============================================================

@router.post(
    "/quizzes/{quiz_id}/attempts",
    response_model=QuizAttemptResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Start an attempt",
    description="Snapshots the number of live questions. Demo quizzes cannot be attempted here.",
)
async def create_attempt(
    quiz_id: str,
    current_user_id: UUID = Depends(get_current_user_id),
    service: AttemptService = Depends(get_attempt_service),
):
    try:
        return await service.create_attempt(quiz_id, current_user_id)
    except AttemptError as e:
        raise attempt_error_to_http(e)
    except (QuizNotFoundError, QuizForbiddenError) as e:
        raise quiz_error_to_http(e)


# ============================================================
# COMPLETE ATTEMPT
# ============================================================

@router.put(
    "/quizzes/{quiz_id}/attempts/{attempt_id}",
    response_model=QuizAttemptResponse,
    summary="Finalise an attempt",
    description="Writes the raw score and completion time together. An attempt completes once.",
)
async def complete_attempt(
    quiz_id: str,
    attempt_id: str,
    request: AttemptCompleteRequest,
    current_user_id: UUID = Depends(get_current_user_id),
    service: AttemptService = Depends(get_attempt_service),
):
    try:
        return await service.complete_attempt(
            quiz_id=parse_quiz_id(quiz_id),
            attempt_id=parse_attempt_id(attempt_id),
            user_id=current_user_id,
            score=request.score,
            completed_at=request.completed_at,
            status=request.status,
        )
    except AttemptError as e:
        raise attempt_error_to_http(e)


# ============================================================
# GET ATTEMPT
# ============================================================

@router.get(
    "/attempts/{attempt_id}",
    response_model=AttemptDetailResponse,
    summary="Review an attempt",
)
async def get_attempt(
    attempt_id: str,
    current_user_id: UUID = Depends(get_current_user_id),
    service: AttemptService = Depends(get_attempt_service),
):
    try:
        return await service.get_attempt(parse_attempt_id(attempt_id), current_user_id)
    except AttemptError as e:
        raise attempt_error_to_http(e)
    except QuizNotFoundError as e:
        raise quiz_error_to_http(e)


# ============================================================
# SAVE RESPONSES
# ============================================================

@router.post(
    "/attempts/{attempt_id}/responses",
    response_model=ResponsesSavedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Save responses",
    description="Replaces every saved response of the attempt; resubmitting is safe.",
)
async def save_responses(
    attempt_id: str,
    request: ResponsesSubmitRequest,
    current_user_id: UUID = Depends(get_current_user_id),
    service: AttemptService = Depends(get_attempt_service),
):
    try:
        return await service.save_responses(
            parse_attempt_id(attempt_id), current_user_id, request.responses
        )
    except AttemptError as e:
        raise attempt_error_to_http(e)
    except QuizNotFoundError as e:
        raise quiz_error_to_http(e)
