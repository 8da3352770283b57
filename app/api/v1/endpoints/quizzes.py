"""
Quiz Endpoints

HTTP API for quiz authoring and lifecycle.

Endpoints:
----------
- GET    /quizzes                       - List visible quizzes
- POST   /quizzes                       - Create a quiz
- GET    /quizzes/{quiz_id}             - Get quiz detail (demo ids included)
- GET    /demo-quizzes                  - Built-in demo quizzes
- PUT    /quizzes/{quiz_id}             - Replace a quiz
- DELETE /quizzes/{quiz_id}             - Soft-delete a quiz
- POST   /quizzes/{quiz_id}/publish     - draft -> public
- POST   /quizzes/{quiz_id}/unpublish   - public/private -> draft
- PATCH  /quizzes/{quiz_id}/visibility  - public <-> private
"""

import logging
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Response, status, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.database import get_db
from app.api.deps import get_current_user_id
from app.data.demo_quizzes import get_all_demo_quizzes, get_demo_quiz, is_demo_quiz_id
from app.schemas.quiz import (
    QuizCreate,
    QuizDetailResponse,
    QuizListQuery,
    QuizListResponse,
    QuizSortField,
    QuizStatus,
    SortOrder,
    VisibilityUpdate,
)
from app.services.quiz_service import (
    QuizService,
    QuizNotFoundError,
    QuizForbiddenError,
    QuizStateError,
    QuizServiceError,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Quizzes"])


def get_quiz_service(db: AsyncSession = Depends(get_db)) -> QuizService:
    return QuizService(db)


def parse_quiz_id(quiz_id: str) -> UUID:
    try:
        return UUID(quiz_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid quiz ID format",
        )


def quiz_error_to_http(error: Exception) -> HTTPException:
    if isinstance(error, QuizNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Quiz not found")
    if isinstance(error, QuizForbiddenError):
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(error))
    if isinstance(error, QuizStateError):
        return HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"message": error.message, "errors": error.errors},
        )
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={"message": "Internal server error", "code": "backend_failure"},
    )


# ============================================================
# LIST QUIZZES
# ============================================================

@router.get(
    "/quizzes",
    response_model=QuizListResponse,
    summary="List quizzes",
    description="""
    Without filters: your own quizzes (any status) plus public quizzes of
    other users. `owned=true` restricts to your quizzes, `owned=false` to
    other users' public ones. Out-of-range pages are clamped.
    """,
)
async def list_quizzes(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    sort: QuizSortField = Query(QuizSortField.CREATED_AT),
    order: SortOrder = Query(SortOrder.DESC),
    quiz_status: Optional[QuizStatus] = Query(None, alias="status"),
    owned: Optional[bool] = Query(None),
    current_user_id: UUID = Depends(get_current_user_id),
    service: QuizService = Depends(get_quiz_service),
):
    query = QuizListQuery(
        page=page,
        limit=limit,
        sort=sort,
        order=order,
        status=quiz_status,
        owned=owned,
    )
    return await service.list_quizzes(current_user_id, query)


# ============================================================
# CREATE QUIZ
# ============================================================

@router.post(
    "/quizzes",
    response_model=QuizDetailResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a quiz",
    description="Creates a draft quiz with its ordered questions and options.",
)
async def create_quiz(
    request: QuizCreate,
    current_user_id: UUID = Depends(get_current_user_id),
    service: QuizService = Depends(get_quiz_service),
):
    try:
        return await service.create_quiz(current_user_id, request)
    except QuizServiceError as e:
        logger.error(f"Creating quiz for {current_user_id} failed: {e}")
        raise quiz_error_to_http(e)


# ============================================================
# GET QUIZ
# ============================================================

@router.get(
    "/quizzes/{quiz_id}",
    response_model=QuizDetailResponse,
    summary="Get quiz detail",
)
async def get_quiz(
    quiz_id: str,
    current_user_id: UUID = Depends(get_current_user_id),
    service: QuizService = Depends(get_quiz_service),
):
    if is_demo_quiz_id(quiz_id):
        demo = get_demo_quiz(quiz_id)
        if demo is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Quiz not found")
        return demo

    quiz = await service.get_quiz(parse_quiz_id(quiz_id), current_user_id)
    if quiz is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Quiz not found")
    return quiz


# ============================================================
# DEMO QUIZZES
# ============================================================

@router.get(
    "/demo-quizzes",
    response_model=List[QuizDetailResponse],
    summary="List the built-in demo quizzes",
    description="Demo quizzes are scored locally and never stored as attempts.",
)
async def list_demo_quizzes(
    current_user_id: UUID = Depends(get_current_user_id),
):
    return get_all_demo_quizzes()


# ============================================================
# UPDATE QUIZ
# ============================================================

@router.put(
    "/quizzes/{quiz_id}",
    response_model=QuizDetailResponse,
    summary="Replace a quiz",
    description="""
    Full replacement: every existing question and option is discarded and
    the submitted tree is stored in list order. Always send the complete
    question set.
    """,
)
async def update_quiz(
    quiz_id: str,
    request: QuizCreate,
    current_user_id: UUID = Depends(get_current_user_id),
    service: QuizService = Depends(get_quiz_service),
):
    try:
        return await service.update_quiz(parse_quiz_id(quiz_id), current_user_id, request)
    except (QuizNotFoundError, QuizForbiddenError) as e:
        raise quiz_error_to_http(e)
    except QuizServiceError as e:
        logger.error(f"Updating quiz {quiz_id} failed: {e}")
        raise quiz_error_to_http(e)


# ============================================================
# DELETE QUIZ
# ============================================================

@router.delete(
    "/quizzes/{quiz_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a quiz",
)
async def delete_quiz(
    quiz_id: str,
    current_user_id: UUID = Depends(get_current_user_id),
    service: QuizService = Depends(get_quiz_service),
):
    try:
        await service.delete_quiz(parse_quiz_id(quiz_id), current_user_id)
    except (QuizNotFoundError, QuizForbiddenError) as e:
        raise quiz_error_to_http(e)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ============================================================
# STATUS CHANGES
# ============================================================

@router.post(
    "/quizzes/{quiz_id}/publish",
    response_model=QuizDetailResponse,
    summary="Publish a draft quiz",
    description="Runs the publishing checks; failures come back as 422 with the full error list.",
)
async def publish_quiz(
    quiz_id: str,
    current_user_id: UUID = Depends(get_current_user_id),
    service: QuizService = Depends(get_quiz_service),
):
    try:
        return await service.publish_quiz(parse_quiz_id(quiz_id), current_user_id)
    except (QuizNotFoundError, QuizForbiddenError, QuizStateError) as e:
        raise quiz_error_to_http(e)


@router.post(
    "/quizzes/{quiz_id}/unpublish",
    response_model=QuizDetailResponse,
    summary="Move a published quiz back to draft",
)
async def unpublish_quiz(
    quiz_id: str,
    current_user_id: UUID = Depends(get_current_user_id),
    service: QuizService = Depends(get_quiz_service),
):
    try:
        return await service.unpublish_quiz(parse_quiz_id(quiz_id), current_user_id)
    except (QuizNotFoundError, QuizForbiddenError, QuizStateError) as e:
        raise quiz_error_to_http(e)


@router.patch(
    "/quizzes/{quiz_id}/visibility",
    response_model=QuizDetailResponse,
    summary="Toggle a published quiz between public and private",
)
async def set_visibility(
    quiz_id: str,
    request: VisibilityUpdate,
    current_user_id: UUID = Depends(get_current_user_id),
    service: QuizService = Depends(get_quiz_service),
):
    try:
        return await service.set_visibility(parse_quiz_id(quiz_id), current_user_id, request.status)
    except (QuizNotFoundError, QuizForbiddenError, QuizStateError) as e:
        raise quiz_error_to_http(e)
