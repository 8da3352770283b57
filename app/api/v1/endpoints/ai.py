"""
AI Endpoints

- POST /quizzes/ai/generate  - Generate and save a draft quiz from a prompt
- GET  /user/ai-quota        - Remaining AI generations
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.database import get_db
from app.api.deps import get_current_user_id
from app.schemas.ai_quiz import AIQuizGenerateRequest, AIQuotaResponse
from app.schemas.quiz import QuizDetailResponse
from app.services.ai_quota_service import AIQuotaService
from app.services.quiz_generator_service import QuizGeneratorService, AIGenerationError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["AI"])


def get_generator_service(db: AsyncSession = Depends(get_db)) -> QuizGeneratorService:
    return QuizGeneratorService(db)


def get_quota_service(db: AsyncSession = Depends(get_db)) -> AIQuotaService:
    return AIQuotaService(db)


@router.post(
    "/quizzes/ai/generate",
    response_model=QuizDetailResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Generate a quiz with AI",
    description="""
    Asks the model for 5-10 multiple-choice questions on the prompt's topic
    and saves them as a draft quiz with source `ai_generated`.
    Counts against the per-user AI quota.
    """,
)
async def generate_quiz(
    request: AIQuizGenerateRequest,
    current_user_id: UUID = Depends(get_current_user_id),
    service: QuizGeneratorService = Depends(get_generator_service),
):
    try:
        return await service.generate_quiz(current_user_id, request.prompt)
    except AIGenerationError as e:
        logger.error(f"AI quiz generation failed: {e.message}")
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "/user/ai-quota",
    response_model=AIQuotaResponse,
    summary="AI generation quota",
)
async def get_ai_quota(
    current_user_id: UUID = Depends(get_current_user_id),
    service: AIQuotaService = Depends(get_quota_service),
):
    return await service.get_user_quota(current_user_id)
