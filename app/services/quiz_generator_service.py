"""
Quiz Generator Service

AI-powered quiz creation:
- Quota check against ai_usage_logs
- Gemini call through LangChain
- Robust JSON extraction and strict schema validation
- Persisting the result as an ai_generated draft quiz
"""

import asyncio
import logging
from uuid import UUID

from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from app.ai.json_extractor import JSONExtractionError, parse_json_robustly
from app.ai.llm.langchain_client import LLMConfigurationError, chat_completion
from app.ai.prompts.quiz_prompts import (
    QUIZ_GENERATION_SYSTEM_MESSAGE,
    build_quiz_generation_prompt,
)
from app.core.config import settings
from app.repositories.quiz_repo import AIUsageLogRepository
from app.schemas.ai_quiz import AIQuizContent
from app.schemas.quiz import QuizDetailResponse
from app.services.ai_quota_service import AIQuotaService
from app.services.quiz_service import QuizService

logger = logging.getLogger(__name__)


class AIGenerationError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class AIConfigurationError(AIGenerationError):
    status_code = 503


class AIProviderError(AIGenerationError):
    status_code = 503


class AIResponseError(AIGenerationError):
    status_code = 422


class AIQuotaExceededError(AIGenerationError):
    status_code = 429


class QuizGeneratorService:
    """Turns a free-text prompt into a persisted draft quiz."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.quota_service = AIQuotaService(db)
        self.usage_repo = AIUsageLogRepository(db)
        self.quiz_service = QuizService(db)

    async def generate_quiz(self, user_id: UUID, prompt: str) -> QuizDetailResponse:
        if not await self.quota_service.can_generate_quiz(user_id):
            raise AIQuotaExceededError(
                "You have reached your AI quiz generation limit."
            )

        model = settings.GEMINI_MODEL
        temperature = settings.LLM_TEMPERATURE

        content, tokens_used = await self.generate_content(prompt, model, temperature)
        await self._log_usage(user_id, model, tokens_used)

        quiz = await self.quiz_service.create_from_ai_content(
            user_id,
            content,
            prompt=prompt,
            model=model,
            temperature=temperature,
        )
        logger.info(f"AI quiz {quiz.id} created for {user_id} ({len(quiz.questions)} questions)")
        return quiz

    async def generate_content(self, prompt: str, model: str, temperature: float):
        """Call the model and return (validated content, tokens used)."""
        try:
            response = await chat_completion(
                messages=[{"role": "user", "content": build_quiz_generation_prompt(prompt)}],
                system_prompt=QUIZ_GENERATION_SYSTEM_MESSAGE,
                temperature=temperature,
                max_tokens=settings.LLM_MAX_TOKENS,
                model=model,
            )
        except LLMConfigurationError as e:
            logger.error(f"AI generation misconfigured: {e}")
            raise AIConfigurationError(
                "AI service is not properly configured. Please contact support."
            )
        except asyncio.TimeoutError:
            raise AIProviderError("The AI service timed out. Please try again later.")
        except Exception as e:
            logger.error(f"AI provider call failed: {e}")
            raise AIProviderError(
                "The AI service is temporarily unavailable. Please try again later."
            )

        raw = response["content"]
        logger.debug(f"AI response length: {len(raw)}")
        return parse_ai_quiz_content(raw), response.get("tokens_used", 0)

    async def _log_usage(self, user_id: UUID, model: str, tokens_used: int) -> None:
        if not settings.AI_ENABLE_USAGE_LOGGING:
            return
        try:
            await self.usage_repo.create(
                user_id=user_id,
                model_used=model,
                tokens_used=tokens_used or 0,
            )
        except Exception as e:
            # Non-critical: generation already succeeded
            logger.warning(f"Failed to log AI usage: {e}")
            await self.db.rollback()


def parse_ai_quiz_content(raw: str) -> AIQuizContent:
    try:
        parsed = parse_json_robustly(raw)
    except JSONExtractionError as e:
        raise AIResponseError(f"Invalid JSON from AI: {e}")

    try:
        return AIQuizContent.model_validate(parsed)
    except ValidationError as e:
        errors = ", ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        logger.error(f"AI response validation failed: {errors}")
        raise AIResponseError(f"AI response validation failed: {errors}")
