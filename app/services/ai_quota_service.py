"""
AI Quota Service

Per-user allowance of AI quiz generations, counted from ai_usage_logs.
"""

from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.repositories.quiz_repo import AIUsageLogRepository
from app.schemas.ai_quiz import AIQuotaResponse


class AIQuotaService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.usage_repo = AIUsageLogRepository(db)

    @staticmethod
    def quota_limit() -> int:
        return settings.AI_QUIZ_GENERATION_LIMIT

    async def get_user_quota(self, user_id: UUID) -> AIQuotaResponse:
        limit = self.quota_limit()
        used = await self.usage_repo.count_for_user(user_id)
        return AIQuotaResponse(
            used=used,
            limit=limit,
            remaining=max(0, limit - used),
            has_reached_limit=used >= limit,
        )

    async def can_generate_quiz(self, user_id: UUID) -> bool:
        quota = await self.get_user_quota(user_id)
        return not quota.has_reached_limit
