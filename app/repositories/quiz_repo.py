"""
Quiz Repository

Data access layer for Quiz, QuizQuestion, QuizOption, QuizAttempt and
QuizResponse models.
"""

import json
from datetime import datetime
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, delete, and_, or_, false, text
from sqlalchemy.orm import selectinload

from app.repositories.base import BaseRepository
from app.models.quiz import Quiz, QuizStatus
from app.models.quiz_question import QuizQuestion
from app.models.quiz_option import QuizOption
from app.models.quiz_attempt import QuizAttempt
from app.models.quiz_response import QuizResponse
from app.models.ai_usage_log import AIUsageLog


# Stored procedures installed by migration b7c8d9e0f1a2. Casts keep the
# statements portable to drivers that cannot infer parameter types.
CREATE_QUIZ_ATOMIC = text(
    "SELECT create_quiz_atomic(CAST(:user_id AS uuid), CAST(:payload AS jsonb))"
)
UPDATE_QUIZ_ATOMIC = text(
    "SELECT update_quiz_atomic(CAST(:quiz_id AS uuid), CAST(:user_id AS uuid), CAST(:payload AS jsonb))"
)


class QuizRepository(BaseRepository[Quiz]):
    """Repository for Quiz model."""

    def __init__(self, db: AsyncSession):
        super().__init__(Quiz, db)

    async def get_with_questions(self, quiz_id: UUID) -> Optional[Quiz]:
        """Live quiz with questions and options eagerly loaded (children unfiltered)."""
        stmt = (
            select(self.model)
            .options(
                selectinload(self.model.questions).selectinload(QuizQuestion.options)
            )
            .where(self.model.id == quiz_id, self.model.live())
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    # -----------------------------
    # Visibility / listing
    # -----------------------------
    @staticmethod
    def visibility_clause(
        requester_id: UUID,
        status: Optional[QuizStatus] = None,
        owned: Optional[bool] = None,
    ):
        """
        Rows the requester may list.

        owned=None: own quizzes of any status plus other users' public ones.
        owned=True: own quizzes only. owned=False: public quizzes of others.
        """
        own = Quiz.user_id == requester_id
        public = Quiz.status == QuizStatus.PUBLIC

        if owned is True:
            clause = own
            if status is not None:
                clause = and_(clause, Quiz.status == status)
        elif owned is False:
            clause = and_(Quiz.user_id != requester_id, public)
            if status is not None and status != QuizStatus.PUBLIC:
                clause = false()
        elif status is None:
            clause = or_(own, public)
        elif status == QuizStatus.PUBLIC:
            clause = public
        else:
            clause = and_(own, Quiz.status == status)

        return and_(Quiz.live(), clause)

    async def count_visible(self, clause) -> int:
        stmt = select(func.count(self.model.id)).where(clause)
        result = await self.db.execute(stmt)
        return result.scalar() or 0

    async def list_visible(
        self,
        clause,
        sort: str,
        descending: bool,
        skip: int,
        limit: int,
    ) -> List[Quiz]:
        column = getattr(self.model, sort)
        ordering = column.desc() if descending else column.asc()
        tie_break = self.model.id.desc() if descending else self.model.id.asc()
        stmt = (
            select(self.model)
            .where(clause)
            .order_by(ordering, tie_break)
            .offset(skip)
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    # -----------------------------
    # Writes
    # -----------------------------
    async def set_status(self, quiz: Quiz, status: QuizStatus) -> Quiz:
        quiz.status = status
        await self.db.commit()
        await self.db.refresh(quiz)
        return quiz

    async def soft_delete(self, quiz: Quiz) -> None:
        quiz.mark_deleted()
        await self.db.commit()

    async def purge(self, quiz_id: UUID) -> None:
        """Hard delete; foreign keys cascade to questions, options and attempts."""
        await self.db.execute(delete(self.model).where(self.model.id == quiz_id))
        await self.db.commit()

    async def create_atomic(self, user_id: UUID, payload: dict) -> UUID:
        result = await self.db.execute(
            CREATE_QUIZ_ATOMIC,
            {"user_id": str(user_id), "payload": json.dumps(payload)},
        )
        quiz_id = result.scalar_one()
        await self.db.commit()
        return quiz_id if isinstance(quiz_id, UUID) else UUID(str(quiz_id))

    async def update_atomic(self, quiz_id: UUID, user_id: UUID, payload: dict) -> UUID:
        result = await self.db.execute(
            UPDATE_QUIZ_ATOMIC,
            {"quiz_id": str(quiz_id), "user_id": str(user_id), "payload": json.dumps(payload)},
        )
        updated_id = result.scalar_one()
        await self.db.commit()
        return updated_id if isinstance(updated_id, UUID) else UUID(str(updated_id))


class QuizQuestionRepository(BaseRepository[QuizQuestion]):
    """Repository for QuizQuestion model."""

    def __init__(self, db: AsyncSession):
        super().__init__(QuizQuestion, db)

    async def delete_for_quiz(self, quiz_id: UUID) -> None:
        """Hard-delete every question of a quiz; options cascade."""
        await self.db.execute(
            delete(self.model).where(self.model.quiz_id == quiz_id)
        )
        await self.db.commit()


class QuizOptionRepository(BaseRepository[QuizOption]):
    """Repository for QuizOption model."""

    def __init__(self, db: AsyncSession):
        super().__init__(QuizOption, db)


class QuizAttemptRepository(BaseRepository[QuizAttempt]):
    """Repository for QuizAttempt model."""

    def __init__(self, db: AsyncSession):
        super().__init__(QuizAttempt, db)

    async def get_for_quiz(self, attempt_id: UUID, quiz_id: UUID) -> Optional[QuizAttempt]:
        stmt = select(self.model).where(
            self.model.id == attempt_id,
            self.model.quiz_id == quiz_id,
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_completed(self, user_id: UUID, quiz_id: UUID) -> List[QuizAttempt]:
        stmt = (
            select(self.model)
            .where(
                self.model.user_id == user_id,
                self.model.quiz_id == quiz_id,
                self.model.completed_at.isnot(None),
            )
            .order_by(self.model.completed_at.desc())
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def finalize(self, attempt: QuizAttempt, score: int, completed_at: datetime) -> QuizAttempt:
        """Write score and completion time together."""
        attempt.score = score
        attempt.completed_at = completed_at
        await self.db.commit()
        await self.db.refresh(attempt)
        return attempt


class QuizResponseRepository(BaseRepository[QuizResponse]):
    """Repository for QuizResponse model."""

    def __init__(self, db: AsyncSession):
        super().__init__(QuizResponse, db)

    async def replace_for_attempt(
        self,
        attempt_id: UUID,
        rows: List[Tuple[UUID, UUID]],
    ) -> int:
        """
        Replace all responses of an attempt with (question_id, option_id) rows.

        Delete and insert share one commit so a resubmission never leaves
        the attempt with half of its answers.
        """
        await self.db.execute(
            delete(self.model).where(self.model.quiz_attempt_id == attempt_id)
        )
        for question_id, option_id in rows:
            self.db.add(
                QuizResponse(
                    quiz_attempt_id=attempt_id,
                    question_id=question_id,
                    selected_answer_id=option_id,
                )
            )
        await self.db.commit()
        return len(rows)

    async def get_by_attempt(self, attempt_id: UUID) -> List[QuizResponse]:
        stmt = (
            select(self.model)
            .where(self.model.quiz_attempt_id == attempt_id)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())


class AIUsageLogRepository(BaseRepository[AIUsageLog]):
    """Repository for AIUsageLog model."""

    def __init__(self, db: AsyncSession):
        super().__init__(AIUsageLog, db)

    async def count_for_user(self, user_id: UUID) -> int:
        stmt = select(func.count(self.model.id)).where(self.model.user_id == user_id)
        result = await self.db.execute(stmt)
        return result.scalar() or 0
