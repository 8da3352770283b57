"""
Attempt Service

Persistence side of quiz taking:
- Starting an attempt (with a snapshot of the question count)
- Saving responses (full replacement per attempt)
- Finalising an attempt with its raw score
- Attempt history and per-attempt review
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional, Union
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.data.demo_quizzes import is_demo_quiz_id
from app.models.quiz import Quiz, QuizStatus as QuizStatusModel
from app.models.quiz_attempt import QuizAttempt
from app.repositories.quiz_repo import (
    QuizRepository,
    QuizAttemptRepository,
    QuizResponseRepository,
)
from app.schemas.attempt import (
    AttemptStatus,
    ResponseSubmission,
    QuizAttemptResponse,
    ResponsesSavedResponse,
    AttemptHistoryItem,
    AttemptStats,
    AttemptListResponse,
    AttemptDetailResponse,
)
from app.services.quiz_service import (
    QuizNotFoundError,
    QuizForbiddenError,
    build_quiz_detail_response,
)
from app.services.scoring import question_results, to_percentage

logger = logging.getLogger(__name__)


class AttemptError(Exception):
    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class AttemptNotFoundError(AttemptError):
    def __init__(self, message: str = "Quiz attempt not found"):
        super().__init__(message, status_code=404)


class AttemptForbiddenError(AttemptError):
    def __init__(self, message: str = "You don't have permission to access this attempt"):
        super().__init__(message, status_code=403)


class AttemptService:
    """Service for attempt rows and their responses."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.quiz_repo = QuizRepository(db)
        self.attempt_repo = QuizAttemptRepository(db)
        self.response_repo = QuizResponseRepository(db)

    # ============================================================
    # CREATE ATTEMPT
    # ============================================================

    async def create_attempt(self, quiz_id: Union[str, UUID], user_id: UUID) -> QuizAttemptResponse:
        if is_demo_quiz_id(quiz_id):
            raise AttemptError("Cannot create attempts for demo quizzes")
        quiz_uuid = _parse_uuid(quiz_id, "Invalid quiz ID format")

        quiz = await self.quiz_repo.get_with_questions(quiz_uuid)
        if not quiz:
            raise QuizNotFoundError("Quiz not found")
        if quiz.user_id != user_id and quiz.status != QuizStatusModel.PUBLIC:
            raise QuizForbiddenError("You don't have access to this quiz")

        # Same question set the taker is shown and scored against
        detail = build_quiz_detail_response(quiz)
        total_questions = len(detail.questions) if detail else 0
        if total_questions == 0:
            raise AttemptError("Quiz has no questions")

        attempt = await self.attempt_repo.create(
            quiz_id=quiz_uuid,
            user_id=user_id,
            score=0,
            total_questions=total_questions,
        )
        logger.info(f"Attempt {attempt.id} started on quiz {quiz_uuid} by {user_id}")
        return _build_attempt_response(attempt)

    # ============================================================
    # SAVE RESPONSES
    # ============================================================

    async def save_responses(
        self,
        attempt_id: UUID,
        user_id: UUID,
        responses: List[ResponseSubmission],
    ) -> ResponsesSavedResponse:
        attempt = await self._get_owned_attempt(attempt_id, user_id)

        quiz = await self.quiz_repo.get_with_questions(attempt.quiz_id)
        if not quiz:
            raise QuizNotFoundError("Quiz not found")

        options_by_question = {
            q.id: {o.id for o in q.options} for q in quiz.questions
        }
        rows = []
        for response in responses:
            known_options = options_by_question.get(response.question_id)
            if known_options is None:
                raise AttemptError(f"Question {response.question_id} does not belong to this quiz")
            for option_id in response.selected_options:
                if option_id not in known_options:
                    raise AttemptError(f"Option {option_id} does not belong to question {response.question_id}")
                rows.append((response.question_id, option_id))

        count = await self.response_repo.replace_for_attempt(attempt.id, rows)
        return ResponsesSavedResponse(count=count)

    # ============================================================
    # COMPLETE ATTEMPT
    # ============================================================

    async def complete_attempt(
        self,
        quiz_id: UUID,
        attempt_id: UUID,
        user_id: UUID,
        score: int,
        completed_at: datetime,
        status: AttemptStatus = AttemptStatus.COMPLETED,
    ) -> QuizAttemptResponse:
        if status != AttemptStatus.COMPLETED:
            raise AttemptError("Only completing an attempt is supported")

        attempt = await self.attempt_repo.get_for_quiz(attempt_id, quiz_id)
        if not attempt:
            raise AttemptNotFoundError()
        if attempt.user_id != user_id:
            raise AttemptForbiddenError("You don't have permission to update this attempt")
        if attempt.completed_at is not None:
            raise AttemptError("Attempt is already completed", status_code=409)
        if score > attempt.total_questions:
            raise AttemptError("Score cannot exceed the number of questions")

        attempt = await self.attempt_repo.finalize(attempt, score, completed_at)
        logger.info(f"Attempt {attempt.id} completed with score {score}/{attempt.total_questions}")
        return _build_attempt_response(attempt)

    # ============================================================
    # GET ATTEMPT
    # ============================================================

    async def get_attempt(self, attempt_id: UUID, user_id: UUID) -> AttemptDetailResponse:
        attempt = await self._get_owned_attempt(attempt_id, user_id)

        quiz = await self.quiz_repo.get_with_questions(attempt.quiz_id)
        detail = build_quiz_detail_response(quiz) if quiz else None
        if detail is None:
            raise QuizNotFoundError("Quiz not found")

        user_answers: Dict[str, List[str]] = {}
        for response in await self.response_repo.get_by_attempt(attempt.id):
            user_answers.setdefault(str(response.question_id), []).append(
                str(response.selected_answer_id)
            )

        return AttemptDetailResponse(
            attempt=_build_history_item(attempt),
            quiz=detail,
            user_answers=user_answers,
            question_results=question_results(detail, user_answers),
        )

    # ============================================================
    # LIST ATTEMPTS
    # ============================================================

    async def list_attempts(self, quiz_id: UUID, user_id: UUID) -> AttemptListResponse:
        quiz = await self.quiz_repo.get_by_id(quiz_id)
        if not _visible_to(quiz, user_id):
            raise QuizNotFoundError("Quiz not found")

        attempts = await self.attempt_repo.get_completed(user_id, quiz_id)
        items = [_build_history_item(a) for a in attempts]
        percentages = [item.percentage for item in items]

        return AttemptListResponse(
            attempts=items,
            stats=AttemptStats(
                best_score=max(percentages) if percentages else 0,
                average_score=round(sum(percentages) / len(percentages)) if percentages else 0,
                total_attempts=len(items),
            ),
        )

    # ============================================================
    # PRIVATE HELPERS
    # ============================================================

    async def _get_owned_attempt(self, attempt_id: UUID, user_id: UUID) -> QuizAttempt:
        attempt = await self.attempt_repo.get_by_id(attempt_id)
        if not attempt:
            raise AttemptNotFoundError()
        if attempt.user_id != user_id:
            raise AttemptForbiddenError()
        return attempt


def _parse_uuid(value: Union[str, UUID], message: str) -> UUID:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError:
        raise AttemptError(message)


def _visible_to(quiz: Optional[Quiz], user_id: UUID) -> bool:
    if not quiz or not quiz.is_live:
        return False
    return quiz.user_id == user_id or quiz.status == QuizStatusModel.PUBLIC


def _seconds_between(start: Optional[datetime], end: Optional[datetime]) -> Optional[int]:
    if start is None or end is None:
        return None
    # SQLite hands back naive timestamps
    if (start.tzinfo is None) != (end.tzinfo is None):
        start = start.replace(tzinfo=None)
        end = end.replace(tzinfo=None)
    return max(0, round((end - start).total_seconds()))


def _build_attempt_response(attempt: QuizAttempt) -> QuizAttemptResponse:
    return QuizAttemptResponse(
        id=attempt.id,
        user_id=attempt.user_id,
        quiz_id=attempt.quiz_id,
        status=attempt.status.value,
        score=attempt.score,
        total_questions=attempt.total_questions,
        started_at=attempt.started_at,
        completed_at=attempt.completed_at,
    )


def _build_history_item(attempt: QuizAttempt) -> AttemptHistoryItem:
    return AttemptHistoryItem(
        **_build_attempt_response(attempt).model_dump(),
        percentage=to_percentage(attempt.score, attempt.total_questions),
        time_spent_seconds=_seconds_between(attempt.started_at, attempt.completed_at),
    )
