"""
Quiz Service

Business logic for quiz authoring:
- Create / full-replacement update (atomic stored procedure, with a
  multi-step fallback that cleans up after itself)
- Visibility-aware reads and paginated listing
- Soft delete, publish / unpublish and visibility toggling
"""

import asyncio
import logging
import math
from typing import List, Optional
from uuid import UUID

from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.models.quiz import (
    Quiz,
    QuizStatus as QuizStatusModel,
    QuizSource as QuizSourceModel,
)
from app.models.quiz_question import QuizQuestion
from app.models.quiz_option import QuizOption
from app.repositories.quiz_repo import (
    QuizRepository,
    QuizQuestionRepository,
    QuizOptionRepository,
)
from app.schemas.ai_quiz import AIQuizContent
from app.schemas.quiz import (
    QuizCreate,
    QuizListQuery,
    QuizStatus,
    QuizSource,
    QuizResponse,
    QuizDetailResponse,
    QuestionResponse,
    OptionResponse,
    QuestionInput,
    OptionInput,
    QuizListResponse,
    PaginationMeta,
    SortOrder,
)
from app.services.quiz_validator import (
    validate_for_publishing,
    can_publish,
    can_unpublish,
    can_change_visibility,
)

logger = logging.getLogger(__name__)


# Messages that mean the stored procedure is not installed, as opposed to
# the procedure running and rejecting the data.
ATOMIC_UNAVAILABLE_MARKERS = (
    "does not exist",
    "no such function",
    "schema cache",
    "Could not find the function",
)


class QuizServiceError(Exception):
    pass


class QuizNotFoundError(QuizServiceError):
    pass


class QuizForbiddenError(QuizServiceError):
    pass


class QuizStateError(QuizServiceError):
    """Structurally valid request rejected by a business rule."""

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        super().__init__(message)
        self.message = message
        self.errors = errors or []


def is_atomic_unavailable(error: BaseException, function_name: str) -> bool:
    message = str(error)
    if f"function {function_name}" in message:
        return True
    return any(marker in message for marker in ATOMIC_UNAVAILABLE_MARKERS)


class QuizService:
    """Service for quiz authoring, reads and lifecycle."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.quiz_repo = QuizRepository(db)
        self.question_repo = QuizQuestionRepository(db)
        self.option_repo = QuizOptionRepository(db)

    # ============================================================
    # CREATE QUIZ
    # ============================================================

    async def create_quiz(self, owner_id: UUID, data: QuizCreate) -> QuizDetailResponse:
        quiz_id = None

        if settings.ATOMIC_WRITES_ENABLED:
            try:
                quiz_id = await self.quiz_repo.create_atomic(owner_id, self._atomic_payload(data))
            except DBAPIError as e:
                await self.db.rollback()
                if not is_atomic_unavailable(e, "create_quiz_atomic"):
                    raise
                logger.warning("Atomic create function not available, falling back to multi-step create")

        if quiz_id is None:
            quiz_id = await self._create_with_cleanup(owner_id, data)

        detail = await self.get_quiz(quiz_id, owner_id)
        if detail is None:
            raise QuizServiceError(f"Quiz {quiz_id} could not be read back after create")
        return detail

    async def _create_with_cleanup(self, owner_id: UUID, data: QuizCreate) -> UUID:
        quiz_id = None
        try:
            quiz = await self.quiz_repo.create(
                user_id=owner_id,
                status=QuizStatusModel.DRAFT,
                **self._quiz_fields(data),
            )
            quiz_id = quiz.id
            await self._insert_questions(quiz_id, data.questions)
            return quiz_id
        except (Exception, asyncio.CancelledError) as e:
            logger.error(f"Quiz creation failed, attempting cleanup: {e!r}")
            await self._cleanup_partial_quiz(quiz_id)
            raise

    async def _cleanup_partial_quiz(self, quiz_id: Optional[UUID]) -> None:
        """Best-effort removal of a partially written quiz; never raises."""
        try:
            await self.db.rollback()
            if quiz_id is None:
                return
            await self.quiz_repo.purge(quiz_id)
            logger.info(f"Cleaned up quiz {quiz_id} and related data")
        except Exception as cleanup_error:
            logger.error(f"Failed to clean up partial quiz {quiz_id}: {cleanup_error!r}")

    # ============================================================
    # UPDATE QUIZ (full replacement)
    # ============================================================

    async def update_quiz(
        self,
        quiz_id: UUID,
        owner_id: UUID,
        data: QuizCreate,
    ) -> QuizDetailResponse:
        updated = False

        if settings.ATOMIC_WRITES_ENABLED:
            try:
                await self.quiz_repo.update_atomic(quiz_id, owner_id, self._atomic_payload(data))
                updated = True
            except DBAPIError as e:
                await self.db.rollback()
                message = str(e)
                if "Quiz not found" in message:
                    raise QuizNotFoundError("Quiz not found")
                if "Forbidden" in message:
                    raise QuizForbiddenError("You don't have permission to update this quiz")
                if not is_atomic_unavailable(e, "update_quiz_atomic"):
                    raise
                logger.warning("Atomic update function not available, falling back to multi-step update")

        if not updated:
            await self._update_with_replace(quiz_id, owner_id, data)

        detail = await self.get_quiz(quiz_id, owner_id)
        if detail is None:
            raise QuizServiceError(f"Quiz {quiz_id} could not be read back after update")
        return detail

    async def _update_with_replace(self, quiz_id: UUID, owner_id: UUID, data: QuizCreate) -> None:
        quiz = await self.quiz_repo.get_live_by_id(quiz_id)
        if not quiz:
            raise QuizNotFoundError("Quiz not found")
        if quiz.user_id != owner_id:
            raise QuizForbiddenError("You don't have permission to update this quiz")

        # No version check: concurrent editors overwrite each other
        try:
            await self.question_repo.delete_for_quiz(quiz_id)
            await self.quiz_repo.update(quiz_id, **self._quiz_fields(data))
            await self._insert_questions(quiz_id, data.questions)
        except (Exception, asyncio.CancelledError) as e:
            logger.error(f"Quiz update failed for {quiz_id}: {e!r}")
            await self.db.rollback()
            raise

    # ============================================================
    # GET QUIZ
    # ============================================================

    async def get_quiz(self, quiz_id: UUID, requester_id: UUID) -> Optional[QuizDetailResponse]:
        """
        Quiz detail visible to the requester, or None.

        None covers missing, soft-deleted, someone else's non-public quiz and
        a quiz left without any valid question.
        """
        quiz = await self.quiz_repo.get_with_questions(quiz_id)
        if not quiz:
            return None

        if quiz.user_id != requester_id and quiz.status != QuizStatusModel.PUBLIC:
            return None

        return build_quiz_detail_response(quiz)

    # ============================================================
    # LIST QUIZZES
    # ============================================================

    async def list_quizzes(self, requester_id: UUID, query: QuizListQuery) -> QuizListResponse:
        status = QuizStatusModel(query.status.value) if query.status else None
        clause = self.quiz_repo.visibility_clause(requester_id, status=status, owned=query.owned)

        total_items = await self.quiz_repo.count_visible(clause)
        total_pages = max(1, math.ceil(total_items / query.limit))
        page = min(max(query.page, 1), total_pages)

        quizzes = await self.quiz_repo.list_visible(
            clause,
            sort=query.sort.value,
            descending=query.order == SortOrder.DESC,
            skip=(page - 1) * query.limit,
            limit=query.limit,
        )

        return QuizListResponse(
            quizzes=[build_quiz_response(q) for q in quizzes],
            pagination=PaginationMeta(
                page=page,
                limit=query.limit,
                total_pages=total_pages,
                total_items=total_items,
            ),
        )

    # ============================================================
    # DELETE QUIZ
    # ============================================================

    async def delete_quiz(self, quiz_id: UUID, owner_id: UUID) -> None:
        quiz = await self.quiz_repo.get_live_by_id(quiz_id)
        if not quiz:
            raise QuizNotFoundError("Quiz not found")
        if quiz.user_id != owner_id:
            raise QuizForbiddenError("You don't have permission to delete this quiz")

        await self.quiz_repo.soft_delete(quiz)
        logger.info(f"Quiz {quiz_id} soft-deleted by {owner_id}")

    # ============================================================
    # STATUS CHANGES
    # ============================================================

    async def publish_quiz(self, quiz_id: UUID, owner_id: UUID) -> QuizDetailResponse:
        detail = await self._get_owned_detail(quiz_id, owner_id)

        if not can_publish(detail.status):
            raise QuizStateError(f"Cannot publish a quiz with status '{detail.status.value}'")

        result = validate_for_publishing(detail)
        if not result.valid:
            raise QuizStateError("Quiz is not ready to be published", errors=result.errors)

        return await self._write_status(quiz_id, owner_id, QuizStatusModel.PUBLIC)

    async def unpublish_quiz(self, quiz_id: UUID, owner_id: UUID) -> QuizDetailResponse:
        detail = await self._get_owned_detail(quiz_id, owner_id)

        if not can_unpublish(detail.status):
            raise QuizStateError(f"Cannot unpublish a quiz with status '{detail.status.value}'")

        return await self._write_status(quiz_id, owner_id, QuizStatusModel.DRAFT)

    async def set_visibility(
        self,
        quiz_id: UUID,
        owner_id: UUID,
        status: QuizStatus,
    ) -> QuizDetailResponse:
        detail = await self._get_owned_detail(quiz_id, owner_id)

        if not can_change_visibility(detail.status, status):
            raise QuizStateError(
                f"Cannot change visibility from '{detail.status.value}' to '{status.value}'"
            )

        return await self._write_status(quiz_id, owner_id, QuizStatusModel(status.value))

    # ============================================================
    # AI CONTENT
    # ============================================================

    async def create_from_ai_content(
        self,
        owner_id: UUID,
        content: AIQuizContent,
        prompt: str,
        model: str,
        temperature: float,
    ) -> QuizDetailResponse:
        data = QuizCreate(
            title=content.title,
            description=content.description,
            source=QuizSource.AI_GENERATED,
            ai_model=model,
            ai_prompt=prompt,
            ai_temperature=temperature,
            questions=[
                QuestionInput(
                    content=question.content,
                    explanation=question.explanation,
                    position=index,
                    options=[
                        OptionInput(content=option.content, is_correct=option.is_correct, position=o_index)
                        for o_index, option in enumerate(question.options, start=1)
                    ],
                )
                for index, question in enumerate(content.questions, start=1)
            ],
        )
        return await self.create_quiz(owner_id, data)

    # ============================================================
    # PRIVATE HELPERS
    # ============================================================

    async def _get_owned_detail(self, quiz_id: UUID, owner_id: UUID) -> QuizDetailResponse:
        detail = await self.get_quiz(quiz_id, owner_id)
        if detail is None:
            raise QuizNotFoundError("Quiz not found")
        if detail.user_id != owner_id:
            raise QuizForbiddenError("You don't have permission to modify this quiz")
        return detail

    async def _write_status(
        self,
        quiz_id: UUID,
        owner_id: UUID,
        status: QuizStatusModel,
    ) -> QuizDetailResponse:
        quiz = await self.quiz_repo.get_by_id(quiz_id)
        await self.quiz_repo.set_status(quiz, status)
        logger.info(f"Quiz {quiz_id} moved to {status.value}")

        detail = await self.get_quiz(quiz_id, owner_id)
        if detail is None:
            raise QuizNotFoundError("Quiz not found")
        return detail

    async def _insert_questions(self, quiz_id: UUID, questions: List[QuestionInput]) -> None:
        # Sequential on purpose: list order becomes the stored position
        for q_index, question_data in enumerate(questions, start=1):
            question = await self.question_repo.create(
                quiz_id=quiz_id,
                content=question_data.content,
                explanation=question_data.explanation,
                position=q_index,
            )
            for o_index, option_data in enumerate(question_data.options, start=1):
                await self.option_repo.create(
                    question_id=question.id,
                    content=option_data.content,
                    is_correct=option_data.is_correct,
                    position=o_index,
                )

    @staticmethod
    def _quiz_fields(data: QuizCreate) -> dict:
        return {
            "title": data.title,
            "description": data.description,
            "source": QuizSourceModel(data.source.value),
            "ai_model": data.ai_model,
            "ai_prompt": data.ai_prompt,
            "ai_temperature": data.ai_temperature,
        }

    @staticmethod
    def _atomic_payload(data: QuizCreate) -> dict:
        """JSON document consumed by the stored procedures."""
        return data.model_dump(mode="json")


# ============================================================
# RESPONSE BUILDERS
# ============================================================

def _enum_value(value):
    return value.value if hasattr(value, "value") else value


def build_quiz_response(quiz: Quiz) -> QuizResponse:
    return QuizResponse(
        id=quiz.id,
        user_id=quiz.user_id,
        title=quiz.title,
        description=quiz.description,
        status=_enum_value(quiz.status),
        source=_enum_value(quiz.source),
        ai_model=quiz.ai_model,
        ai_prompt=quiz.ai_prompt,
        ai_temperature=quiz.ai_temperature,
        created_at=quiz.created_at,
        updated_at=quiz.updated_at,
    )


def _build_option_response(option: QuizOption) -> Optional[OptionResponse]:
    if not option.is_live:
        return None
    if not option.content or not isinstance(option.is_correct, bool) or not isinstance(option.position, int):
        return None
    return OptionResponse(
        id=option.id,
        question_id=option.question_id,
        content=option.content,
        is_correct=option.is_correct,
        position=option.position,
    )


def _build_question_response(question: QuizQuestion) -> Optional[QuestionResponse]:
    if not question.is_live:
        return None
    if not question.content or not isinstance(question.position, int):
        return None

    options = [o for o in (_build_option_response(opt) for opt in question.options) if o]
    if not options:
        return None

    return QuestionResponse(
        id=question.id,
        quiz_id=question.quiz_id,
        content=question.content,
        explanation=question.explanation,
        position=question.position,
        options=sorted(options, key=lambda o: o.position),
    )


def build_quiz_detail_response(quiz: Quiz) -> Optional[QuizDetailResponse]:
    questions = [q for q in (_build_question_response(question) for question in quiz.questions) if q]
    if not questions:
        return None

    base = build_quiz_response(quiz)
    return QuizDetailResponse(
        **base.model_dump(),
        questions=sorted(questions, key=lambda q: q.position),
    )
