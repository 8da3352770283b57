"""
Attempt Engine

State machine for taking one quiz:

    loading -> taking -> submitting -> completed

plus an error phase reachable from each of them. Every transition replaces
the current TakingState with a new immutable value. Views such as the
current question, navigation flags, progress and the result are derived
from it on demand.
"""

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Tuple
from uuid import UUID

from app.data.demo_quizzes import is_demo_quiz_id
from app.schemas.attempt import ResponseSubmission
from app.schemas.quiz import QuizDetailResponse, QuestionResponse
from app.services.scoring import (
    calculate_score,
    get_answered_count,
    question_results,
    to_percentage,
)
from app.taking.backends import (
    TakingBackend,
    TakingBackendError,
    AuthenticationRequiredError,
)

logger = logging.getLogger(__name__)


QUIZ_NOT_FOUND_MESSAGE = "Quiz not found or you don't have access to it."
INVALID_QUIZ_ID_MESSAGE = "Invalid quiz ID."
INVALID_QUIZ_ID_FORMAT_MESSAGE = "Invalid quiz ID format"
NO_QUESTIONS_MESSAGE = "This quiz has no questions to take."


class TakingPhase(str, Enum):
    LOADING = "loading"
    TAKING = "taking"
    SUBMITTING = "submitting"
    COMPLETED = "completed"
    ERROR = "error"


class InvalidPhaseError(Exception):
    """Operation called in a phase that does not accept it."""


def _empty_answers() -> Mapping[str, Tuple[str, ...]]:
    return MappingProxyType({})


@dataclass(frozen=True)
class TakingState:
    phase: TakingPhase = TakingPhase.LOADING
    quiz: Optional[QuizDetailResponse] = None
    attempt_id: Optional[UUID] = None
    is_demo: bool = False
    current_question_index: int = 0
    user_answers: Mapping[str, Tuple[str, ...]] = field(default_factory=_empty_answers)
    score: Optional[int] = None
    completed_at: Optional[datetime] = None
    error: Optional[str] = None
    auth_required: bool = False

    @property
    def total_questions(self) -> int:
        return len(self.quiz.questions) if self.quiz else 0


@dataclass(frozen=True)
class NavigationState:
    can_go_next: bool
    can_go_previous: bool
    is_first_question: bool
    is_last_question: bool


@dataclass(frozen=True)
class ProgressInfo:
    current: int
    total: int
    answered: int
    percentage: int


@dataclass(frozen=True)
class QuizResult:
    quiz_id: str
    attempt_id: Optional[UUID]
    score: int
    total_questions: int
    percentage: int
    question_results: Dict[str, bool]
    completed_at: Optional[datetime]
    is_demo: bool


def is_valid_quiz_id(quiz_id: str) -> bool:
    if is_demo_quiz_id(quiz_id):
        return True
    try:
        UUID(str(quiz_id))
    except ValueError:
        return False
    return True


def _load_error_message(error: TakingBackendError) -> str:
    if error.status_code in (403, 404):
        return QUIZ_NOT_FOUND_MESSAGE
    if error.status_code == 400:
        return INVALID_QUIZ_ID_MESSAGE
    return error.message


class AttemptEngine:
    """Drives one user's pass through a quiz."""

    def __init__(self, quiz_id: str, backend: TakingBackend):
        self.quiz_id = str(quiz_id)
        self.backend = backend
        self._state = TakingState(is_demo=is_demo_quiz_id(self.quiz_id))

    @property
    def state(self) -> TakingState:
        return self._state

    # ============================================================
    # LOADING
    # ============================================================

    async def start(self) -> TakingState:
        is_demo = is_demo_quiz_id(self.quiz_id)
        self._state = TakingState(phase=TakingPhase.LOADING, is_demo=is_demo)

        if not is_valid_quiz_id(self.quiz_id):
            return self._fail(INVALID_QUIZ_ID_FORMAT_MESSAGE)

        try:
            quiz = await self.backend.fetch_quiz(self.quiz_id)
        except AuthenticationRequiredError as e:
            self._fail(e.message, auth_required=True)
            raise
        except TakingBackendError as e:
            return self._fail(_load_error_message(e))

        if not quiz.questions:
            return self._fail(NO_QUESTIONS_MESSAGE)

        attempt_id = None
        if not is_demo:
            attempt_id = await self._create_attempt()
            if attempt_id is None:
                return self._state

        self._state = TakingState(
            phase=TakingPhase.TAKING,
            quiz=quiz,
            attempt_id=attempt_id,
            is_demo=is_demo,
        )
        return self._state

    async def restart(self) -> TakingState:
        """Start over from loading; the only way out of the error phase."""
        return await self.start()

    # ============================================================
    # TAKING
    # ============================================================

    def select_option(self, question_id, option_id) -> TakingState:
        self._require(TakingPhase.TAKING)

        question = self._find_question(str(question_id))
        if question is None:
            raise ValueError(f"Question {question_id} is not part of this quiz")
        if str(option_id) not in {str(o.id) for o in question.options}:
            raise ValueError(f"Option {option_id} does not belong to question {question_id}")

        # Single-answer semantics: the selection replaces any previous one
        answers = dict(self._state.user_answers)
        answers[str(question_id)] = (str(option_id),)
        self._state = replace(self._state, user_answers=MappingProxyType(answers))
        return self._state

    def next_question(self) -> TakingState:
        if self._state.phase == TakingPhase.TAKING:
            last = self._state.total_questions - 1
            index = min(self._state.current_question_index + 1, last)
            self._state = replace(self._state, current_question_index=index)
        return self._state

    def previous_question(self) -> TakingState:
        if self._state.phase == TakingPhase.TAKING:
            index = max(self._state.current_question_index - 1, 0)
            self._state = replace(self._state, current_question_index=index)
        return self._state

    # ============================================================
    # SUBMITTING
    # ============================================================

    async def submit(self) -> TakingState:
        self._require(TakingPhase.TAKING)
        taking = self._state
        self._state = replace(taking, phase=TakingPhase.SUBMITTING)

        score = calculate_score(taking.quiz, taking.user_answers)

        if taking.is_demo:
            self._state = replace(
                self._state,
                phase=TakingPhase.COMPLETED,
                score=score,
                completed_at=datetime.now(timezone.utc),
            )
            return self._state

        responses = [
            ResponseSubmission(
                question_id=UUID(question_id),
                selected_options=[UUID(option_id) for option_id in option_ids],
            )
            for question_id, option_ids in taking.user_answers.items()
            if option_ids
        ]
        completed_at = datetime.now(timezone.utc)

        try:
            # Responses first, then the final score; a crash in between
            # leaves a resumable attempt (responses saved, completed_at NULL).
            await self.backend.save_responses(taking.attempt_id, responses)
            await self.backend.complete_attempt(self.quiz_id, taking.attempt_id, score, completed_at)
        except AuthenticationRequiredError as e:
            self._state = replace(taking, phase=TakingPhase.ERROR, error=e.message, auth_required=True)
            raise
        except TakingBackendError as e:
            logger.error(f"Submitting attempt {taking.attempt_id} failed: {e.message}")
            self._state = replace(taking, phase=TakingPhase.ERROR, error=e.message)
            return self._state

        self._state = replace(
            self._state,
            phase=TakingPhase.COMPLETED,
            score=score,
            completed_at=completed_at,
        )
        return self._state

    # ============================================================
    # COMPLETED
    # ============================================================

    async def retry(self) -> TakingState:
        self._require(TakingPhase.COMPLETED)

        attempt_id = self._state.attempt_id
        if not self._state.is_demo:
            attempt_id = await self._create_attempt()
            if attempt_id is None:
                return self._state

        self._state = replace(
            self._state,
            phase=TakingPhase.TAKING,
            attempt_id=attempt_id,
            current_question_index=0,
            user_answers=_empty_answers(),
            score=None,
            completed_at=None,
        )
        return self._state

    # ============================================================
    # DERIVED VIEWS
    # ============================================================

    @property
    def current_question(self) -> Optional[QuestionResponse]:
        quiz = self._state.quiz
        if not quiz or not quiz.questions:
            return None
        return quiz.questions[self._state.current_question_index]

    @property
    def navigation(self) -> NavigationState:
        index = self._state.current_question_index
        total = self._state.total_questions
        return NavigationState(
            can_go_next=index < total - 1,
            can_go_previous=index > 0,
            is_first_question=index == 0,
            is_last_question=total > 0 and index == total - 1,
        )

    @property
    def progress(self) -> ProgressInfo:
        total = self._state.total_questions
        answered = get_answered_count(self._state.user_answers)
        return ProgressInfo(
            current=self._state.current_question_index + 1 if total else 0,
            total=total,
            answered=answered,
            percentage=to_percentage(answered, total),
        )

    @property
    def result(self) -> Optional[QuizResult]:
        state = self._state
        if state.phase != TakingPhase.COMPLETED or state.score is None:
            return None
        return QuizResult(
            quiz_id=self.quiz_id,
            attempt_id=state.attempt_id,
            score=state.score,
            total_questions=state.total_questions,
            percentage=to_percentage(state.score, state.total_questions),
            question_results=question_results(state.quiz, state.user_answers),
            completed_at=state.completed_at,
            is_demo=state.is_demo,
        )

    # ============================================================
    # PRIVATE HELPERS
    # ============================================================

    async def _create_attempt(self) -> Optional[UUID]:
        """New attempt id, or None after moving to the error phase."""
        try:
            attempt = await self.backend.create_attempt(self.quiz_id)
        except AuthenticationRequiredError as e:
            self._fail(e.message, auth_required=True)
            raise
        except TakingBackendError as e:
            self._fail(e.message)
            return None
        return attempt.id

    def _fail(self, message: str, auth_required: bool = False) -> TakingState:
        self._state = replace(
            self._state,
            phase=TakingPhase.ERROR,
            error=message,
            auth_required=auth_required,
        )
        return self._state

    def _require(self, phase: TakingPhase) -> None:
        if self._state.phase != phase:
            raise InvalidPhaseError(
                f"Cannot do this while {self._state.phase.value}; expected {phase.value}"
            )

    def _find_question(self, question_id: str) -> Optional[QuestionResponse]:
        for question in self._state.quiz.questions:
            if str(question.id) == question_id:
                return question
        return None
