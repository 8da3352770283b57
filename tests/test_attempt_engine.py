import dataclasses
import uuid
from datetime import datetime, timezone

import httpx
import pytest

from app.core.security import create_access_token
from app.data.demo_quizzes import get_demo_quiz
from app.main import app
from app.models import QuizAttempt
from app.schemas.attempt import QuizAttemptResponse
from app.schemas.quiz import QuizCreate, QuizStatus
from app.services.attempt_service import AttemptService
from app.services.quiz_service import QuizService
from app.services.quiz_validator import validate_for_publishing
from app.taking import (
    AttemptEngine,
    AuthenticationRequiredError,
    HttpTakingBackend,
    InvalidPhaseError,
    ServiceTakingBackend,
    TakingBackend,
    TakingBackendError,
    TakingPhase,
)
from app.taking.engine import (
    INVALID_QUIZ_ID_FORMAT_MESSAGE,
    INVALID_QUIZ_ID_MESSAGE,
    NO_QUESTIONS_MESSAGE,
    QUIZ_NOT_FOUND_MESSAGE,
)
from tests.factories import first_right_option, first_wrong_option, question_input, quiz_create, quiz_detail


class FakeBackend(TakingBackend):
    """In-memory backend recording every call."""

    def __init__(self, quiz=None, fetch_error=None, save_error=None, complete_error=None):
        self.quiz = quiz
        self.fetch_error = fetch_error
        self.save_error = save_error
        self.complete_error = complete_error
        self.calls = []
        self.saved = []

    async def _fetch_quiz(self, quiz_id):
        self.calls.append("fetch")
        if self.fetch_error:
            raise self.fetch_error
        return self.quiz

    async def create_attempt(self, quiz_id):
        self.calls.append("create_attempt")
        return QuizAttemptResponse(
            id=uuid.uuid4(),
            user_id=uuid.uuid4(),
            quiz_id=uuid.UUID(quiz_id),
            status="in_progress",
            score=0,
            total_questions=len(self.quiz.questions),
            started_at=datetime.now(timezone.utc),
        )

    async def save_responses(self, attempt_id, responses):
        self.calls.append("save_responses")
        if self.save_error:
            raise self.save_error
        self.saved = responses
        return len(responses)

    async def complete_attempt(self, quiz_id, attempt_id, score, completed_at):
        self.calls.append(("complete_attempt", score))
        if self.complete_error:
            raise self.complete_error
        return None


def _two_question_quiz():
    return quiz_detail([
        [("right", True), ("wrong", False)],
        [("wrong", False), ("right", True)],
    ])


async def _started(backend):
    engine = AttemptEngine(str(backend.quiz.id), backend)
    await engine.start()
    return engine


# ============================================================
# LOADING
# ============================================================

class TestLoading:
    async def test_start_creates_attempt(self):
        backend = FakeBackend(_two_question_quiz())
        engine = await _started(backend)

        assert engine.state.phase == TakingPhase.TAKING
        assert engine.state.attempt_id is not None
        assert engine.state.total_questions == 2
        assert backend.calls == ["fetch", "create_attempt"]

    async def test_malformed_id_never_reaches_backend(self):
        backend = FakeBackend(_two_question_quiz())
        engine = AttemptEngine("not-a-quiz", backend)
        state = await engine.start()

        assert state.phase == TakingPhase.ERROR
        assert state.error == INVALID_QUIZ_ID_FORMAT_MESSAGE
        assert backend.calls == []

    @pytest.mark.parametrize(
        "status_code,message",
        [(404, QUIZ_NOT_FOUND_MESSAGE), (403, QUIZ_NOT_FOUND_MESSAGE), (400, INVALID_QUIZ_ID_MESSAGE), (503, "down")],
    )
    async def test_load_errors(self, status_code, message):
        quiz = _two_question_quiz()
        backend = FakeBackend(quiz, fetch_error=TakingBackendError("down", status_code=status_code))
        state = await AttemptEngine(str(quiz.id), backend).start()

        assert state.phase == TakingPhase.ERROR
        assert state.error == message

    async def test_quiz_without_questions(self):
        backend = FakeBackend(quiz_detail([]))
        state = await AttemptEngine(str(backend.quiz.id), backend).start()

        assert state.phase == TakingPhase.ERROR
        assert state.error == NO_QUESTIONS_MESSAGE
        assert "create_attempt" not in backend.calls

    async def test_authentication_failure_is_raised(self):
        quiz = _two_question_quiz()
        engine = AttemptEngine(str(quiz.id), FakeBackend(quiz, fetch_error=AuthenticationRequiredError()))

        with pytest.raises(AuthenticationRequiredError):
            await engine.start()
        assert engine.state.phase == TakingPhase.ERROR
        assert engine.state.auth_required

    async def test_unknown_demo(self):
        state = await AttemptEngine("demo-unknown", FakeBackend()).start()
        assert state.phase == TakingPhase.ERROR
        assert state.error == QUIZ_NOT_FOUND_MESSAGE


# ============================================================
# TAKING
# ============================================================

class TestTaking:
    async def test_navigation_is_clamped(self):
        engine = await _started(FakeBackend(_two_question_quiz()))

        assert engine.navigation.is_first_question
        assert not engine.navigation.can_go_previous
        engine.previous_question()
        assert engine.state.current_question_index == 0

        engine.next_question()
        engine.next_question()
        assert engine.state.current_question_index == 1
        assert engine.navigation.is_last_question
        assert not engine.navigation.can_go_next

    async def test_select_replaces_previous_choice(self):
        engine = await _started(FakeBackend(_two_question_quiz()))
        question = engine.current_question

        engine.select_option(question.id, first_wrong_option(question).id)
        engine.select_option(question.id, first_right_option(question).id)

        assert engine.state.user_answers == {str(question.id): (str(first_right_option(question).id),)}
        assert engine.progress.answered == 1
        assert engine.progress.percentage == 50

    async def test_state_values_are_immutable(self):
        engine = await _started(FakeBackend(_two_question_quiz()))
        before = engine.state
        question = engine.current_question

        engine.select_option(question.id, first_right_option(question).id)

        assert before.user_answers == {}
        assert engine.state is not before
        with pytest.raises(dataclasses.FrozenInstanceError):
            engine.state.current_question_index = 1
        with pytest.raises(TypeError):
            engine.state.user_answers["x"] = ("y",)

    async def test_foreign_option_is_rejected(self):
        engine = await _started(FakeBackend(_two_question_quiz()))
        q1, q2 = engine.state.quiz.questions

        with pytest.raises(ValueError):
            engine.select_option(q1.id, first_right_option(q2).id)

    async def test_selecting_outside_taking_phase(self):
        quiz = _two_question_quiz()
        engine = AttemptEngine(str(quiz.id), FakeBackend(quiz))
        question = quiz.questions[0]

        with pytest.raises(InvalidPhaseError):
            engine.select_option(question.id, first_right_option(question).id)


# ============================================================
# SUBMITTING / COMPLETED
# ============================================================

class TestSubmit:
    async def test_saves_responses_then_completes(self):
        backend = FakeBackend(_two_question_quiz())
        engine = await _started(backend)
        q1, q2 = engine.state.quiz.questions
        engine.select_option(q1.id, first_right_option(q1).id)
        engine.select_option(q2.id, first_wrong_option(q2).id)

        state = await engine.submit()

        assert state.phase == TakingPhase.COMPLETED
        assert state.score == 1
        assert backend.calls[-2:] == ["save_responses", ("complete_attempt", 1)]
        assert len(backend.saved) == 2
        assert engine.result.percentage == 50
        assert engine.result.question_results == {str(q1.id): True, str(q2.id): False}

    async def test_unanswered_questions_score_zero(self):
        engine = await _started(FakeBackend(_two_question_quiz()))
        state = await engine.submit()
        assert state.score == 0

    async def test_failed_save_keeps_answers(self):
        backend = FakeBackend(_two_question_quiz(), save_error=TakingBackendError("Server unavailable", 503))
        engine = await _started(backend)
        question = engine.current_question
        engine.select_option(question.id, first_right_option(question).id)

        state = await engine.submit()

        assert state.phase == TakingPhase.ERROR
        assert state.error == "Server unavailable"
        assert state.user_answers == {str(question.id): (str(first_right_option(question).id),)}
        assert not any(isinstance(c, tuple) for c in backend.calls)
        assert engine.result is None

    async def test_failed_completion_moves_to_error(self):
        backend = FakeBackend(_two_question_quiz(), complete_error=TakingBackendError("Attempt is already completed", 409))
        engine = await _started(backend)

        state = await engine.submit()
        assert state.phase == TakingPhase.ERROR
        assert state.error == "Attempt is already completed"

    async def test_restart_after_error(self):
        backend = FakeBackend(_two_question_quiz(), save_error=TakingBackendError("boom", 500))
        engine = await _started(backend)
        await engine.submit()

        backend.save_error = None
        state = await engine.restart()
        assert state.phase == TakingPhase.TAKING
        assert state.user_answers == {}

    async def test_submit_twice_is_rejected(self):
        engine = await _started(FakeBackend(_two_question_quiz()))
        await engine.submit()
        with pytest.raises(InvalidPhaseError):
            await engine.submit()

    async def test_retry_starts_a_new_attempt(self):
        backend = FakeBackend(_two_question_quiz())
        engine = await _started(backend)
        first_attempt = engine.state.attempt_id
        await engine.submit()

        state = await engine.retry()

        assert state.phase == TakingPhase.TAKING
        assert state.attempt_id != first_attempt
        assert state.score is None
        assert state.current_question_index == 0
        assert backend.calls.count("create_attempt") == 2


# ============================================================
# DEMO QUIZZES
# ============================================================

class TestDemo:
    async def test_demo_is_scored_locally(self):
        backend = FakeBackend()
        engine = AttemptEngine("demo-python", backend)
        await engine.start()

        assert engine.state.is_demo
        assert engine.state.attempt_id is None
        for question in engine.state.quiz.questions:
            engine.select_option(question.id, first_right_option(question).id)

        state = await engine.submit()

        assert state.phase == TakingPhase.COMPLETED
        assert state.score == len(get_demo_quiz("demo-python").questions)
        assert engine.result.percentage == 100
        assert backend.calls == []

    async def test_demo_retry_resets_in_place(self):
        engine = AttemptEngine("demo-sql", FakeBackend())
        await engine.start()
        await engine.submit()

        state = await engine.retry()
        assert state.phase == TakingPhase.TAKING
        assert state.attempt_id is None
        assert state.user_answers == {}


# ============================================================
# REAL BACKENDS
# ============================================================

async def _answer_first_right_second_wrong(engine):
    q1, q2 = engine.state.quiz.questions
    engine.select_option(q1.id, first_right_option(q1).id)
    engine.next_question()
    engine.select_option(q2.id, first_wrong_option(q2).id)


async def test_end_to_end_with_services(db_session, owner_id):
    quiz = await QuizService(db_session).create_quiz(owner_id, quiz_create(question_count=2))

    engine = AttemptEngine(str(quiz.id), ServiceTakingBackend(db_session, owner_id))
    await engine.start()
    await _answer_first_right_second_wrong(engine)
    state = await engine.submit()

    assert state.phase == TakingPhase.COMPLETED
    assert state.score == 1
    assert state.total_questions == 2

    history = await AttemptService(db_session).list_attempts(quiz.id, owner_id)
    assert history.stats.total_attempts == 1
    assert history.attempts[0].score == 1
    assert history.attempts[0].percentage == 50


async def test_publish_take_and_score_persists_the_attempt(db_session, owner_id, other_user_id):
    quiz_service = QuizService(db_session)
    payload = QuizCreate(
        title="Capitals",
        questions=[
            question_input("Capital of France?", (("Paris", True), ("Rome", False)), position=1),
            question_input("Capital of Spain?", (("Lisbon", False), ("Madrid", True), ("Porto", False)), position=2),
        ],
    )
    draft = await quiz_service.create_quiz(owner_id, payload)

    assert validate_for_publishing(draft).valid
    published = await quiz_service.publish_quiz(draft.id, owner_id)
    assert published.status == QuizStatus.PUBLIC

    engine = AttemptEngine(str(published.id), ServiceTakingBackend(db_session, other_user_id))
    await engine.start()
    assert engine.state.phase == TakingPhase.TAKING
    await _answer_first_right_second_wrong(engine)
    state = await engine.submit()

    assert state.phase == TakingPhase.COMPLETED
    assert state.score == 1

    row = await db_session.get(QuizAttempt, state.attempt_id, populate_existing=True)
    assert row.user_id == other_user_id
    assert row.score == 1
    assert row.total_questions == 2
    assert row.completed_at is not None


async def test_service_backend_hides_other_users_drafts(db_session, owner_id, other_user_id):
    quiz = await QuizService(db_session).create_quiz(owner_id, quiz_create())

    state = await AttemptEngine(str(quiz.id), ServiceTakingBackend(db_session, other_user_id)).start()

    assert state.phase == TakingPhase.ERROR
    assert state.error == QUIZ_NOT_FOUND_MESSAGE


async def test_end_to_end_over_http(client, db_session, owner_id):
    quiz = await QuizService(db_session).create_quiz(owner_id, quiz_create(question_count=2))
    backend = HttpTakingBackend(
        "http://test",
        create_access_token(owner_id),
        transport=httpx.ASGITransport(app=app),
    )

    engine = AttemptEngine(str(quiz.id), backend)
    await engine.start()
    assert engine.state.phase == TakingPhase.TAKING

    await _answer_first_right_second_wrong(engine)
    state = await engine.submit()

    assert state.phase == TakingPhase.COMPLETED
    assert state.score == 1

    detail = await AttemptService(db_session).get_attempt(state.attempt_id, owner_id)
    assert detail.attempt.completed_at is not None
    assert len(detail.user_answers) == 2


async def test_http_backend_reports_expired_session(client, owner_id):
    backend = HttpTakingBackend("http://test", "not-a-jwt", transport=httpx.ASGITransport(app=app))
    engine = AttemptEngine(str(uuid.uuid4()), backend)

    with pytest.raises(AuthenticationRequiredError):
        await engine.start()
    assert engine.state.auth_required


@pytest.mark.parametrize(
    "exc,status_code",
    [(httpx.ConnectTimeout, 504), (httpx.ConnectError, 503)],
)
async def test_http_backend_transport_failures(exc, status_code):
    def handler(request):
        raise exc("unreachable", request=request)

    backend = HttpTakingBackend("http://test", "token", transport=httpx.MockTransport(handler))

    with pytest.raises(TakingBackendError) as exc_info:
        await backend.fetch_quiz(str(uuid.uuid4()))
    assert exc_info.value.status_code == status_code


async def test_http_backend_reads_error_detail():
    def handler(request):
        return httpx.Response(409, json={"detail": "Attempt is already completed"})

    backend = HttpTakingBackend("http://test", "token", transport=httpx.MockTransport(handler))

    with pytest.raises(TakingBackendError) as exc_info:
        await backend.complete_attempt(str(uuid.uuid4()), uuid.uuid4(), 1, datetime.now(timezone.utc))
    assert exc_info.value.status_code == 409
    assert exc_info.value.message == "Attempt is already completed"


def _proxy_error_on_responses(quiz):
    attempt = {
        "id": str(uuid.uuid4()),
        "user_id": str(uuid.uuid4()),
        "quiz_id": str(quiz.id),
        "status": "in_progress",
        "score": 0,
        "total_questions": len(quiz.questions),
        "started_at": datetime.now(timezone.utc).isoformat(),
    }

    def handler(request):
        if request.method == "GET":
            return httpx.Response(200, json=quiz.model_dump(mode="json"))
        if request.url.path.endswith("/attempts"):
            return httpx.Response(201, json=attempt)
        return httpx.Response(200, text="<html>proxy error</html>")

    return handler


async def test_unreadable_success_body_moves_submit_to_error():
    quiz = _two_question_quiz()
    transport = httpx.MockTransport(_proxy_error_on_responses(quiz))
    engine = AttemptEngine(str(quiz.id), HttpTakingBackend("http://test", "token", transport=transport))

    await engine.start()
    assert engine.state.phase == TakingPhase.TAKING
    await _answer_first_right_second_wrong(engine)
    state = await engine.submit()

    assert state.phase == TakingPhase.ERROR
    assert state.error == "The server returned an unexpected response."
    assert state.completed_at is None

    # Recoverable like any other failure
    state = await engine.restart()
    assert state.phase == TakingPhase.TAKING


async def test_unexpected_quiz_body_moves_start_to_error():
    def handler(request):
        return httpx.Response(200, json={"unexpected": True})

    backend = HttpTakingBackend("http://test", "token", transport=httpx.MockTransport(handler))

    with pytest.raises(TakingBackendError) as exc_info:
        await backend.fetch_quiz(str(uuid.uuid4()))
    assert exc_info.value.status_code == 502

    state = await AttemptEngine(str(uuid.uuid4()), backend).start()
    assert state.phase == TakingPhase.ERROR
