import asyncio
import json

import pytest

from app.ai.json_extractor import JSONExtractionError, parse_json_robustly, strip_code_fences
from app.ai.llm.langchain_client import LLMConfigurationError, get_llm
from app.core.config import settings
from app.schemas.quiz import QuizSource, QuizStatus
from app.services.ai_quota_service import AIQuotaService
from app.services.quiz_generator_service import (
    AIConfigurationError,
    AIProviderError,
    AIQuotaExceededError,
    AIResponseError,
    QuizGeneratorService,
    parse_ai_quiz_content,
)


def ai_quiz_json(question_count: int = 5, correct_per_question: int = 1) -> dict:
    return {
        "title": "Photosynthesis",
        "description": "How plants turn light into energy.",
        "questions": [
            {
                "content": f"Question {n}?",
                "explanation": f"Because of fact {n}.",
                "options": [
                    {"content": f"Option {n}.{o}", "is_correct": o < correct_per_question}
                    for o in range(4)
                ],
            }
            for n in range(1, question_count + 1)
        ],
    }


def fake_completion(content: str, tokens_used: int = 321):
    async def chat_completion(**kwargs):
        return {"content": content, "tokens_used": tokens_used, "model": kwargs.get("model"), "finish_reason": "stop"}
    return chat_completion


def raising_completion(error: BaseException):
    async def chat_completion(**kwargs):
        raise error
    return chat_completion


# ============================================================
# JSON EXTRACTION
# ============================================================

class TestJsonExtraction:
    def test_plain_json(self):
        assert parse_json_robustly('{"a": 1}') == {"a": 1}

    def test_fenced_json(self):
        raw = 'Here you go:\n```json\n{"a": [1, 2]}\n```\nEnjoy!'
        assert parse_json_robustly(raw) == {"a": [1, 2]}

    def test_json_surrounded_by_prose(self):
        assert parse_json_robustly('Sure! {"a": {"b": 2}} Hope that helps.') == {"a": {"b": 2}}

    def test_trailing_commas(self):
        assert parse_json_robustly('{"a": [1, 2,],}') == {"a": [1, 2]}

    def test_unterminated_fence(self):
        assert strip_code_fences('```json\n{"a": 1}') == '{"a": 1}'

    def test_garbage(self):
        with pytest.raises(JSONExtractionError):
            parse_json_robustly("I cannot help with that.")


# ============================================================
# CONTENT VALIDATION
# ============================================================

class TestParseContent:
    def test_valid_content(self):
        content = parse_ai_quiz_content(json.dumps(ai_quiz_json()))
        assert content.title == "Photosynthesis"
        assert len(content.questions) == 5
        assert content.questions[0].explanation == "Because of fact 1."

    def test_too_few_questions(self):
        with pytest.raises(AIResponseError):
            parse_ai_quiz_content(json.dumps(ai_quiz_json(question_count=4)))

    def test_more_than_one_correct_option(self):
        with pytest.raises(AIResponseError) as exc_info:
            parse_ai_quiz_content(json.dumps(ai_quiz_json(correct_per_question=2)))
        assert exc_info.value.status_code == 422

    def test_not_json(self):
        with pytest.raises(AIResponseError):
            parse_ai_quiz_content("no quiz today")


def test_llm_requires_api_key(monkeypatch):
    monkeypatch.setattr(settings, "GEMINI_API_KEY", None)
    with pytest.raises(LLMConfigurationError):
        get_llm()


# ============================================================
# GENERATION
# ============================================================

class TestGenerator:
    async def test_generates_draft_quiz_and_logs_usage(self, db_session, owner_id, monkeypatch):
        monkeypatch.setattr(
            "app.services.quiz_generator_service.chat_completion",
            fake_completion("```json\n" + json.dumps(ai_quiz_json(question_count=6)) + "\n```"),
        )

        quiz = await QuizGeneratorService(db_session).generate_quiz(owner_id, "photosynthesis basics")

        assert quiz.status == QuizStatus.DRAFT
        assert quiz.source == QuizSource.AI_GENERATED
        assert quiz.ai_prompt == "photosynthesis basics"
        assert quiz.ai_model == settings.GEMINI_MODEL
        assert [q.position for q in quiz.questions] == [1, 2, 3, 4, 5, 6]
        assert all(sum(o.is_correct for o in q.options) == 1 for q in quiz.questions)

        quota = await AIQuotaService(db_session).get_user_quota(owner_id)
        assert quota.used == 1

    async def test_quota_is_enforced(self, db_session, owner_id, monkeypatch):
        monkeypatch.setattr(settings, "AI_QUIZ_GENERATION_LIMIT", 1)
        monkeypatch.setattr(
            "app.services.quiz_generator_service.chat_completion",
            fake_completion(json.dumps(ai_quiz_json())),
        )
        service = QuizGeneratorService(db_session)

        await service.generate_quiz(owner_id, "topic")
        with pytest.raises(AIQuotaExceededError) as exc_info:
            await service.generate_quiz(owner_id, "topic")
        assert exc_info.value.status_code == 429

        quota = await AIQuotaService(db_session).get_user_quota(owner_id)
        assert quota.remaining == 0
        assert quota.has_reached_limit

    async def test_invalid_model_output_is_not_logged(self, db_session, owner_id, monkeypatch):
        monkeypatch.setattr(
            "app.services.quiz_generator_service.chat_completion",
            fake_completion("not json at all"),
        )

        with pytest.raises(AIResponseError):
            await QuizGeneratorService(db_session).generate_quiz(owner_id, "topic")

        quota = await AIQuotaService(db_session).get_user_quota(owner_id)
        assert quota.used == 0

    @pytest.mark.parametrize(
        "error,expected",
        [
            (LLMConfigurationError("no key"), AIConfigurationError),
            (asyncio.TimeoutError(), AIProviderError),
            (RuntimeError("quota exceeded upstream"), AIProviderError),
        ],
    )
    async def test_provider_failures(self, db_session, owner_id, monkeypatch, error, expected):
        monkeypatch.setattr(
            "app.services.quiz_generator_service.chat_completion",
            raising_completion(error),
        )

        with pytest.raises(expected) as exc_info:
            await QuizGeneratorService(db_session).generate_quiz(owner_id, "topic")
        assert exc_info.value.status_code == 503
