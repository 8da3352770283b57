from app.models.base import Base, RecordLifecycle
from app.models.quiz import Quiz, QuizStatus, QuizSource
from app.models.quiz_question import QuizQuestion
from app.models.quiz_option import QuizOption
from app.models.quiz_attempt import QuizAttempt, AttemptStatus
from app.models.quiz_response import QuizResponse
from app.models.ai_usage_log import AIUsageLog

__all__ = [
    "Base",
    "RecordLifecycle",
    "Quiz",
    "QuizStatus",
    "QuizSource",
    "QuizQuestion",
    "QuizOption",
    "QuizAttempt",
    "AttemptStatus",
    "QuizResponse",
    "AIUsageLog",
]
