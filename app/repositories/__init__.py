from app.repositories.base import BaseRepository
from app.repositories.quiz_repo import (
    QuizRepository,
    QuizQuestionRepository,
    QuizOptionRepository,
    QuizAttemptRepository,
    QuizResponseRepository,
    AIUsageLogRepository,
)

__all__ = [
    "BaseRepository",
    "QuizRepository",
    "QuizQuestionRepository",
    "QuizOptionRepository",
    "QuizAttemptRepository",
    "QuizResponseRepository",
    "AIUsageLogRepository",
]
