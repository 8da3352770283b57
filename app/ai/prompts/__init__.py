"""AI Prompts Module"""

from app.ai.prompts.quiz_prompts import (
    QUIZ_GENERATION_SYSTEM_MESSAGE,
    build_quiz_generation_prompt,
)

__all__ = [
    "QUIZ_GENERATION_SYSTEM_MESSAGE",
    "build_quiz_generation_prompt",
]
