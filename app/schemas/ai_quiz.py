"""
AI Quiz Schemas

Request and result shapes for AI-generated quizzes. The content schema is
stricter than the authoring payload: generated questions must have exactly
four options with exactly one correct.
"""

from typing import Optional, List

from pydantic import BaseModel, Field, field_validator


class AIQuizGenerateRequest(BaseModel):
    prompt: str = Field(..., min_length=1, max_length=1000)


class AIQuizOption(BaseModel):
    content: str = Field(..., min_length=1)
    is_correct: bool


class AIQuizQuestion(BaseModel):
    content: str = Field(..., min_length=1)
    explanation: Optional[str] = None
    options: List[AIQuizOption] = Field(..., min_length=4, max_length=4)

    @field_validator("options")
    @classmethod
    def exactly_one_correct(cls, value: List[AIQuizOption]) -> List[AIQuizOption]:
        if sum(1 for opt in value if opt.is_correct) != 1:
            raise ValueError("Each question must have exactly one correct answer")
        return value


class AIQuizContent(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1, max_length=500)
    questions: List[AIQuizQuestion] = Field(..., min_length=5, max_length=10)


class AIQuotaResponse(BaseModel):
    used: int
    limit: int
    remaining: int
    has_reached_limit: bool
