"""
Quiz Schemas

Pydantic models for quiz authoring requests, list queries and the
quiz detail value returned by the store.
"""

from datetime import datetime
from typing import Optional, List
from uuid import UUID
from enum import Enum

from pydantic import BaseModel, Field, field_validator


# ============================================================
# Enums
# ============================================================

class QuizStatus(str, Enum):
    DRAFT = "draft"
    PUBLIC = "public"
    PRIVATE = "private"
    ARCHIVED = "archived"


class QuizSource(str, Enum):
    MANUAL = "manual"
    AI_GENERATED = "ai_generated"


class QuizSortField(str, Enum):
    CREATED_AT = "created_at"
    TITLE = "title"
    UPDATED_AT = "updated_at"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


# ============================================================
# Request Schemas
# ============================================================

class OptionInput(BaseModel):
    """One answer option in a create/update payload."""
    content: str = Field(..., min_length=1, description="Option content is required")
    is_correct: bool
    position: int = Field(..., ge=1)


class QuestionInput(BaseModel):
    """One question with its ordered options."""
    content: str = Field(..., min_length=1, description="Question content is required")
    explanation: Optional[str] = None
    position: int = Field(..., ge=1)
    options: List[OptionInput] = Field(..., min_length=2, max_length=10)

    @field_validator("options")
    @classmethod
    def require_correct_option(cls, value: List[OptionInput]) -> List[OptionInput]:
        if not any(opt.is_correct for opt in value):
            raise ValueError("At least one option must be marked as correct")
        return value


class QuizCreate(BaseModel):
    """
    Full quiz payload used for both create and (full-replacement) update.

    The list order of questions and options is authoritative; declared
    positions only need to be positive.
    """
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    source: QuizSource = QuizSource.MANUAL
    ai_model: Optional[str] = None
    ai_prompt: Optional[str] = None
    ai_temperature: Optional[float] = Field(None, ge=0, le=2)
    questions: List[QuestionInput] = Field(..., min_length=1, max_length=50)

    class Config:
        json_schema_extra = {
            "example": {
                "title": "Python Basics",
                "description": "Warm-up questions",
                "source": "manual",
                "questions": [
                    {
                        "content": "What does len([1, 2]) return?",
                        "position": 1,
                        "options": [
                            {"content": "2", "is_correct": True, "position": 1},
                            {"content": "3", "is_correct": False, "position": 2},
                        ],
                    }
                ],
            }
        }


class QuizListQuery(BaseModel):
    """Pagination, sorting and filtering for the quiz list."""
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=100)
    sort: QuizSortField = QuizSortField.CREATED_AT
    order: SortOrder = SortOrder.DESC
    status: Optional[QuizStatus] = None
    owned: Optional[bool] = None


class VisibilityUpdate(BaseModel):
    """Toggle a published quiz between public and private."""
    status: QuizStatus

    @field_validator("status")
    @classmethod
    def only_published_states(cls, value: QuizStatus) -> QuizStatus:
        if value not in (QuizStatus.PUBLIC, QuizStatus.PRIVATE):
            raise ValueError("Status must be either 'public' or 'private'")
        return value


# ============================================================
# Response Schemas
# ============================================================

class OptionResponse(BaseModel):
    id: UUID
    question_id: UUID
    content: str
    is_correct: bool
    position: int

    class Config:
        from_attributes = True
        frozen = True


class QuestionResponse(BaseModel):
    id: UUID
    quiz_id: UUID
    content: str
    explanation: Optional[str] = None
    position: int
    options: List[OptionResponse]

    class Config:
        from_attributes = True
        frozen = True


class QuizResponse(BaseModel):
    """Quiz metadata (list rows)."""
    id: UUID
    user_id: UUID
    title: str
    description: Optional[str] = None
    status: QuizStatus
    source: QuizSource
    ai_model: Optional[str] = None
    ai_prompt: Optional[str] = None
    ai_temperature: Optional[float] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
        frozen = True


class QuizDetailResponse(QuizResponse):
    """Quiz with its live questions and options, ordered by position."""
    questions: List[QuestionResponse]


class PaginationMeta(BaseModel):
    page: int
    limit: int
    total_pages: int
    total_items: int


class QuizListResponse(BaseModel):
    quizzes: List[QuizResponse]
    pagination: PaginationMeta
