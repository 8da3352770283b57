"""
Attempt Schemas

Pydantic models for quiz attempts and their submitted responses.
"""

from datetime import datetime
from typing import Dict, Optional, List
from uuid import UUID
from enum import Enum

from pydantic import BaseModel, Field

from app.schemas.quiz import QuizDetailResponse


class AttemptStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    ABANDONED = "abandoned"


# ============================================================
# Request Schemas
# ============================================================

class ResponseSubmission(BaseModel):
    """Selected options for one question."""
    question_id: UUID
    selected_options: List[UUID] = Field(..., min_length=1)


class ResponsesSubmitRequest(BaseModel):
    responses: List[ResponseSubmission]


class AttemptCompleteRequest(BaseModel):
    """Final score (raw correct count) and completion time."""
    status: AttemptStatus = AttemptStatus.COMPLETED
    score: int = Field(..., ge=0)
    completed_at: datetime


# ============================================================
# Response Schemas
# ============================================================

class QuizAttemptResponse(BaseModel):
    id: UUID
    user_id: UUID
    quiz_id: UUID
    status: AttemptStatus
    score: int
    total_questions: int
    started_at: datetime
    completed_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ResponsesSavedResponse(BaseModel):
    message: str = "Responses saved successfully"
    count: int


class AttemptHistoryItem(QuizAttemptResponse):
    """Completed attempt as shown in history, with derived figures."""
    percentage: int
    time_spent_seconds: Optional[int] = None


class AttemptStats(BaseModel):
    best_score: int
    average_score: int
    total_attempts: int


class AttemptListResponse(BaseModel):
    attempts: List[AttemptHistoryItem]
    stats: AttemptStats


class AttemptDetailResponse(BaseModel):
    """One attempt with the quiz it was taken against and the saved answers."""
    attempt: AttemptHistoryItem
    quiz: QuizDetailResponse
    user_answers: Dict[str, List[str]]
    question_results: Dict[str, bool]
