from sqlalchemy import Column, Integer, ForeignKey, DateTime, func, Uuid
from sqlalchemy.orm import relationship
import enum
import uuid
from app.db.database import Base


class AttemptStatus(enum.Enum):
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    ABANDONED = "abandoned"


class QuizAttempt(Base):
    __tablename__ = "quiz_attempts"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    user_id = Column(Uuid(as_uuid=True), nullable=False, index=True)
    quiz_id = Column(Uuid(as_uuid=True), ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=False, index=True)

    # Raw correct-answer count, never a percentage
    score = Column(Integer, default=0, nullable=False)
    # Snapshot taken when the attempt starts; later quiz edits don't change it
    total_questions = Column(Integer, nullable=False)

    # Timing
    started_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    # Relationships
    quiz = relationship("Quiz", back_populates="attempts")
    responses = relationship("QuizResponse", back_populates="attempt", cascade="all, delete-orphan", passive_deletes=True)

    @property
    def status(self) -> AttemptStatus:
        if self.completed_at is not None:
            return AttemptStatus.COMPLETED
        return AttemptStatus.IN_PROGRESS
