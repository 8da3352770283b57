from sqlalchemy import Column, ForeignKey, DateTime, func, Uuid
from sqlalchemy.orm import relationship
from app.db.database import Base
import uuid


class QuizResponse(Base):
    """One selected option of one question within an attempt."""
    __tablename__ = "attempt_answers"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    quiz_attempt_id = Column(Uuid(as_uuid=True), ForeignKey("quiz_attempts.id", ondelete="CASCADE"), nullable=False, index=True)
    question_id = Column(Uuid(as_uuid=True), ForeignKey("questions.id", ondelete="CASCADE"), nullable=False, index=True)
    selected_answer_id = Column(Uuid(as_uuid=True), ForeignKey("answers.id", ondelete="CASCADE"), nullable=False)

    answered_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    # Relationships
    attempt = relationship("QuizAttempt", back_populates="responses")
    question = relationship("QuizQuestion", back_populates="responses")
