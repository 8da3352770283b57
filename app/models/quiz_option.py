from sqlalchemy import Column, Integer, Boolean, ForeignKey, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship

from app.models.base import BaseModel, SoftDeleteMixin


class QuizOption(SoftDeleteMixin, BaseModel):
    """An answer option of a question (stored in the `answers` table)."""
    __tablename__ = "answers"
    __table_args__ = (
        UniqueConstraint("question_id", "position", name="uq_answers_question_position"),
    )

    question_id = Column(Uuid(as_uuid=True), ForeignKey("questions.id", ondelete="CASCADE"), nullable=False, index=True)

    content = Column(Text, nullable=False)
    is_correct = Column(Boolean, default=False, nullable=False)
    position = Column(Integer, nullable=False)

    question = relationship("QuizQuestion", back_populates="options")
