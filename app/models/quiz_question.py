from sqlalchemy import Column, Integer, ForeignKey, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship

from app.models.base import BaseModel, SoftDeleteMixin


class QuizQuestion(SoftDeleteMixin, BaseModel):
    __tablename__ = "questions"
    __table_args__ = (
        UniqueConstraint("quiz_id", "position", name="uq_questions_quiz_position"),
    )

    quiz_id = Column(Uuid(as_uuid=True), ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=False, index=True)

    # Question content
    content = Column(Text, nullable=False)
    explanation = Column(Text, nullable=True)

    # 1-indexed, contiguous within the quiz
    position = Column(Integer, nullable=False)

    # Relationships
    quiz = relationship("Quiz", back_populates="questions")
    options = relationship(
        "QuizOption",
        back_populates="question",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="QuizOption.position",
    )
    responses = relationship("QuizResponse", back_populates="question", passive_deletes=True)
