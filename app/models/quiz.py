from sqlalchemy import Column, String, Float, Text, Enum, Uuid
from sqlalchemy.orm import relationship
import enum

from app.models.base import BaseModel, SoftDeleteMixin


class QuizStatus(enum.Enum):
    DRAFT = "draft"
    PUBLIC = "public"
    PRIVATE = "private"
    ARCHIVED = "archived"


class QuizSource(enum.Enum):
    MANUAL = "manual"
    AI_GENERATED = "ai_generated"


class Quiz(SoftDeleteMixin, BaseModel):
    __tablename__ = "quizzes"

    # Owner. Users live in the identity provider, so this is an opaque id.
    user_id = Column(Uuid(as_uuid=True), nullable=False, index=True)

    # Quiz info
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(
        Enum(
            QuizStatus,
            name="quiz_status",
            values_callable=lambda x: [e.value for e in x]
        ),
        default=QuizStatus.DRAFT,
        nullable=False,
        index=True
    )
    source = Column(
        Enum(
            QuizSource,
            name="quiz_source",
            values_callable=lambda x: [e.value for e in x]
        ),
        default=QuizSource.MANUAL,
        nullable=False
    )

    # AI provenance (NULL for manual quizzes)
    ai_model = Column(String(100), nullable=True)
    ai_prompt = Column(Text, nullable=True)
    ai_temperature = Column(Float, nullable=True)

    # Relationships
    questions = relationship(
        "QuizQuestion",
        back_populates="quiz",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="QuizQuestion.position",
    )
    attempts = relationship("QuizAttempt", back_populates="quiz", passive_deletes=True)
