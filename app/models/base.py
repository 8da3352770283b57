"""
Base Model Module

This module provides a base class for all SQLAlchemy models with common fields:
- id: Primary key (UUID)
- created_at: Timestamp when record was created
- updated_at: Timestamp when record was last update

and the soft-delete mixin shared by quizzes, questions and options.
"""

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, func, Uuid

# Import the Base from your database module
from app.db.database import Base


class RecordLifecycle(enum.Enum):
    """Explicit lifecycle of a soft-deletable row."""
    ACTIVE = "active"
    DELETED = "deleted"


class BaseModel(Base):
    """
    Abstract base model class that provides common fields for all models.

    Attributes:
        id (UUID): Primary key, auto-generated UUID
        created_at (DateTime): Timestamp set automatically when record is created
        updated_at (DateTime): Timestamp updated automatically when record is modified
    """

    # This makes the class abstract - no table will be created for BaseModel itself
    __abstract__ = True

    id = Column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        nullable=False,
        index=True
    )

    created_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )

    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False
    )

    def __repr__(self):
        """String representation for debugging."""
        return f"<{self.__class__.__name__}(id={self.id})>"


class SoftDeleteMixin:
    """
    Soft deletion through a nullable deleted_at column.

    Read sites use `lifecycle` / `live()` instead of testing the
    timestamp directly.
    """

    deleted_at = Column(DateTime(timezone=True), nullable=True, index=True)

    @property
    def lifecycle(self) -> RecordLifecycle:
        if self.deleted_at is None:
            return RecordLifecycle.ACTIVE
        return RecordLifecycle.DELETED

    @property
    def is_live(self) -> bool:
        return self.lifecycle is RecordLifecycle.ACTIVE

    @classmethod
    def live(cls):
        """SQL clause selecting rows that have not been soft-deleted."""
        return cls.deleted_at.is_(None)

    def mark_deleted(self) -> None:
        self.deleted_at = datetime.now(timezone.utc)
