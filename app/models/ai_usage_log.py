from sqlalchemy import Column, String, Integer, DateTime, func, Uuid
import uuid

from app.db.database import Base


class AIUsageLog(Base):
    """One row per AI generation request, saved or not. Drives the quota."""
    __tablename__ = "ai_usage_logs"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    user_id = Column(Uuid(as_uuid=True), nullable=False, index=True)
    model_used = Column(String(100), nullable=False)
    tokens_used = Column(Integer, default=0, nullable=False)
    requested_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
