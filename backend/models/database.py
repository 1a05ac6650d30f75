"""SQLAlchemy models for the Honoris analysis log."""

import uuid

from sqlalchemy import Column, DateTime, Index, String, func
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


class AnalysisLog(Base):
    """One completed analysis, appended by the persistence sink.

    Rows are never updated or deleted by the application. ``payload`` holds the
    record exactly as returned to the client (including evidence, if any).
    """

    __tablename__ = "legal_analysis_logs"
    __table_args__ = (
        Index("ix_legal_analysis_logs_created_at", "created_at"),
        Index("ix_legal_analysis_logs_category", "legal_category"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    source = Column(String(64), nullable=False)
    legal_category = Column(String(255), nullable=True)
    payload = Column(JSONB, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
