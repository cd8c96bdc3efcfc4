"""Story reporting table — kept apart from comment reports on purpose."""
from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, String, Text, DateTime, Integer, ForeignKey, Index
from sqlalchemy.orm import relationship

from src.db.tables import Base


def _now():
    return datetime.now(timezone.utc)


class StoryReportRow(Base):
    """User-submitted report against a story."""
    __tablename__ = "story_reports"

    id = Column(Integer, primary_key=True)
    story_id = Column(String(36), ForeignKey("stories.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(36), nullable=False)
    reason = Column(String(255), nullable=False)
    details = Column(Text, nullable=True)
    status = Column(String(20), default="pending", nullable=False)
    created_at = Column(DateTime, default=_now)
    updated_at = Column(DateTime, default=_now, onupdate=_now)

    story = relationship("StoryRow", foreign_keys=[story_id])

    __table_args__ = (
        Index("ix_story_report_status", "status"),
    )
