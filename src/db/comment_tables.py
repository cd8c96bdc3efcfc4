"""Comment database tables — reader comments on stories and their reports."""
from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Text, ForeignKey, DateTime
from sqlalchemy.orm import relationship

from src.db.tables import Base


class CommentRow(Base):
    """Reader comment on a story."""
    __tablename__ = "comments"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    story_id = Column(String(36), ForeignKey("stories.id", ondelete="CASCADE"), nullable=False, index=True)
    # Author UUID from the identity service; no local user row required
    user_id = Column(String(36), nullable=False, index=True)
    content = Column(Text, nullable=False)
    reports = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime, nullable=True)

    story = relationship("StoryRow", foreign_keys=[story_id])


class CommentReportRow(Base):
    """A single report filed against a comment."""
    __tablename__ = "comment_reports"

    id = Column(Integer, primary_key=True)
    comment_id = Column(String(36), ForeignKey("comments.id", ondelete="CASCADE"), nullable=False, index=True)
    reason = Column(String(255), nullable=False)
    details = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))

    comment = relationship("CommentRow", foreign_keys=[comment_id])
