"""Story ratings table. Averages are computed at read time."""
from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, CheckConstraint, Index

from src.db.tables import Base


class StoryRatingRow(Base):
    __tablename__ = "story_ratings"

    id = Column(Integer, primary_key=True)
    story_id = Column(String(36), ForeignKey("stories.id", ondelete="CASCADE"), nullable=False)
    rating = Column(Integer, nullable=False)  # 1-5 stars
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        CheckConstraint("rating >= 1 AND rating <= 5", name="ck_story_rating_range"),
        Index("ix_story_rating_story", "story_id", "rating"),
    )
