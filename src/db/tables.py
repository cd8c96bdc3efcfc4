"""SQLAlchemy ORM models for the Taleshelf database: stories, categories, tags."""
from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Column, String, Integer, Text, DateTime, ForeignKey, Index, CheckConstraint
)
from sqlalchemy.orm import DeclarativeBase, relationship


class Base(DeclarativeBase):
    pass


def _now():
    return datetime.now(timezone.utc)


TAG_PENDING = "pending"
TAG_APPROVED = "approved"


class CategoryRow(Base):
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False, unique=True)
    genre = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_now)
    updated_at = Column(DateTime(timezone=True), default=_now, onupdate=_now)


class TagRow(Base):
    __tablename__ = "tags"

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False, unique=True)
    created_at = Column(DateTime(timezone=True), default=_now)
    updated_at = Column(DateTime(timezone=True), default=_now, onupdate=_now)


class StoryRow(Base):
    __tablename__ = "stories"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    title = Column(String(255), nullable=False, index=True)
    genre = Column(String(255), nullable=True)
    length = Column(Integer, nullable=True)
    content = Column(Text, nullable=True)
    description = Column(Text, nullable=True)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=_now, index=True)
    updated_at = Column(DateTime(timezone=True), default=_now, onupdate=_now)

    category = relationship("CategoryRow", foreign_keys=[category_id])


class StoryTagRow(Base):
    """Story-tag pivot. The composite key keeps one row per (story, tag)."""
    __tablename__ = "story_tags"

    story_id = Column(String(36), ForeignKey("stories.id", ondelete="CASCADE"), primary_key=True)
    tag_id = Column(Integer, ForeignKey("tags.id"), primary_key=True)
    status = Column(String(20), nullable=False, default=TAG_PENDING)  # pending, approved
    created_at = Column(DateTime(timezone=True), default=_now)
    updated_at = Column(DateTime(timezone=True), default=_now, onupdate=_now)

    tag = relationship("TagRow", foreign_keys=[tag_id])
    story = relationship("StoryRow", foreign_keys=[story_id])

    __table_args__ = (
        CheckConstraint("status IN ('pending', 'approved')", name="ck_story_tag_status"),
        Index("ix_story_tags_status", "story_id", "status"),
        Index("ix_story_tags_tag", "tag_id"),
    )
