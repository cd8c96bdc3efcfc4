"""Story data models — request bodies and response shapes for the Taleshelf API."""
from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


# ── Requests ─────────────────────────────────────────────────────────────────

class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    genre: Optional[str] = Field(None, max_length=255)


class CategoryUpdate(BaseModel):
    # Omitted fields are left alone; an explicit null name is rejected
    name: str = Field(None, min_length=1, max_length=255)
    genre: Optional[str] = Field(None, max_length=255)


class TagCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)


class TagUpdate(BaseModel):
    name: str = Field(None, min_length=1, max_length=255)


class StoryCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    genre: Optional[str] = Field(None, max_length=255)
    length: Optional[int] = Field(None, ge=0)
    content: Optional[str] = None
    description: Optional[str] = None
    category_id: int
    tags: Optional[list[int]] = None


class StoryUpdate(BaseModel):
    title: str = Field(None, min_length=1, max_length=255)
    genre: Optional[str] = Field(None, max_length=255)
    length: Optional[int] = Field(None, ge=0)
    content: Optional[str] = None
    description: Optional[str] = None
    category_id: int = None
    tags: Optional[list[int]] = None


class TagAttachRequest(BaseModel):
    tag_id: int


class CommentCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=1000)
    user_id: UUID


class CommentUpdate(BaseModel):
    content: str = Field(None, min_length=1, max_length=1000)


class ReportCreate(BaseModel):
    reason: str = Field(..., min_length=1, max_length=255)
    details: Optional[str] = None
    user_id: UUID


class RatingCreate(BaseModel):
    rating: int = Field(..., ge=1, le=5)


# ── Responses ────────────────────────────────────────────────────────────────

class CategoryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    genre: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class TagOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str


class StorySummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    genre: Optional[str] = None
    length: Optional[int] = None
    description: Optional[str] = None
    category_id: int
    created_at: Optional[datetime] = None


class CommentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    story_id: str
    user_id: str
    content: str
    reports: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class StoryOut(StorySummary):
    content: Optional[str] = None
    updated_at: Optional[datetime] = None
    category: Optional[CategoryOut] = None
    tags: list[TagOut] = []
    comments: Optional[list[CommentOut]] = None
    average_rating: Optional[float] = None


class StoryListItem(BaseModel):
    id: str
    title: str
    description: Optional[str] = None
    category: Optional[CategoryOut] = None
    created_at_formatted: Optional[str] = None


class StoryReportOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    story_id: str
    user_id: str
    reason: str
    details: Optional[str] = None
    status: str
    created_at: Optional[datetime] = None
    story: Optional[StorySummary] = None


class CommentReportOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    comment_id: str
    reason: str
    details: Optional[str] = None
    created_at: Optional[datetime] = None
    comment: Optional[CommentOut] = None


class PendingTagOut(BaseModel):
    tag: TagOut
    status: str
    requested_at: Optional[datetime] = None
    story: StorySummary


class RatingSummary(BaseModel):
    story_id: str
    average: Optional[float] = None
    count: int = 0
