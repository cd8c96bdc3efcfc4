"""Story persistence helpers shared by the public and moderator routers."""
from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta
from typing import Optional

from sqlalchemy import select, func, delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from src.api.validation import field_errors
from src.db.comment_tables import CommentRow, CommentReportRow
from src.db.pagination import Page, paginate
from src.db.rating_tables import StoryRatingRow
from src.db.report_tables import StoryReportRow
from src.db.tables import CategoryRow, StoryRow, StoryTagRow, TagRow
from src.models import CategoryOut, CommentOut, StoryListItem, StoryOut, TagOut
from src.services.tag_moderation import TagModerationService

logger = logging.getLogger(__name__)

STORY_FIELDS = ("title", "genre", "length", "content", "description", "category_id")


def _escape_like(value: str) -> str:
    """Escape LIKE wildcard characters in user input."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class StoryService:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.tags = TagModerationService(session)

    async def validate_references(self, category_id: Optional[int], tag_ids: Optional[list[int]]) -> None:
        """422 when the category or any tag id does not exist."""
        errors: dict[str, str] = {}
        if category_id is not None and await self.session.get(CategoryRow, category_id) is None:
            errors["category_id"] = "The selected category id is invalid."
        if tag_ids:
            found = set((await self.session.execute(
                select(TagRow.id).where(TagRow.id.in_(tag_ids))
            )).scalars().all())
            for i, tag_id in enumerate(tag_ids):
                if tag_id not in found:
                    errors[f"tags.{i}"] = f"The selected tags.{i} is invalid."
        if errors:
            raise field_errors(errors)

    async def create(self, fields: dict, tag_ids: Optional[list[int]] = None) -> StoryRow:
        story = StoryRow(**{k: v for k, v in fields.items() if k in STORY_FIELDS})
        self.session.add(story)
        await self.session.commit()
        await self.request_tags(story, tag_ids)
        logger.info("Created story %s", story.id)
        return story

    async def update(self, story: StoryRow, fields: dict, tag_ids: Optional[list[int]] = None) -> StoryRow:
        for field, value in fields.items():
            if field in STORY_FIELDS:
                setattr(story, field, value)
        await self.session.commit()
        await self.request_tags(story, tag_ids)
        await self.session.refresh(story)
        return story

    async def request_tags(self, story: StoryRow, tag_ids: Optional[list[int]]) -> None:
        """Submitted tags join the moderation queue like any other request."""
        for tag_id in dict.fromkeys(tag_ids or []):
            tag = await self.session.get(TagRow, tag_id)
            if tag is not None:
                await self.tags.request_attach(story, tag)

    async def delete(self, story: StoryRow) -> None:
        """Hard delete with everything hanging off the story."""
        story_id = story.id
        comment_ids = select(CommentRow.id).where(CommentRow.story_id == story_id)
        await self.session.execute(delete(CommentReportRow).where(CommentReportRow.comment_id.in_(comment_ids)))
        await self.session.execute(delete(CommentRow).where(CommentRow.story_id == story_id))
        await self.session.execute(delete(StoryReportRow).where(StoryReportRow.story_id == story_id))
        await self.session.execute(delete(StoryRatingRow).where(StoryRatingRow.story_id == story_id))
        await self.session.execute(delete(StoryTagRow).where(StoryTagRow.story_id == story_id))
        await self.session.execute(delete(StoryRow).where(StoryRow.id == story_id))
        await self.session.commit()
        logger.info("Deleted story %s", story_id)

    async def search(
        self,
        page: int,
        per_page: int,
        title: Optional[str] = None,
        category_id: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> Page:
        stmt = select(StoryRow).options(selectinload(StoryRow.category))
        if title:
            stmt = stmt.where(StoryRow.title.ilike(f"%{_escape_like(title)}%", escape="\\"))
        if category_id is not None:
            stmt = stmt.where(StoryRow.category_id == category_id)
        if start_date and end_date:
            stmt = stmt.where(
                StoryRow.created_at >= datetime.combine(start_date, time.min),
                StoryRow.created_at < datetime.combine(end_date + timedelta(days=1), time.min),
            )
        stmt = stmt.order_by(StoryRow.created_at.desc(), StoryRow.id)
        return await paginate(self.session, stmt, page, per_page)

    async def average_rating(self, story_id: str) -> tuple[Optional[float], int]:
        avg, count = (await self.session.execute(
            select(func.avg(StoryRatingRow.rating), func.count(StoryRatingRow.id))
            .where(StoryRatingRow.story_id == story_id)
        )).one()
        return (round(float(avg), 2) if avg is not None else None), count

    async def detail(self, story: StoryRow, with_comments: bool = True) -> StoryOut:
        """Full story view: category, approved tags, comments, average rating."""
        category = await self.session.get(CategoryRow, story.category_id)
        tags = await self.tags.approved_tags(story.id)
        comments = None
        if with_comments:
            result = await self.session.execute(
                select(CommentRow).where(CommentRow.story_id == story.id).order_by(CommentRow.created_at)
            )
            comments = [CommentOut.model_validate(c) for c in result.scalars().all()]
        average, _count = await self.average_rating(story.id)
        return StoryOut(
            id=story.id,
            title=story.title,
            genre=story.genre,
            length=story.length,
            description=story.description,
            category_id=story.category_id,
            created_at=story.created_at,
            content=story.content,
            updated_at=story.updated_at,
            category=CategoryOut.model_validate(category) if category else None,
            tags=[TagOut.model_validate(t) for t in tags],
            comments=comments,
            average_rating=average,
        )


def list_item(story: StoryRow) -> StoryListItem:
    return StoryListItem(
        id=story.id,
        title=story.title,
        description=story.description,
        category=CategoryOut.model_validate(story.category) if story.category else None,
        created_at_formatted=story.created_at.strftime("%d/%m/%Y %H:%M") if story.created_at else None,
    )
