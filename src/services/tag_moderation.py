"""Tag moderation workflow for story-tag associations.

A story-tag pair is in one of three states:

    absent   -- no pivot row
    pending  -- a reader proposed the tag, waiting for a moderator
    approved -- visible on the story

Readers can only move a pair from absent to pending. Moderators move it from
pending to approved (in-place update) or back to absent (row deleted). There
is no persisted "rejected" state and no shortcut from absent to approved.
"""
from __future__ import annotations

import logging
from enum import Enum

from sqlalchemy import select, func, update, delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from src.db.pagination import Page, paginate
from src.db.tables import StoryRow, TagRow, StoryTagRow, TAG_PENDING, TAG_APPROVED

logger = logging.getLogger(__name__)


class AttachOutcome(str, Enum):
    REQUESTED = "requested"
    ALREADY_PENDING = "already_pending"
    ALREADY_APPROVED = "already_approved"

    @property
    def message(self) -> str:
        if self is AttachOutcome.REQUESTED:
            return "Tag addition request submitted for moderation."
        return "Tag is already attached or pending."


class TagNotPending(Exception):
    """Approve/reject was called on a pair that is not pending."""

    def __init__(self, story_id: str, tag_id: int):
        self.story_id = story_id
        self.tag_id = tag_id
        super().__init__(f"Tag {tag_id} is not pending for story {story_id}")


class TagModerationService:
    """Moves story-tag pairs through the pending/approved lifecycle."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def status_of(self, story_id: str, tag_id: int) -> str | None:
        """Current pivot status, or None when the pair is absent."""
        result = await self.session.execute(
            select(StoryTagRow.status).where(
                StoryTagRow.story_id == story_id,
                StoryTagRow.tag_id == tag_id,
            )
        )
        return result.scalar_one_or_none()

    async def request_attach(self, story: StoryRow, tag: TagRow) -> AttachOutcome:
        """Propose ``tag`` for ``story``. Idempotent while pending or approved."""
        story_id, tag_id = story.id, tag.id
        current = await self.status_of(story_id, tag_id)
        if current == TAG_APPROVED:
            return AttachOutcome.ALREADY_APPROVED
        if current == TAG_PENDING:
            return AttachOutcome.ALREADY_PENDING

        # A failed insert unwinds only the savepoint; rows the caller loaded stay usable
        try:
            async with self.session.begin_nested():
                self.session.add(StoryTagRow(story_id=story_id, tag_id=tag_id, status=TAG_PENDING))
                await self.session.flush()
        except IntegrityError:
            # Lost the race against a concurrent request for the same pair
            logger.info("Tag %s already requested for story %s by a concurrent request", tag_id, story_id)
            current = await self.status_of(story_id, tag_id)
            if current == TAG_APPROVED:
                return AttachOutcome.ALREADY_APPROVED
            return AttachOutcome.ALREADY_PENDING

        await self.session.commit()
        logger.info("Tag %s requested for story %s", tag_id, story_id)
        return AttachOutcome.REQUESTED

    async def approve(self, story: StoryRow, tag: TagRow) -> None:
        result = await self.session.execute(
            update(StoryTagRow)
            .where(
                StoryTagRow.story_id == story.id,
                StoryTagRow.tag_id == tag.id,
                StoryTagRow.status == TAG_PENDING,
            )
            .values(status=TAG_APPROVED)
        )
        if result.rowcount == 0:
            raise TagNotPending(story.id, tag.id)
        await self.session.commit()
        logger.info("Tag %s approved for story %s", tag.id, story.id)

    async def reject(self, story: StoryRow, tag: TagRow) -> None:
        result = await self.session.execute(
            delete(StoryTagRow).where(
                StoryTagRow.story_id == story.id,
                StoryTagRow.tag_id == tag.id,
                StoryTagRow.status == TAG_PENDING,
            )
        )
        if result.rowcount == 0:
            raise TagNotPending(story.id, tag.id)
        await self.session.commit()
        logger.info("Tag %s rejected for story %s", tag.id, story.id)

    async def list_pending(self, story: StoryRow, page: int = 1, per_page: int = 15) -> Page:
        """Pending pivot rows for ``story``, tag and story loaded."""
        stmt = (
            select(StoryTagRow)
            .options(selectinload(StoryTagRow.tag), selectinload(StoryTagRow.story))
            .where(StoryTagRow.story_id == story.id, StoryTagRow.status == TAG_PENDING)
            .order_by(StoryTagRow.created_at.asc(), StoryTagRow.tag_id.asc())
        )
        return await paginate(self.session, stmt, page, per_page)

    async def approved_tags(self, story_id: str) -> list[TagRow]:
        result = await self.session.execute(
            select(TagRow)
            .join(StoryTagRow, StoryTagRow.tag_id == TagRow.id)
            .where(StoryTagRow.story_id == story_id, StoryTagRow.status == TAG_APPROVED)
            .order_by(TagRow.name)
        )
        return list(result.scalars().all())

    async def approved_tags_for(self, story_ids: list[str]) -> dict[str, list[TagRow]]:
        """Approved tags for several stories in one query."""
        tags: dict[str, list[TagRow]] = {sid: [] for sid in story_ids}
        if not story_ids:
            return tags
        result = await self.session.execute(
            select(StoryTagRow.story_id, TagRow)
            .join(TagRow, StoryTagRow.tag_id == TagRow.id)
            .where(StoryTagRow.story_id.in_(story_ids), StoryTagRow.status == TAG_APPROVED)
            .order_by(TagRow.name)
        )
        for story_id, tag in result.all():
            tags[story_id].append(tag)
        return tags

    async def pending_tag_count(self) -> int:
        """Distinct tags waiting on at least one story."""
        result = await self.session.execute(
            select(func.count(func.distinct(StoryTagRow.tag_id))).where(StoryTagRow.status == TAG_PENDING)
        )
        return result.scalar() or 0

    async def usage_count(self, tag_id: int) -> int:
        """Pivot rows in any state referencing ``tag_id``."""
        result = await self.session.execute(
            select(func.count()).select_from(StoryTagRow).where(StoryTagRow.tag_id == tag_id)
        )
        return result.scalar() or 0
