"""Moderator API — dashboard, story management and the tag approval queue.

Every route here sits behind the role gate (moderator or admin). Story
mutations additionally go through the pluggable story policy.
"""
from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.lookups import story_from_path, tag_from_path
from src.auth import require_moderator
from src.db.engine import get_session
from src.db.tables import StoryRow, TagRow
from src.db.user_tables import UserRow
from src.models import PendingTagOut, StoryUpdate, StorySummary, TagOut
from src.services.reports import ReportService
from src.services.stories import StoryService, list_item
from src.services.story_policy import StoryPolicy, get_story_policy, UPDATE, DELETE
from src.services.tag_moderation import TagModerationService, TagNotPending

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/moderator", tags=["moderator"], dependencies=[Depends(require_moderator)])

STORIES_PER_PAGE = 10
PENDING_PER_PAGE = 15


@router.get("/home")
async def home(
    user: UserRow = Depends(require_moderator),
    session: AsyncSession = Depends(get_session),
):
    """Dashboard counters for the moderation queues."""
    pending = await TagModerationService(session).pending_tag_count()
    reports = await ReportService(session).counts()
    return {
        "moderator": {"id": user.id, "name": user.name, "role": user.role},
        "pendingTagCount": pending,
        "storyReportCount": reports["story"],
        "commentReportCount": reports["comment"],
    }


@router.get("/stories")
async def list_stories(
    title: Optional[str] = Query(None, max_length=255),
    category_id: Optional[int] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    page: int = Query(1, ge=1),
    session: AsyncSession = Depends(get_session),
):
    service = StoryService(session)
    result = await service.search(
        page, STORIES_PER_PAGE,
        title=title, category_id=category_id,
        start_date=start_date, end_date=end_date,
    )
    tags = await service.tags.approved_tags_for([s.id for s in result.items])
    data = []
    for story in result.items:
        item = list_item(story).model_dump()
        item["tags"] = [TagOut.model_validate(t).model_dump() for t in tags[story.id]]
        data.append(item)
    return {"data": data, "meta": result.meta()}


@router.put("/stories/{story}")
async def update_story(
    req: StoryUpdate,
    story: StoryRow = Depends(story_from_path),
    user: UserRow = Depends(require_moderator),
    policy: StoryPolicy = Depends(get_story_policy),
    session: AsyncSession = Depends(get_session),
):
    policy.authorize(user, story, UPDATE)
    service = StoryService(session)
    updates = req.model_dump(exclude_unset=True, exclude={"tags"})
    await service.validate_references(updates.get("category_id"), req.tags)
    story = await service.update(story, updates, req.tags)
    logger.info("Moderator %s updated story %s", user.id, story.id)
    return {"data": await service.detail(story, with_comments=False), "message": "Story updated successfully"}


@router.delete("/stories/{story}")
async def delete_story(
    story: StoryRow = Depends(story_from_path),
    user: UserRow = Depends(require_moderator),
    policy: StoryPolicy = Depends(get_story_policy),
    session: AsyncSession = Depends(get_session),
):
    policy.authorize(user, story, DELETE)
    story_id = story.id
    await StoryService(session).delete(story)
    logger.info("Moderator %s deleted story %s", user.id, story_id)
    return {"message": "Story deleted successfully"}


@router.get("/stories/{story}/pending-tags")
async def pending_tags(
    page: int = Query(1, ge=1),
    story: StoryRow = Depends(story_from_path),
    session: AsyncSession = Depends(get_session),
):
    """Tags proposed for ``story`` that are waiting on a decision, oldest first."""
    result = await TagModerationService(session).list_pending(story, page, PENDING_PER_PAGE)
    data = [
        PendingTagOut(
            tag=TagOut.model_validate(row.tag),
            status=row.status,
            requested_at=row.created_at,
            story=StorySummary.model_validate(row.story),
        )
        for row in result.items
    ]
    return {"data": data, "meta": result.meta()}


@router.post("/stories/{story}/tags/{tag}/approve")
async def approve_tag(
    story: StoryRow = Depends(story_from_path),
    tag: TagRow = Depends(tag_from_path),
    user: UserRow = Depends(require_moderator),
    session: AsyncSession = Depends(get_session),
):
    tag_name, story_title = tag.name, story.title
    try:
        await TagModerationService(session).approve(story, tag)
    except TagNotPending:
        raise HTTPException(404, "Tag is not pending for this story")
    logger.info("Moderator %s approved tag %s on story %s", user.id, tag.id, story.id)
    return {"message": f"Tag '{tag_name}' approved for story '{story_title}'."}


@router.delete("/stories/{story}/tags/{tag}/reject")
async def reject_tag(
    story: StoryRow = Depends(story_from_path),
    tag: TagRow = Depends(tag_from_path),
    user: UserRow = Depends(require_moderator),
    session: AsyncSession = Depends(get_session),
):
    tag_name, story_title = tag.name, story.title
    try:
        await TagModerationService(session).reject(story, tag)
    except TagNotPending:
        raise HTTPException(404, "Tag is not pending for this story")
    logger.info("Moderator %s rejected tag %s on story %s", user.id, tag.id, story.id)
    return {"message": f"Tag '{tag_name}' rejected for story '{story_title}'."}
