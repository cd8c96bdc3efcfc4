"""Stories API — public story CRUD, tag requests and story reports."""
from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.lookups import story_from_path
from src.api.validation import field_errors
from src.db.engine import get_session
from src.db.report_tables import StoryReportRow
from src.db.tables import StoryRow, TagRow
from src.models import StoryCreate, StoryUpdate, TagAttachRequest, ReportCreate
from src.services.stories import StoryService, list_item
from src.services.tag_moderation import TagModerationService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/stories", tags=["stories"])

PER_PAGE = 10


@router.get("")
async def list_stories(
    title: Optional[str] = Query(None, max_length=255),
    category_id: Optional[int] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    page: int = Query(1, ge=1),
    session: AsyncSession = Depends(get_session),
):
    """Paginated stories, filterable by title, category and creation window."""
    result = await StoryService(session).search(
        page, PER_PAGE,
        title=title, category_id=category_id,
        start_date=start_date, end_date=end_date,
    )
    return {"data": [list_item(s) for s in result.items], "meta": result.meta()}


@router.post("", status_code=201)
async def create_story(req: StoryCreate, session: AsyncSession = Depends(get_session)):
    service = StoryService(session)
    await service.validate_references(req.category_id, req.tags)
    story = await service.create(req.model_dump(exclude={"tags"}), req.tags)
    return {"data": await service.detail(story, with_comments=False), "message": "Story created successfully"}


@router.get("/{story}")
async def show_story(
    story: StoryRow = Depends(story_from_path),
    session: AsyncSession = Depends(get_session),
):
    return {"data": await StoryService(session).detail(story)}


@router.api_route("/{story}", methods=["PUT", "PATCH"])
async def update_story(
    req: StoryUpdate,
    story: StoryRow = Depends(story_from_path),
    session: AsyncSession = Depends(get_session),
):
    """Partial update; submitted tags are queued for moderation."""
    service = StoryService(session)
    updates = req.model_dump(exclude_unset=True, exclude={"tags"})
    await service.validate_references(updates.get("category_id"), req.tags)
    story = await service.update(story, updates, req.tags)
    return {"data": await service.detail(story, with_comments=False), "message": "Story updated successfully"}


@router.delete("/{story}")
async def delete_story(
    story: StoryRow = Depends(story_from_path),
    session: AsyncSession = Depends(get_session),
):
    await StoryService(session).delete(story)
    return {"message": "Story deleted successfully"}


@router.post("/{story}/tags")
async def request_tag(
    req: TagAttachRequest,
    story: StoryRow = Depends(story_from_path),
    session: AsyncSession = Depends(get_session),
):
    """Propose a tag for a story. Repeats while pending or approved are no-ops."""
    tag = await session.get(TagRow, req.tag_id)
    if tag is None:
        raise field_errors({"tag_id": "The selected tag id is invalid."})

    outcome = await TagModerationService(session).request_attach(story, tag)
    return {"message": outcome.message, "status": outcome.value}


@router.post("/{story}/report", status_code=201)
async def report_story(
    req: ReportCreate,
    story: StoryRow = Depends(story_from_path),
    session: AsyncSession = Depends(get_session),
):
    report = StoryReportRow(
        story_id=story.id,
        user_id=str(req.user_id),
        reason=req.reason,
        details=req.details,
    )
    session.add(report)
    await session.commit()
    logger.info("Story %s reported by %s", story.id, req.user_id)
    return {"message": "Story reported successfully"}
