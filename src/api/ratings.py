"""Story ratings API — 1-5 stars, averaged on read."""
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.lookups import story_from_path
from src.db.engine import get_session
from src.db.rating_tables import StoryRatingRow
from src.db.tables import StoryRow
from src.models import RatingCreate, RatingSummary
from src.services.stories import StoryService

router = APIRouter(prefix="/stories", tags=["ratings"])


@router.get("/{story}/ratings")
async def rating_summary(
    story: StoryRow = Depends(story_from_path),
    session: AsyncSession = Depends(get_session),
):
    average, count = await StoryService(session).average_rating(story.id)
    return {"data": RatingSummary(story_id=story.id, average=average, count=count)}


@router.post("/{story}/ratings", status_code=201)
async def rate_story(
    req: RatingCreate,
    story: StoryRow = Depends(story_from_path),
    session: AsyncSession = Depends(get_session),
):
    session.add(StoryRatingRow(story_id=story.id, rating=req.rating))
    await session.commit()
    average, count = await StoryService(session).average_rating(story.id)
    return {
        "data": RatingSummary(story_id=story.id, average=average, count=count),
        "message": "Rating submitted",
    }
