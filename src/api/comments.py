"""Comments API — reader comments on stories, plus comment reports."""
from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from sqlalchemy import select, update, delete
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.lookups import comment_from_path, story_from_path
from src.db.comment_tables import CommentRow, CommentReportRow
from src.db.engine import get_session
from src.db.tables import StoryRow
from src.models import CommentCreate, CommentUpdate, CommentOut, ReportCreate

logger = logging.getLogger(__name__)
router = APIRouter(tags=["comments"])


@router.get("/stories/{story}/comments")
async def list_comments(
    story: StoryRow = Depends(story_from_path),
    session: AsyncSession = Depends(get_session),
):
    result = await session.execute(
        select(CommentRow).where(CommentRow.story_id == story.id).order_by(CommentRow.created_at)
    )
    return {"data": [CommentOut.model_validate(c) for c in result.scalars().all()]}


@router.post("/stories/{story}/comments", status_code=201)
async def post_comment(
    req: CommentCreate,
    story: StoryRow = Depends(story_from_path),
    session: AsyncSession = Depends(get_session),
):
    comment = CommentRow(story_id=story.id, user_id=str(req.user_id), content=req.content)
    session.add(comment)
    await session.commit()
    await session.refresh(comment)

    logger.info("User %s posted comment %s on story %s", req.user_id, comment.id, story.id)
    return {"data": CommentOut.model_validate(comment), "message": "Comment created successfully"}


@router.get("/comments/{comment}")
async def show_comment(comment: CommentRow = Depends(comment_from_path)):
    return {"data": CommentOut.model_validate(comment)}


@router.api_route("/comments/{comment}", methods=["PUT", "PATCH"])
async def update_comment(
    req: CommentUpdate,
    comment: CommentRow = Depends(comment_from_path),
    session: AsyncSession = Depends(get_session),
):
    updates = req.model_dump(exclude_unset=True)
    if "content" in updates:
        comment.content = updates["content"]
        comment.updated_at = datetime.now(timezone.utc)
    await session.commit()
    await session.refresh(comment)
    return {"data": CommentOut.model_validate(comment), "message": "Comment updated successfully"}


@router.delete("/comments/{comment}")
async def delete_comment(
    comment: CommentRow = Depends(comment_from_path),
    session: AsyncSession = Depends(get_session),
):
    comment_id = comment.id
    # Delete associated reports
    await session.execute(
        delete(CommentReportRow).where(CommentReportRow.comment_id == comment_id)
    )
    await session.execute(delete(CommentRow).where(CommentRow.id == comment_id))
    await session.commit()

    logger.info("Deleted comment %s", comment_id)
    return {"message": "Comment deleted successfully"}


@router.post("/comments/{comment}/report", status_code=201)
async def report_comment(
    req: ReportCreate,
    comment: CommentRow = Depends(comment_from_path),
    session: AsyncSession = Depends(get_session),
):
    """File a report and bump the comment's report counter in the same transaction."""
    session.add(CommentReportRow(comment_id=comment.id, reason=req.reason, details=req.details))
    await session.execute(
        update(CommentRow)
        .where(CommentRow.id == comment.id)
        .values(reports=CommentRow.reports + 1)
    )
    await session.commit()

    logger.info("User %s reported comment %s", req.user_id, comment.id)
    return {"message": "Comment reported successfully"}
