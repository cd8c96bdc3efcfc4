"""Path-parameter lookups: resolve ``{story}``, ``{tag}``, ... or answer 404."""
from __future__ import annotations

from fastapi import Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.comment_tables import CommentRow
from src.db.engine import get_session
from src.db.tables import CategoryRow, StoryRow, TagRow


async def story_from_path(story: str, session: AsyncSession = Depends(get_session)) -> StoryRow:
    row = await session.get(StoryRow, story)
    if not row:
        raise HTTPException(404, "Story not found")
    return row


async def tag_from_path(tag: int, session: AsyncSession = Depends(get_session)) -> TagRow:
    row = await session.get(TagRow, tag)
    if not row:
        raise HTTPException(404, "Tag not found")
    return row


async def category_from_path(category: int, session: AsyncSession = Depends(get_session)) -> CategoryRow:
    row = await session.get(CategoryRow, category)
    if not row:
        raise HTTPException(404, "Category not found")
    return row


async def comment_from_path(comment: str, session: AsyncSession = Depends(get_session)) -> CommentRow:
    row = await session.get(CommentRow, comment)
    if not row:
        raise HTTPException(404, "Comment not found")
    return row
