"""Tags API — the tag vocabulary. Story associations go through moderation."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.lookups import tag_from_path
from src.api.validation import field_errors
from src.db.engine import get_session
from src.db.tables import TagRow
from src.models import TagCreate, TagUpdate, TagOut
from src.services.tag_moderation import TagModerationService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/tags", tags=["tags"])


async def _ensure_unique_name(session: AsyncSession, name: str, exclude_id: int | None = None) -> None:
    stmt = select(TagRow.id).where(TagRow.name == name)
    if exclude_id is not None:
        stmt = stmt.where(TagRow.id != exclude_id)
    if (await session.execute(stmt)).first():
        raise field_errors({"name": "The name has already been taken."})


@router.get("")
async def list_tags(session: AsyncSession = Depends(get_session)):
    result = await session.execute(select(TagRow).order_by(TagRow.id))
    return {"data": [TagOut.model_validate(t) for t in result.scalars().all()]}


@router.post("", status_code=201)
async def create_tag(req: TagCreate, session: AsyncSession = Depends(get_session)):
    await _ensure_unique_name(session, req.name)
    tag = TagRow(name=req.name)
    session.add(tag)
    await session.commit()
    await session.refresh(tag)
    return {"data": TagOut.model_validate(tag), "message": "Tag created successfully"}


@router.get("/{tag}")
async def show_tag(tag: TagRow = Depends(tag_from_path)):
    return {"data": TagOut.model_validate(tag)}


@router.api_route("/{tag}", methods=["PUT", "PATCH"])
async def update_tag(
    req: TagUpdate,
    tag: TagRow = Depends(tag_from_path),
    session: AsyncSession = Depends(get_session),
):
    updates = req.model_dump(exclude_unset=True)
    if "name" in updates:
        await _ensure_unique_name(session, updates["name"], exclude_id=tag.id)
        tag.name = updates["name"]
    await session.commit()
    await session.refresh(tag)
    return {"data": TagOut.model_validate(tag), "message": "Tag updated successfully"}


@router.delete("/{tag}")
async def delete_tag(
    tag: TagRow = Depends(tag_from_path),
    session: AsyncSession = Depends(get_session),
):
    """Delete a tag. Refused while any story holds it, pending or approved."""
    if await TagModerationService(session).usage_count(tag.id) > 0:
        raise HTTPException(409, "Cannot delete tag with associated stories.")

    await session.delete(tag)
    await session.commit()
    logger.info("Deleted tag %s", tag.id)
    return {"message": "Tag deleted successfully"}
