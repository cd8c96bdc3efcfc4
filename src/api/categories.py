"""Categories API — every story belongs to exactly one category."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.lookups import category_from_path
from src.api.validation import field_errors
from src.db.engine import get_session
from src.db.tables import CategoryRow, StoryRow
from src.models import CategoryCreate, CategoryUpdate, CategoryOut

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/categories", tags=["categories"])


async def _ensure_unique_name(session: AsyncSession, name: str, exclude_id: int | None = None) -> None:
    stmt = select(CategoryRow.id).where(CategoryRow.name == name)
    if exclude_id is not None:
        stmt = stmt.where(CategoryRow.id != exclude_id)
    if (await session.execute(stmt)).first():
        raise field_errors({"name": "The name has already been taken."})


@router.get("")
async def list_categories(session: AsyncSession = Depends(get_session)):
    result = await session.execute(select(CategoryRow).order_by(CategoryRow.id))
    return {"data": [CategoryOut.model_validate(c) for c in result.scalars().all()]}


@router.post("", status_code=201)
async def create_category(req: CategoryCreate, session: AsyncSession = Depends(get_session)):
    await _ensure_unique_name(session, req.name)
    category = CategoryRow(name=req.name, genre=req.genre)
    session.add(category)
    await session.commit()
    await session.refresh(category)
    return {"data": CategoryOut.model_validate(category), "message": "Category successfully created"}


@router.get("/{category}")
async def show_category(category: CategoryRow = Depends(category_from_path)):
    return {"data": CategoryOut.model_validate(category)}


@router.api_route("/{category}", methods=["PUT", "PATCH"])
async def update_category(
    req: CategoryUpdate,
    category: CategoryRow = Depends(category_from_path),
    session: AsyncSession = Depends(get_session),
):
    updates = req.model_dump(exclude_unset=True)
    if "name" in updates:
        await _ensure_unique_name(session, updates["name"], exclude_id=category.id)
    for field, value in updates.items():
        setattr(category, field, value)
    await session.commit()
    await session.refresh(category)
    return {"data": CategoryOut.model_validate(category), "message": "Category updated successfully"}


@router.delete("/{category}")
async def delete_category(
    category: CategoryRow = Depends(category_from_path),
    session: AsyncSession = Depends(get_session),
):
    """Delete a category. Refused while any story still uses it."""
    story_count = (await session.execute(
        select(func.count()).select_from(StoryRow).where(StoryRow.category_id == category.id)
    )).scalar() or 0
    if story_count > 0:
        raise HTTPException(409, "Cannot delete a category with associated stories.")

    await session.delete(category)
    await session.commit()
    logger.info("Deleted category %s", category.id)
    return {"message": "Category deleted successfully"}
