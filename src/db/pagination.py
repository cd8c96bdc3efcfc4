"""Page-number pagination over SQLAlchemy select statements."""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession


@dataclass
class Page:
    items: list[Any]
    page: int
    per_page: int
    total: int

    @property
    def last_page(self) -> int:
        return max(1, math.ceil(self.total / self.per_page))

    @property
    def has_more(self) -> bool:
        return self.page * self.per_page < self.total

    def meta(self) -> dict:
        return {
            "current_page": self.page,
            "per_page": self.per_page,
            "total": self.total,
            "last_page": self.last_page,
            "has_more": self.has_more,
        }


async def paginate(session: AsyncSession, stmt: Select, page: int, per_page: int, scalars: bool = True) -> Page:
    """Run ``stmt`` for one page and count the full result set."""
    total = (await session.execute(
        select(func.count()).select_from(stmt.order_by(None).subquery())
    )).scalar() or 0
    result = await session.execute(stmt.offset((page - 1) * per_page).limit(per_page))
    items = list(result.scalars().all()) if scalars else list(result.all())
    return Page(items=items, page=page, per_page=per_page, total=total)
