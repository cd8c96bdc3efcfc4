"""Report aggregation over the story-report and comment-report tables.

The two tables keep independent integer id spaces, so the same id can exist in
both. Lookups probe the sources in a fixed priority order (stories first) and
the first hit wins.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, ClassVar, Union

from pydantic import BaseModel
from sqlalchemy import select, func, delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from src.db.comment_tables import CommentReportRow
from src.db.report_tables import StoryReportRow
from src.models import CommentReportOut, StoryReportOut

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoryReportEntry:
    row: StoryReportRow
    type: ClassVar[str] = "story"
    out: ClassVar[type[BaseModel]] = StoryReportOut

    def serialize(self) -> BaseModel:
        return self.out.model_validate(self.row)


@dataclass(frozen=True)
class CommentReportEntry:
    row: CommentReportRow
    type: ClassVar[str] = "comment"
    out: ClassVar[type[BaseModel]] = CommentReportOut

    def serialize(self) -> BaseModel:
        return self.out.model_validate(self.row)


Report = Union[StoryReportEntry, CommentReportEntry]


@dataclass(frozen=True)
class ReportSource:
    """One report table and how to wrap its rows."""
    row_cls: type
    owner: Any  # relationship attribute to eager-load
    wrap: Callable[[Any], Report]

    @property
    def type(self) -> str:
        return self.wrap.type


PROBE_ORDER: tuple[ReportSource, ...] = (
    ReportSource(StoryReportRow, StoryReportRow.story, StoryReportEntry),
    ReportSource(CommentReportRow, CommentReportRow.comment, CommentReportEntry),
)


class ReportNotFound(Exception):
    def __init__(self, report_id: int):
        self.report_id = report_id
        super().__init__(f"Report {report_id} not found")


@dataclass
class ReportListing:
    story_reports: list[StoryReportRow]
    comment_reports: list[CommentReportRow]


class ReportService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_all(self) -> ReportListing:
        """Both report collections side by side, owners loaded."""
        story_reports = await self.session.execute(
            select(StoryReportRow)
            .options(selectinload(StoryReportRow.story))
            .order_by(StoryReportRow.id)
        )
        comment_reports = await self.session.execute(
            select(CommentReportRow)
            .options(selectinload(CommentReportRow.comment))
            .order_by(CommentReportRow.id)
        )
        return ReportListing(
            story_reports=list(story_reports.scalars().all()),
            comment_reports=list(comment_reports.scalars().all()),
        )

    async def find(self, report_id: int) -> Report:
        for source in PROBE_ORDER:
            result = await self.session.execute(
                select(source.row_cls)
                .options(selectinload(source.owner))
                .where(source.row_cls.id == report_id)
            )
            row = result.scalar_one_or_none()
            if row is not None:
                return source.wrap(row)
        raise ReportNotFound(report_id)

    async def delete(self, report_id: int) -> str:
        """Delete the first matching report; returns its type."""
        for source in PROBE_ORDER:
            result = await self.session.execute(
                delete(source.row_cls).where(source.row_cls.id == report_id)
            )
            if result.rowcount:
                await self.session.commit()
                logger.info("Deleted %s report %s", source.type, report_id)
                return source.type
        raise ReportNotFound(report_id)

    async def counts(self) -> dict[str, int]:
        counts = {}
        for source in PROBE_ORDER:
            result = await self.session.execute(select(func.count()).select_from(source.row_cls))
            counts[source.type] = result.scalar() or 0
        return counts
