"""Reports API — one logical resource over story reports and comment reports.

Reports are filed through /stories/{story}/report and /comments/{comment}/report;
this router lists, looks up and deletes them.
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.engine import get_session
from src.models import StoryReportOut, CommentReportOut
from src.services.reports import ReportNotFound, ReportService

router = APIRouter(prefix="/reports", tags=["reports"])

_DELETED_MESSAGES = {
    "story": "Story report deleted",
    "comment": "Comment report deleted",
}


@router.get("")
async def list_reports(session: AsyncSession = Depends(get_session)):
    """All story reports and all comment reports, side by side."""
    listing = await ReportService(session).list_all()
    return {
        "reports_stories": [StoryReportOut.model_validate(r) for r in listing.story_reports],
        "comment_reports": [CommentReportOut.model_validate(r) for r in listing.comment_reports],
    }


@router.get("/{report_id}")
async def show_report(report_id: int, session: AsyncSession = Depends(get_session)):
    """Look up a report id; story reports win when both tables hold it."""
    try:
        entry = await ReportService(session).find(report_id)
    except ReportNotFound:
        raise HTTPException(404, "Report not found")
    return {"report": entry.serialize(), "type": entry.type}


@router.api_route("/{report_id}", methods=["PUT", "PATCH"])
async def update_report(report_id: int):
    raise HTTPException(501, "Updating reports is not supported")


@router.delete("/{report_id}")
async def delete_report(report_id: int, session: AsyncSession = Depends(get_session)):
    try:
        report_type = await ReportService(session).delete(report_id)
    except ReportNotFound:
        raise HTTPException(404, "Report not found")
    return {"message": _DELETED_MESSAGES[report_type], "type": report_type}
