"""MCP server exposing Leave Pulse attendance tools."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from mcp.server.fastmcp import FastMCP

from .service import AbsenceService


def _ensure_date(day_str: Optional[str] = None):
    if not day_str:
        return None
    try:
        return datetime.strptime(day_str, "%Y-%m-%d").date()
    except ValueError as exc:
        raise ValueError("Invalid date format. Use YYYY-MM-DD.") from exc


def create_mcp(service: AbsenceService) -> FastMCP:
    mcp = FastMCP("leave-pulse")

    @mcp.tool()
    async def get_attendance(user_id: Optional[str] = None, filter: str = "all") -> dict:
        """Return attendance records (leave, wfh, late or all) for a user or the whole team."""

        records = service.get_attendance_records(user_id, filter)
        return {"filter": filter, "records": records}

    @mcp.tool()
    async def get_trends(
        period: str = "month",
        category: Optional[str] = None,
        channel_id: Optional[str] = None,
    ) -> dict:
        """Return daily attendance counts for the week, month or quarter.

        Pass a channel_id to also receive the series as a CSV file in Slack.
        """

        return await service.get_trends(period, category, channel_id)

    @mcp.tool()
    async def get_team_insights(
        month: Optional[int] = None,
        year: Optional[int] = None,
        channel_id: Optional[str] = None,
    ) -> dict:
        """Return per-person and team totals of leave, WFH, late and early events for a month."""

        return await service.get_team_insights(month, year, channel_id)

    @mcp.tool()
    async def predict_attendance(user_id: str, date: Optional[str] = None) -> dict:
        """Estimate leave, WFH and lateness likelihood for a user on a date (default: a week from now)."""

        return service.predict(user_id, _ensure_date(date))

    @mcp.tool()
    async def get_team_calendar(month: Optional[int] = None, year: Optional[int] = None) -> dict:
        """Return who is on leave or working from home on each day of a month."""

        return service.get_team_calendar(month, year)

    return mcp


__all__ = ["create_mcp"]
