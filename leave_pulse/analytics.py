"""Trend and team-insight aggregations over the event store."""

from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Optional

from .db import Database
from .models import Category, TeamInsights, TrendPoint, TrendReport
from .queries import Period, insights_query, period_bounds, trend_query


def build_trends(
    database: Database,
    period: Period,
    category: Optional[Category] = None,
    *,
    today: date,
) -> TrendReport:
    """Count events per day and category over a week, month or quarter.

    Without a category every trend category is counted; an event carrying
    two flags lands in both buckets.
    """

    start, end = period_bounds(period, today)
    query = trend_query(period, today, category)
    series = [
        TrendPoint(date=day, category=bucket, count=total)
        for day, bucket, total in database.count_by_day(query)
    ]
    series.sort(key=lambda point: point.date)
    return TrendReport(
        period_label=period.value,
        start=start,
        end=end,
        series=series,
        record_count=database.count_events(query),
    )


def build_team_insights(database: Database, month: int, year: Optional[int] = None) -> TeamInsights:
    """Per-user and team-wide counts for a month.

    When ``year`` is None the month matches in every year.
    """

    per_user = database.summarize_by_user(insights_query(month, year))
    return TeamInsights(
        month=month,
        year=year,
        total_events=sum(row.total_events for row in per_user),
        total_leaves=sum(row.leave_count for row in per_user),
        total_wfh=sum(row.wfh_count for row in per_user),
        total_late=sum(row.late_count for row in per_user),
        total_early=sum(row.early_count for row in per_user),
        per_user=per_user,
    )


def trend_rows(report: TrendReport) -> List[Dict[str, Any]]:
    """Tabular projection of a trend report for export."""

    return [
        {"Date": point.date.isoformat(), "Category": point.category.value, "Count": point.count}
        for point in report.series
    ]


def insight_rows(insights: TeamInsights) -> List[Dict[str, Any]]:
    """Tabular projection of team insights for export."""

    return [
        {
            "User ID": row.user_id,
            "User": row.user_name,
            "Total Events": row.total_events,
            "Leaves": row.leave_count,
            "WFH": row.wfh_count,
            "Late": row.late_count,
            "Early": row.early_count,
        }
        for row in insights.per_user
    ]


__all__ = ["build_trends", "build_team_insights", "trend_rows", "insight_rows"]
