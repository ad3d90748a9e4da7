"""Immutable filter specifications for reading the event store."""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum
from typing import Optional, Tuple

from .models import Category

TREND_CATEGORIES: Tuple[Category, ...] = (
    Category.LEAVE,
    Category.WFH,
    Category.LATE,
    Category.EARLY,
)
INSIGHT_CATEGORIES: Tuple[Category, ...] = (
    Category.LEAVE,
    Category.WFH,
    Category.LATE,
    Category.EARLY,
)
PREDICTION_CATEGORIES: Tuple[Category, ...] = (Category.LEAVE, Category.WFH, Category.LATE)
CALENDAR_CATEGORIES: Tuple[Category, ...] = (Category.LEAVE, Category.WFH)
RECORD_FILTERS = {
    "leave": (Category.LEAVE,),
    "wfh": (Category.WFH,),
    "late": (Category.LATE,),
    "all": (Category.LEAVE, Category.WFH, Category.LATE),
}


class Period(str, Enum):
    WEEK = "week"
    MONTH = "month"
    QUARTER = "quarter"

    @classmethod
    def parse(cls, value: str) -> "Period":
        try:
            return cls(value.strip().lower())
        except ValueError as exc:
            raise ValueError("period must be one of: week, month, quarter") from exc


class DateField(str, Enum):
    """Which stored day a query's date bounds apply to."""

    TIMESTAMP = "timestamp_day"
    DAY = "day"


@dataclass(frozen=True, slots=True)
class EventQuery:
    """A read filter; every set attribute narrows the result."""

    user_id: Optional[str] = None
    start: Optional[date] = None
    end: Optional[date] = None
    date_field: DateField = DateField.TIMESTAMP
    month: Optional[int] = None
    year: Optional[int] = None
    categories: Tuple[Category, ...] = ()


def period_bounds(period: Period, today: date) -> Tuple[date, date]:
    """Resolve a reporting period to inclusive dates anchored on ``today``."""

    if period is Period.WEEK:
        return today - timedelta(days=6), today
    if period is Period.MONTH:
        return month_bounds(today.year, today.month)
    first_month = ((today.month - 1) // 3) * 3 + 1
    start, _ = month_bounds(today.year, first_month)
    _, end = month_bounds(today.year, first_month + 2)
    return start, end


def month_bounds(year: int, month: int) -> Tuple[date, date]:
    if not 1 <= month <= 12:
        raise ValueError("month must be between 1 and 12")
    days = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, days)


def trend_query(period: Period, today: date, category: Optional[Category] = None) -> EventQuery:
    start, end = period_bounds(period, today)
    categories = (category,) if category is not None else TREND_CATEGORIES
    return EventQuery(start=start, end=end, categories=categories)


def insights_query(month: int, year: Optional[int] = None) -> EventQuery:
    if not 1 <= month <= 12:
        raise ValueError("month must be between 1 and 12")
    return EventQuery(month=month, year=year, categories=INSIGHT_CATEGORIES)


def user_history_query(user_id: str) -> EventQuery:
    return EventQuery(user_id=user_id.lower(), categories=PREDICTION_CATEGORIES)


def calendar_query(month: int, year: int) -> EventQuery:
    start, end = month_bounds(year, month)
    return EventQuery(start=start, end=end, date_field=DateField.DAY, categories=CALENDAR_CATEGORIES)


def records_query(user_id: Optional[str] = None, kind: str = "all") -> EventQuery:
    """Filter for raw record lookups by ``leave``, ``wfh``, ``late`` or ``all``."""

    try:
        categories = RECORD_FILTERS[kind.strip().lower()]
    except KeyError as exc:
        raise ValueError("filter must be one of: " + ", ".join(RECORD_FILTERS)) from exc
    return EventQuery(user_id=user_id.lower() if user_id else None, categories=categories)


__all__ = [
    "TREND_CATEGORIES",
    "INSIGHT_CATEGORIES",
    "PREDICTION_CATEGORIES",
    "CALENDAR_CATEGORIES",
    "RECORD_FILTERS",
    "Period",
    "DateField",
    "EventQuery",
    "period_bounds",
    "month_bounds",
    "trend_query",
    "insights_query",
    "user_history_query",
    "calendar_query",
    "records_query",
]
