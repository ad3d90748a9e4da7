"""Month calendars of who is on leave or working from home."""

from __future__ import annotations

import calendar
from collections.abc import Iterable
from datetime import date

from .models import CalendarDay, Category, EventRecord, TeamCalendar

NO_REASON = "No reason provided"


def build_team_calendar(records: Iterable[EventRecord], month: int, year: int) -> TeamCalendar:
    if not 1 <= month <= 12:
        raise ValueError("month must be between 1 and 12")
    days_in_month = calendar.monthrange(year, month)[1]
    days = [CalendarDay(date=date(year, month, number)) for number in range(1, days_in_month + 1)]

    for record in records:
        day = record.day
        if day.year != year or day.month != month:
            continue
        entry = days[day.day - 1]
        if record.has(Category.LEAVE):
            entry.on_leave.append(
                {"user_id": record.user_id, "user": record.user, "reason": record.reason or NO_REASON}
            )
        if record.has(Category.WFH):
            entry.wfh.append({"user_id": record.user_id, "user": record.user})

    return TeamCalendar(
        month=month,
        year=year,
        month_name=calendar.month_name[month],
        days_in_month=days_in_month,
        calendar=days,
    )


__all__ = ["NO_REASON", "build_team_calendar"]
