from __future__ import annotations

from datetime import date

import pytest

from conftest import make_record
from leave_pulse.team_calendar import NO_REASON, build_team_calendar


def test_leap_year_february_has_every_day():
    result = build_team_calendar([], 2, 2024)

    assert result.days_in_month == 29
    assert result.month_name == "February"
    assert len(result.calendar) == 29
    assert all(day.on_leave == [] and day.wfh == [] for day in result.calendar)
    assert result.calendar[-1].date == date(2024, 2, 29)


def test_leave_and_wfh_are_placed_on_their_day():
    records = [
        make_record("u1", user="asha", timestamp="2024-02-05T09:00:00+00:00", is_onleave=True, reason="doctor"),
        make_record("u2", user="ben", timestamp="2024-02-05T09:05:00+00:00", is_working_from_home=True),
        make_record(
            "u3",
            user="cai",
            timestamp="2024-02-01T09:00:00+00:00",
            is_onleave=True,
            leave_day=date(2024, 2, 12),
        ),
        make_record("u4", timestamp="2024-02-05T09:00:00+00:00", is_running_late=True),
    ]

    result = build_team_calendar(records, 2, 2024)

    fifth = result.calendar[4]
    assert fifth.on_leave == [{"user_id": "u1", "user": "asha", "reason": "doctor"}]
    assert fifth.wfh == [{"user_id": "u2", "user": "ben"}]
    assert result.calendar[11].on_leave == [{"user_id": "u3", "user": "cai", "reason": NO_REASON}]
    assert result.calendar[0].on_leave == []


def test_records_outside_the_month_are_ignored():
    records = [make_record(timestamp="2024-03-01T09:00:00+00:00", is_onleave=True)]

    result = build_team_calendar(records, 2, 2024)

    assert all(not day.on_leave for day in result.calendar)


def test_invalid_month_is_rejected():
    with pytest.raises(ValueError):
        build_team_calendar([], 0, 2024)
