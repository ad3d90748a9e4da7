from __future__ import annotations

from datetime import date

import pytest

from conftest import TODAY, make_record
from leave_pulse.analytics import build_team_insights, build_trends, insight_rows, trend_rows
from leave_pulse.models import Category
from leave_pulse.queries import Period, period_bounds


def seed(database, *records):
    for record in records:
        database.insert_event(record)


@pytest.mark.parametrize(
    ("period", "today", "expected"),
    [
        (Period.WEEK, date(2024, 3, 15), (date(2024, 3, 9), date(2024, 3, 15))),
        (Period.MONTH, date(2024, 2, 10), (date(2024, 2, 1), date(2024, 2, 29))),
        (Period.QUARTER, date(2024, 5, 2), (date(2024, 4, 1), date(2024, 6, 30))),
        (Period.QUARTER, date(2024, 12, 31), (date(2024, 10, 1), date(2024, 12, 31))),
    ],
)
def test_period_bounds(period, today, expected):
    assert period_bounds(period, today) == expected


def test_month_trend_series_counts_each_leave_day(database):
    days = [3, 7, 1, 12]
    seed(
        database,
        *[make_record(f"u{day}", timestamp=f"2024-03-{day:02d}T10:00:00+00:00", is_onleave=True) for day in days],
    )

    report = build_trends(database, Period.MONTH, Category.LEAVE, today=TODAY)

    assert len(report.series) == len(days)
    assert sum(point.count for point in report.series) == len(days)
    assert [point.date.day for point in report.series] == sorted(days)
    assert report.record_count == len(days)


def test_trends_group_by_day_and_category(database):
    seed(
        database,
        make_record("u1", timestamp="2024-03-14T09:00:00+00:00", is_onleave=True),
        make_record("u2", timestamp="2024-03-14T09:10:00+00:00", is_onleave=True),
        make_record("u3", timestamp="2024-03-14T09:20:00+00:00", is_running_late=True),
        make_record("u4", timestamp="2024-03-10T09:20:00+00:00", is_working_from_home=True),
    )

    report = build_trends(database, Period.WEEK, today=TODAY)

    buckets = {(point.date, point.category): point.count for point in report.series}
    assert buckets == {
        (date(2024, 3, 14), Category.LEAVE): 2,
        (date(2024, 3, 14), Category.LATE): 1,
        (date(2024, 3, 10), Category.WFH): 1,
    }
    assert report.series[0].date == date(2024, 3, 10)
    assert report.period_label == "week"


def test_trends_skip_half_day_and_out_of_range(database):
    seed(
        database,
        make_record("u1", timestamp="2024-03-14T09:00:00+00:00", is_on_half_day=True),
        make_record("u2", timestamp="2024-02-28T09:00:00+00:00", is_onleave=True),
    )

    report = build_trends(database, Period.MONTH, today=TODAY)

    assert report.series == []
    assert report.record_count == 0


def test_trend_rows_projection(database):
    seed(database, make_record(timestamp="2024-03-02T09:00:00+00:00", is_leaving_early=True))

    rows = trend_rows(build_trends(database, Period.MONTH, today=TODAY))

    assert rows == [{"Date": "2024-03-02", "Category": "early", "Count": 1}]


def test_team_insights_per_user_and_totals(database):
    seed(
        database,
        make_record("u1", user="asha", timestamp="2024-03-01T09:00:00+00:00", is_onleave=True),
        make_record("u1", user="asha", timestamp="2024-03-05T09:00:00+00:00", is_working_from_home=True),
        make_record("u1", user="asha", timestamp="2024-03-06T09:00:00+00:00", is_running_late=True),
        make_record("u2", user="ben", timestamp="2024-03-07T09:00:00+00:00", is_leaving_early=True),
        make_record("u3", user="cai", timestamp="2024-04-07T09:00:00+00:00", is_onleave=True),
    )

    insights = build_team_insights(database, 3)

    assert [row.user_id for row in insights.per_user] == ["u1", "u2"]
    asha = insights.per_user[0]
    assert (asha.total_events, asha.leave_count, asha.wfh_count, asha.late_count) == (3, 1, 1, 1)
    assert insights.total_events == 4
    assert insights.total_leaves == 1
    assert insights.total_early == 1
    assert insight_rows(insights)[1]["User"] == "ben"


def test_team_insights_year_scoping_is_explicit(database):
    seed(
        database,
        make_record("u1", timestamp="2023-01-10T09:00:00+00:00", is_onleave=True),
        make_record("u1", timestamp="2024-01-10T09:00:00+00:00", is_onleave=True),
    )

    assert build_team_insights(database, 1).total_events == 2
    assert build_team_insights(database, 1, 2024).total_events == 1


def test_team_insights_rejects_bad_month(database):
    with pytest.raises(ValueError):
        build_team_insights(database, 13)


def test_team_insights_ignore_half_day_and_out_of_office_only_users(database):
    seed(
        database,
        make_record("u1", timestamp="2024-03-04T09:00:00+00:00", is_on_half_day=True),
        make_record("u2", timestamp="2024-03-05T09:00:00+00:00", is_out_of_office=True),
        make_record("u3", timestamp="2024-03-06T09:00:00+00:00", is_running_late=True),
    )

    insights = build_team_insights(database, 3)

    assert [row.user_id for row in insights.per_user] == ["u3"]
    assert insights.total_events == 1
