from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from datetime import date, datetime

import pytest

from conftest import make_record
from leave_pulse.errors import StorageError
from leave_pulse.models import OutcomeKind, PriorMessageRef
from leave_pulse.queries import EventQuery
from leave_pulse.upsert import UpsertEngine
from leave_pulse.validation import validate


def all_events(database):
    return database.fetch_events(EventQuery())


def test_first_report_creates_record(database):
    outcome = UpsertEngine(database).apply(make_record(is_running_late=True))

    assert outcome.kind is OutcomeKind.CREATED
    assert outcome.record.id is not None
    assert outcome.describe() == "created: running late"
    assert len(all_events(database)) == 1


def test_repeated_report_is_unchanged_duplicate(database):
    engine = UpsertEngine(database)
    engine.apply(make_record(is_onleave=True, text="on leave today"))

    first = engine.apply(make_record(is_onleave=True, text="on leave today", timestamp="2024-03-15T10:00:00+00:00"))
    second = engine.apply(make_record(is_onleave=True, text="on leave today", timestamp="2024-03-15T11:00:00+00:00"))

    assert first.kind is OutcomeKind.UNCHANGED
    assert second.kind is OutcomeKind.UNCHANGED
    assert first.describe() == "duplicate of existing report: on leave today"
    assert len(all_events(database)) == 1


def test_status_change_same_day_updates_in_place(database):
    engine = UpsertEngine(database)
    created = engine.apply(make_record(is_running_late=True, text="running late"))

    outcome = engine.apply(
        make_record(is_onleave=True, text="actually taking the day off", timestamp="2024-03-15T11:00:00+00:00")
    )

    assert outcome.kind is OutcomeKind.UPDATED
    assert outcome.describe() == "updated from running late to on leave"
    stored = all_events(database)
    assert len(stored) == 1
    assert stored[0].id == created.record.id
    assert stored[0].is_onleave is True
    assert stored[0].is_running_late is False
    assert stored[0].original_text == "actually taking the day off"
    assert stored[0].created_at == created.record.created_at


def test_day_window_boundary_creates_two_records(database):
    engine = UpsertEngine(database)
    late_night = validate(
        {"user_id": "u1", "user": "asha", "timestamp": "2024-03-01T23:59:59.999Z", "is_onleave": True}
    ).record
    midnight = validate(
        {"user_id": "u1", "user": "asha", "timestamp": "2024-03-02T00:00:00.000Z", "is_onleave": True}
    ).record

    assert engine.apply(late_night).kind is OutcomeKind.CREATED
    assert engine.apply(midnight).kind is OutcomeKind.CREATED
    assert [record.day for record in all_events(database)] == [date(2024, 3, 1), date(2024, 3, 2)]


def test_leave_day_groups_reports_for_the_same_future_day(database):
    engine = UpsertEngine(database)
    engine.apply(make_record(is_onleave=True, leave_day=date(2024, 3, 20)))

    outcome = engine.apply(
        make_record(is_working_from_home=True, leave_day=date(2024, 3, 20), timestamp="2024-03-16T08:00:00+00:00")
    )

    assert outcome.kind is OutcomeKind.UPDATED
    assert len(all_events(database)) == 1


def test_other_users_are_independent(database):
    engine = UpsertEngine(database)
    engine.apply(make_record("u1", is_onleave=True))

    assert engine.apply(make_record("u2", is_onleave=True)).kind is OutcomeKind.CREATED


def test_edit_retarget_keeps_original_timestamp(database):
    engine = UpsertEngine(database)
    original_ts = datetime.fromisoformat("2024-03-15T09:30:00+00:00")
    engine.apply(make_record(is_running_late=True, text="runing late", timestamp=original_ts.isoformat()))

    outcome = engine.apply(
        make_record(
            is_onleave=True,
            text="on leave tomorrow",
            leave_day=date(2024, 3, 16),
            timestamp="2024-03-15T09:45:00+00:00",
        ),
        edit_of=PriorMessageRef(original_ts, "runing late"),
    )

    assert outcome.kind is OutcomeKind.UPDATED
    stored = all_events(database)
    assert len(stored) == 1
    assert stored[0].timestamp == original_ts
    assert stored[0].leave_day == date(2024, 3, 16)
    assert stored[0].original_text == "on leave tomorrow"


def test_edit_with_same_flags_is_unchanged(database):
    engine = UpsertEngine(database)
    original_ts = datetime.fromisoformat("2024-03-15T09:30:00+00:00")
    engine.apply(make_record(is_working_from_home=True, text="wfh", timestamp=original_ts.isoformat()))

    outcome = engine.apply(
        make_record(is_working_from_home=True, text="WFH today"),
        edit_of=PriorMessageRef(original_ts),
    )

    assert outcome.kind is OutcomeKind.UNCHANGED
    assert all_events(database)[0].original_text == "wfh"


def test_edit_without_prior_record_creates_with_original_timestamp(database):
    original_ts = datetime.fromisoformat("2024-03-14T17:00:00+00:00")

    outcome = UpsertEngine(database).apply(
        make_record(is_leaving_early=True, timestamp="2024-03-15T09:00:00+00:00"),
        edit_of=PriorMessageRef(original_ts),
    )

    assert outcome.kind is OutcomeKind.CREATED
    assert outcome.record.timestamp == original_ts


def test_storage_failure_surfaces_as_storage_error(database, monkeypatch):
    def broken_insert(*args, **kwargs):
        raise StorageError("disk full")

    monkeypatch.setattr(database, "insert_event", broken_insert)

    with pytest.raises(StorageError):
        UpsertEngine(database).apply(make_record(is_onleave=True))
    assert all_events(database) == []


def test_concurrent_reports_for_same_day_store_one_record(database):
    engine = UpsertEngine(database)
    record = make_record(is_working_from_home=True)

    with ThreadPoolExecutor(max_workers=8) as pool:
        outcomes = list(pool.map(lambda _: engine.apply(record), range(8)))

    kinds = [outcome.kind for outcome in outcomes]
    assert kinds.count(OutcomeKind.CREATED) == 1
    assert kinds.count(OutcomeKind.UNCHANGED) == 7
    assert len(all_events(database)) == 1
