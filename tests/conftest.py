"""Shared fixtures and fakes for the Leave Pulse test suite."""

from __future__ import annotations

from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

from leave_pulse.config import Settings
from leave_pulse.db import Database
from leave_pulse.errors import ExportError
from leave_pulse.models import EventRecord, UserContext
from leave_pulse.service import AbsenceService

TODAY = date(2024, 3, 15)


def make_record(
    user_id: str = "u1",
    *,
    timestamp: str = "2024-03-15T09:30:00+00:00",
    user: Optional[str] = None,
    text: str = "",
    **fields: Any,
) -> EventRecord:
    return EventRecord(
        user_id=user_id,
        user=user or user_id,
        timestamp=datetime.fromisoformat(timestamp),
        original_text=text,
        **fields,
    )


class FakeClassifier:
    def __init__(self, result: Optional[Dict[str, Any]] = None, error: Optional[Exception] = None) -> None:
        self.result = result or {}
        self.error = error
        self.calls: List[Dict[str, Any]] = []

    async def classify(self, user: UserContext, text: str, timestamp: datetime) -> Dict[str, Any]:
        self.calls.append({"user": user, "text": text, "timestamp": timestamp})
        if self.error is not None:
            raise self.error
        return dict(self.result)

    async def close(self) -> None:
        pass


class FakeSlackClient:
    def __init__(self, names: Optional[Dict[str, str]] = None) -> None:
        self.names = names or {}
        self.posted: List[Dict[str, Any]] = []
        self.uploads: List[Dict[str, Any]] = []

    async def display_name(self, user_id: str) -> str:
        return self.names.get(user_id, user_id)

    async def post_message(self, channel: str, text: str, *, thread_ts: Optional[str] = None) -> Dict[str, Any]:
        self.posted.append({"channel": channel, "text": text, "thread_ts": thread_ts})
        return {"ok": True}

    async def close(self) -> None:
        pass


class FakeExporter:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.exports: List[Dict[str, Any]] = []

    async def export(self, destination: str, title: str, rows) -> bool:
        if self.fail:
            raise ExportError("upload failed")
        self.exports.append({"destination": destination, "title": title, "rows": list(rows)})
        return True


@pytest.fixture
def database(tmp_path: Path) -> Database:
    return Database(tmp_path / "events.db")


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        slack_bot_token="xoxb-test",
        slack_signing_secret="signing-secret",
        api_key="secret-key",
        openai_api_key="sk-test",
        database_path=tmp_path / "events.db",
    )


@pytest.fixture
def classifier() -> FakeClassifier:
    return FakeClassifier()


@pytest.fixture
def slack() -> FakeSlackClient:
    return FakeSlackClient({"U1": "Asha", "U2": "Ben"})


@pytest.fixture
def exporter() -> FakeExporter:
    return FakeExporter()


@pytest.fixture
def service(settings, database, slack, classifier, exporter) -> AbsenceService:
    return AbsenceService(settings, database, slack, classifier, exporter, today=lambda: TODAY)
