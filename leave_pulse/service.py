"""Core orchestration logic for Leave Pulse."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional

import httpx

from .analytics import build_team_insights, build_trends, insight_rows, trend_rows
from .classifier import MessageClassifier
from .config import Settings
from .db import Database
from .errors import ClassificationError, ExportError, StorageError
from .export import SlackCsvExporter
from .models import Category, PriorMessageRef, UpsertOutcome, UserContext
from .predictor import predict_attendance
from .queries import Period, calendar_query, records_query, user_history_query
from .slack_client import SlackApiError, SlackClient
from .team_calendar import build_team_calendar
from .upsert import UpsertEngine
from .validation import validate

logger = logging.getLogger(__name__)

STORAGE_FAILURE_REPLY = "Sorry, I couldn't save that update. Please try again in a moment."


class AbsenceService:
    """High-level service that records chat reports and exposes query helpers."""

    def __init__(
        self,
        settings: Settings,
        database: Database,
        client: SlackClient,
        classifier: MessageClassifier,
        exporter: Optional[SlackCsvExporter] = None,
        *,
        today: Optional[Callable[[], date]] = None,
    ) -> None:
        self.settings = settings
        self.database = database
        self.client = client
        self.classifier = classifier
        self.exporter = exporter
        self.engine = UpsertEngine(database)
        self._today = today or (lambda: datetime.now(timezone.utc).date())

    # region Intake
    async def handle_message(
        self,
        user_id: str,
        text: str,
        ts: str,
        *,
        display_name: Optional[str] = None,
        edit_of: Optional[PriorMessageRef] = None,
    ) -> Optional[UpsertOutcome]:
        """Classify, validate and store one chat message.

        Returns None when the message is not a usable attendance report.
        Storage failures propagate as :class:`StorageError`.
        """

        timestamp = slack_ts_to_datetime(ts)
        name = display_name or await self._display_name(user_id)
        try:
            candidate = await self.classifier.classify(UserContext(user_id, name), text, timestamp)
        except ClassificationError as exc:
            logger.info("Dropping message %s from %s: %s", ts, user_id, exc)
            return None

        candidate = {**candidate, "user_id": user_id, "user": name, "original_text": text}
        if not candidate.get("timestamp"):
            candidate["timestamp"] = timestamp
        result = validate(candidate)
        record = result.record
        if record is None or not result.ok:
            logger.info("Dropping message %s from %s: invalid fields %s", ts, user_id, result.fields)
            return None
        if not record.categories():
            logger.debug("Message %s from %s is not an attendance report", ts, user_id)
            return None
        return self.engine.apply(record, edit_of)

    async def handle_slack_event(self, event: Dict[str, Any]) -> Optional[str]:
        """Process a Slack ``message`` event and reply in the message thread."""

        if event.get("type") != "message" or event.get("bot_id"):
            return None
        subtype = event.get("subtype")
        channel = event.get("channel")
        edit_of: Optional[PriorMessageRef] = None
        if subtype == "message_changed":
            message = event.get("message", {})
            previous = event.get("previous_message", {})
            if message.get("bot_id"):
                return None
            original_ts = message.get("ts") or previous.get("ts")
            if not original_ts:
                return None
            edit_of = PriorMessageRef(slack_ts_to_datetime(original_ts), previous.get("text"))
        elif subtype:
            return None
        else:
            message = event

        user_id = message.get("user")
        text = (message.get("text") or "").strip()
        ts = message.get("ts")
        if not user_id or not text or not ts:
            return None

        try:
            outcome = await self.handle_message(user_id, text, ts, edit_of=edit_of)
        except StorageError as exc:
            logger.error("Could not store report %s from %s: %s", ts, user_id, exc)
            reply = STORAGE_FAILURE_REPLY
        else:
            if outcome is None:
                return None
            reply = outcome.describe()

        if channel:
            try:
                await self.client.post_message(channel, reply, thread_ts=ts)
            except (SlackApiError, httpx.HTTPError) as exc:
                logger.warning("Could not reply in %s: %s", channel, exc)
        return reply

    async def _display_name(self, user_id: str) -> str:
        try:
            return await self.client.display_name(user_id)
        except (SlackApiError, httpx.HTTPError) as exc:
            logger.warning("Could not resolve Slack name for %s: %s", user_id, exc)
            return user_id

    # endregion

    # region Query helpers
    def get_attendance_records(self, user_id: Optional[str] = None, kind: str = "all") -> List[Dict[str, Any]]:
        return [record.to_dict() for record in self.database.fetch_events(records_query(user_id, kind))]

    async def get_trends(
        self,
        period: str = "month",
        category: Optional[str] = None,
        destination: Optional[str] = None,
    ) -> Dict[str, Any]:
        report = build_trends(
            self.database,
            Period.parse(period),
            Category.parse(category) if category else None,
            today=self._today(),
        )
        destination = destination or self.settings.report_channel_id
        if destination:
            await self._export(destination, f"Attendance trends {report.period_label}", trend_rows(report))
        return report.to_dict()

    async def get_team_insights(
        self,
        month: Optional[int] = None,
        year: Optional[int] = None,
        destination: Optional[str] = None,
    ) -> Dict[str, Any]:
        today = self._today()
        month = month if month is not None else today.month
        if year is None and self.settings.insights_year_scoped:
            year = today.year
        insights = build_team_insights(self.database, month, year)
        destination = destination or self.settings.report_channel_id
        if destination:
            await self._export(destination, f"Team insights {month:02d}", insight_rows(insights))
        return insights.to_dict()

    def predict(self, user_id: str, target_date: Optional[date] = None) -> Dict[str, Any]:
        history = self.database.fetch_events(user_history_query(user_id))
        return predict_attendance(history, user_id, target_date, today=self._today()).to_dict()

    def get_team_calendar(self, month: Optional[int] = None, year: Optional[int] = None) -> Dict[str, Any]:
        today = self._today()
        month = month if month is not None else today.month
        year = year if year is not None else today.year
        records = self.database.fetch_events(calendar_query(month, year))
        return build_team_calendar(records, month, year).to_dict()

    async def _export(self, destination: str, title: str, rows: List[Dict[str, Any]]) -> None:
        if self.exporter is None:
            logger.warning("Export to %s requested but no exporter is configured", destination)
            return
        try:
            await self.exporter.export(destination, title, rows)
        except ExportError as exc:
            logger.warning("Export failed: %s", exc)

    # endregion


def slack_ts_to_datetime(ts: str) -> datetime:
    return datetime.fromtimestamp(float(ts), tz=timezone.utc)


def build_service(settings: Settings) -> AbsenceService:
    """Construct the service and every client it depends on."""

    database = Database(settings.database_path)
    client = SlackClient(settings.slack_bot_token)
    classifier = MessageClassifier(
        settings.openai_api_key,
        model=settings.openai_model,
        base_url=settings.openai_base_url,
        office_start=settings.office_start,
        office_end=settings.office_end,
    )
    return AbsenceService(settings, database, client, classifier, SlackCsvExporter(client))


__all__ = ["AbsenceService", "build_service", "slack_ts_to_datetime", "STORAGE_FAILURE_REPLY"]
