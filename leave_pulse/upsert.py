"""Insert-or-update-or-skip decisions for incoming attendance reports."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Optional

from .db import Database
from .errors import StorageError
from .models import EventRecord, OutcomeKind, PriorMessageRef, UpsertOutcome

logger = logging.getLogger(__name__)


class UpsertEngine:
    """Collapses reports to one Event Record per user per day.

    A new message is matched against the user's record for the same day
    (``leave_day`` when stated, otherwise the timestamp's date). An edited
    chat message is matched against the user's most recent record whatever
    its day, and keeps the original message timestamp.
    """

    def __init__(self, database: Database) -> None:
        self.database = database

    def apply(self, record: EventRecord, edit_of: Optional[PriorMessageRef] = None) -> UpsertOutcome:
        if edit_of is not None:
            record = replace(record, timestamp=edit_of.timestamp)

        with self.database.transaction() as conn:
            if edit_of is None:
                existing = self.database.find_event_for_day(record.user_id, record.day, conn=conn)
            else:
                existing = self.database.find_latest_event_for_user(record.user_id, conn=conn)

            if existing is None:
                stored = self.database.insert_event(record, conn=conn)
                outcome = UpsertOutcome(OutcomeKind.CREATED, stored)
            elif existing.flags() == record.flags():
                outcome = UpsertOutcome(OutcomeKind.UNCHANGED, existing, previous=existing)
            else:
                if existing.id is None:
                    raise StorageError(f"stored event for {record.user_id} has no id")
                stored = self.database.update_event(existing.id, record, conn=conn)
                outcome = UpsertOutcome(OutcomeKind.UPDATED, stored, previous=existing)

        logger.info(
            "Upsert for %s on %s (%s): %s",
            record.user_id,
            record.day.isoformat(),
            "edit" if edit_of is not None else "new",
            outcome.kind.value,
        )
        return outcome


__all__ = ["UpsertEngine"]
