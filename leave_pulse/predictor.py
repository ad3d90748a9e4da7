"""Weekday-frequency estimates of a person's upcoming attendance."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, timedelta
from typing import List, Optional

from .models import Category, Confidence, EventRecord, Prediction
from .queries import PREDICTION_CATEGORIES

WEEKDAY_NAMES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")
DEFAULT_HORIZON = timedelta(days=7)


def confidence_for(sample_size: int) -> Confidence:
    if sample_size > 5:
        return Confidence.HIGH
    if sample_size > 2:
        return Confidence.MEDIUM
    return Confidence.LOW


def predict_attendance(
    records: Iterable[EventRecord],
    user_id: str,
    target_date: Optional[date] = None,
    *,
    today: date,
) -> Prediction:
    """Estimate leave, WFH and lateness likelihood for ``target_date``.

    Probabilities are the share of the user's same-weekday history in each
    category, so the same history and date always give the same answer.
    """

    user_id = user_id.lower()
    target = target_date or today + DEFAULT_HORIZON
    history = [
        record
        for record in records
        if record.user_id == user_id and any(record.has(c) for c in PREDICTION_CATEGORIES)
    ]
    same_weekday = [record for record in history if record.timestamp_day.weekday() == target.weekday()]
    sample_size = len(same_weekday)

    probabilities = {}
    for category in PREDICTION_CATEGORIES:
        hits = sum(1 for record in same_weekday if record.has(category))
        probabilities[category.value] = round(100 * hits / sample_size, 2) if sample_size else 0.0

    return Prediction(
        user_id=user_id,
        date=target,
        day_of_week=WEEKDAY_NAMES[target.weekday()],
        probabilities=probabilities,
        confidence=confidence_for(sample_size),
        sample_size=sample_size,
        insights=_insights(history, target),
    )


def _insights(history: List[EventRecord], target: date) -> List[str]:
    insights: List[str] = []
    if target.day <= 7 and any(record.has(Category.LEAVE) for record in history):
        insights.append("Tends to take leave at the start of the month.")
    if target.day >= 25 and any(record.has(Category.WFH) for record in history):
        insights.append("Tends to work from home towards the end of the month.")
    if target.weekday() == 0 and any(record.has(Category.LATE) for record in history):
        insights.append("Has a history of running late on Mondays.")
    return insights


__all__ = ["WEEKDAY_NAMES", "confidence_for", "predict_attendance"]
