"""Validation of classifier candidates before they become Event Records."""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, List, Optional

from .errors import FieldError, ValidationError
from .models import Category, EventRecord, FLAG_FIELDS

_DATE_ONLY = re.compile(r"^\d{4}-\d{2}-\d{2}$")


@dataclass(slots=True)
class ValidationResult:
    """Outcome of :func:`validate`: a record, or every field that failed."""

    record: Optional[EventRecord] = None
    errors: List[FieldError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.record is not None and not self.errors

    @property
    def fields(self) -> List[str]:
        return [error.field for error in self.errors]

    def raise_for_errors(self) -> EventRecord:
        if self.record is None or self.errors:
            raise ValidationError(self.errors)
        return self.record


def validate(
    candidate: Mapping[str, Any],
    *,
    reason_required_for: Iterable[Category] = (),
) -> ValidationResult:
    """Check a raw candidate against the Event Record schema.

    Malformed input is reported through the returned result, never raised.
    ``user_id`` and ``user`` are lower-cased so grouping is case-insensitive.
    """

    if not isinstance(candidate, Mapping):
        return ValidationResult(errors=[FieldError("candidate", "must be a mapping")])

    errors: List[FieldError] = []

    user_id = _required_text(candidate, "user_id", errors)
    user = _required_text(candidate, "user", errors)

    timestamp: Optional[datetime] = None
    raw_timestamp = candidate.get("timestamp")
    if _blank(raw_timestamp):
        errors.append(FieldError("timestamp", "is required"))
    else:
        timestamp = _parse_timestamp("timestamp", raw_timestamp, errors)

    leave_day = _parse_day("leave_day", candidate.get("leave_day"), errors)
    start_time = _parse_optional_datetime("start_time", candidate.get("start_time"), errors)
    end_time = _parse_optional_datetime("end_time", candidate.get("end_time"), errors)

    flags = {}
    for name in FLAG_FIELDS:
        value = candidate.get(name)
        if value is None:
            flags[name] = False
        elif isinstance(value, bool):
            flags[name] = value
        else:
            errors.append(FieldError(name, "must be a boolean"))

    reason = candidate.get("reason")
    if reason is not None and not isinstance(reason, str):
        errors.append(FieldError("reason", "must be a string"))
        reason = None
    reason = reason.strip() if reason else None
    required = {Category(category) for category in reason_required_for}
    if not reason and any(flags.get(category.flag) for category in required):
        errors.append(FieldError("reason", "is required for this category"))

    if (
        flags.get("is_out_of_office")
        and start_time is not None
        and end_time is not None
        and end_time <= start_time
    ):
        errors.append(FieldError("end_time", "must be after start_time"))

    original_text = candidate.get("original_text") or ""
    if not isinstance(original_text, str):
        errors.append(FieldError("original_text", "must be a string"))

    if errors or user_id is None or user is None or timestamp is None:
        return ValidationResult(errors=errors)

    record = EventRecord(
        user_id=user_id.lower(),
        user=user.lower(),
        timestamp=timestamp,
        original_text=original_text,
        leave_day=leave_day,
        start_time=start_time,
        end_time=end_time,
        reason=reason,
        **flags,
    )
    return ValidationResult(record=record)


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _required_text(candidate: Mapping[str, Any], name: str, errors: List[FieldError]) -> Optional[str]:
    value = candidate.get(name)
    if _blank(value):
        errors.append(FieldError(name, "is required"))
        return None
    if not isinstance(value, str):
        errors.append(FieldError(name, "must be a string"))
        return None
    return value.strip()


def _aware(value: datetime) -> datetime:
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


def _parse_timestamp(name: str, value: Any, errors: List[FieldError]) -> Optional[datetime]:
    if isinstance(value, datetime):
        return _aware(value)
    if isinstance(value, str):
        text = value.strip()
        if _DATE_ONLY.match(text):
            errors.append(FieldError(name, "must include a time component"))
            return None
        try:
            return _aware(datetime.fromisoformat(text))
        except ValueError:
            errors.append(FieldError(name, f"invalid ISO-8601 datetime: {value!r}"))
            return None
    errors.append(FieldError(name, "must be an ISO-8601 datetime"))
    return None


def _parse_optional_datetime(name: str, value: Any, errors: List[FieldError]) -> Optional[datetime]:
    if _blank(value):
        return None
    if isinstance(value, datetime):
        return _aware(value)
    if isinstance(value, str):
        try:
            return _aware(datetime.fromisoformat(value.strip()))
        except ValueError:
            errors.append(FieldError(name, f"invalid ISO-8601 datetime: {value!r}"))
            return None
    errors.append(FieldError(name, "must be an ISO-8601 datetime"))
    return None


def _parse_day(name: str, value: Any, errors: List[FieldError]) -> Optional[date]:
    if _blank(value):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            if _DATE_ONLY.match(text):
                return date.fromisoformat(text)
            return datetime.fromisoformat(text).date()
        except ValueError:
            errors.append(FieldError(name, f"invalid date: {value!r}"))
            return None
    errors.append(FieldError(name, "must be an ISO-8601 date"))
    return None


__all__ = ["ValidationResult", "validate"]
