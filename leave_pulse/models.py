"""Dataclasses representing Leave Pulse domain models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class Category(str, Enum):
    """Trackable attendance categories, declared in display precedence order."""

    WFH = "wfh"
    LEAVE = "leave"
    EARLY = "early"
    LATE = "late"
    OUT_OF_OFFICE = "ooo"
    HALF_DAY = "half_day"

    @property
    def flag(self) -> str:
        return CATEGORY_FLAGS[self]

    @property
    def label(self) -> str:
        return CATEGORY_LABELS[self]

    @classmethod
    def parse(cls, value: str) -> "Category":
        """Resolve a category from its value or its flag column name."""

        normalized = value.strip().lower()
        for category in cls:
            if normalized in (category.value, category.flag):
                return category
        raise ValueError(
            f"unknown category {value!r}; expected one of: "
            + ", ".join(category.value for category in cls)
        )


CATEGORY_FLAGS: Dict[Category, str] = {
    Category.WFH: "is_working_from_home",
    Category.LEAVE: "is_onleave",
    Category.EARLY: "is_leaving_early",
    Category.LATE: "is_running_late",
    Category.OUT_OF_OFFICE: "is_out_of_office",
    Category.HALF_DAY: "is_on_half_day",
}

CATEGORY_LABELS: Dict[Category, str] = {
    Category.WFH: "working from home",
    Category.LEAVE: "on leave",
    Category.EARLY: "leaving early",
    Category.LATE: "running late",
    Category.OUT_OF_OFFICE: "out of office",
    Category.HALF_DAY: "on half day",
}

# Display precedence only; storage keeps every flag independently.
STATUS_PRECEDENCE: Tuple[Category, ...] = tuple(Category)
FLAG_FIELDS: Tuple[str, ...] = tuple(category.flag for category in STATUS_PRECEDENCE)
UNKNOWN_STATUS = "unknown"


@dataclass(slots=True)
class EventRecord:
    """One person's attendance status claim for one occasion."""

    user_id: str
    user: str
    timestamp: datetime
    original_text: str = ""
    leave_day: Optional[date] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    reason: Optional[str] = None
    is_working_from_home: bool = False
    is_onleave: bool = False
    is_leaving_early: bool = False
    is_running_late: bool = False
    is_out_of_office: bool = False
    is_on_half_day: bool = False
    id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def day(self) -> date:
        """The calendar day the report applies to (upsert day window key)."""

        return self.leave_day or self.timestamp.date()

    @property
    def timestamp_day(self) -> date:
        return self.timestamp.date()

    def flags(self) -> Tuple[bool, ...]:
        return tuple(bool(getattr(self, name)) for name in FLAG_FIELDS)

    def has(self, category: Category) -> bool:
        return bool(getattr(self, category.flag))

    def categories(self) -> List[Category]:
        return [category for category in STATUS_PRECEDENCE if self.has(category)]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "user": self.user,
            "original_text": self.original_text,
            "timestamp": self.timestamp.isoformat(),
            "leave_day": _iso(self.leave_day),
            "start_time": _iso(self.start_time),
            "end_time": _iso(self.end_time),
            "reason": self.reason,
            **{name: bool(getattr(self, name)) for name in FLAG_FIELDS},
            "status": status_label(self),
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


def status_label(record: EventRecord) -> str:
    """Return the single human label for a record using display precedence."""

    for category in STATUS_PRECEDENCE:
        if record.has(category):
            return category.label
    return UNKNOWN_STATUS


@dataclass(slots=True, frozen=True)
class UserContext:
    id: str
    display_name: str


@dataclass(slots=True, frozen=True)
class PriorMessageRef:
    """Identity of a chat message that was edited after it was recorded."""

    timestamp: datetime
    text: Optional[str] = None


class OutcomeKind(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"


@dataclass(slots=True)
class UpsertOutcome:
    kind: OutcomeKind
    record: EventRecord
    previous: Optional[EventRecord] = None

    def describe(self) -> str:
        """Short status string suitable for a chat reply."""

        if self.kind is OutcomeKind.CREATED:
            return f"created: {status_label(self.record)}"
        if self.kind is OutcomeKind.UPDATED and self.previous is not None:
            return f"updated from {status_label(self.previous)} to {status_label(self.record)}"
        existing = self.previous or self.record
        return f"duplicate of existing report: {existing.original_text}"


@dataclass(slots=True)
class TrendPoint:
    date: date
    category: Category
    count: int

    def to_dict(self) -> Dict[str, Any]:
        return {"date": self.date.isoformat(), "category": self.category.value, "count": self.count}


@dataclass(slots=True)
class TrendReport:
    period_label: str
    start: date
    end: date
    series: List[TrendPoint] = field(default_factory=list)
    record_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "period": self.period_label,
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "series": [point.to_dict() for point in self.series],
            "record_count": self.record_count,
        }


@dataclass(slots=True)
class UserInsight:
    user_id: str
    user_name: str
    total_events: int
    leave_count: int
    wfh_count: int
    late_count: int
    early_count: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "user_name": self.user_name,
            "total_events": self.total_events,
            "leave_count": self.leave_count,
            "wfh_count": self.wfh_count,
            "late_count": self.late_count,
            "early_count": self.early_count,
        }


@dataclass(slots=True)
class TeamInsights:
    month: int
    year: Optional[int]
    total_events: int
    total_leaves: int
    total_wfh: int
    total_late: int
    total_early: int
    per_user: List[UserInsight] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "month": self.month,
            "year": self.year,
            "total_events": self.total_events,
            "total_leaves": self.total_leaves,
            "total_wfh": self.total_wfh,
            "total_late": self.total_late,
            "total_early": self.total_early,
            "per_user": [row.to_dict() for row in self.per_user],
        }


class Confidence(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


@dataclass(slots=True)
class Prediction:
    user_id: str
    date: date
    day_of_week: str
    probabilities: Dict[str, float]
    confidence: Confidence
    sample_size: int
    insights: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "date": self.date.isoformat(),
            "day_of_week": self.day_of_week,
            "probabilities": dict(self.probabilities),
            "confidence": self.confidence.value,
            "sample_size": self.sample_size,
            "insights": list(self.insights),
        }


@dataclass(slots=True)
class CalendarDay:
    date: date
    on_leave: List[Dict[str, str]] = field(default_factory=list)
    wfh: List[Dict[str, str]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"date": self.date.isoformat(), "on_leave": list(self.on_leave), "wfh": list(self.wfh)}


@dataclass(slots=True)
class TeamCalendar:
    month: int
    year: int
    month_name: str
    days_in_month: int
    calendar: List[CalendarDay] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "month": self.month,
            "year": self.year,
            "month_name": self.month_name,
            "days_in_month": self.days_in_month,
            "calendar": [day.to_dict() for day in self.calendar],
        }


def _iso(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value is not None else None


__all__ = [
    "Category",
    "CATEGORY_FLAGS",
    "CATEGORY_LABELS",
    "STATUS_PRECEDENCE",
    "FLAG_FIELDS",
    "UNKNOWN_STATUS",
    "EventRecord",
    "status_label",
    "UserContext",
    "PriorMessageRef",
    "OutcomeKind",
    "UpsertOutcome",
    "TrendPoint",
    "TrendReport",
    "UserInsight",
    "TeamInsights",
    "Confidence",
    "Prediction",
    "CalendarDay",
    "TeamCalendar",
]
