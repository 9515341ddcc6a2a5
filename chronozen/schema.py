"""
Calendar event and todo schema.

Both entities are stored as plain JSON objects using the camelCase field
names below. Optional fields are omitted when absent; readers treat missing
fields as absent/false.

    CalendarEvent: id, title, description?, date, startTime?, endTime?,
                   allDay, reminderMinutes?
    TodoItem:      id, title, date, completed, description?
"""
import re
from enum import Enum
from dataclasses import dataclass
from datetime import date as date_cls, datetime, time as time_cls
from typing import Optional, Dict, Any, Tuple

from .errors import InvalidTimeSpec, ValidationError

DEFAULT_DURATION_MINUTES = 60

_TIME_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")

# Reminder offsets offered by the CLI (minutes before start -> label)
REMINDER_CHOICES = {
    5: "5 minutes before",
    15: "15 minutes before",
    30: "30 minutes before",
    60: "1 hour before",
    1440: "1 day before",
}


class PermissionState(Enum):
    """Notification permission, as reported by the permission capability."""
    UNKNOWN = "unknown"
    GRANTED = "granted"
    DENIED = "denied"

    @classmethod
    def from_str(cls, value: Optional[str]) -> "PermissionState":
        try:
            return cls[(value or "").strip().upper()]
        except KeyError:
            return cls.UNKNOWN


# ── Date/time helpers ────────────────────────────────────────────────────────

def parse_hhmm(value: str) -> Tuple[int, int]:
    """Parse a 24h ``HH:MM`` string into (hour, minute)."""
    match = _TIME_RE.match(value or "")
    if not match:
        raise InvalidTimeSpec(f"Invalid time (expected HH:MM): {value!r}")
    return int(match.group(1)), int(match.group(2))


def parse_date(value: str) -> date_cls:
    """Parse a ``YYYY-MM-DD`` string."""
    try:
        return datetime.strptime(value or "", "%Y-%m-%d").date()
    except ValueError:
        raise InvalidTimeSpec(f"Invalid date (expected YYYY-MM-DD): {value!r}")


def combine(day: str, time: str) -> datetime:
    """Combine a date and a time string into a naive local datetime."""
    hour, minute = parse_hhmm(time)
    return datetime.combine(parse_date(day), time_cls(hour, minute))


def minutes_of_day(time: str) -> int:
    hour, minute = parse_hhmm(time)
    return hour * 60 + minute


# ── Entities ─────────────────────────────────────────────────────────────────

@dataclass
class CalendarEvent:
    """A calendar entry, either all-day or positioned at a time of day."""

    id: str
    title: str
    date: str                               # YYYY-MM-DD, local
    description: Optional[str] = None
    start_time: Optional[str] = None        # HH:MM, 24h
    end_time: Optional[str] = None          # HH:MM, 24h
    all_day: bool = False
    reminder_minutes: Optional[int] = None  # minutes before start

    @property
    def is_timed(self) -> bool:
        return not self.all_day and bool(self.start_time)

    @property
    def wants_reminder(self) -> bool:
        return self.is_timed and bool(self.reminder_minutes) and self.reminder_minutes > 0

    def to_dict(self) -> Dict[str, Any]:
        """Serialize using the persisted field names, omitting absent optionals."""
        data: Dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "date": self.date,
            "allDay": self.all_day,
        }
        if self.description:
            data["description"] = self.description
        if self.start_time:
            data["startTime"] = self.start_time
        if self.end_time:
            data["endTime"] = self.end_time
        if self.reminder_minutes is not None:
            data["reminderMinutes"] = self.reminder_minutes
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CalendarEvent":
        """Deserialize, tolerating missing optional fields and null values."""
        reminder = data.get("reminderMinutes")
        if reminder is not None:
            try:
                reminder = int(reminder)
            except (TypeError, ValueError):
                reminder = None
        return cls(
            id=data.get("id", ""),
            title=data.get("title", ""),
            date=data.get("date", ""),
            description=data.get("description") or None,
            start_time=data.get("startTime") or None,
            end_time=data.get("endTime") or None,
            all_day=bool(data.get("allDay", False)),
            reminder_minutes=reminder,
        )


@dataclass
class TodoItem:
    """A dated todo. No time of day, never reminded."""

    id: str
    title: str
    date: str
    completed: bool = False
    description: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "date": self.date,
            "completed": self.completed,
        }
        if self.description:
            data["description"] = self.description
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TodoItem":
        return cls(
            id=data.get("id", ""),
            title=data.get("title", ""),
            date=data.get("date", ""),
            completed=bool(data.get("completed", False)),
            description=data.get("description") or None,
        )


def effective_minutes(event: CalendarEvent) -> Optional[Tuple[int, int]]:
    """
    Return (start, end) in minutes from midnight, or None for untimed events.

    An end time that is missing or not strictly after the start is replaced
    by start + 60 minutes. Raises InvalidTimeSpec on malformed times.
    """
    if not event.is_timed:
        return None
    start = minutes_of_day(event.start_time)
    end = start + DEFAULT_DURATION_MINUTES
    if event.end_time:
        candidate = minutes_of_day(event.end_time)
        if candidate > start:
            end = candidate
    return start, end


def validate_event(event: CalendarEvent) -> None:
    """
    Check user input for an event before it is saved.

    Raises:
        ValidationError with a user-friendly message on failure.
    """
    if not (event.title or "").strip():
        raise ValidationError("Title is required")
    try:
        parse_date(event.date)
    except InvalidTimeSpec as e:
        raise ValidationError(str(e))

    if event.all_day:
        return

    if not event.start_time:
        raise ValidationError("Start time is required if not all day")
    try:
        start = minutes_of_day(event.start_time)
        end = minutes_of_day(event.end_time) if event.end_time else None
    except InvalidTimeSpec as e:
        raise ValidationError(str(e))
    if end is not None and end <= start:
        raise ValidationError("End time must be after start time")
    if event.reminder_minutes is not None and event.reminder_minutes <= 0:
        raise ValidationError("Reminder minutes must be positive")


def validate_todo(todo: TodoItem) -> None:
    if not (todo.title or "").strip():
        raise ValidationError("Title is required")
    try:
        parse_date(todo.date)
    except InvalidTimeSpec as e:
        raise ValidationError(str(e))
