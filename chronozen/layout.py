"""
Time-grid layout: map an event's start/end time to a vertical pixel span.

    top    = start_minutes / 60 * hour_height
    height = max(duration_minutes / 60 * hour_height, MIN_HEIGHT_PX)

All-day events and events without a start time are not positioned; callers
show them in a separate all-day band. Overlapping events are positioned
independently (no column packing).
"""
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple, Iterable

from .errors import InvalidTimeSpec
from .schema import CalendarEvent, effective_minutes
from .store import week_days

logger = logging.getLogger(__name__)

MIN_HEIGHT_PX = 15
DAY_HOUR_HEIGHT = 50
WEEK_HOUR_HEIGHT = 60


@dataclass(frozen=True)
class Span:
    top: float
    height: float


@dataclass
class DayLayout:
    """One day column: the all-day band plus positioned timed events."""
    date: str
    all_day: List[CalendarEvent] = field(default_factory=list)
    timed: List[Tuple[CalendarEvent, Span]] = field(default_factory=list)


def layout(event: CalendarEvent, hour_height_px: float) -> Optional[Span]:
    """Return the event's span on the grid, or None if it is not time-positioned."""
    try:
        minutes = effective_minutes(event)
    except InvalidTimeSpec as e:
        logger.warning(f"Skipping layout for event {event.id}: {e}")
        return None
    if minutes is None:
        return None

    start, end = minutes
    top = (start / 60) * hour_height_px
    height = ((end - start) / 60) * hour_height_px
    return Span(top=top, height=max(height, MIN_HEIGHT_PX))


def layout_day(events: Iterable[CalendarEvent], day: str,
               hour_height_px: float = DAY_HOUR_HEIGHT) -> DayLayout:
    """Lay out the events falling on ``day``, in the order given."""
    result = DayLayout(date=day)
    for event in events:
        if event.date != day:
            continue
        if event.all_day:
            result.all_day.append(event)
            continue
        span = layout(event, hour_height_px)
        if span is not None:
            result.timed.append((event, span))
    return result


def layout_week(events: Iterable[CalendarEvent], day: str,
                hour_height_px: float = WEEK_HOUR_HEIGHT) -> List[DayLayout]:
    """Seven independent day columns for the Sunday-start week containing ``day``."""
    events = list(events)
    return [layout_day(events, d, hour_height_px) for d in week_days(day)]
