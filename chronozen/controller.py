"""
Application controller: connects user actions to the entity stores and the
reminder scheduler.

Every event mutation is followed by the matching scheduler call so the
reminder registry never goes stale:

    save_event   -> store add/update -> scheduler.schedule(saved)
    delete_event -> store delete     -> scheduler.cancel(id)

Store and validation errors are turned into a Result carrying a
user-visible message; nothing here raises into the caller's UI loop.
"""
import logging
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List

from .errors import NotFound, PersistenceFailure, ValidationError
from .layout import DayLayout, layout_day, layout_week, DAY_HOUR_HEIGHT, WEEK_HOUR_HEIGHT
from .medium import JsonFileMedium, SqliteMedium
from .notify import build_sink
from .permission import StaticPermission, StoredPermission, terminal_prompt
from .scheduler import ReminderScheduler
from .schema import CalendarEvent, TodoItem, PermissionState, validate_event, validate_todo
from .store import EventStore, TodoStore, week_days

logger = logging.getLogger(__name__)


@dataclass
class Result:
    """Outcome of a user action, with a message fit to show the user."""
    ok: bool
    title: str
    message: str = ""
    entity: Any = None


@dataclass
class DayView:
    date: str
    layout: DayLayout
    todos: List[TodoItem] = field(default_factory=list)


@dataclass
class WeekView:
    days: List[DayLayout]
    todos: Dict[str, List[TodoItem]] = field(default_factory=dict)


@dataclass
class MonthView:
    year: int
    month: int
    events: Dict[str, List[CalendarEvent]] = field(default_factory=dict)
    todos: Dict[str, List[TodoItem]] = field(default_factory=dict)


class CalendarController:
    """Owns no state of its own; the stores and the scheduler do."""

    def __init__(
        self,
        events: EventStore,
        todos: TodoStore,
        scheduler: ReminderScheduler,
        day_hour_height: int = DAY_HOUR_HEIGHT,
        week_hour_height: int = WEEK_HOUR_HEIGHT,
    ):
        self.events = events
        self.todos = todos
        self.scheduler = scheduler
        self.day_hour_height = day_hour_height
        self.week_hour_height = week_hour_height

    # ── Lifecycle ────────────────────────────────────────────────────────────

    def startup(self) -> int:
        """Re-arm reminders for every stored event. Call once per process."""
        return self.scheduler.reschedule_all(self.events.list())

    def sync(self) -> int:
        """
        Bring the registry in line with the stored events after an outside
        change (another process edited the data). Timers for events that no
        longer exist are cancelled; everything else is rescheduled. The
        notification permission is re-read, since the CLI may have granted it.
        """
        try:
            stored = self.events.load()
        except PersistenceFailure as e:
            logger.error(f"Skipping reminder sync, events unreadable: {e}")
            return len(self.scheduler.pending_ids())
        self.scheduler.refresh_permission()
        ids = {e.id for e in stored}
        for event_id in self.scheduler.pending_ids():
            if event_id not in ids:
                self.scheduler.cancel(event_id)
        return self.scheduler.reschedule_all(stored)

    # ── Events ───────────────────────────────────────────────────────────────

    def save_event(self, event: CalendarEvent) -> Result:
        """Create (unknown id) or update (known id) an event, then reschedule it."""
        if event.all_day:
            event = replace(event, start_time=None, end_time=None, reminder_minutes=None)
        try:
            validate_event(event)
        except ValidationError as e:
            return Result(False, "Invalid Event", str(e))

        existing = self.events.get(event.id) if event.id else None
        try:
            if existing is None:
                saved = self.events.add(event)
                created = True
            else:
                saved = self.events.update(event)
                created = False
        except NotFound as e:
            return Result(False, "Error Saving Event", str(e))

        if saved is None:
            return Result(False, "Error Saving Event", "Could not save the event.")

        self.scheduler.schedule(saved)
        if created:
            return Result(True, "Event Created", f'"{saved.title}" has been added.', saved)
        return Result(True, "Event Updated", f'"{saved.title}" has been updated.', saved)

    def delete_event(self, event_id: str) -> Result:
        existing = self.events.get(event_id)
        try:
            deleted = self.events.delete(event_id)
        except NotFound as e:
            return Result(False, "Error Deleting Event", str(e))
        if not deleted:
            return Result(False, "Error Deleting Event", "Could not delete the event.")

        self.scheduler.cancel(event_id)
        title = existing.title if existing else event_id
        return Result(True, "Event Deleted", f'"{title}" has been deleted.')

    # ── Todos ────────────────────────────────────────────────────────────────

    def save_todo(self, todo: TodoItem) -> Result:
        try:
            validate_todo(todo)
        except ValidationError as e:
            return Result(False, "Invalid Todo", str(e))

        existing = self.todos.get(todo.id) if todo.id else None
        try:
            if existing is None:
                saved = self.todos.add(todo)
                created = True
            else:
                saved = self.todos.update(todo)
                created = False
        except NotFound as e:
            return Result(False, "Error Saving Todo", str(e))

        if saved is None:
            return Result(False, "Error Saving Todo", "Could not save the todo.")
        verb = "added" if created else "updated"
        return Result(True, "Todo Created" if created else "Todo Updated",
                      f'"{saved.title}" has been {verb}.', saved)

    def toggle_todo(self, todo_id: str) -> Result:
        try:
            saved = self.todos.toggle_completion(todo_id)
        except NotFound as e:
            return Result(False, "Error Updating Todo", str(e))
        if saved is None:
            return Result(False, "Error Updating Todo", "Could not update the todo.")
        state = "completed" if saved.completed else "reopened"
        return Result(True, "Todo Updated", f'"{saved.title}" {state}.', saved)

    def delete_todo(self, todo_id: str) -> Result:
        existing = self.todos.get(todo_id)
        try:
            deleted = self.todos.delete(todo_id)
        except NotFound as e:
            return Result(False, "Error Deleting Todo", str(e))
        if not deleted:
            return Result(False, "Error Deleting Todo", "Could not delete the todo.")
        title = existing.title if existing else todo_id
        return Result(True, "Todo Deleted", f'"{title}" has been deleted.')

    # ── Views ────────────────────────────────────────────────────────────────

    def day_view(self, day: str) -> DayView:
        return DayView(
            date=day,
            layout=layout_day(self.events.query_by_date(day), day, self.day_hour_height),
            todos=self.todos.for_date(day),
        )

    def week_view(self, day: str) -> WeekView:
        days = week_days(day)
        todos = {d: [] for d in days}
        for todo in sorted(self.todos.query_by_date_range(days[0], days[-1]),
                           key=lambda t: t.title.lower()):
            todos[todo.date].append(todo)
        return WeekView(
            days=layout_week(self.events.for_week(day), day, self.week_hour_height),
            todos=todos,
        )

    def month_view(self, year: int, month: int) -> MonthView:
        view = MonthView(year=year, month=month)
        for event in sorted(self.events.for_month(year, month),
                            key=lambda e: (e.date, e.start_time or "")):
            view.events.setdefault(event.date, []).append(event)
        prefix = f"{year:04d}-{month:02d}-"
        for todo in self.todos.list():
            if todo.date.startswith(prefix):
                view.todos.setdefault(todo.date, []).append(todo)
        return view


def build_medium(cfg, persistent: bool = False):
    """Open the store medium named in the config."""
    if cfg.medium == "json":
        return JsonFileMedium(cfg.data_dir)
    return SqliteMedium(cfg.db_path, persistent=persistent)


def build_controller(cfg, clock, medium=None, sink=None, permission=None,
                     interactive: bool = True) -> CalendarController:
    """
    Wire stores, scheduler, and capabilities from config. Explicit args win.

    With ``interactive=False`` a ``permission: prompt`` config never asks;
    an unanswered permission counts as denied until it is stored.
    """
    if medium is None:
        medium = build_medium(cfg)
    if sink is None:
        sink = build_sink(cfg)
    if permission is None:
        if cfg.permission == "prompt":
            permission = StoredPermission(medium, prompt=terminal_prompt if interactive else None)
        else:
            permission = StaticPermission(PermissionState.from_str(cfg.permission))
    scheduler = ReminderScheduler(clock, sink, permission)
    return CalendarController(
        EventStore(medium),
        TodoStore(medium),
        scheduler,
        day_hour_height=cfg.day_hour_height,
        week_hour_height=cfg.week_hour_height,
    )
