#!/usr/bin/env python3
"""
chronozen: command line entry point

Usage:
    chronozen add-event "Dentist" --date 2024-06-01 --start 14:00 --remind 15
    chronozen add-event "Holiday" --date 2024-06-03 --all-day
    chronozen edit-event <id> --start 15:00 --end 16:00
    chronozen delete-event <id>
    chronozen events --week 2024-06-01
    chronozen day 2024-06-01
    chronozen add-todo "Buy milk" --date 2024-06-01
    chronozen toggle-todo <id>
    chronozen todos --date 2024-06-01
    chronozen permission grant       # allow reminder notifications
    chronozen run                    # reminder daemon, Ctrl+C to stop

Reminders only fire while `chronozen run` is running. Edits made from other
commands are picked up by the daemon automatically.
"""
import argparse
import logging
import sys
from dataclasses import replace
from datetime import datetime
from typing import List, Optional

from .clock import ManualClock
from .config import Config
from .controller import CalendarController, Result, build_controller
from .daemon import run as run_daemon
from .errors import ConfigError, InvalidTimeSpec
from .layout import DayLayout
from .notify import LogSink
from .permission import StoredPermission
from .schema import CalendarEvent, PermissionState, TodoItem, REMINDER_CHOICES, parse_date

LOG_FORMAT = "%(asctime)s [chronozen] %(levelname)s: %(message)s"


def today() -> str:
    return datetime.now().date().isoformat()


def setup_logging(level: str):
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stderr)],
    )


# ── Formatting ───────────────────────────────────────────────────────────────

def format_event(event: CalendarEvent) -> str:
    if event.all_day:
        when = "all day"
    elif event.end_time:
        when = f"{event.start_time}-{event.end_time}"
    else:
        when = event.start_time or "--:--"
    parts = [event.id, event.date, f"{when:<11}", event.title]
    if event.wants_reminder:
        parts.append(f"(🔔 {event.reminder_minutes}m)")
    return "  ".join(parts)


def format_todo(todo: TodoItem) -> str:
    mark = "[x]" if todo.completed else "[ ]"
    return f"{todo.id}  {todo.date}  {mark} {todo.title}"


def format_day(day: DayLayout, todos: List[TodoItem]) -> List[str]:
    lines = [f"── {day.date} " + "─" * 40]
    for event in day.all_day:
        lines.append(f"  all day            {event.title}")
    for event, span in day.timed:
        lines.append(
            f"  {event.start_time:<5} top={span.top:g}px height={span.height:g}px  {event.title}"
        )
    for todo in todos:
        lines.append(f"  {'[x]' if todo.completed else '[ ]'} {todo.title}")
    if len(lines) == 1:
        lines.append("  (nothing scheduled)")
    return lines


def report(result: Result) -> int:
    stream = sys.stdout if result.ok else sys.stderr
    print(f"{result.title}: {result.message}" if result.message else result.title, file=stream)
    return 0 if result.ok else 1


# ── Commands ─────────────────────────────────────────────────────────────────

def cmd_add_event(ctl: CalendarController, args) -> int:
    event = CalendarEvent(
        id="",
        title=args.title,
        date=args.date,
        description=args.description,
        start_time=args.start,
        end_time=args.end,
        all_day=args.all_day,
        reminder_minutes=args.remind,
    )
    return _save_and_report(ctl, event)


def cmd_edit_event(ctl: CalendarController, args) -> int:
    event = ctl.events.get(args.id)
    if event is None:
        print(f"Error: Event not found: {args.id}", file=sys.stderr)
        return 1
    changes = {}
    for name, attr in (("title", "title"), ("date", "date"), ("description", "description"),
                       ("start", "start_time"), ("end", "end_time"), ("remind", "reminder_minutes")):
        value = getattr(args, name)
        if value is not None:
            changes[attr] = value
    if args.all_day is not None:
        changes["all_day"] = args.all_day
    if args.no_remind:
        changes["reminder_minutes"] = None
    if args.no_end:
        changes["end_time"] = None
    return _save_and_report(ctl, replace(event, **changes))


def _save_and_report(ctl: CalendarController, event: CalendarEvent) -> int:
    result = ctl.save_event(event)
    code = report(result)
    if result.ok:
        trigger = ctl.scheduler.trigger_time(result.entity.id)
        if trigger is not None:
            print(f"Reminder at {trigger:%Y-%m-%d %H:%M} (fires while `chronozen run` is active)")
        elif result.entity.wants_reminder:
            print("No reminder armed (time already passed or notifications not allowed)")
        print(f"id: {result.entity.id}")
    return code


def cmd_delete_event(ctl: CalendarController, args) -> int:
    return report(ctl.delete_event(args.id))


def cmd_events(ctl: CalendarController, args) -> int:
    if args.week:
        events = ctl.events.for_week(args.week)
    elif args.month:
        try:
            year, month = (int(p) for p in args.month.split("-"))
        except ValueError:
            print(f"Error: invalid month {args.month!r} (expected YYYY-MM)", file=sys.stderr)
            return 1
        events = ctl.events.for_month(year, month)
    elif args.date:
        events = ctl.events.query_by_date(args.date)
    else:
        events = ctl.events.list()
    for event in sorted(events, key=lambda e: (e.date, e.start_time or "")):
        print(format_event(event))
    if not events:
        print("📅 No events found.")
    return 0


def cmd_day(ctl: CalendarController, args) -> int:
    view = ctl.day_view(args.date)
    print("\n".join(format_day(view.layout, view.todos)))
    return 0


def cmd_week(ctl: CalendarController, args) -> int:
    view = ctl.week_view(args.date)
    for day in view.days:
        print("\n".join(format_day(day, view.todos.get(day.date, []))))
    return 0


def cmd_add_todo(ctl: CalendarController, args) -> int:
    todo = TodoItem(id="", title=args.title, date=args.date, description=args.description)
    result = ctl.save_todo(todo)
    code = report(result)
    if result.ok:
        print(f"id: {result.entity.id}")
    return code


def cmd_toggle_todo(ctl: CalendarController, args) -> int:
    return report(ctl.toggle_todo(args.id))


def cmd_delete_todo(ctl: CalendarController, args) -> int:
    return report(ctl.delete_todo(args.id))


def cmd_todos(ctl: CalendarController, args) -> int:
    todos = ctl.todos.for_date(args.date) if args.date else ctl.todos.list()
    for todo in todos:
        print(format_todo(todo))
    if not todos:
        print("✅ No todos found.")
    return 0


def cmd_permission(ctl: CalendarController, args) -> int:
    permission = ctl.scheduler.permission
    if args.action == "status":
        print(f"Notifications: {permission.query().value}")
        return 0
    if not isinstance(permission, StoredPermission):
        print("Error: notification permission is fixed by the config file", file=sys.stderr)
        return 1
    state = PermissionState.GRANTED if args.action == "grant" else PermissionState.DENIED
    if not permission.store(state):
        print("Error: could not save notification permission", file=sys.stderr)
        return 1
    print(f"Notifications: {state.value}")
    return 0


# ── Argument parsing ─────────────────────────────────────────────────────────

def _date(value: str) -> str:
    try:
        parse_date(value)
    except InvalidTimeSpec as e:
        raise argparse.ArgumentTypeError(str(e))
    return value


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"must be an integer, got: {value!r}")
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be > 0, got: {number}")
    return number


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="chronozen",
        description="Personal calendar and todos with reminder notifications",
    )
    ap.add_argument("--config", default=None, help="Path to chronozen.yaml")
    ap.add_argument("-v", "--verbose", action="store_true", help="Log at INFO on stderr")
    sub = ap.add_subparsers(dest="command", required=True)

    remind_help = "Minutes before start to notify (e.g. " + ", ".join(
        f"{m}={label}" for m, label in REMINDER_CHOICES.items()) + ")"

    p = sub.add_parser("add-event", help="Create an event")
    p.add_argument("title")
    p.add_argument("--date", type=_date, default=today())
    p.add_argument("--start", help="HH:MM (24h)")
    p.add_argument("--end", help="HH:MM (24h)")
    p.add_argument("--all-day", action="store_true")
    p.add_argument("--remind", type=_positive_int, help=remind_help)
    p.add_argument("--description")
    p.set_defaults(func=cmd_add_event)

    p = sub.add_parser("edit-event", help="Change fields of an event")
    p.add_argument("id")
    p.add_argument("--title")
    p.add_argument("--date", type=_date)
    p.add_argument("--start", help="HH:MM (24h)")
    p.add_argument("--end", help="HH:MM (24h)")
    p.add_argument("--no-end", action="store_true", help="Clear the end time")
    p.add_argument("--all-day", dest="all_day", action="store_true", default=None)
    p.add_argument("--timed", dest="all_day", action="store_false", default=None)
    p.add_argument("--remind", type=_positive_int, help=remind_help)
    p.add_argument("--no-remind", action="store_true", help="Remove the reminder")
    p.add_argument("--description")
    p.set_defaults(func=cmd_edit_event)

    p = sub.add_parser("delete-event", help="Delete an event")
    p.add_argument("id")
    p.set_defaults(func=cmd_delete_event)

    p = sub.add_parser("events", help="List events")
    group = p.add_mutually_exclusive_group()
    group.add_argument("--date", type=_date)
    group.add_argument("--week", type=_date, help="Any date in the (Sunday-start) week")
    group.add_argument("--month", help="YYYY-MM")
    p.set_defaults(func=cmd_events)

    p = sub.add_parser("day", help="Day view with time-grid positions")
    p.add_argument("date", nargs="?", type=_date, default=today())
    p.set_defaults(func=cmd_day)

    p = sub.add_parser("week", help="Week view with time-grid positions")
    p.add_argument("date", nargs="?", type=_date, default=today())
    p.set_defaults(func=cmd_week)

    p = sub.add_parser("add-todo", help="Create a todo")
    p.add_argument("title")
    p.add_argument("--date", type=_date, default=today())
    p.add_argument("--description")
    p.set_defaults(func=cmd_add_todo)

    p = sub.add_parser("toggle-todo", help="Mark a todo done / not done")
    p.add_argument("id")
    p.set_defaults(func=cmd_toggle_todo)

    p = sub.add_parser("delete-todo", help="Delete a todo")
    p.add_argument("id")
    p.set_defaults(func=cmd_delete_todo)

    p = sub.add_parser("todos", help="List todos")
    p.add_argument("--date", type=_date)
    p.set_defaults(func=cmd_todos)

    p = sub.add_parser("permission", help="Allow or refuse reminder notifications")
    p.add_argument("action", choices=("grant", "deny", "status"))
    p.set_defaults(func=cmd_permission)

    sub.add_parser("run", help="Run the reminder daemon")
    return ap


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        cfg = Config.load(args.config)
    except ConfigError as e:
        print(f"Config error: {e}", file=sys.stderr)
        return 2

    if args.command == "run":
        setup_logging(cfg.log_level)
        try:
            run_daemon(cfg)
        except ConfigError as e:
            print(f"Config error: {e}", file=sys.stderr)
            return 2
        return 0

    setup_logging("INFO" if args.verbose else "WARNING")
    try:
        # One-shot commands never wait for timers; the clock only supplies "now"
        ctl = build_controller(cfg, ManualClock(datetime.now()), sink=LogSink())
    except ConfigError as e:
        print(f"Config error: {e}", file=sys.stderr)
        return 2
    return args.func(ctl, args)


if __name__ == "__main__":
    sys.exit(main())
