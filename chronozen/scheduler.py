"""
Reminder scheduler: one pending one-shot timer per event id.

Per event id:

    unscheduled ──schedule──▶ pending ──fire──▶ fired (entry removed)
         ▲                      │  ▲
         └──cancel / edit-out───┘  └── edit with new time (cancel + re-arm)

The registry is derived state. It is rebuilt from the stored events with
reschedule_all() at startup; nothing here is persisted.

Malformed dates/times and permission denial are not errors: the event simply
gets no timer, and the failure is logged. One bad event never prevents the
others from being scheduled.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .errors import InvalidTimeSpec
from .schema import CalendarEvent, PermissionState, combine

logger = logging.getLogger(__name__)


@dataclass
class PendingReminder:
    """One armed timer in the registry."""
    event_id: str
    trigger: datetime
    handle: Any


def build_notification(event: CalendarEvent) -> Tuple[str, str]:
    """Title and body shown when an event's reminder fires."""
    title = f"Reminder: {event.title}"
    body = f"Starts at {event.start_time} on {event.date}"
    if event.end_time:
        body += f", ends {event.end_time}"
    if event.description:
        body += f"\n{event.description}"
    return title, body


class ReminderScheduler:
    """
    Arms reminder timers on a clock and shows them through a sink.

    Capabilities are injected so tests can drive a virtual clock:
        clock       - now(), after(delay_ms, cb), cancel(handle)
        sink        - show(title, body, tag)
        permission  - query(), request()
    """

    def __init__(self, clock, sink, permission):
        self.clock = clock
        self.sink = sink
        self.permission = permission
        self._registry: Dict[str, PendingReminder] = {}
        self._permission_state: Optional[PermissionState] = None
        # Refused without a stored answer (no one to ask); cleared by refresh_permission()
        self._session_denied = False
        self._denial_reported = False

    # ── Permission ───────────────────────────────────────────────────────────

    @property
    def permission_state(self) -> PermissionState:
        if self._permission_state is None:
            self._permission_state = self.permission.query()
        return self._permission_state

    def request_permission(self) -> bool:
        """
        Ensure notification permission. Prompts at most once per session:
        granted/denied answers are returned without asking again.

        A refusal that was not stored (nobody could be asked) is kept apart
        from a stored answer so that refresh_permission() can pick up an
        answer given later by another process.
        """
        state = self.permission_state
        if state == PermissionState.GRANTED:
            return True
        if state == PermissionState.DENIED or self._session_denied:
            return False

        state = self.permission.request()
        logger.info(f"Notification permission: {state.value}")
        if state == PermissionState.GRANTED or self.permission.query() == state:
            self._permission_state = state
        else:
            self._session_denied = True
        return state == PermissionState.GRANTED

    def refresh_permission(self) -> None:
        """Forget the cached permission so the next schedule() re-reads it."""
        self._permission_state = None
        self._session_denied = False

    # ── Registry operations ──────────────────────────────────────────────────

    def schedule(self, event: CalendarEvent) -> bool:
        """
        (Re)compute the reminder for an event. Returns True if a timer is armed.

        Any existing timer for the event id is cancelled first, so there is
        at most one pending reminder per event.
        """
        if not event.wants_reminder:
            self.cancel(event.id)
            return False

        try:
            start = combine(event.date, event.start_time)
        except InvalidTimeSpec as e:
            logger.warning(f"Cannot schedule reminder for event {event.id}: {e}")
            self.cancel(event.id)
            return False

        trigger = start - timedelta(minutes=event.reminder_minutes)
        now = self.clock.now()
        if trigger <= now:
            logger.debug(f"Reminder for event {event.id} at {trigger} already passed")
            self.cancel(event.id)
            return False

        if not self.request_permission():
            self.cancel(event.id)
            if not self._denial_reported:
                logger.warning("Notification permission denied; reminders are not armed until it is granted")
                self._denial_reported = True
            return False

        self.cancel(event.id)
        delay_ms = (trigger - now).total_seconds() * 1000
        pending = PendingReminder(event_id=event.id, trigger=trigger, handle=None)
        pending.handle = self.clock.after(delay_ms, lambda: self._fire(event, pending))
        self._registry[event.id] = pending
        logger.info(f"Reminder for {event.title!r} ({event.id}) armed for {trigger:%Y-%m-%d %H:%M}")
        return True

    def cancel(self, event_id: str) -> None:
        """Stop the pending timer for an event, if any. Safe on unknown ids."""
        pending = self._registry.pop(event_id, None)
        if pending is None:
            return
        self.clock.cancel(pending.handle)
        logger.debug(f"Reminder for event {event_id} cancelled")

    def reschedule_all(self, events: Iterable[CalendarEvent]) -> int:
        """Schedule every event (startup recovery). Returns the number armed."""
        armed = 0
        for event in events:
            try:
                if self.schedule(event):
                    armed += 1
            except Exception as e:
                logger.error(f"Error scheduling reminder for event {getattr(event, 'id', '?')}: {e}")
        logger.info(f"{armed} reminder(s) pending")
        return armed

    def _fire(self, event: CalendarEvent, pending: PendingReminder) -> None:
        # A superseded timer must not fire
        if self._registry.get(event.id) is not pending:
            return
        del self._registry[event.id]

        title, body = build_notification(event)
        try:
            self.sink.show(title, body, event.id)
        except Exception as e:
            logger.error(f"Failed to show reminder for event {event.id}: {e}")
            return
        logger.info(f"Reminder fired for {event.title!r} ({event.id})")

    # ── Introspection ────────────────────────────────────────────────────────

    def is_pending(self, event_id: str) -> bool:
        return event_id in self._registry

    def pending_ids(self) -> List[str]:
        return list(self._registry)

    def trigger_time(self, event_id: str) -> Optional[datetime]:
        pending = self._registry.get(event_id)
        return pending.trigger if pending else None
