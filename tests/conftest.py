"""Shared test fixtures for chronozen tests."""

from datetime import datetime

import pytest

from chronozen.clock import ManualClock
from chronozen.controller import CalendarController
from chronozen.medium import MemoryMedium
from chronozen.permission import StaticPermission
from chronozen.scheduler import ReminderScheduler
from chronozen.schema import CalendarEvent, PermissionState
from chronozen.store import EventStore, TodoStore


class RecordingSink:
    """Collects shown notifications as (title, body, tag) tuples."""

    def __init__(self):
        self.shown = []

    def show(self, title, body, tag):
        self.shown.append((title, body, tag))


class CountingPermission:
    """Permission stub that answers request() with a fixed state and counts prompts."""

    def __init__(self, answer, initial=PermissionState.UNKNOWN):
        self.answer = answer
        self.state = initial
        self.requests = 0

    def query(self):
        return self.state

    def request(self):
        self.requests += 1
        self.state = self.answer
        return self.answer


def make_event(**overrides):
    fields = dict(
        id="evt-1",
        title="Dentist",
        date="2024-06-01",
        start_time="14:00",
        end_time="15:00",
        reminder_minutes=15,
    )
    fields.update(overrides)
    return CalendarEvent(**fields)


@pytest.fixture
def clock():
    return ManualClock(datetime(2024, 6, 1, 13, 0))


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def granted():
    return StaticPermission(PermissionState.GRANTED)


@pytest.fixture
def scheduler(clock, sink, granted):
    return ReminderScheduler(clock, sink, granted)


@pytest.fixture
def medium():
    return MemoryMedium()


@pytest.fixture
def controller(medium, scheduler):
    return CalendarController(EventStore(medium), TodoStore(medium), scheduler)
