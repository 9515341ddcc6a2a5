"""
Entity store: CRUD and date queries for events and todos.

Each collection is one JSON array stored under its own key in a medium
(see medium.py). Every mutation is a full read-modify-write of that array.

Failure policy:
    NotFound            -> raised to the caller (update/delete on unknown id)
    PersistenceFailure  -> logged; the call returns None/False and the
                           previously stored array is left untouched
"""
import json
import logging
import uuid
from dataclasses import replace
from datetime import date as date_cls, timedelta
from typing import Generic, List, Optional, Type, TypeVar, Union, Dict, Any

from .errors import NotFound, PersistenceFailure
from .medium import EVENTS_KEY, TODOS_KEY
from .schema import CalendarEvent, TodoItem, parse_date

logger = logging.getLogger(__name__)

E = TypeVar("E", CalendarEvent, TodoItem)


def new_id() -> str:
    return str(uuid.uuid4())


def week_days(day: Union[str, date_cls]) -> List[str]:
    """The seven YYYY-MM-DD dates of the Sunday-start week containing ``day``."""
    if isinstance(day, str):
        day = parse_date(day)
    # date.weekday(): Monday=0 .. Sunday=6
    sunday = day - timedelta(days=(day.weekday() + 1) % 7)
    return [(sunday + timedelta(days=i)).isoformat() for i in range(7)]


class EntityStore(Generic[E]):
    """Generic store over one entity collection in a key-value medium."""

    kind = "Entity"

    def __init__(self, medium, key: str, entity_cls: Type[E]):
        self.medium = medium
        self.key = key
        self.entity_cls = entity_cls

    # ── Medium I/O ───────────────────────────────────────────────────────────

    def load(self) -> List[E]:
        """Strict read. Raises PersistenceFailure on unreadable or corrupt data."""
        raw = self.medium.read(self.key)
        if raw is None or raw.strip() == "":
            return []
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise PersistenceFailure(f"Corrupt JSON under {self.key}: {e}") from e
        if not isinstance(data, list):
            raise PersistenceFailure(f"Expected a JSON array under {self.key}")
        return [self.entity_cls.from_dict(item) for item in data if isinstance(item, dict)]

    def _save(self, entities: List[E]) -> None:
        try:
            payload = json.dumps([e.to_dict() for e in entities], ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise PersistenceFailure(f"Cannot serialize {self.key}: {e}") from e
        if not self.medium.write(self.key, payload):
            raise PersistenceFailure(f"Write to {self.key} failed")

    # ── Queries ──────────────────────────────────────────────────────────────

    def list(self) -> List[E]:
        """All entities. An unreadable medium is logged and yields []."""
        try:
            return self.load()
        except PersistenceFailure as e:
            logger.error(f"Error reading {self.key}: {e}")
            return []

    def get(self, entity_id: str) -> Optional[E]:
        for entity in self.list():
            if entity.id == entity_id:
                return entity
        return None

    def query_by_date(self, day: str) -> List[E]:
        return [e for e in self.list() if e.date == day]

    def query_by_date_range(self, start: str, end: str) -> List[E]:
        """Entities whose date falls within [start, end], inclusive."""
        return [e for e in self.list() if start <= e.date <= end]

    # ── Mutations ────────────────────────────────────────────────────────────

    def add(self, entity: Union[E, Dict[str, Any]]) -> Optional[E]:
        """Assign a fresh id, append, persist. Returns the stored entity or None."""
        if isinstance(entity, dict):
            entity = self.entity_cls.from_dict(entity)
        stored = replace(entity, id=new_id())
        try:
            entities = self.load()
            entities.append(stored)
            self._save(entities)
        except PersistenceFailure as e:
            logger.error(f"Error adding {self.kind.lower()} {stored.title!r}: {e}")
            return None
        logger.debug(f"Added {self.kind.lower()} {stored.id}")
        return stored

    def update(self, entity: E) -> Optional[E]:
        """Replace the whole record with the same id. Raises NotFound."""
        try:
            entities = self.load()
        except PersistenceFailure as e:
            logger.error(f"Error updating {self.kind.lower()} {entity.id}: {e}")
            return None

        for index, existing in enumerate(entities):
            if existing.id == entity.id:
                break
        else:
            raise NotFound(self.kind, entity.id)

        entities[index] = entity
        try:
            self._save(entities)
        except PersistenceFailure as e:
            logger.error(f"Error updating {self.kind.lower()} {entity.id}: {e}")
            return None
        return entity

    def delete(self, entity_id: str) -> bool:
        """Remove by id. Raises NotFound; returns False on persistence failure."""
        try:
            entities = self.load()
        except PersistenceFailure as e:
            logger.error(f"Error deleting {self.kind.lower()} {entity_id}: {e}")
            return False

        remaining = [e for e in entities if e.id != entity_id]
        if len(remaining) == len(entities):
            raise NotFound(self.kind, entity_id)
        try:
            self._save(remaining)
        except PersistenceFailure as e:
            logger.error(f"Error deleting {self.kind.lower()} {entity_id}: {e}")
            return False
        return True


class EventStore(EntityStore[CalendarEvent]):
    """Calendar events under the ``chronozen_events`` key."""

    kind = "Event"

    def __init__(self, medium, key: str = EVENTS_KEY):
        super().__init__(medium, key, CalendarEvent)

    def for_week(self, day: str) -> List[CalendarEvent]:
        """Events in the Sunday-start week containing ``day``, by start time."""
        days = set(week_days(day))
        events = [e for e in self.list() if e.date in days]
        return sorted(events, key=lambda e: (e.date, e.start_time or ""))

    def for_month(self, year: int, month: int) -> List[CalendarEvent]:
        prefix = f"{year:04d}-{month:02d}-"
        return [e for e in self.list() if e.date.startswith(prefix)]


class TodoStore(EntityStore[TodoItem]):
    """Todo items under the ``chronozen_todos`` key."""

    kind = "Todo"

    def __init__(self, medium, key: str = TODOS_KEY):
        super().__init__(medium, key, TodoItem)

    def add(self, entity: Union[TodoItem, Dict[str, Any]]) -> Optional[TodoItem]:
        if isinstance(entity, dict):
            entity = TodoItem.from_dict({**entity, "completed": False})
        else:
            entity = replace(entity, completed=False)
        return super().add(entity)

    def for_date(self, day: str) -> List[TodoItem]:
        """Todos for one date, sorted alphabetically by title."""
        return sorted(self.query_by_date(day), key=lambda t: t.title.lower())

    def toggle_completion(self, todo_id: str) -> Optional[TodoItem]:
        try:
            todos = self.load()
        except PersistenceFailure as e:
            logger.error(f"Error toggling todo {todo_id}: {e}")
            return None
        todo = next((t for t in todos if t.id == todo_id), None)
        if todo is None:
            raise NotFound(self.kind, todo_id)
        return self.update(replace(todo, completed=not todo.completed))

