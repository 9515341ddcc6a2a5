"""
Key-value persistence media for the entity store.

Each medium stores opaque strings under string keys:

    read(key)         -> str | None      (None = key never written)
    write(key, value) -> bool            (False = nothing was changed)

read() raises PersistenceFailure when the medium itself cannot be read.
write() never leaves a partially written value behind.
"""
import logging
import os
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Dict

from .errors import PersistenceFailure

logger = logging.getLogger(__name__)

EVENTS_KEY = "chronozen_events"
TODOS_KEY = "chronozen_todos"
PERMISSION_KEY = "chronozen_notification_permission"


def _connect(db_path: str) -> sqlite3.Connection:
    """Open a connection in WAL mode."""
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode = WAL")
    return conn


class SqliteMedium:
    """
    SQLite-backed medium: one row per key in the kv_store table.

    With ``persistent=True`` one connection is kept open for the life of the
    medium. The reminder daemon uses this so its reads do not create and
    remove the -wal/-shm files in the directory it watches.
    """

    def __init__(self, db_path: str = None, persistent: bool = False):
        if db_path is None:
            db_path = str(Path.home() / ".local" / "share" / "chronozen" / "chronozen.db")
        self.db_path = db_path
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._conn: Optional[sqlite3.Connection] = _connect(db_path) if persistent else None
        self._init_schema()

    def _connection(self) -> sqlite3.Connection:
        return self._conn if self._conn is not None else _connect(self.db_path)

    def close(self):
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def _init_schema(self):
        with self._connection() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS kv_store (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)
            conn.commit()

    def read(self, key: str) -> Optional[str]:
        try:
            with self._connection() as conn:
                row = conn.execute(
                    "SELECT value FROM kv_store WHERE key = ?", (key,)
                ).fetchone()
        except sqlite3.Error as e:
            raise PersistenceFailure(f"Cannot read {key} from {self.db_path}: {e}") from e
        return row["value"] if row else None

    def write(self, key: str, value: str) -> bool:
        now = datetime.now(timezone.utc).isoformat()
        try:
            # The connection context manager rolls back on error
            with self._connection() as conn:
                conn.execute("""
                    INSERT INTO kv_store (key, value, updated_at)
                    VALUES (?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET value=excluded.value, updated_at=excluded.updated_at
                """, (key, value, now))
                conn.commit()
            return True
        except sqlite3.Error as e:
            logger.error(f"Failed to write {key} to {self.db_path}: {e}")
            return False

    @property
    def watch_path(self) -> Path:
        return Path(self.db_path).parent


class JsonFileMedium:
    """One ``<key>.json`` file per key inside a directory."""

    def __init__(self, directory: str):
        self.directory = Path(directory).expanduser()
        self.directory.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def read(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except OSError as e:
            raise PersistenceFailure(f"Cannot read {path}: {e}") from e

    def write(self, key: str, value: str) -> bool:
        path = self._path(key)
        # Atomic write: write to temp, then rename
        tmp_file = path.with_suffix(".json.tmp")
        try:
            with open(tmp_file, "w", encoding="utf-8") as f:
                f.write(value)
            os.replace(tmp_file, path)
            return True
        except OSError as e:
            logger.error(f"Failed to write {path}: {e}")
            tmp_file.unlink(missing_ok=True)
            return False

    @property
    def watch_path(self) -> Path:
        return self.directory


class MemoryMedium:
    """Dict-backed medium for tests and dry runs."""

    def __init__(self, initial: Dict[str, str] = None):
        self.data: Dict[str, str] = dict(initial or {})
        self.fail_writes = False
        self.fail_reads = False
        self.writes = 0

    def read(self, key: str) -> Optional[str]:
        if self.fail_reads:
            raise PersistenceFailure(f"Simulated read failure for {key}")
        return self.data.get(key)

    def write(self, key: str, value: str) -> bool:
        if self.fail_writes:
            logger.error(f"Simulated write failure for {key}")
            return False
        self.data[key] = value
        self.writes += 1
        return True

    @property
    def watch_path(self) -> Optional[Path]:
        return None
