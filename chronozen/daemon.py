"""
Reminder daemon: keeps reminder timers armed while the process runs.

On start it re-arms every stored reminder, then watches the data directory.
When another process (the CLI) changes the stored events, the change is
debounced and the registry is re-synced on the event loop:

    watchdog thread ── call_soon_threadsafe ──▶ loop: debounce ──▶ controller.sync()

All scheduler calls happen on the loop thread. The daemon never prompts for
notification permission; it follows the answer given through the CLI.
"""
import asyncio
import logging
import signal
from pathlib import Path
from typing import Optional

from watchdog.events import (
    EVENT_TYPE_CLOSED,
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

from .clock import AsyncioClock
from .config import Config
from .controller import CalendarController, build_controller, build_medium
from .medium import EVENTS_KEY, SqliteMedium

logger = logging.getLogger(__name__)

# Event types that mean a watched file was written; opens and read-only closes are not
WRITE_EVENTS = {
    EVENT_TYPE_CREATED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MOVED,
    EVENT_TYPE_CLOSED,
}


class DataChangeHandler(FileSystemEventHandler):
    """Forwards writes to the stored events onto the event loop, debounced."""

    def __init__(self, loop: asyncio.AbstractEventLoop, controller: CalendarController,
                 prefix: str, debounce_ms: int = 500):
        self.loop = loop
        self.controller = controller
        self.prefix = prefix
        self.debounce_ms = debounce_ms
        self._pending: Optional[asyncio.TimerHandle] = None

    def _matches(self, path: str) -> bool:
        name = Path(path).name
        # SQLite's shared-memory index changes on reads too
        return name.startswith(self.prefix) and not name.endswith("-shm")

    def on_any_event(self, fs_event):
        if fs_event.is_directory or fs_event.event_type not in WRITE_EVENTS:
            return
        paths = [fs_event.src_path, getattr(fs_event, "dest_path", "") or ""]
        if not any(self._matches(p) for p in paths if p):
            return
        self.loop.call_soon_threadsafe(self.request_sync)

    def request_sync(self):
        """Runs on the loop. Collapses bursts of writes into one sync."""
        if self._pending is not None:
            self._pending.cancel()
        self._pending = self.loop.call_later(self.debounce_ms / 1000, self._sync)

    def _sync(self):
        self._pending = None
        logger.info("Stored events changed; re-syncing reminders")
        self.controller.sync()


async def serve(cfg: Config, stop: Optional[asyncio.Event] = None) -> None:
    """Run until ``stop`` is set (or SIGINT/SIGTERM)."""
    loop = asyncio.get_running_loop()
    medium = build_medium(cfg, persistent=True)
    controller = build_controller(cfg, AsyncioClock(loop), medium=medium, interactive=False)

    armed = controller.startup()
    logger.info(f"chronozen daemon started ({armed} reminder(s) pending)")

    stop = stop or asyncio.Event()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except (NotImplementedError, RuntimeError):
            pass  # Not supported on this platform / thread

    observer = None
    watch_path = medium.watch_path
    if watch_path is not None and Path(watch_path).exists():
        prefix = cfg.db_name if cfg.medium == "sqlite" else EVENTS_KEY
        handler = DataChangeHandler(loop, controller, prefix, cfg.watch_debounce_ms)
        observer = Observer()
        observer.schedule(handler, str(watch_path), recursive=False)
        observer.start()
        logger.info(f"Watching {watch_path} for changes")
    else:
        logger.warning("No watchable data directory; edits from other processes need a restart")

    try:
        await stop.wait()
    finally:
        logger.info("Stopping...")
        for event_id in controller.scheduler.pending_ids():
            controller.scheduler.cancel(event_id)
        if observer is not None:
            observer.stop()
            observer.join()
        if isinstance(medium, SqliteMedium):
            medium.close()


def run(cfg: Config) -> None:
    asyncio.run(serve(cfg))
