# Chronozen: personal calendar, todos, and reminder notifications
#
# Components:
#   schema.py     - Data model (CalendarEvent, TodoItem, PermissionState)
#   medium.py     - Key-value persistence media (SQLite, JSON files, memory)
#   store.py      - Entity store: CRUD and date queries over a medium
#   layout.py     - Time-grid layout (event -> pixel span)
#   clock.py      - Clock/timer capability (asyncio, manual)
#   notify.py     - Notification sinks (log, JSONL, webhook, Telegram)
#   permission.py - Notification permission capability
#   scheduler.py  - Reminder scheduler (one pending timer per event)
#   controller.py - Wires user actions to store + scheduler
#   config.py     - YAML configuration
#   cli.py        - Command line entry point
#   daemon.py     - Long-running reminder process

__version__ = "0.3.0"
