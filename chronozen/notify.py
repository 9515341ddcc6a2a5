"""
Notification sinks: where fired reminders are shown.

Every sink implements ``show(title, body, tag)``. ``tag`` is the event id;
showing a second notification with the same tag replaces the first where the
destination supports it. Sinks never raise: delivery problems are logged.

    LogSink      - log line at INFO (default, and the fallback of last resort)
    JsonlSink    - append one JSON line per notification to a local file
    WebhookSink  - POST JSON to an HTTP endpoint, JSONL fallback on failure
    TelegramSink - message a Telegram chat, deleting the previous message
                   sent for the same tag
"""
import asyncio
import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional, Set

import requests
from telegram import Bot
from telegram.error import TelegramError

from .errors import ConfigError

logger = logging.getLogger(__name__)


def utc_now() -> str:
    """ISO-8601 UTC timestamp."""
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


class LogSink:
    """Writes reminders to the log."""

    def show(self, title: str, body: str, tag: str) -> None:
        logger.info(f"🔔 {title} | {body.replace(chr(10), ' / ')} [{tag}]")


class JsonlSink:
    """Appends reminders to a JSONL file."""

    def __init__(self, path: str):
        self.path = Path(path).expanduser()

    def show(self, title: str, body: str, tag: str) -> None:
        entry = {"ts": utc_now(), "tag": tag, "title": title, "body": body}
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "a", encoding="utf-8") as f:
                f.write(json.dumps(entry, ensure_ascii=False) + "\n")
        except OSError as e:
            logger.error(f"JSONL write error ({self.path}): {e}")


class WebhookSink:
    """POSTs ``{title, body, tag}`` to a URL; falls back to JSONL if given."""

    def __init__(self, url: str, fallback: Optional[JsonlSink] = None, timeout: float = 2):
        self.url = url
        self.fallback = fallback
        self.timeout = timeout

    def show(self, title: str, body: str, tag: str) -> None:
        payload = json.dumps({"title": title, "body": body, "tag": tag})
        try:
            r = requests.post(
                self.url,
                data=payload,
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
            )
            if r.ok:
                logger.debug(f"Reminder {tag} → {self.url}")
                return
            logger.warning(f"Webhook {self.url} returned {r.status_code} for {tag}")
        except requests.RequestException as e:
            logger.warning(f"Webhook {self.url} unreachable: {e}")

        if self.fallback is not None:
            self.fallback.show(title, body, tag)


class TelegramSink:
    """
    Sends reminders to one Telegram chat.

    Sending is asynchronous: show() schedules the delivery on the running
    event loop (the reminder daemon's loop). Outside a loop it blocks until
    the message is sent.
    """

    def __init__(self, token: str, chat_id: str, bot: Optional[Bot] = None):
        self.bot = bot or Bot(token)
        self.chat_id = chat_id
        # tag -> message_id of the last message sent for that tag
        self._messages: Dict[str, int] = {}
        self._tasks: Set[asyncio.Task] = set()

    def show(self, title: str, body: str, tag: str) -> None:
        coro = self._send(title, body, tag)
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            asyncio.run(coro)
            return
        task = loop.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _send(self, title: str, body: str, tag: str) -> None:
        previous = self._messages.pop(tag, None)
        if previous is not None:
            try:
                await self.bot.delete_message(self.chat_id, previous)
            except TelegramError as e:
                logger.debug(f"Could not delete previous reminder {tag}: {e}")

        try:
            message = await self.bot.send_message(self.chat_id, f"🔔 {title}\n{body}")
        except TelegramError as e:
            logger.error(f"Failed to send reminder {tag} to {self.chat_id}: {e}")
            return
        self._messages[tag] = message.message_id


def build_sink(cfg):
    """Pick the notification sink named in the config."""
    if cfg.sink == "log":
        return LogSink()
    if cfg.sink == "jsonl":
        return JsonlSink(cfg.jsonl_path)
    if cfg.sink == "webhook":
        if not cfg.webhook_url:
            raise ConfigError("sink 'webhook' requires webhook_url")
        return WebhookSink(cfg.webhook_url, fallback=JsonlSink(cfg.jsonl_path))
    if cfg.sink == "telegram":
        token = os.environ.get(cfg.telegram_token_env)
        if not token:
            raise ConfigError(
                f"Environment variable {cfg.telegram_token_env} is not set.\n"
                f"Set it:  export {cfg.telegram_token_env}=your_bot_token"
            )
        if not cfg.telegram_chat_id:
            raise ConfigError("sink 'telegram' requires telegram_chat_id")
        return TelegramSink(token, str(cfg.telegram_chat_id))
    raise ConfigError(f"Unknown sink: {cfg.sink}")
