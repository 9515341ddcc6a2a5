"""Tests for notification sinks."""

import asyncio
import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
import requests
from telegram.error import TelegramError

from chronozen.config import Config
from chronozen.errors import ConfigError
from chronozen.notify import (
    JsonlSink,
    LogSink,
    TelegramSink,
    WebhookSink,
    build_sink,
)


class TestJsonlSink:

    def test_appends_one_line_per_reminder(self, tmp_path):
        path = tmp_path / "out" / "reminders.jsonl"
        sink = JsonlSink(str(path))
        sink.show("Reminder: A", "Starts at 09:00 on 2024-06-01", "a")
        sink.show("Reminder: B", "Starts at 10:00 on 2024-06-01", "b")
        lines = [json.loads(line) for line in path.read_text().splitlines()]
        assert [entry["tag"] for entry in lines] == ["a", "b"]
        assert lines[0]["title"] == "Reminder: A"
        assert lines[0]["ts"].endswith("Z")


class TestWebhookSink:

    def test_posts_json(self):
        with patch("chronozen.notify.requests.post") as post:
            post.return_value = MagicMock(ok=True, status_code=200)
            WebhookSink("http://hook.local/remind").show("T", "B", "evt-1")
        args, kwargs = post.call_args
        assert args[0] == "http://hook.local/remind"
        assert json.loads(kwargs["data"]) == {"title": "T", "body": "B", "tag": "evt-1"}
        assert kwargs["timeout"] == 2

    def test_falls_back_when_unreachable(self, tmp_path):
        fallback = JsonlSink(str(tmp_path / "fallback.jsonl"))
        with patch("chronozen.notify.requests.post", side_effect=requests.ConnectionError("down")):
            WebhookSink("http://hook.local", fallback=fallback).show("T", "B", "evt-1")
        assert json.loads((tmp_path / "fallback.jsonl").read_text())["tag"] == "evt-1"

    def test_falls_back_on_error_status(self, tmp_path):
        fallback = JsonlSink(str(tmp_path / "fallback.jsonl"))
        with patch("chronozen.notify.requests.post") as post:
            post.return_value = MagicMock(ok=False, status_code=500)
            WebhookSink("http://hook.local", fallback=fallback).show("T", "B", "evt-1")
        assert (tmp_path / "fallback.jsonl").exists()

    def test_no_fallback_does_not_raise(self):
        with patch("chronozen.notify.requests.post", side_effect=requests.Timeout("slow")):
            WebhookSink("http://hook.local").show("T", "B", "evt-1")


class TestTelegramSink:

    def _bot(self):
        bot = MagicMock()
        ids = iter(range(100, 200))
        bot.send_message = AsyncMock(side_effect=lambda *a, **kw: SimpleNamespace(message_id=next(ids)))
        bot.delete_message = AsyncMock()
        return bot

    def test_sends_message_outside_loop(self):
        bot = self._bot()
        TelegramSink("token", "42", bot=bot).show("Reminder: A", "Starts at 09:00", "a")
        bot.send_message.assert_awaited_once_with("42", "🔔 Reminder: A\nStarts at 09:00")
        bot.delete_message.assert_not_awaited()

    def test_same_tag_replaces_previous_message(self):
        bot = self._bot()
        sink = TelegramSink("token", "42", bot=bot)
        sink.show("Reminder: A", "first", "a")
        sink.show("Reminder: B", "other", "b")
        sink.show("Reminder: A", "second", "a")
        bot.delete_message.assert_awaited_once_with("42", 100)

    def test_delete_failure_still_sends(self):
        bot = self._bot()
        bot.delete_message.side_effect = TelegramError("message to delete not found")
        sink = TelegramSink("token", "42", bot=bot)
        sink.show("T", "1", "a")
        sink.show("T", "2", "a")
        assert bot.send_message.await_count == 2

    def test_send_failure_is_logged(self):
        bot = self._bot()
        bot.send_message.side_effect = TelegramError("chat not found")
        TelegramSink("token", "42", bot=bot).show("T", "B", "a")

    def test_inside_loop_sends_as_task(self):
        bot = self._bot()

        async def scenario():
            sink = TelegramSink("token", "42", bot=bot)
            sink.show("T", "B", "a")
            await asyncio.sleep(0)
            await asyncio.gather(*sink._tasks)

        asyncio.run(scenario())
        bot.send_message.assert_awaited_once()


class TestBuildSink:

    def test_log_default(self):
        assert isinstance(build_sink(Config()), LogSink)

    def test_jsonl(self, tmp_path):
        sink = build_sink(Config(sink="jsonl", jsonl_path=str(tmp_path / "r.jsonl")))
        assert isinstance(sink, JsonlSink)

    def test_webhook_requires_url(self):
        with pytest.raises(ConfigError):
            build_sink(Config(sink="webhook"))

    def test_webhook_has_jsonl_fallback(self):
        sink = build_sink(Config(sink="webhook", webhook_url="http://hook.local"))
        assert isinstance(sink.fallback, JsonlSink)

    def test_telegram_requires_token(self, monkeypatch):
        monkeypatch.delenv("CHRONOZEN_TELEGRAM_TOKEN", raising=False)
        with pytest.raises(ConfigError, match="CHRONOZEN_TELEGRAM_TOKEN"):
            build_sink(Config(sink="telegram", telegram_chat_id="42"))

    def test_telegram_requires_chat_id(self, monkeypatch):
        monkeypatch.setenv("CHRONOZEN_TELEGRAM_TOKEN", "123:abc")
        with pytest.raises(ConfigError, match="telegram_chat_id"):
            build_sink(Config(sink="telegram"))
