# Chronozen: configuration
# The bundled data/chronozen.yaml holds the defaults; point $CHRONOZEN_CONFIG
# or --config at an edited copy to override paths and sinks.

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Optional

import yaml

from .errors import ConfigError

CONFIG_PATH = Path(__file__).parent / "data" / "chronozen.yaml"

MEDIA = ("sqlite", "json")
SINKS = ("log", "jsonl", "webhook", "telegram")
PERMISSIONS = ("prompt", "granted", "denied")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class Config:
    """Runtime configuration for chronozen."""

    # Storage
    data_dir: str = "~/.local/share/chronozen"
    medium: str = "sqlite"            # sqlite | json
    db_name: str = "chronozen.db"

    # Notifications
    sink: str = "log"                 # log | jsonl | webhook | telegram
    jsonl_path: str = "~/.local/share/chronozen/reminders.jsonl"
    webhook_url: Optional[str] = None
    telegram_token_env: str = "CHRONOZEN_TELEGRAM_TOKEN"
    telegram_chat_id: Optional[str] = None
    permission: str = "prompt"        # prompt | granted | denied

    # Time grid
    day_hour_height: int = 50
    week_hour_height: int = 60

    # Daemon
    watch_debounce_ms: int = 500
    log_level: str = "INFO"

    def resolve_paths(self):
        """Expand ~ in configured paths."""
        self.data_dir = str(Path(self.data_dir).expanduser())
        self.jsonl_path = str(Path(self.jsonl_path).expanduser())

    @property
    def db_path(self) -> str:
        return str(Path(self.data_dir) / self.db_name)

    def validate(self):
        if self.medium not in MEDIA:
            raise ConfigError(f"Invalid medium: {self.medium}. Allowed: {', '.join(MEDIA)}")
        if self.sink not in SINKS:
            raise ConfigError(f"Invalid sink: {self.sink}. Allowed: {', '.join(SINKS)}")
        if self.permission not in PERMISSIONS:
            raise ConfigError(
                f"Invalid permission: {self.permission}. Allowed: {', '.join(PERMISSIONS)}"
            )
        for name in ("day_hour_height", "week_hour_height"):
            value = getattr(self, name)
            if not isinstance(value, int) or value <= 0:
                raise ConfigError(f"{name} must be a positive integer, got: {value!r}")
        if str(self.log_level).upper() not in LOG_LEVELS:
            raise ConfigError(f"Invalid log_level: {self.log_level}")

    @classmethod
    def load(cls, path: Optional[str] = None) -> "Config":
        """Load config from YAML file, falling back to defaults."""
        path = path or os.environ.get("CHRONOZEN_CONFIG")
        cfg_path = Path(path) if path else CONFIG_PATH
        if cfg_path.exists():
            try:
                with open(cfg_path, "r") as f:
                    data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigError(f"Cannot parse {cfg_path}: {e}")
            if not isinstance(data, dict):
                raise ConfigError(f"{cfg_path} must contain a mapping")
            known = {f.name for f in fields(cls)}
            cfg = cls(**{k: v for k, v in data.items() if k in known})
        elif path:
            raise ConfigError(f"Config file not found: {cfg_path}")
        else:
            cfg = cls()
        cfg.validate()
        cfg.resolve_paths()
        return cfg
