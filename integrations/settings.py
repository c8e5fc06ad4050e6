"""Persisted dashboard settings.

The UI reads and writes the whole object; the sync loop only reads it. Keys are
stored camelCase so records written by the web dashboard load unchanged.
Missing keys fall back to defaults, unknown keys are dropped.
"""

import re
import threading
from dataclasses import asdict, dataclass, fields, replace
from typing import Any, Optional

from dateutil import parser as date_parser

from integrations import config
from integrations.state import StateStore

LLM_CLOUD_GEMINI = "Cloud Gemini"
LLM_LOCAL = "Local LLM"
LLM_CUSTOM_API = "Custom API"
LLM_CLAUDE_CLI = "Claude CLI"
LLM_SOURCES = (LLM_CLOUD_GEMINI, LLM_LOCAL, LLM_CUSTOM_API, LLM_CLAUDE_CLI)

DEFAULT_STYLE = "Casual, professional, enthusiastic about 3D art, technical but accessible."

_CLOCK_TIME = re.compile(r"\d{1,2}:\d{2}")

_CAMEL = {
    "user_style": "userStyle",
    "target_language": "targetLanguage",
    "llm_source": "llmSource",
    "custom_api_url": "customApiUrl",
    "custom_api_key": "customApiKey",
    "telegram_bot_token": "telegramBotToken",
    "telegram_chat_id": "telegramChatId",
    "enable_daily_reminders": "enableDailyReminders",
    "daily_reminder_time": "dailyReminderTime",
    "auto_monitor": "autoMonitor",
    "trend_category": "trendCategory",
}


@dataclass(frozen=True)
class AppSettings:
    user_style: str = DEFAULT_STYLE
    target_language: str = "English"
    llm_source: str = LLM_CLOUD_GEMINI
    custom_api_url: str = "http://localhost:11434/v1/chat/completions"
    custom_api_key: str = ""
    telegram_bot_token: str = ""
    telegram_chat_id: str = ""
    enable_daily_reminders: bool = False
    daily_reminder_time: str = "09:00"
    auto_monitor: bool = False
    trend_category: str = "General"

    @classmethod
    def from_dict(cls, raw: Optional[dict]) -> "AppSettings":
        raw = raw or {}
        values = {}
        for f in fields(cls):
            key = _CAMEL[f.name]
            if key not in raw or raw[key] is None:
                continue
            # chat ids arrive as JSON numbers from some clients
            values[f.name] = str(raw[key]) if f.type is str else raw[key]
        return cls(**values)

    def to_dict(self) -> dict:
        return {_CAMEL[k]: v for k, v in asdict(self).items()}


def parse_reminder_time(value: str) -> Optional[tuple[int, int]]:
    """Parse an HH:MM time of day into (hour, minute); None if unparseable."""
    if not isinstance(value, str) or not _CLOCK_TIME.fullmatch(value.strip()):
        return None
    try:
        parsed = date_parser.parse(value.strip())
    except (ValueError, OverflowError):
        return None
    return parsed.hour, parsed.minute


def validate_changes(changes: dict) -> None:
    """Raise ValueError for settings the loop could not act on."""
    source = changes.get("llmSource")
    if source is not None and source not in LLM_SOURCES:
        raise ValueError(f"Unknown llmSource: {source}")
    reminder_time = changes.get("dailyReminderTime")
    if reminder_time is not None and parse_reminder_time(reminder_time) is None:
        raise ValueError(f"Invalid dailyReminderTime: {reminder_time}")


class SettingsStore:
    """Single-instance settings record with read-modify-write updates."""

    def __init__(self, store: StateStore):
        self.store = store
        self._lock = threading.Lock()
        self._settings = AppSettings.from_dict(store.load("settings", {}))

    def get(self) -> AppSettings:
        """Current settings, with env credentials filling blanks."""
        settings = self._settings
        if not settings.telegram_bot_token and config.TELEGRAM_BOT_TOKEN:
            settings = replace(settings, telegram_bot_token=config.TELEGRAM_BOT_TOKEN)
        if not settings.telegram_chat_id and config.TELEGRAM_CHAT_ID:
            settings = replace(settings, telegram_chat_id=config.TELEGRAM_CHAT_ID)
        return settings

    def update(self, changes: dict[str, Any]) -> AppSettings:
        """Merge camelCase `changes` into the stored settings and persist."""
        validate_changes(changes)
        with self._lock:
            merged = {**self._settings.to_dict(), **changes}
            updated = AppSettings.from_dict(merged)
            self.store.save("settings", updated.to_dict())
            self._settings = updated
        return self.get()
