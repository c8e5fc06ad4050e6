#!/usr/bin/env python3
"""Daily task reminder.

Fires at most once per calendar day, on whichever tick lands inside the
configured minute. Missed minutes are not caught up.

Usage:
    python -m integrations.reminders status     # show schedule and watermark
    python -m integrations.reminders preview    # print today's reminder text
"""

import json
import logging
import sys
from datetime import datetime
from typing import Optional

from integrations.config import now_local
from integrations.settings import SettingsStore, parse_reminder_time
from integrations.state import StateStore, SyncState
from integrations.tasks import Task, TaskRegistry

logger = logging.getLogger(__name__)


def format_reminder(active: list[Task]) -> str:
    """Morning message: the active list, or an explicit "nothing today"."""
    if not active:
        return "🌅 *Good morning!* You have no tasks for today yet."
    task_lines = "\n".join(f"▫️ {t.text}" for t in active)
    return f"🌅 *Good morning! Your tasks for today:*\n\n{task_lines}"


class ReminderScheduler:
    """Decides when the daily reminder fires and advances the watermark."""

    def __init__(self, settings: SettingsStore, registry: TaskRegistry, sync_state: SyncState):
        self.settings = settings
        self.registry = registry
        self.sync_state = sync_state

    def is_due(self, now: datetime) -> bool:
        settings = self.settings.get()
        if not settings.enable_daily_reminders:
            return False

        target = parse_reminder_time(settings.daily_reminder_time)
        if target is None:
            logger.warning(f"Unparseable reminder time: {settings.daily_reminder_time!r}")
            return False

        if (now.hour, now.minute) != target:
            return False
        return self.sync_state.watermark != now.date().isoformat()

    def maybe_fire(self, now: datetime) -> Optional[str]:
        """Return the reminder text if it should go out now, else None.

        The watermark is persisted before the message is produced, so a crash
        between the two loses today's reminder rather than sending it twice.
        """
        if not self.is_due(now):
            return None

        today_key = now.date().isoformat()
        self.sync_state.set_watermark(today_key)
        logger.info(f"Daily reminder fired for {today_key}")
        return format_reminder(self.registry.active_tasks())


def main(argv: Optional[list] = None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    if not argv:
        print("Usage: reminders.py <status|preview>")
        return 1

    store = StateStore()
    registry = TaskRegistry(store)
    settings = SettingsStore(store)

    if argv[0] == "status":
        current = settings.get()
        print(json.dumps({
            "enabled": current.enable_daily_reminders,
            "time": current.daily_reminder_time,
            "last_sent": SyncState(store).watermark,
            "now": now_local().isoformat(),
        }, indent=2))
    elif argv[0] == "preview":
        print(format_reminder(registry.active_tasks()))
    else:
        print(f"Unknown command: {argv[0]}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
