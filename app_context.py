"""Application context shared by the sync loop, command dispatch and HTTP API."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable, Optional

from generation_client import GenerationClient
from integrations.config import now_local
from integrations.reminders import ReminderScheduler
from integrations.settings import SettingsStore
from integrations.state import StateStore, SyncState
from integrations.tasks import TaskRegistry
from integrations.telegram import TelegramChannel
from integrations.trends import TrendCache


@dataclass
class AppContext:
    """Owns every piece of shared state; built once by `AppContext.build`."""

    store: StateStore
    settings: SettingsStore
    registry: TaskRegistry
    sync_state: SyncState
    trends: TrendCache
    reminders: ReminderScheduler
    channel: TelegramChannel
    generator: GenerationClient
    clock: Callable[[], datetime] = now_local
    started_at: datetime = field(default_factory=now_local)

    @classmethod
    def build(
        cls,
        state_dir: Optional[Path] = None,
        channel: Optional[TelegramChannel] = None,
        generator: Optional[GenerationClient] = None,
        clock: Callable[[], datetime] = now_local,
    ) -> "AppContext":
        store = StateStore(state_dir)
        settings = SettingsStore(store)
        registry = TaskRegistry(store)
        sync_state = SyncState(store)
        return cls(
            store=store,
            settings=settings,
            registry=registry,
            sync_state=sync_state,
            trends=TrendCache(store),
            reminders=ReminderScheduler(settings, registry, sync_state),
            channel=channel or TelegramChannel(),
            generator=generator or GenerationClient(),
            clock=clock,
            started_at=clock(),
        )

    def uptime(self) -> timedelta:
        return self.clock() - self.started_at
