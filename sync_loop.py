"""Background sync loop.

One tick = command phase (poll Telegram, apply every new command in order)
followed by the reminder phase (daily rollover, then the daily reminder).
Ticks are single-flight: `discord.ext.tasks` never overlaps iterations, and a
manual tick requested while one is running is skipped.
"""

import asyncio
import logging
from typing import Optional

from discord.ext import tasks

from app_context import AppContext
from dispatcher import CommandDispatcher
from integrations.commands import CommandKind, parse_command
from integrations.config import SYNC_INTERVAL_SECONDS, TREND_MONITOR_MINUTES
from integrations.settings import AppSettings
from integrations.state import PersistenceError
from integrations.trends import format_trend_alert, resolve_category

logger = logging.getLogger(__name__)


class SyncLoop:
    """Drives the command poller, daily reminder and trend monitor."""

    def __init__(
        self,
        ctx: AppContext,
        dispatcher: Optional[CommandDispatcher] = None,
        interval: float = SYNC_INTERVAL_SECONDS,
        trend_interval_minutes: float = TREND_MONITOR_MINUTES,
    ):
        self.ctx = ctx
        self.dispatcher = dispatcher or CommandDispatcher(ctx)
        self._tick_lock = asyncio.Lock()
        self.ticks = 0

        self.loop = tasks.loop(seconds=interval)(self.tick)
        self.loop.before_loop(self._before_loop)
        self.loop.error(self._on_loop_error)

        self.trend_monitor = tasks.loop(minutes=trend_interval_minutes)(self.monitor_trends)
        self.trend_monitor.error(self._on_loop_error)

    # -------------------- lifecycle --------------------
    def start(self) -> None:
        if not self.loop.is_running():
            self.loop.start()
        if not self.trend_monitor.is_running():
            self.trend_monitor.start()

    def stop(self) -> None:
        self.loop.cancel()
        self.trend_monitor.cancel()

    def is_running(self) -> bool:
        return self.loop.is_running()

    async def _before_loop(self) -> None:
        logger.info(f"Sync loop starting (cursor={self.ctx.sync_state.cursor})")

    async def _on_loop_error(self, error: Exception) -> None:
        logger.error(f"Background loop crashed: {error}", exc_info=error)

    # -------------------- tick --------------------
    async def tick(self) -> bool:
        """Run one tick. Returns False if another tick was already in flight."""
        if self._tick_lock.locked():
            logger.debug("Tick skipped, previous tick still running")
            return False

        async with self._tick_lock:
            self.ticks += 1
            settings = self.ctx.settings.get()

            try:
                await self.process_commands(settings)
            except Exception as e:
                logger.error(f"Command phase failed: {e}", exc_info=True)

            try:
                await self.process_reminders(settings)
            except Exception as e:
                logger.error(f"Reminder phase failed: {e}", exc_info=True)

        return True

    async def process_commands(self, settings: AppSettings) -> int:
        """Poll for new updates and dispatch them all, oldest first."""
        token = settings.telegram_bot_token
        if not token:
            return 0

        cursor = self.ctx.sync_state.cursor
        updates = [u for u in await self.ctx.channel.get_updates(token, cursor + 1) if u.offset > cursor]
        if not updates:
            return 0

        # Commit the cursor before acting so nothing is handled twice
        self.ctx.sync_state.advance_cursor(max(u.offset for u in updates))

        for update in updates:
            if not update.text:
                continue
            if settings.telegram_chat_id and str(update.chat_id) != settings.telegram_chat_id:
                logger.warning(f"Ignoring message from unknown chat {update.chat_id}")
                continue

            command = parse_command(update.text)
            if command.kind is CommandKind.NONE:
                continue

            logger.info(f"Received command: {update.text[:50]}")
            try:
                await self.dispatcher.dispatch(command, update.chat_id)
            except Exception as e:
                logger.error(f"Error handling {command.kind.value}: {e}", exc_info=True)

        return len(updates)

    async def process_reminders(self, settings: AppSettings) -> Optional[str]:
        now = self.ctx.clock()
        today = now.date().isoformat()

        if self.ctx.sync_state.last_daily_reset != today:
            self.ctx.registry.reset_daily_tasks()
            self.ctx.sync_state.set_daily_reset(today)

        message = self.ctx.reminders.maybe_fire(now)
        if message is None:
            return None

        if not settings.telegram_chat_id:
            logger.warning("Daily reminder due but no Telegram chat configured")
            return message

        await self.dispatcher.send(settings.telegram_chat_id, message)
        return message

    # -------------------- trend monitor --------------------
    async def monitor_trends(self) -> bool:
        """Silent scan: refresh the cache and push the top trend to the chat."""
        settings = self.ctx.settings.get()
        if not settings.auto_monitor:
            return False

        try:
            result = await self.ctx.generator.scan_trends(settings, resolve_category(settings.trend_category))
            if not result.ok or not result.value:
                return False
            self.ctx.trends.replace(result.value)
        except PersistenceError as e:
            logger.error(f"Could not cache trends: {e}")
            return False
        except Exception as e:
            logger.error(f"Trend monitor failed: {e}", exc_info=True)
            return False

        if settings.telegram_chat_id:
            await self.dispatcher.send(settings.telegram_chat_id, format_trend_alert(result.value[0]))
        return True

    async def run_once(self) -> bool:
        return await self.tick()
