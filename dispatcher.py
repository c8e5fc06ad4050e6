"""Per-command side effects for bot commands."""

import logging

import assistant_prompt
from app_context import AppContext
from generation_client import is_configured
from integrations.commands import Command, CommandKind, ParseError, parse_position
from integrations.state import PersistenceError
from integrations.tasks import IndexOutOfRange
from integrations.telegram import TransportError
from integrations.trends import resolve_category
from integrations.utils import format_uptime

logger = logging.getLogger(__name__)


class CommandDispatcher:
    """Applies one parsed command and replies to the originating chat."""

    def __init__(self, ctx: AppContext):
        self.ctx = ctx

    async def send(self, chat_id, text: str) -> bool:
        """Fire-and-forget send. Failures are logged, never raised."""
        token = self.ctx.settings.get().telegram_bot_token
        if not token or not chat_id:
            logger.warning("Telegram not configured, dropping message")
            return False
        try:
            await self.ctx.channel.send_message(token, chat_id, text)
            return True
        except TransportError as e:
            logger.error(f"Telegram send error: {e}")
            return False

    async def dispatch(self, command: Command, chat_id) -> None:
        handler = {
            CommandKind.ADD_TASK: self._add_task,
            CommandKind.ADD_NOTE: self._add_note,
            CommandKind.LIST_TASKS: self._list_tasks,
            CommandKind.DONE_TASK: self._done_task,
            CommandKind.CHECK_TRENDS: self._check_trends,
            CommandKind.GET_IDEA: self._get_idea,
            CommandKind.HELP: self._help,
            CommandKind.START: self._help,
            CommandKind.STATUS: self._status,
        }.get(command.kind)

        if handler is None:
            return
        await handler(command.payload, chat_id)

    async def _add_task(self, payload: str, chat_id) -> None:
        if not payload.strip():
            await self.send(chat_id, assistant_prompt.TASK_USAGE)
            return
        try:
            task = self.ctx.registry.add_task(payload)
        except PersistenceError as e:
            logger.error(f"Could not save task: {e}")
            await self.send(chat_id, assistant_prompt.SAVE_FAILED)
            return
        await self.send(chat_id, assistant_prompt.TASK_ADDED.format(text=task.text))

    async def _add_note(self, payload: str, chat_id) -> None:
        if not payload.strip():
            await self.send(chat_id, assistant_prompt.NOTE_USAGE)
            return
        try:
            self.ctx.registry.add_note(payload)
        except PersistenceError as e:
            logger.error(f"Could not save note: {e}")
            await self.send(chat_id, assistant_prompt.SAVE_FAILED)
            return
        await self.send(chat_id, assistant_prompt.NOTE_ADDED)

    async def _list_tasks(self, payload: str, chat_id) -> None:
        await self.send(chat_id, self.ctx.registry.list_formatted())

    async def _done_task(self, payload: str, chat_id) -> None:
        try:
            task = self.ctx.registry.complete_task_by_position(parse_position(payload))
        except (ParseError, IndexOutOfRange) as e:
            logger.info(f"Rejected /done {payload!r}: {e}")
            await self.send(chat_id, assistant_prompt.INVALID_NUMBER)
            return
        except PersistenceError as e:
            logger.error(f"Could not save completion: {e}")
            await self.send(chat_id, assistant_prompt.SAVE_FAILED)
            return
        await self.send(chat_id, assistant_prompt.TASK_DONE.format(text=task.text))

    async def _check_trends(self, payload: str, chat_id) -> None:
        settings = self.ctx.settings.get()
        category = resolve_category(payload, default=resolve_category(settings.trend_category))

        await self.send(chat_id, assistant_prompt.SCANNING_TRENDS)
        result = await self.ctx.generator.scan_trends(settings, category)
        if not result.ok or not result.value:
            return
        try:
            self.ctx.trends.replace(result.value)
        except PersistenceError as e:
            logger.error(f"Could not cache trends: {e}")

    async def _get_idea(self, payload: str, chat_id) -> None:
        await self.send(chat_id, assistant_prompt.GENERATING_IDEA)
        result = await self.ctx.generator.generate_idea(self.ctx.settings.get())
        if result.ok:
            await self.send(chat_id, assistant_prompt.IDEA.format(idea=result.value))
        else:
            await self.send(chat_id, assistant_prompt.IDEA_FAILED)

    async def _help(self, payload: str, chat_id) -> None:
        await self.send(chat_id, assistant_prompt.HELP_MESSAGE)

    async def _status(self, payload: str, chat_id) -> None:
        settings = self.ctx.settings.get()
        tasks = self.ctx.registry.tasks()
        active = sum(1 for t in tasks if not t.completed)
        await self.send(chat_id, assistant_prompt.STATUS.format(
            uptime=format_uptime(self.ctx.uptime()),
            active=active,
            done=len(tasks) - active,
            bot="configured" if settings.telegram_bot_token else "missing",
            source=settings.llm_source,
            generation="configured" if is_configured(settings) else "missing",
        ))
