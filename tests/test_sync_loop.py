import asyncio
from datetime import datetime

import pytest

import assistant_prompt
from integrations.state import StateStore, SyncState
from sync_loop import SyncLoop


@pytest.fixture
def sync(ctx):
    return SyncLoop(ctx)


def _tick(sync):
    return asyncio.run(sync.tick())


def test_processes_every_command_in_the_batch_in_order(sync, ctx, channel):
    channel.push(101, "/task First")
    channel.push(102, "/task Second")
    channel.push(103, "/list")

    _tick(sync)

    assert [t.text for t in ctx.registry.tasks()] == ["Second", "First"]
    assert channel.texts()[-1] == ctx.registry.list_formatted()
    assert ctx.sync_state.cursor == 103


def test_cursor_never_reprocesses_an_update(sync, ctx, channel):
    channel.push(7, "/task Once")
    _tick(sync)
    _tick(sync)

    assert len(ctx.registry.tasks()) == 1
    assert channel.polls == [1, 8]


def test_cursor_is_monotonic_across_empty_and_failed_polls(sync, ctx, channel):
    cursors = []
    channel.push(5, "/help")
    _tick(sync)
    cursors.append(ctx.sync_state.cursor)

    _tick(sync)
    cursors.append(ctx.sync_state.cursor)

    channel.fail_polls = True
    _tick(sync)
    cursors.append(ctx.sync_state.cursor)

    channel.fail_polls = False
    channel.push(9, "/help")
    _tick(sync)
    cursors.append(ctx.sync_state.cursor)

    assert cursors == [5, 5, 5, 9]


def test_cursor_survives_restart(sync, ctx, channel, tmp_path):
    channel.push(40, "/task Persisted")
    _tick(sync)
    assert SyncState(StateStore(tmp_path)).cursor == 40


def test_stale_updates_below_cursor_are_ignored(sync, ctx, channel):
    ctx.sync_state.advance_cursor(50)
    channel.push(49, "/task Old")
    channel.push(51, "/task New")

    _tick(sync)

    assert [t.text for t in ctx.registry.tasks()] == ["New"]


def test_messages_from_other_chats_are_ignored(sync, ctx, channel):
    channel.push(1, "/task Spam", chat_id=999)
    _tick(sync)
    assert ctx.registry.tasks() == []
    assert ctx.sync_state.cursor == 1


def test_no_token_skips_polling(sync, ctx, channel):
    ctx.settings.update({"telegramBotToken": ""})
    _tick(sync)
    assert channel.polls == []


def test_failing_command_does_not_stop_the_batch(sync, ctx, channel, monkeypatch):
    original = sync.dispatcher.dispatch
    calls = []

    async def flaky(command, chat_id):
        calls.append(command.payload)
        if command.payload == "boom":
            raise RuntimeError("unexpected")
        await original(command, chat_id)

    monkeypatch.setattr(sync.dispatcher, "dispatch", flaky)
    channel.push(1, "/task boom")
    channel.push(2, "/task fine")

    assert _tick(sync) is True
    assert calls == ["boom", "fine"]
    assert [t.text for t in ctx.registry.tasks()] == ["fine"]


def test_overlapping_tick_is_skipped(sync):
    async def scenario():
        await sync._tick_lock.acquire()
        try:
            return await sync.tick()
        finally:
            sync._tick_lock.release()

    assert asyncio.run(scenario()) is False
    assert sync.ticks == 0


def test_reminder_phase_sends_once_per_day(sync, ctx, channel, clock):
    ctx.settings.update({"enableDailyReminders": True, "dailyReminderTime": "09:00"})
    ctx.registry.add_task("Texture prop")
    ctx.registry.add_task("Render scene")

    clock.now = datetime(2026, 3, 2, 9, 0, 0)
    _tick(sync)
    clock.now = datetime(2026, 3, 2, 9, 0, 3)
    _tick(sync)

    reminders = [t for t in channel.texts() if "Good morning" in t]
    assert len(reminders) == 1
    assert "▫️ Render scene\n▫️ Texture prop" in reminders[0]
    assert channel.sent[-1][0] == "42"

    for task in ctx.registry.active_tasks():
        ctx.registry.toggle_task(task.id)
    clock.now = datetime(2026, 3, 3, 9, 0, 1)
    _tick(sync)

    reminders = [t for t in channel.texts() if "Good morning" in t]
    assert len(reminders) == 2
    assert "no tasks" in reminders[1]


def test_reminder_runs_even_when_the_poll_fails(sync, ctx, channel, clock):
    ctx.settings.update({"enableDailyReminders": True, "dailyReminderTime": "09:00"})
    channel.fail_polls = True
    clock.now = datetime(2026, 3, 2, 9, 0)

    _tick(sync)

    assert any("Good morning" in t for t in channel.texts())


def test_daily_tasks_reappear_on_a_new_day(sync, ctx, clock):
    daily = ctx.registry.add_task("Sketch", is_daily=True)
    clock.now = datetime(2026, 3, 2, 10, 0)
    _tick(sync)

    ctx.registry.toggle_task(daily.id)
    _tick(sync)
    assert ctx.registry.get_task(daily.id).completed is True

    clock.now = datetime(2026, 3, 3, 0, 0, 2)
    _tick(sync)
    assert ctx.registry.get_task(daily.id).completed is False
    assert ctx.sync_state.last_daily_reset == "2026-03-03"


def test_trend_monitor_sends_top_trend_when_enabled(sync, ctx, channel, backend):
    backend.reply = '[{"platform": "Instagram", "trendName": "Clay shaders", "hypeReason": "cozy"}, {"platform": "TikTok", "trendName": "Second"}]'

    assert asyncio.run(sync.monitor_trends()) is False
    assert channel.sent == []

    ctx.settings.update({"autoMonitor": True})
    assert asyncio.run(sync.monitor_trends()) is True

    assert len(ctx.trends.items()) == 2
    assert len(channel.sent) == 1
    assert "Clay shaders" in channel.texts()[0]
    assert "RADAR ALERT" in channel.texts()[0]


def test_help_reply_goes_to_originating_chat(sync, ctx, channel):
    ctx.settings.update({"telegramChatId": ""})
    channel.push(3, "/help", chat_id=555)
    _tick(sync)
    assert channel.sent == [(555, assistant_prompt.HELP_MESSAGE)]
