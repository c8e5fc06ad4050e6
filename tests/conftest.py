from datetime import datetime

import pytest

from app_context import AppContext
from generation_client import GenerationClient, GenerationError
from integrations import config
from integrations.telegram import TransportError, Update


class FakeChannel:
    """In-memory stand-in for the Telegram channel."""

    def __init__(self):
        self.pending: list[Update] = []
        self.sent: list[tuple] = []
        self.polls: list[int] = []
        self.fail_polls = False
        self.fail_sends = False

    def push(self, offset: int, text: str, chat_id: int = 42) -> None:
        self.pending.append(Update(offset=offset, text=text, chat_id=chat_id))

    async def get_updates(self, token: str, offset: int) -> list[Update]:
        self.polls.append(offset)
        if self.fail_polls:
            raise TransportError("network down")
        return [u for u in self.pending if u.offset >= offset]

    async def send_message(self, token: str, chat_id, text: str) -> None:
        if self.fail_sends:
            raise TransportError("send failed")
        self.sent.append((chat_id, text))

    def texts(self) -> list[str]:
        return [text for _, text in self.sent]


class StubBackend:
    def __init__(self, reply: str = "Sculpt a tiny diorama", fail: bool = False):
        self.reply = reply
        self.fail = fail
        self.prompts: list[tuple] = []

    async def generate(self, prompt, system_instruction=None, use_search=False):
        self.prompts.append((prompt, system_instruction, use_search))
        if self.fail:
            raise GenerationError("backend offline")
        return self.reply


class Clock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture(autouse=True)
def no_env_credentials(monkeypatch):
    monkeypatch.setattr(config, "TELEGRAM_BOT_TOKEN", "")
    monkeypatch.setattr(config, "TELEGRAM_CHAT_ID", "")
    monkeypatch.setattr(config, "GEMINI_API_KEY", "")


@pytest.fixture
def channel():
    return FakeChannel()


@pytest.fixture
def backend():
    return StubBackend()


@pytest.fixture
def clock():
    return Clock(datetime(2026, 3, 2, 8, 30))


@pytest.fixture
def ctx(tmp_path, channel, backend, clock):
    context = AppContext.build(
        state_dir=tmp_path,
        channel=channel,
        generator=GenerationClient(backend_factory=lambda settings: backend),
        clock=clock,
    )
    context.settings.update({"telegramBotToken": "TOKEN", "telegramChatId": "42"})
    return context
