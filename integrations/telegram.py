"""Telegram Bot API channel.

Inbound: `getUpdates` long-poll from an offset. Outbound: `sendMessage` with
Markdown, falling back to plain text when Telegram rejects the markup.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from integrations.config import POLL_TIMEOUT_SECONDS, TELEGRAM_API_BASE

logger = logging.getLogger(__name__)

MESSAGE_LIMIT = 4096


class TransportError(RuntimeError):
    """The remote channel was unreachable or answered with an error."""


@dataclass(frozen=True)
class Update:
    offset: int
    text: str
    chat_id: Optional[int]


def split_message(text: str, limit: int = MESSAGE_LIMIT) -> list[str]:
    """Split long messages at natural boundaries."""
    if len(text) <= limit:
        return [text]

    chunks = []
    while text:
        if len(text) <= limit:
            chunks.append(text)
            break

        # Try to split at newline
        split_at = text.rfind("\n", 0, limit)
        if split_at == -1 or split_at < limit // 2:
            # Fall back to space
            split_at = text.rfind(" ", 0, limit)
        if split_at == -1:
            # Hard split
            split_at = limit

        chunks.append(text[:split_at])
        text = text[split_at:].lstrip()

    return chunks


def parse_updates(payload: dict) -> list[Update]:
    """Convert a getUpdates response body into Updates, oldest first."""
    if not isinstance(payload, dict) or not payload.get("ok"):
        raise TransportError(f"getUpdates failed: {str(payload)[:200]}")

    updates = []
    for raw in payload.get("result") or []:
        if "update_id" not in raw:
            continue
        message = raw.get("message") or raw.get("edited_message") or {}
        chat = message.get("chat") or {}
        updates.append(Update(
            offset=int(raw["update_id"]),
            text=message.get("text") or "",
            chat_id=chat.get("id"),
        ))
    updates.sort(key=lambda u: u.offset)
    return updates


class TelegramChannel:
    """Bot API client. The token is passed per call since settings can change."""

    def __init__(
        self,
        api_base: str = TELEGRAM_API_BASE,
        poll_timeout: float = POLL_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_base = api_base.rstrip("/")
        self.poll_timeout = poll_timeout
        self.transport = transport

    def _client(self, timeout: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=timeout, transport=self.transport)

    def _url(self, token: str, method: str) -> str:
        return f"{self.api_base}/bot{token}/{method}"

    async def get_updates(self, token: str, offset: int) -> list[Update]:
        """Fetch updates with update_id >= offset."""
        params = {"offset": offset, "timeout": int(self.poll_timeout)}
        try:
            async with self._client(self.poll_timeout + 1) as client:
                response = await client.get(self._url(token, "getUpdates"), params=params)
            payload = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise TransportError(f"getUpdates unreachable: {e}") from e
        return parse_updates(payload)

    async def _post_message(self, client: httpx.AsyncClient, token: str, body: dict) -> dict:
        response = await client.post(self._url(token, "sendMessage"), json=body)
        try:
            return response.json()
        except ValueError:
            return {"ok": False, "description": f"HTTP {response.status_code}"}

    async def send_message(self, token: str, chat_id, text: str) -> None:
        """Send text to a chat, split into Telegram-sized chunks."""
        try:
            async with self._client(10) as client:
                for chunk in split_message(text):
                    body = {"chat_id": chat_id, "text": chunk, "parse_mode": "Markdown"}
                    result = await self._post_message(client, token, body)
                    if not result.get("ok") and "parse" in str(result.get("description", "")).lower():
                        # Unbalanced * or _ in user text; resend without markup
                        body.pop("parse_mode")
                        result = await self._post_message(client, token, body)
                    if not result.get("ok"):
                        raise TransportError(f"sendMessage failed: {result.get('description')}")
        except httpx.HTTPError as e:
            raise TransportError(f"sendMessage unreachable: {e}") from e
