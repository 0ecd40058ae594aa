"""Telegram Bot API transport over long polling."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol

import httpx

from chatops_agent.config import DEFAULT_TELEGRAM_API_BASE_URL

logger = logging.getLogger(__name__)

TELEGRAM_MESSAGE_LIMIT = 4096
ALLOWED_UPDATES = ("message", "channel_post")


class ChatTransportError(RuntimeError):
    """Chat API call failed."""


@dataclass(frozen=True, slots=True)
class IncomingMessage:
    """Inbound chat message reduced to what the pipeline needs."""

    update_id: int
    chat_id: int
    sender: str
    text: str | None
    chat_type: str = "unknown"


class ChatTransport(Protocol):
    """Outbound side of the chat platform."""

    def send_message(self, chat_id: int, text: str) -> None:
        """Deliver plain text to a chat, raising on failure."""


class TelegramTransport:
    """Thin httpx wrapper around the Bot API methods the agent uses."""

    def __init__(
        self,
        token: str,
        *,
        api_base_url: str = DEFAULT_TELEGRAM_API_BASE_URL,
        poll_timeout_seconds: int = 30,
        request_timeout_seconds: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._base_url = f"{api_base_url.rstrip('/')}/bot{token}/"
        self._poll_timeout_seconds = poll_timeout_seconds
        # Long polls hold the connection open for up to poll_timeout_seconds.
        self._client = httpx.Client(
            timeout=httpx.Timeout(request_timeout_seconds + poll_timeout_seconds, connect=10.0),
            transport=transport,
        )

    def _call(self, method: str, payload: dict[str, Any] | None = None) -> Any:
        try:
            response = self._client.post(self._base_url + method, json=payload or {})
        except httpx.HTTPError as error:
            raise ChatTransportError(f"Telegram request error calling {method}: {error}") from error

        try:
            parsed = response.json()
        except ValueError as error:
            raise ChatTransportError(
                f"Telegram returned non-JSON for {method}: {response.text[:2000]}",
            ) from error

        if not isinstance(parsed, dict) or not parsed.get("ok", False):
            raise ChatTransportError(
                f"Telegram API error calling {method}: "
                f"{response.status_code} {response.text[:2000]}",
            )
        return parsed.get("result")

    def get_updates(self, offset: int) -> list[dict[str, Any]]:
        result = self._call(
            "getUpdates",
            {
                "offset": offset,
                "timeout": self._poll_timeout_seconds,
                "allowed_updates": list(ALLOWED_UPDATES),
            },
        )
        if not isinstance(result, list):
            return []
        return [update for update in result if isinstance(update, dict)]

    def delete_webhook(self, *, drop_pending_updates: bool = True) -> None:
        self._call("deleteWebhook", {"drop_pending_updates": drop_pending_updates})

    def send_message(self, chat_id: int, text: str) -> None:
        for chunk in chunk_text(text):
            self._call("sendMessage", {"chat_id": chat_id, "text": chunk})

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> TelegramTransport:
        return self

    def __exit__(self, *_: object) -> None:
        self.close()


def parse_update(update: dict[str, Any]) -> IncomingMessage | None:
    """Reduce a raw update to an `IncomingMessage`, or None for other update kinds."""

    update_id = update.get("update_id")
    if isinstance(update_id, bool) or not isinstance(update_id, int):
        return None
    message = update.get("message") or update.get("channel_post")
    if not isinstance(message, dict):
        return None
    chat = message.get("chat")
    if not isinstance(chat, dict) or not isinstance(chat.get("id"), int):
        return None

    sender = "unknown"
    author = message.get("from")
    if isinstance(author, dict) and author.get("first_name"):
        sender = str(author["first_name"])
    elif chat.get("title"):
        sender = str(chat["title"])

    text = message.get("text")
    return IncomingMessage(
        update_id=update_id,
        chat_id=chat["id"],
        sender=sender,
        text=text if isinstance(text, str) else None,
        chat_type=str(chat.get("type", "unknown")),
    )


def chunk_text(text: str, limit: int = TELEGRAM_MESSAGE_LIMIT) -> list[str]:
    """Split text into pieces no longer than `limit`, preferring newline boundaries."""

    if len(text) <= limit:
        return [text]

    chunks: list[str] = []
    start = 0
    while start < len(text):
        end = min(start + limit, len(text))
        if end < len(text):
            newline = text.rfind("\n", start, end)
            if newline > start:
                end = newline + 1
        chunks.append(text[start:end])
        start = end
    return chunks
