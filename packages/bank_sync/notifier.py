"""Notification channel used for progress and error reporting.

The orchestrator talks to a :class:`Notifier`; two implementations ship:

- :class:`LogNotifier`: writes everything to the ``bank_sync.notifier`` logger
  and hands out integer message handles. Used when Telegram is not configured
  and in tests.
- :class:`TelegramNotifier`: posts to a chat through the Telegram Bot API
  using ``httpx.AsyncClient``.

Callers treat notifier failures as best-effort; implementations raise on
transport errors and let the caller decide.
"""

from __future__ import annotations

import itertools
from typing import Any, Protocol

import httpx

from .logging_setup import get_logger

logger = get_logger("bank_sync.notifier")

type MessageHandle = int | str

# Telegram rejects longer texts outright.
MAX_MESSAGE_LENGTH = 4096

DEPRECATION_MESSAGES: dict[str, str] = {
    "hash_field_change": (
        "⚠️ Deduplication on the legacy `hash` field is deprecated. "
        'Set options.scraping.transactionHashType to "unique_id" to dedupe on '
        "`uniqueId`; rows already stored under the old hash are still recognized."
    ),
}


class Notifier(Protocol):
    """Port for status and error messages."""

    async def send(self, text: str) -> MessageHandle | None:
        """Post ``text`` and return a handle for later edits (if supported)."""

    async def edit_message(self, handle: MessageHandle | None, text: str) -> None:
        """Replace the text of a previously sent message."""

    async def send_error(self, error: BaseException, context: str) -> None:
        """Report ``error`` tagged with a human-readable ``context``."""

    async def send_deprecation_message(self, key: str) -> None:
        """Send the deprecation notice ``key`` at most once per notifier."""


def truncate(text: str, limit: int = MAX_MESSAGE_LENGTH) -> str:
    if len(text) <= limit:
        return text
    return text[: limit - 1] + "…"


def format_error(error: BaseException, context: str) -> str:
    return f"❌ {context}\n{type(error).__name__}: {error}"


class BaseNotifier:
    """Shared behavior: error formatting and once-only deprecation notices."""

    def __init__(self) -> None:
        self._deprecations_sent: set[str] = set()

    async def send(self, text: str) -> MessageHandle | None:  # pragma: no cover - abstract
        raise NotImplementedError

    async def send_error(self, error: BaseException, context: str) -> None:
        await self.send(format_error(error, context))

    async def send_deprecation_message(self, key: str) -> None:
        if key in self._deprecations_sent:
            return
        # Mark before awaiting so concurrent callers don't double-send.
        self._deprecations_sent.add(key)
        text = DEPRECATION_MESSAGES.get(key)
        if text is None:
            logger.warning("unknown deprecation key %r", key)
            return
        await self.send(text)


class LogNotifier(BaseNotifier):
    """Notifier that only logs. Message handles are sequential integers."""

    def __init__(self) -> None:
        super().__init__()
        self._ids = itertools.count(1)

    async def send(self, text: str) -> MessageHandle | None:
        handle = next(self._ids)
        logger.info("[message %d] %s", handle, text)
        return handle

    async def edit_message(self, handle: MessageHandle | None, text: str) -> None:
        logger.info("[message %s edited] %s", handle, text)

    async def send_error(self, error: BaseException, context: str) -> None:
        logger.error(
            "%s", context, exc_info=(type(error), error, error.__traceback__)
        )


class TelegramNotifier(BaseNotifier):
    """Telegram Bot API notifier.

    Usage:
        async with TelegramNotifier(api_key, chat_id) as notifier:
            handle = await notifier.send("hello")
            await notifier.edit_message(handle, "hello again")
    """

    def __init__(
        self,
        api_key: str,
        chat_id: str,
        *,
        client: httpx.AsyncClient | None = None,
        base_url: str = "https://api.telegram.org",
    ) -> None:
        super().__init__()
        self.chat_id = chat_id
        self._url = f"{base_url.rstrip('/')}/bot{api_key}"
        self._client = client
        self._owns_client = client is None

    async def __aenter__(self) -> TelegramNotifier:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=10.0)
        return self

    async def __aexit__(self, *args: Any) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def _call(self, method: str, payload: dict[str, Any]) -> dict[str, Any]:
        if self._client is None:
            raise RuntimeError("TelegramNotifier not initialized. Use async with.")
        response = await self._client.post(f"{self._url}/{method}", json=payload)
        response.raise_for_status()
        body = response.json()
        if not body.get("ok"):
            raise RuntimeError(f"Telegram {method} failed: {body.get('description')}")
        return body.get("result") or {}

    async def send(self, text: str) -> MessageHandle | None:
        result = await self._call("sendMessage", {"chat_id": self.chat_id, "text": truncate(text)})
        return result.get("message_id")

    async def edit_message(self, handle: MessageHandle | None, text: str) -> None:
        if handle is None:
            return
        await self._call(
            "editMessageText",
            {"chat_id": self.chat_id, "message_id": handle, "text": truncate(text)},
        )

    async def send_error(self, error: BaseException, context: str) -> None:
        logger.error("%s: %s", context.partition("\n")[0], error)
        await super().send_error(error, context)


__all__ = [
    "MessageHandle",
    "MAX_MESSAGE_LENGTH",
    "DEPRECATION_MESSAGES",
    "Notifier",
    "BaseNotifier",
    "LogNotifier",
    "TelegramNotifier",
    "format_error",
    "truncate",
]
