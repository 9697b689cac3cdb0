"""
Chat channels and the broadcast notifier.

A channel delivers one text message to one chat. Two implementations:
- TelegramChannel talks to the Telegram Bot API over aiohttp
- LoggingChannel only logs and records messages (no bot token, and tests)

ChatNotifier fans a prebuilt message out to a list of chats. Every delivery
is attempted on its own; a failure is logged and recorded, never raised, so a
broadcast can't make the mutation that triggered it look failed.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable, Optional, Protocol

import aiohttp

from shared.errors import ChannelDeliveryError

logger = logging.getLogger("notifications")

# Telegram rejects longer messages
MAX_MESSAGE_LENGTH = 4096


def split_message(text: str, limit: int = MAX_MESSAGE_LENGTH) -> list[str]:
    """
    Split text into chunks of at most `limit` characters, on line breaks
    where possible.
    """
    if len(text) <= limit:
        return [text]

    chunks: list[str] = []
    current = ""
    for line in text.splitlines(keepends=True):
        while len(line) > limit:
            if current:
                chunks.append(current)
                current = ""
            chunks.append(line[:limit])
            line = line[limit:]
        if len(current) + len(line) > limit:
            chunks.append(current)
            current = ""
        current += line
    if current:
        chunks.append(current)
    return chunks


@dataclass
class DeliveryResult:
    """Outcome of delivering one message to one chat."""
    chat_id: int
    success: bool
    text: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    error: Optional[str] = None

    def __str__(self) -> str:
        status = "✓" if self.success else "✗"
        return f"{status} CHAT {self.chat_id}: {self.text[:50]}"


class ChatChannel(Protocol):
    async def send(self, chat_id: int, text: str) -> None:
        """Deliver text to chat_id or raise ChannelDeliveryError."""
        ...


# =============================================================================
# Telegram
# =============================================================================

class TelegramAPIError(Exception):
    """The Bot API answered with ok=false."""

    def __init__(self, method: str, description: str, error_code: Optional[int] = None):
        super().__init__(f"{method}: {description}")
        self.method = method
        self.description = description
        self.error_code = error_code


class TelegramChannel:
    """
    Telegram Bot API client.

    Use as an async context manager so the HTTP session is closed:

        async with TelegramChannel(token) as telegram:
            await telegram.send(12345, "hello")
    """

    API_BASE = "https://api.telegram.org"

    def __init__(
        self,
        bot_token: str,
        session: Optional[aiohttp.ClientSession] = None,
        request_timeout: float = 10.0,
    ):
        """
        Args:
            bot_token: Token issued by @BotFather
            session: Existing session to reuse; it is then not closed by close()
            request_timeout: Seconds allowed for a non-polling request
        """
        self.bot_token = bot_token
        self.request_timeout = request_timeout
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self) -> "TelegramChannel":
        await self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def start(self) -> None:
        if self._session is None:
            self._session = aiohttp.ClientSession()
            self._owns_session = True

    async def close(self) -> None:
        if self._session is not None and self._owns_session:
            await self._session.close()
        self._session = None

    def method_url(self, method: str) -> str:
        return f"{self.API_BASE}/bot{self.bot_token}/{method}"

    async def call(self, method: str, payload: Optional[dict] = None, timeout: Optional[float] = None) -> Any:
        """
        Invoke a Bot API method and return its "result" field.

        Raises:
            TelegramAPIError: If the API reports a failure
            aiohttp.ClientError, asyncio.TimeoutError: On transport failures
        """
        if self._session is None:
            await self.start()

        client_timeout = aiohttp.ClientTimeout(total=timeout or self.request_timeout)
        async with self._session.post(
            self.method_url(method), json=payload or {}, timeout=client_timeout
        ) as response:
            try:
                data = await response.json(content_type=None)
            except ValueError:
                data = None

        # Gateway errors come back as HTML or other non-object bodies
        if not isinstance(data, dict):
            raise TelegramAPIError(method, f"HTTP {response.status}", response.status)

        if not data.get("ok"):
            raise TelegramAPIError(
                method,
                data.get("description", f"HTTP {response.status}"),
                data.get("error_code"),
            )
        return data.get("result")

    async def send(self, chat_id: int, text: str) -> None:
        """
        Send a text message, split into several if it is too long.

        Raises:
            ChannelDeliveryError: If any part could not be delivered
        """
        for chunk in split_message(text):
            try:
                await self.call("sendMessage", {"chat_id": chat_id, "text": chunk})
            except (aiohttp.ClientError, asyncio.TimeoutError, TelegramAPIError) as e:
                raise ChannelDeliveryError(chat_id, str(e) or type(e).__name__) from e

    async def get_me(self) -> dict:
        return await self.call("getMe")

    async def get_updates(self, offset: Optional[int] = None, timeout: int = 30) -> list[dict]:
        """Long-poll for new updates; waits up to `timeout` seconds."""
        payload: dict[str, Any] = {"timeout": timeout, "allowed_updates": ["message"]}
        if offset is not None:
            payload["offset"] = offset
        return await self.call("getUpdates", payload, timeout=timeout + self.request_timeout)


# =============================================================================
# Logging channel
# =============================================================================

class LoggingChannel:
    """
    Channel that only logs what it would send.

    Tracks sent messages for test assertions. Chats listed in
    failing_chat_ids raise ChannelDeliveryError instead.
    """

    def __init__(self, failing_chat_ids: Iterable[int] = ()):
        self.failing_chat_ids = set(failing_chat_ids)
        self.sent_messages: list[DeliveryResult] = []

    async def send(self, chat_id: int, text: str) -> None:
        if chat_id in self.failing_chat_ids:
            self.sent_messages.append(DeliveryResult(
                chat_id=chat_id,
                success=False,
                text=text,
                error="Simulated delivery failure",
            ))
            raise ChannelDeliveryError(chat_id, "Simulated delivery failure")

        self.sent_messages.append(DeliveryResult(chat_id=chat_id, success=True, text=text))
        logger.info(f"[CHAT] To: {chat_id} | Message: {text}")

    def get_sent_count(self) -> int:
        return len(self.sent_messages)

    def get_successful_sends(self) -> list[DeliveryResult]:
        return [m for m in self.sent_messages if m.success]

    def messages_to(self, chat_id: int) -> list[str]:
        """Texts successfully sent to one chat, oldest first."""
        return [m.text for m in self.sent_messages if m.success and m.chat_id == chat_id]

    def clear_history(self):
        self.sent_messages.clear()


# =============================================================================
# Broadcast
# =============================================================================

class ChatNotifier:
    """
    Best-effort broadcast of one message to many chats.

    Example usage:
        notifier = ChatNotifier(TelegramChannel(token))
        await notifier.broadcast("✅ Added 'Milk' to list", [111, 222])
    """

    def __init__(self, channel: ChatChannel):
        self.channel = channel

    async def broadcast(self, message: str, destinations: Iterable[int]) -> list[DeliveryResult]:
        """
        Deliver message to every destination concurrently.

        Never raises for delivery problems; each failure is logged and
        reported in the returned results.

        Args:
            message: Prebuilt text
            destinations: Chat ids

        Returns:
            One DeliveryResult per destination, in destination order
        """
        chat_ids = list(destinations)
        if not chat_ids:
            return []
        return list(await asyncio.gather(*(self._deliver(chat_id, message) for chat_id in chat_ids)))

    async def _deliver(self, chat_id: int, message: str) -> DeliveryResult:
        try:
            await self.channel.send(chat_id, message)
        except Exception as e:
            logger.error(f"[BROADCAST FAILED] To: {chat_id} | Error: {e}")
            return DeliveryResult(chat_id=chat_id, success=False, text=message, error=str(e))

        logger.info(f"[BROADCAST] To: {chat_id}")
        return DeliveryResult(chat_id=chat_id, success=True, text=message)
