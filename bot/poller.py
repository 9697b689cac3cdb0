"""
Telegram long-polling loop.

Fetches updates with getUpdates, hands each text message to the
CommandProcessor and sends the reply back to the same chat. Updates are
handled one at a time, in the order Telegram returns them.
"""

import asyncio
import logging
from typing import Optional

import aiohttp

from bot.commands import CommandProcessor
from shared.channels import ChatChannel, TelegramAPIError, TelegramChannel
from shared.errors import ChannelDeliveryError

logger = logging.getLogger("bot")

RETRY_DELAY_SECONDS = 5.0


async def process_update(update: dict, processor: CommandProcessor, channel: ChatChannel) -> Optional[str]:
    """
    Handle one Telegram update.

    Returns:
        The reply that was sent, or None if the update needed no reply
    """
    message = update.get("message")
    if not message or "text" not in message:
        return None

    chat_id = message["chat"]["id"]
    username = (message.get("from") or {}).get("username")

    reply = await processor.handle(chat_id, username, message["text"])
    if reply is None:
        return None

    try:
        await channel.send(chat_id, reply)
    except ChannelDeliveryError as e:
        logger.error(f"Failed to reply to chat {chat_id}: {e}")
    return reply


async def run_polling(
    telegram: TelegramChannel,
    processor: CommandProcessor,
    poll_timeout: int = 30,
) -> None:
    """Poll for updates until cancelled."""
    offset: Optional[int] = None
    logger.info("Bot polling started")

    while True:
        try:
            updates = await telegram.get_updates(offset=offset, timeout=poll_timeout)
        except (aiohttp.ClientError, asyncio.TimeoutError, TelegramAPIError) as e:
            logger.error(f"Polling failed: {e}; retrying in {RETRY_DELAY_SECONDS:.0f}s")
            await asyncio.sleep(RETRY_DELAY_SECONDS)
            continue

        for update in updates:
            offset = update["update_id"] + 1
            await process_update(update, processor, telegram)
