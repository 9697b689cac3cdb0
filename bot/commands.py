"""
Chat commands for the shared shopping list.

Supported commands (lowercase, with a leading slash):
    /help           list the commands
    /add <text>     add an item
    /remove <id>    remove an item by number
    /show           show the list
    /clear          remove every item

Replies go only to the chat that sent the command. Changes made here are
not broadcast; the reply itself is the notification for that chat.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from shared.data_store import ShoppingListStore
from shared.errors import ShoppingListError
from shared.templates import (
    CHAT_NOT_ALLOWED,
    LIST_CLEARED,
    fetch_snapshot,
    help_text,
    render_added,
    render_error,
    render_list,
    render_removed,
    render_show_error,
)

logger = logging.getLogger("bot")


class CommandName(str, Enum):
    HELP = "help"
    ADD = "add"
    REMOVE = "remove"
    SHOW = "show"
    CLEAR = "clear"


@dataclass(frozen=True)
class Command:
    """A parsed chat command. `item_id` is set for remove, `text` for add."""
    name: CommandName
    text: str = ""
    item_id: Optional[int] = None


def parse_command(text: Optional[str], bot_username: Optional[str] = None) -> Optional[Command]:
    """
    Parse a chat message into a Command.

    Accepts "/cmd args" and "/cmd@botname args". Messages that are not one
    of our commands, commands addressed to another bot, and remove with a
    non-numeric argument all return None.

    Args:
        text: Message text
        bot_username: This bot's username, to check "/cmd@botname"

    Returns:
        The command, or None if the message should be ignored
    """
    if not text or not text.startswith("/"):
        return None

    parts = text[1:].split(maxsplit=1)
    if not parts:
        return None
    head = parts[0]
    args = parts[1] if len(parts) > 1 else ""
    name, _, mention = head.partition("@")
    if mention and bot_username and mention.lower() != bot_username.lower():
        return None

    try:
        command = CommandName(name)
    except ValueError:
        return None

    if command is CommandName.ADD:
        return Command(command, text=args)
    if command is CommandName.REMOVE:
        arg = args.strip()
        if not (arg.isascii() and arg.isdigit()):
            return None
        return Command(command, item_id=int(arg))
    return Command(command)


class CommandProcessor:
    """
    Runs chat commands against the shared store.

    Example usage:
        processor = CommandProcessor(store, settings.is_chat_allowed)
        reply = await processor.handle(chat_id, "alice", "/add Milk")
    """

    def __init__(
        self,
        store: ShoppingListStore,
        is_chat_allowed: Callable[[int], bool] = lambda chat_id: True,
        bot_username: Optional[str] = None,
    ):
        """
        Args:
            store: The store shared with the HTTP API
            is_chat_allowed: Allow-list check for the issuing chat
            bot_username: This bot's username, for "/cmd@botname"
        """
        self.store = store
        self.is_chat_allowed = is_chat_allowed
        self.bot_username = bot_username

    async def handle(self, chat_id: int, username: Optional[str], text: Optional[str]) -> Optional[str]:
        """
        Handle one message and return the reply for the issuing chat.

        Returns:
            The reply text, or None when the message is not a command
        """
        command = parse_command(text, self.bot_username)
        if command is None:
            return None

        if not self.is_chat_allowed(chat_id):
            logger.warning(f"Unauthorized access attempt from chat {chat_id}")
            return CHAT_NOT_ALLOWED

        return await self.execute(command, chat_id, username or "unknown")

    async def execute(self, command: Command, chat_id: int, username: str) -> str:
        if command.name is CommandName.HELP:
            logger.info(f"{username} used help in {chat_id}")
            return help_text()

        if command.name is CommandName.ADD:
            logger.info(f"{username} used add with {command.text}")
            try:
                item = await self.store.add(command.text)
            except ShoppingListError as e:
                return render_error(e)
            return render_added(item.name, await fetch_snapshot(self.store))

        if command.name is CommandName.REMOVE:
            logger.info(f"{username} used remove with {command.item_id}")
            try:
                await self.store.remove(command.item_id)
            except ShoppingListError as e:
                return render_error(e)
            return render_removed(command.item_id, await fetch_snapshot(self.store))

        if command.name is CommandName.SHOW:
            logger.info(f"{username} used show")
            try:
                items = await self.store.list()
            except ShoppingListError as e:
                return render_show_error(e)
            return render_list(items)

        logger.info(f"{username} used clear")
        try:
            await self.store.clear()
        except ShoppingListError as e:
            return render_error(e)
        return LIST_CLEARED
