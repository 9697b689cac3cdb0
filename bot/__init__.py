"""
Chat front-end for the shared shopping list.

- commands: command parsing and execution against the shared store
- poller: Telegram long-polling loop that feeds messages to the commands
"""

from bot.commands import Command, CommandName, CommandProcessor, parse_command
from bot.poller import process_update, run_polling

__all__ = [
    "Command",
    "CommandName",
    "CommandProcessor",
    "parse_command",
    "process_update",
    "run_polling",
]
