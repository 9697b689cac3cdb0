"""
Chat message texts for the shopping list.

Both front-ends render through these functions: the bot replies with them,
and the HTTP API broadcasts the same texts after a successful mutation, so
a chat sees identical wording no matter where a change came from.
"""

from typing import Iterable, Optional

from shared.errors import ShoppingListError
from shared.models import ListItem


# =============================================================================
# Fixed texts
# =============================================================================

LIST_CLEARED = "🗑️ List cleared."
LIST_EMPTY = "📋 List is empty."
CHAT_NOT_ALLOWED = "⛔ This bot is not authorized for use in this chat."

COMMAND_DESCRIPTIONS = [
    ("help", "display this text."),
    ("add", "add a shopping list item."),
    ("remove", "remove a shopping list item by number."),
    ("show", "show shopping list."),
    ("clear", "clear shopping list."),
]


def help_text() -> str:
    lines = [f"/{name} — {description}" for name, description in COMMAND_DESCRIPTIONS]
    return "These commands are supported:\n\n" + "\n".join(lines)


# =============================================================================
# List rendering
# =============================================================================

def format_item_lines(items: Iterable[ListItem]) -> str:
    """One indented "<id>. <name>" line per item, each ending in a newline."""
    return "".join(f"  {item.id}. {item.name}\n" for item in items)


def render_list(items: list[ListItem]) -> str:
    """Reply for the show command."""
    if not items:
        return LIST_EMPTY
    return "📋 Shopping list:\n" + format_item_lines(items)


def render_snapshot(items: Optional[list[ListItem]], error: Optional[Exception] = None) -> str:
    """
    The list block appended after a mutation summary.

    Args:
        items: Current items, or None if they could not be fetched
        error: Why the items could not be fetched
    """
    if items is None:
        return f"\n❌ Error retrieving list: {error}"
    if not items:
        return "\n📋 List is now empty."
    return "\n\n📋 Current shopping list:\n" + format_item_lines(items)


async def fetch_snapshot(store) -> str:
    """Read the list from the store and render it as a snapshot block."""
    try:
        items = await store.list()
    except ShoppingListError as e:
        return render_snapshot(None, e)
    return render_snapshot(items)


# =============================================================================
# Mutation summaries
# =============================================================================

def render_added(name: str, snapshot: str) -> str:
    return f"✅ Added '{name}' to list{snapshot}"


def render_removed(item_id: int, snapshot: str) -> str:
    return f"✅ Removed item #{item_id} from list{snapshot}"


def render_error(error: Exception) -> str:
    return f"❌ {error}"


def render_show_error(error: Exception) -> str:
    return f"❌ Error: {error}"
