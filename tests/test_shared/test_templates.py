"""
Tests for chat message texts.
"""

import asyncio

from shared.errors import ItemNotFoundError, StoreUnavailableError
from shared.models import ListItem
from shared.templates import (
    LIST_EMPTY,
    fetch_snapshot,
    help_text,
    render_added,
    render_error,
    render_list,
    render_removed,
    render_show_error,
    render_snapshot,
)

ITEMS = [ListItem(id=1, name="Milk"), ListItem(id=4, name="Bread")]


class TestRenderList:
    def test_items(self):
        assert render_list(ITEMS) == "📋 Shopping list:\n  1. Milk\n  4. Bread\n"

    def test_empty(self):
        assert render_list([]) == LIST_EMPTY == "📋 List is empty."


class TestRenderSnapshot:
    def test_items(self):
        assert render_snapshot(ITEMS) == "\n\n📋 Current shopping list:\n  1. Milk\n  4. Bread\n"

    def test_empty(self):
        assert render_snapshot([]) == "\n📋 List is now empty."

    def test_unavailable(self):
        text = render_snapshot(None, StoreUnavailableError("Failed to list items: disk I/O error"))
        assert text == "\n❌ Error retrieving list: Failed to list items: disk I/O error"


class TestMutationTexts:
    def test_added(self):
        assert render_added("Milk", "\n📋 List is now empty.").startswith("✅ Added 'Milk' to list\n")

    def test_removed(self):
        assert render_removed(3, "") == "✅ Removed item #3 from list"

    def test_error(self):
        assert render_error(ItemNotFoundError(9)) == "❌ Item with id 9 not found"

    def test_show_error(self):
        assert render_show_error(StoreUnavailableError("x")) == "❌ Error: x"


class TestHelpText:
    def test_lists_every_command(self):
        text = help_text()

        assert text.startswith("These commands are supported:")
        for command in ("/help", "/add", "/remove", "/show", "/clear"):
            assert command in text


class TestFetchSnapshot:
    def test_reads_store(self, store):
        asyncio.run(store.add("Milk"))

        assert asyncio.run(fetch_snapshot(store)) == "\n\n📋 Current shopping list:\n  1. Milk\n"

    def test_store_failure_rendered(self, db_path):
        from shared.data_store import ShoppingListStore

        closed = ShoppingListStore(db_path)

        assert asyncio.run(fetch_snapshot(closed)).startswith("\n❌ Error retrieving list:")
