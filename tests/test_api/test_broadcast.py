"""
Tests for broadcasting API changes to chats.

A mutation made over HTTP is announced to every configured chat with the
same text the bot would have replied with. Mutations made in chat are only
answered in that chat.
"""

import asyncio

from fastapi.testclient import TestClient

from api.main import create_app
from shared.channels import ChatNotifier, LoggingChannel


class TestApiBroadcast:

    def test_add_broadcasts_to_every_chat(self, api_client, channel, auth_headers, allowed_chat_ids):
        api_client.post("/items", json={"name": "Bread"}, headers=auth_headers)

        for chat_id in allowed_chat_ids:
            messages = channel.messages_to(chat_id)
            assert len(messages) == 1
            assert "Added 'Bread' to list" in messages[0]
            assert "1. Bread" in messages[0]

    def test_remove_broadcast_contains_snapshot(self, api_client, store, channel, auth_headers, family_chat_id):
        milk = asyncio.run(store.add("Milk"))
        asyncio.run(store.add("Eggs"))

        api_client.delete(f"/items/{milk.id}", headers=auth_headers)

        (message,) = channel.messages_to(family_chat_id)
        assert message == "✅ Removed item #1 from list\n\n📋 Current shopping list:\n  2. Eggs\n"

    def test_clear_broadcast(self, api_client, channel, auth_headers, family_chat_id):
        api_client.delete("/items", headers=auth_headers)

        assert channel.messages_to(family_chat_id) == ["🗑️ List cleared."]

    def test_reads_do_not_broadcast(self, api_client, channel, auth_headers):
        api_client.get("/items", headers=auth_headers)

        assert channel.get_sent_count() == 0

    def test_failed_mutations_do_not_broadcast(self, api_client, channel, auth_headers):
        api_client.post("/items", json={"name": ""}, headers=auth_headers)
        api_client.delete("/items/42", headers=auth_headers)

        assert channel.get_sent_count() == 0

    def test_delivery_failure_does_not_change_status(self, store, auth_guard, auth_headers):
        channel = LoggingChannel(failing_chat_ids=[1001])
        app = create_app(store, auth_guard, ChatNotifier(channel), broadcast_chat_ids=[1001, 1002])

        with TestClient(app) as client:
            response = client.post("/items", json={"name": "Milk"}, headers=auth_headers)

        assert response.status_code == 201
        assert channel.messages_to(1001) == []
        assert len(channel.messages_to(1002)) == 1

    def test_no_destinations(self, store, auth_guard, auth_headers):
        channel = LoggingChannel()
        app = create_app(store, auth_guard, ChatNotifier(channel), broadcast_chat_ids=[])

        with TestClient(app) as client:
            response = client.post("/items", json={"name": "Milk"}, headers=auth_headers)

        assert response.status_code == 201
        assert channel.get_sent_count() == 0


class TestCrossInterface:
    """Both front-ends share one list; only the API path broadcasts."""

    def test_chat_add_replies_locally_without_broadcast(
        self, api_client, processor, channel, family_chat_id
    ):
        reply = asyncio.run(processor.handle(family_chat_id, "alice", "/add Bread"))

        assert "Added 'Bread' to list" in reply
        assert "1. Bread" in reply
        assert channel.get_sent_count() == 0

    def test_api_sees_chat_changes(self, api_client, processor, auth_headers, family_chat_id):
        asyncio.run(processor.handle(family_chat_id, "alice", "/add Bread"))

        response = api_client.get("/items", headers=auth_headers)

        assert response.json() == {"items": [{"id": 1, "name": "Bread"}]}

    def test_chat_sees_api_changes(self, api_client, processor, auth_headers, family_chat_id):
        api_client.post("/items", json={"name": "Milk"}, headers=auth_headers)

        reply = asyncio.run(processor.handle(family_chat_id, "bob", "/show"))

        assert reply == "📋 Shopping list:\n  1. Milk\n"

    def test_same_text_on_both_paths(self, api_client, store, processor, channel, auth_headers, family_chat_id):
        chat_reply = asyncio.run(processor.handle(family_chat_id, "alice", "/add Bread"))
        asyncio.run(store.clear())

        api_client.post("/items", json={"name": "Bread"}, headers=auth_headers)
        (broadcast,) = channel.messages_to(family_chat_id)

        assert chat_reply.replace("1. Bread", "") == broadcast.replace("2. Bread", "")

    def test_interleaved_adds_get_distinct_ids(self, api_client, store, processor, auth_headers, family_chat_id):
        async def add_from_both():
            return await asyncio.gather(*(
                processor.handle(family_chat_id, "alice", f"/add Chat {n}") if n % 2
                else store.add(f"Direct {n}")
                for n in range(20)
            ))

        asyncio.run(add_from_both())
        api_client.post("/items", json={"name": "Api"}, headers=auth_headers)

        items = api_client.get("/items", headers=auth_headers).json()["items"]
        ids = [item["id"] for item in items]
        assert len(items) == 21
        assert len(set(ids)) == 21
        assert ids == sorted(ids)
        assert items[-1] == {"id": 21, "name": "Api"}
