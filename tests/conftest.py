"""
Shared pytest fixtures for the shopping list tests.

Every test gets its own SQLite file under tmp_path, so tests never share
list state.
"""

import asyncio
import json
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from api.main import create_app
from bot.commands import CommandProcessor
from shared.auth import AuthGuard
from shared.channels import ChatNotifier, LoggingChannel, TelegramChannel
from shared.data_store import ShoppingListStore


API_TOKEN = "test-secret-token"


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "shopping_list.db"


@pytest.fixture
def store(db_path: Path) -> ShoppingListStore:
    """An open store on a fresh database, closed after the test."""
    store = ShoppingListStore(db_path)
    store.open()
    yield store
    store.close()


@pytest.fixture
def channel() -> LoggingChannel:
    """Fresh recording channel for each test."""
    return LoggingChannel()


@pytest.fixture
def notifier(channel: LoggingChannel) -> ChatNotifier:
    return ChatNotifier(channel)


@pytest.fixture
def auth_guard() -> AuthGuard:
    return AuthGuard(API_TOKEN)


@pytest.fixture
def auth_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {API_TOKEN}"}


# =============================================================================
# Chat fixtures
# =============================================================================

@pytest.fixture
def family_chat_id() -> int:
    """Allowed group chat."""
    return 1001


@pytest.fixture
def partner_chat_id() -> int:
    """Second allowed chat."""
    return 1002


@pytest.fixture
def stranger_chat_id() -> int:
    """Chat that is not on the allow list."""
    return 666


@pytest.fixture
def allowed_chat_ids(family_chat_id: int, partner_chat_id: int) -> tuple[int, ...]:
    return (family_chat_id, partner_chat_id)


@pytest.fixture
def processor(store: ShoppingListStore, allowed_chat_ids: tuple[int, ...]) -> CommandProcessor:
    return CommandProcessor(
        store,
        is_chat_allowed=lambda chat_id: chat_id in allowed_chat_ids,
        bot_username="ListBot",
    )


# =============================================================================
# API fixtures
# =============================================================================

@pytest.fixture
def app(store, auth_guard, notifier, allowed_chat_ids):
    return create_app(
        store=store,
        auth_guard=auth_guard,
        notifier=notifier,
        broadcast_chat_ids=allowed_chat_ids,
    )


@pytest.fixture
def api_client(app):
    with TestClient(app) as client:
        yield client


# =============================================================================
# Telegram fixtures
# =============================================================================

class FakeTelegramResponse:
    def __init__(self, status: int, body):
        self.status = status
        self.body = body

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return None

    async def json(self, content_type=None):
        # Let other tasks (and wait_for timeouts) run between requests
        await asyncio.sleep(0.01)
        if isinstance(self.body, str):
            return json.loads(self.body)
        return self.body


class FakeTelegramSession:
    """
    Stands in for aiohttp.ClientSession.

    Queued replies are used in order, then `default` for every further
    request. A queued exception is raised from post() instead.
    """

    def __init__(self):
        self.requests: list[tuple[str, dict]] = []
        self.replies: list = []
        self.default = (200, {"ok": True, "result": []})

    def reply(self, status: int, body) -> None:
        self.replies.append((status, body))

    def fail(self, error: Exception) -> None:
        self.replies.append(error)

    def post(self, url: str, json=None, timeout=None):
        self.requests.append((url, json))
        reply = self.replies.pop(0) if self.replies else self.default
        if isinstance(reply, Exception):
            raise reply
        return FakeTelegramResponse(*reply)

    def methods(self) -> list[str]:
        return [url.rsplit("/", 1)[-1] for url, _ in self.requests]

    async def close(self):
        pass


@pytest.fixture
def telegram_session() -> FakeTelegramSession:
    return FakeTelegramSession()


@pytest.fixture
def telegram(telegram_session: FakeTelegramSession) -> TelegramChannel:
    return TelegramChannel("123:abc", session=telegram_session)
