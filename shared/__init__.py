"""
Core of the shared shopping list.

Used by both front-ends (the chat bot and the HTTP API):
- Data model and validation
- SQLite store with a single serialized connection
- Bearer token guard for the API
- Chat channels and the broadcast notifier
- Message texts
"""

from shared.models import ListItem, validate_item_name
from shared.errors import (
    ShoppingListError,
    ItemValidationError,
    ItemNotFoundError,
    UnauthorizedError,
    StoreUnavailableError,
    ChannelDeliveryError,
    ConfigError,
)
from shared.data_store import ShoppingListStore
from shared.auth import AuthGuard
from shared.channels import ChatNotifier, LoggingChannel, TelegramChannel, DeliveryResult
from shared.config import Settings

__all__ = [
    "ListItem",
    "validate_item_name",
    "ShoppingListError",
    "ItemValidationError",
    "ItemNotFoundError",
    "UnauthorizedError",
    "StoreUnavailableError",
    "ChannelDeliveryError",
    "ConfigError",
    "ShoppingListStore",
    "AuthGuard",
    "ChatNotifier",
    "LoggingChannel",
    "TelegramChannel",
    "DeliveryResult",
    "Settings",
]
