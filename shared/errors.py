"""
Error taxonomy for the shopping list core.

Every failure the Store, AuthGuard or interfaces report is one of these
classes. Each carries the HTTP status the API layer answers with, so the
routes never have to map errors by hand.

- ItemValidationError: bad input (empty or oversized name)
- ItemNotFoundError: an operation referenced an id that has no row
- UnauthorizedError: bearer credential check failed
- StoreUnavailableError: the SQLite medium could not be reached or written
"""

from typing import Optional


class ShoppingListError(Exception):
    """Base class for all errors surfaced by the shopping list core."""

    status_code: int = 500
    kind: str = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class ItemValidationError(ShoppingListError):
    """An item name was rejected before it reached the database."""

    status_code = 400
    kind = "validation"


class ItemNotFoundError(ShoppingListError):
    """No row exists for the requested item id."""

    status_code = 404
    kind = "not_found"

    def __init__(self, item_id: int, message: Optional[str] = None):
        super().__init__(message or f"Item with id {item_id} not found")
        self.item_id = item_id


class UnauthorizedError(ShoppingListError):
    """
    The presented credential was missing, malformed or wrong.

    The message is always the same so callers learn nothing about which
    part of the check failed.
    """

    status_code = 401
    kind = "unauthorized"

    def __init__(self):
        super().__init__("unauthorized")


class StoreUnavailableError(ShoppingListError):
    """The durable medium failed (closed store, disk or SQLite error)."""

    status_code = 500
    kind = "unavailable"


class ChannelDeliveryError(Exception):
    """A chat message could not be delivered to one destination."""

    def __init__(self, chat_id: int, reason: str):
        super().__init__(f"Delivery to chat {chat_id} failed: {reason}")
        self.chat_id = chat_id
        self.reason = reason


class ConfigError(Exception):
    """The process configuration cannot be used to start the service."""
