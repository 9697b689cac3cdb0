"""
Domain models for the shared shopping list.

There is exactly one kind of entity: a ListItem, an immutable (id, name)
pair. Ids come from the Store; names are validated here before anything
touches the database.

The API request and response bodies live here too so both the routes and
the tests use the same shapes.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from shared.errors import ItemValidationError


MAX_NAME_LENGTH = 100


def validate_item_name(name: Any) -> str:
    """
    Check that a name can be stored as a list item.

    The name is returned unchanged: no trimming, no case folding.

    Args:
        name: Candidate item name

    Returns:
        The same name

    Raises:
        ItemValidationError: If the name is not a string, empty, or longer
            than MAX_NAME_LENGTH characters
    """
    if not isinstance(name, str):
        raise ItemValidationError("Name must be a string")
    if not name:
        raise ItemValidationError("Name cannot be empty")
    if len(name) > MAX_NAME_LENGTH:
        raise ItemValidationError(
            f"Name is too long (max {MAX_NAME_LENGTH} characters)"
        )
    return name


# =============================================================================
# Core Domain Model
# =============================================================================

class ListItem(BaseModel):
    """
    One entry on the shopping list.

    Items never change after creation; they only exist or don't.
    """
    model_config = ConfigDict(frozen=True)

    id: int = Field(..., ge=1, description="Store-assigned, strictly increasing id")
    name: str = Field(
        ...,
        min_length=1,
        max_length=MAX_NAME_LENGTH,
        description="Item text as entered",
    )

    def __str__(self) -> str:
        return f"{self.id}. {self.name}"


# =============================================================================
# API Schemas
# =============================================================================

class AddItemRequest(BaseModel):
    """Body of POST /items. Length rules are enforced by the Store."""
    model_config = ConfigDict(strict=True)

    name: str


class ItemResponse(BaseModel):
    id: int
    name: str

    @classmethod
    def from_item(cls, item: ListItem) -> "ItemResponse":
        return cls(id=item.id, name=item.name)


class ItemListResponse(BaseModel):
    items: list[ItemResponse]

    @classmethod
    def from_items(cls, items: list[ListItem]) -> "ItemListResponse":
        return cls(items=[ItemResponse.from_item(i) for i in items])


class ErrorResponse(BaseModel):
    error: str
