"""
FastAPI application for the shared shopping list.

The HTTP front-end of the list. It shares its ShoppingListStore with the
chat bot, so the app is built by create_app() around objects the process
already owns instead of creating its own.

Every /items route requires "Authorization: Bearer <API_TOKEN>". The token
is checked before the request body is read and before the store is touched.
After a successful mutation the response goes out first; a background task
then broadcasts the same text the bot would have replied with to every
configured chat.

Run with:
    python cli.py serve
"""

import logging
from contextlib import asynccontextmanager
from typing import Callable, Iterable, Optional

import pydantic
from fastapi import APIRouter, BackgroundTasks, Depends, FastAPI, Header, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse

from shared.auth import AuthGuard
from shared.channels import ChatNotifier
from shared.data_store import ShoppingListStore
from shared.errors import ItemValidationError, ShoppingListError, UnauthorizedError
from shared.models import AddItemRequest, ItemListResponse, ItemResponse
from shared.templates import LIST_CLEARED, fetch_snapshot, render_added, render_removed

logger = logging.getLogger("api")

USAGE = """Shopping List API

Authentication: Bearer token in Authorization header (all endpoints except this one)

Endpoints:
  GET    /items      - List all items. Returns: {"items": [{"id": number, "name": string}]}
  POST   /items      - Add item. Body: {"name": string} (max 100 chars). Returns: {"id": number, "name": string}
  DELETE /items/{id}  - Remove item by ID. Returns: 204 No Content
  DELETE /items      - Clear all items. Returns: 204 No Content

Error responses: {"error": string} with appropriate HTTP status code
"""


# =============================================================================
# Dependencies
# =============================================================================

def get_store(request: Request) -> ShoppingListStore:
    return request.app.state.store


def require_token(request: Request, authorization: Optional[str] = Header(default=None)) -> None:
    """Reject the request with 401 unless it carries the API token."""
    guard: AuthGuard = request.app.state.auth_guard
    guard.check(authorization)


# =============================================================================
# Broadcast
# =============================================================================

async def broadcast_change(app: FastAPI, render: Callable[[str], str], with_snapshot: bool = True) -> None:
    """
    Tell the configured chats about a change made through the API.

    Args:
        app: The application whose store, notifier and destinations to use
        render: Builds the message from the rendered list snapshot
        with_snapshot: Whether to read the current list first
    """
    state = app.state
    snapshot = await fetch_snapshot(state.store) if with_snapshot else ""
    try:
        await state.notifier.broadcast(render(snapshot), state.broadcast_chat_ids)
    except Exception:
        logger.exception("Broadcast of API change failed")


def schedule_broadcast(
    request: Request,
    background_tasks: BackgroundTasks,
    render: Callable[[str], str],
    with_snapshot: bool = True,
) -> None:
    if request.app.state.broadcast_chat_ids:
        background_tasks.add_task(broadcast_change, request.app, render, with_snapshot)


# =============================================================================
# Routes
# =============================================================================

items_router = APIRouter(prefix="/items", tags=["Items"], dependencies=[Depends(require_token)])


@items_router.get("", response_model=ItemListResponse)
async def list_items(store: ShoppingListStore = Depends(get_store)):
    """All items, ordered by id."""
    return ItemListResponse.from_items(await store.list())


@items_router.post("", status_code=201, response_model=ItemResponse)
async def add_item(
    request: Request,
    background_tasks: BackgroundTasks,
    store: ShoppingListStore = Depends(get_store),
):
    """Add an item. Body: {"name": string}."""
    try:
        payload = AddItemRequest.model_validate_json(await request.body())
    except pydantic.ValidationError:
        raise ItemValidationError("Request body must be a JSON object with a string 'name'")

    item = await store.add(payload.name)
    logger.info(f"API added item {item.id}: {item.name!r}")
    schedule_broadcast(request, background_tasks, lambda snapshot: render_added(item.name, snapshot))
    return ItemResponse.from_item(item)


@items_router.delete("/{item_id}", status_code=204)
async def remove_item(
    item_id: int,
    request: Request,
    background_tasks: BackgroundTasks,
    store: ShoppingListStore = Depends(get_store),
):
    """Remove one item by id."""
    await store.remove(item_id)
    logger.info(f"API removed item {item_id}")
    schedule_broadcast(request, background_tasks, lambda snapshot: render_removed(item_id, snapshot))
    return Response(status_code=204)


@items_router.delete("", status_code=204)
async def clear_items(
    request: Request,
    background_tasks: BackgroundTasks,
    store: ShoppingListStore = Depends(get_store),
):
    """Remove every item."""
    await store.clear()
    logger.info("API cleared the list")
    schedule_broadcast(request, background_tasks, lambda _: LIST_CLEARED, with_snapshot=False)
    return Response(status_code=204)


# =============================================================================
# Error handlers
# =============================================================================

async def handle_shopping_list_error(request: Request, exc: ShoppingListError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, UnauthorizedError) else None
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc)}, headers=headers)


async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    fields = [str(err["loc"][-1]) for err in exc.errors() if err.get("loc")]
    message = f"Invalid value for {', '.join(fields)}" if fields else "Invalid request"
    return JSONResponse(status_code=400, content={"error": message})


# =============================================================================
# Application factory
# =============================================================================

def create_app(
    store: ShoppingListStore,
    auth_guard: AuthGuard,
    notifier: ChatNotifier,
    broadcast_chat_ids: Iterable[int] = (),
) -> FastAPI:
    """
    Build the API around the process-wide store.

    Args:
        store: The open store shared with the chat bot
        auth_guard: Checks the bearer token on /items routes
        notifier: Delivers broadcasts of API changes
        broadcast_chat_ids: Chats that receive those broadcasts

    The store's lifecycle belongs to the caller; the app never opens or
    closes it.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting Shopping List API")
        yield
        logger.info("Shutting down Shopping List API")

    app = FastAPI(
        title="Shopping List API",
        description="Shared shopping list, also editable from the chat bot.",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.store = store
    app.state.auth_guard = auth_guard
    app.state.notifier = notifier
    app.state.broadcast_chat_ids = tuple(broadcast_chat_ids)

    @app.get("/", response_class=PlainTextResponse, tags=["Docs"])
    async def usage():
        """Plain-text usage documentation. No authentication."""
        return USAGE

    @app.get("/health", tags=["Health"])
    async def health_check():
        return {"status": "healthy", "service": "shopping-list"}

    app.include_router(items_router)
    app.add_exception_handler(ShoppingListError, handle_shopping_list_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
    return app
