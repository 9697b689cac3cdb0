"""
SQLite-backed store for the shared shopping list.

Both front-ends (chat bot and HTTP API) hold the same ShoppingListStore
instance. The store owns exactly one SQLite connection, and every operation
that touches it runs as a job on a single-worker executor:

- Jobs execute one at a time, in the order they were submitted
- Id assignment happens inside the worker, so two adds can never get the same id
- Name validation runs in the caller before a job is queued
- A queued job always runs to completion, even if the awaiting task is cancelled

Ids come from an AUTOINCREMENT sequence, so a deleted id (or every id, after
clear) is never handed out again.
"""

import asyncio
import logging
import sqlite3
from concurrent.futures import ThreadPoolExecutor
from functools import partial
from pathlib import Path
from typing import Any, Callable, Optional, Union

from shared.errors import ItemNotFoundError, StoreUnavailableError
from shared.models import ListItem, validate_item_name

logger = logging.getLogger("store")

DEFAULT_DATA_DIR = Path("/data")
DEFAULT_DB_NAME = "shopping_list.db"
SQLITE_MAX_ID = 2**63 - 1

_CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS list_items (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL
)
"""


def default_db_path() -> Path:
    """/data/shopping_list.db when a /data volume exists, else /tmp."""
    if DEFAULT_DATA_DIR.is_dir():
        return DEFAULT_DATA_DIR / DEFAULT_DB_NAME
    return Path("/tmp") / DEFAULT_DB_NAME


def _log_abandoned_job(action: str, future: asyncio.Future) -> None:
    if future.cancelled():
        return
    error = future.exception()
    if error is not None:
        logger.error(f"Failed to {action} after the caller was cancelled: {error}")


class ShoppingListStore:
    """
    The single owner of the shopping list's durable state.

    Example usage:
        store = ShoppingListStore("/tmp/shopping_list.db")
        store.open()
        item = await store.add("Milk")
        await store.remove(item.id)
        store.close()
    """

    def __init__(self, db_path: Union[str, Path, None] = None):
        """
        Args:
            db_path: SQLite file to use. Defaults to default_db_path().
        """
        self.db_path = Path(db_path) if db_path is not None else default_db_path()
        self._executor: Optional[ThreadPoolExecutor] = None
        self._conn: Optional[sqlite3.Connection] = None

    # =========================================================================
    # Lifecycle
    # =========================================================================

    @property
    def is_open(self) -> bool:
        return self._executor is not None

    def open(self) -> None:
        """
        Start the worker and open the connection on it.

        Creates the parent directory and the table if they are missing, and
        upgrades a legacy table that lacks AUTOINCREMENT.

        Raises:
            StoreUnavailableError: If the database cannot be opened
        """
        if self._executor is not None:
            return
        self._executor = ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="shopping-list-store"
        )
        try:
            self._executor.submit(self._connect).result()
        except (sqlite3.Error, OSError) as e:
            self._executor.shutdown(wait=True)
            self._executor = None
            logger.error(f"Failed to open database {self.db_path}: {e}")
            raise StoreUnavailableError(f"Failed to open database: {e}") from e
        logger.info(f"Opened shopping list database at {self.db_path}")

    def close(self) -> None:
        """Close the connection after all queued jobs have finished."""
        if self._executor is None:
            return
        executor, self._executor = self._executor, None
        executor.submit(self._disconnect).result()
        executor.shutdown(wait=True)
        logger.info("Closed shopping list database")

    def __enter__(self) -> "ShoppingListStore":
        self.open()
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # =========================================================================
    # Operations
    # =========================================================================

    async def add(self, name: str) -> ListItem:
        """
        Append an item and return it with its new id.

        Raises:
            ItemValidationError: If the name is empty or too long
            StoreUnavailableError: If the row could not be written
        """
        name = validate_item_name(name)
        item_id = await self._run(self._insert, name, action="add item")
        logger.debug(f"Added item {item_id}: {name!r}")
        return ListItem(id=item_id, name=name)

    async def remove(self, item_id: int) -> None:
        """
        Delete one item by id.

        Raises:
            ItemNotFoundError: If no row has that id (never issued or already removed)
            StoreUnavailableError: If the row could not be deleted
        """
        if not 0 < item_id <= SQLITE_MAX_ID:
            raise ItemNotFoundError(item_id)
        deleted = await self._run(self._delete, item_id, action="remove item")
        if deleted == 0:
            raise ItemNotFoundError(item_id)
        logger.debug(f"Removed item {item_id}")

    async def list(self) -> list[ListItem]:
        """All items, ascending by id."""
        rows = await self._run(self._select_all, action="list items")
        return [ListItem(id=row["id"], name=row["name"]) for row in rows]

    async def clear(self) -> None:
        """Delete every item. Succeeds on an empty list; ids keep increasing."""
        deleted = await self._run(self._delete_all, action="clear list")
        logger.debug(f"Cleared list ({deleted} items)")

    # =========================================================================
    # Worker plumbing
    # =========================================================================

    async def _run(self, job: Callable[..., Any], *args: Any, action: str) -> Any:
        """Queue a job on the worker and wait for its result."""
        executor = self._executor
        if executor is None:
            raise StoreUnavailableError(f"Failed to {action}: store is not open")

        loop = asyncio.get_running_loop()
        future = loop.run_in_executor(executor, job, *args)
        try:
            return await asyncio.shield(future)
        except asyncio.CancelledError:
            # The job still runs; its outcome now has no reader but the log
            future.add_done_callback(partial(_log_abandoned_job, action))
            raise
        except sqlite3.Error as e:
            logger.error(f"Failed to {action}: {e}")
            raise StoreUnavailableError(f"Failed to {action}: {e}") from e

    # The methods below run on the worker thread only.

    def _connect(self) -> None:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(
            str(self.db_path),
            check_same_thread=False,
            isolation_level=None,
        )
        conn.row_factory = sqlite3.Row
        try:
            self._ensure_schema(conn)
        except sqlite3.Error:
            conn.close()
            raise
        self._conn = conn

    def _disconnect(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def _ensure_schema(self, conn: sqlite3.Connection) -> None:
        row = conn.execute(
            "SELECT sql FROM sqlite_master WHERE type = 'table' AND name = 'list_items'"
        ).fetchone()
        if row is None:
            conn.execute(_CREATE_TABLE_SQL)
        elif "AUTOINCREMENT" not in row["sql"].upper():
            self._upgrade_legacy_table(conn)

    def _upgrade_legacy_table(self, conn: sqlite3.Connection) -> None:
        """Rebuild a plain INTEGER PRIMARY KEY table with AUTOINCREMENT, keeping ids."""
        logger.info("Upgrading list_items table to AUTOINCREMENT ids")
        conn.execute("BEGIN")
        try:
            conn.execute("ALTER TABLE list_items RENAME TO list_items_legacy")
            conn.execute(_CREATE_TABLE_SQL)
            conn.execute(
                "INSERT INTO list_items (id, name) "
                "SELECT id, name FROM list_items_legacy ORDER BY id"
            )
            conn.execute("DROP TABLE list_items_legacy")
            conn.execute("COMMIT")
        except sqlite3.Error:
            conn.execute("ROLLBACK")
            raise

    def _connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise sqlite3.OperationalError("database connection is closed")
        return self._conn

    def _insert(self, name: str) -> int:
        cursor = self._connection().execute(
            "INSERT INTO list_items (name) VALUES (?)", (name,)
        )
        return cursor.lastrowid

    def _delete(self, item_id: int) -> int:
        cursor = self._connection().execute(
            "DELETE FROM list_items WHERE id = ?", (item_id,)
        )
        return cursor.rowcount

    def _delete_all(self) -> int:
        cursor = self._connection().execute("DELETE FROM list_items")
        return cursor.rowcount

    def _select_all(self):
        return self._connection().execute(
            "SELECT id, name FROM list_items ORDER BY id"
        ).fetchall()
