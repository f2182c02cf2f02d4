"""SQLite database client wrapper with CRUD operations and transactions."""

import asyncio
import json
import logging
import re
import threading
import weakref
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from contextvars import ContextVar
from datetime import date, datetime
from pathlib import Path
from typing import Any

import aiosqlite

from src.core.config import settings


logger = logging.getLogger(__name__)


class DatabaseError(RuntimeError):
    """Raised when the underlying SQLite driver fails."""


class RecordNotFoundError(KeyError):
    """Raised when a record id does not exist in a collection."""


class UniqueConstraintError(DatabaseError):
    """Raised when a write violates a UNIQUE constraint."""


def _validate_collection_name(collection: str) -> None:
    """Validate that a collection name contains only alphanumeric characters and underscores."""
    if not re.match(r"^[a-zA-Z_][a-zA-Z0-9_]*$", collection):
        msg = f"Invalid collection name: {collection}. Only alphanumeric characters and underscores are allowed."
        raise ValueError(msg)


def sanitize_param(value: str | int | float | bool | None) -> str:
    """Escape a value for safe embedding in filter expressions via json.dumps."""
    return json.dumps(str(value))[1:-1]


def _convert_record_ids(record: dict[str, Any]) -> dict[str, Any]:
    """Convert integer ID and foreign key fields to strings for Pydantic compatibility."""
    converted = record.copy()
    for key, value in converted.items():
        if isinstance(value, int) and not isinstance(value, bool) and (key == "id" or key.endswith("_id")):
            converted[key] = str(value)
    return converted


def _to_db_value(value: Any) -> Any:
    """Convert a Python value into something SQLite can bind."""
    if isinstance(value, datetime | date):
        return value.isoformat()
    if isinstance(value, dict | list):
        return json.dumps(value)
    return value


def get_db_path(db_path: str | None = None) -> Path:
    """Get the resolved SQLite database file path."""
    path_str = db_path or settings.sqlite_db_path
    return Path(path_str).resolve()


def _parse_value(value: str, *, is_like: bool = False) -> str | int | float | bool | None:
    """Parse a string value to the appropriate Python type for SQLite."""
    if is_like:
        return value.replace("%", "\\%").replace("_", "\\_")

    if value.isdigit():
        return int(value)
    if value.replace(".", "", 1).isdigit():
        return float(value)

    if value.lower() == "true":
        return True
    if value.lower() == "false":
        return False

    return value


_SQL_OPERATORS = {
    "=": "=",
    "!=": "!=",
    ">": ">",
    "<": "<",
    ">=": ">=",
    "<=": "<=",
    "~": "LIKE",
}


def _parse_single_comparison(comparison: str) -> tuple[str, str | int | float | bool | None]:
    """Parse a single comparison expression into a SQL condition and parameter."""
    match = re.match(
        r"""(\w+)\s*(!=|>=|<=|=|>|<|~)\s*(['"])([^'"]*)\3""",
        comparison,
    )
    if not match:
        msg = f"Invalid filter syntax: {comparison}"
        raise ValueError(msg)

    field, op, raw_value = match.group(1), match.group(2), match.group(4)
    sql_op = _SQL_OPERATORS[op]

    if sql_op == "LIKE":
        return f"{field} LIKE ? ESCAPE '\\'", f"%{_parse_value(raw_value, is_like=True)}%"
    return f"{field} {sql_op} ?", _parse_value(raw_value)


def parse_filter(filter_query: str) -> tuple[str, list[str | int | float | bool | None]]:
    """Parse ``field op "value" && ...`` filter syntax into a SQL WHERE clause and parameters."""
    if not filter_query:
        return "", []

    conditions = []
    params = []
    for raw_part in filter_query.split("&&"):
        cond, value = _parse_single_comparison(raw_part.strip())
        conditions.append(cond)
        params.append(value)

    return " AND ".join(conditions), params


def _record_key(collection: str, record_id: str) -> int:
    """Return the integer primary key for a record id string."""
    if not str(record_id).isdigit():
        raise RecordNotFoundError(f"Record not found in {collection}: {record_id}")
    return int(record_id)


def _rows_to_records(cursor: aiosqlite.Cursor, rows: list[Any]) -> list[dict[str, Any]]:
    columns = [description[0] for description in cursor.description]
    return [_convert_record_ids(dict(zip(columns, row, strict=True))) for row in rows]


_db_connections: dict[tuple[int, int, str], aiosqlite.Connection] = {}
_db_lock = asyncio.Lock()
_write_locks: weakref.WeakKeyDictionary[asyncio.AbstractEventLoop, asyncio.Lock] = weakref.WeakKeyDictionary()
_in_transaction: ContextVar[bool] = ContextVar("_in_transaction", default=False)


async def get_connection(*, db_path: str | None = None) -> aiosqlite.Connection:
    """Get or create a cached connection for the current thread, loop, and db path."""
    thread_id = threading.get_ident()
    loop = asyncio.get_running_loop()
    loop_id = id(loop)
    path = get_db_path(db_path)
    cache_key = (thread_id, loop_id, str(path))

    if cache_key in _db_connections:
        return _db_connections[cache_key]

    async with _db_lock:
        # Double-check after acquiring lock
        if cache_key in _db_connections:
            return _db_connections[cache_key]

        path.parent.mkdir(parents=True, exist_ok=True)

        conn = await aiosqlite.connect(str(path))
        await conn.execute("PRAGMA foreign_keys = ON")
        await conn.execute("PRAGMA journal_mode = WAL")

        _db_connections[cache_key] = conn

        logger.info(
            "Created new SQLite connection",
            extra={"db_path": str(path), "thread_id": thread_id, "loop_id": loop_id},
        )
        return conn


async def close_connection(*, db_path: str | None = None) -> None:
    """Close the cached SQLite connection for the current thread, loop, and db path."""
    loop_id = id(asyncio.get_running_loop())
    path = get_db_path(db_path)
    cache_key = (threading.get_ident(), loop_id, str(path))

    async with _db_lock:
        conn = _db_connections.pop(cache_key, None)
        if conn is None:
            return
        try:
            await conn.close()
            logger.info("Closed SQLite connection", extra={"db_path": str(path), "loop_id": loop_id})
        except aiosqlite.Error as e:
            logger.warning("Error closing SQLite connection", extra={"error": str(e), "loop_id": loop_id})


def _get_write_lock() -> asyncio.Lock:
    """Return the lock serialising access to the shared connection of the running loop."""
    loop = asyncio.get_running_loop()
    lock = _write_locks.get(loop)
    if lock is None:
        lock = _write_locks[loop] = asyncio.Lock()
    return lock


@asynccontextmanager
async def _exclusive() -> AsyncIterator[None]:
    """Hold the connection for one statement unless a transaction() block already owns it.

    All coroutines on a loop share one connection, so a statement issued while
    another coroutine's transaction is open would join (and commit) it.
    """
    if _in_transaction.get():
        yield
        return

    async with _get_write_lock():
        yield


async def _commit(conn: aiosqlite.Connection) -> None:
    """Commit unless an enclosing transaction() block owns the commit."""
    if not _in_transaction.get():
        await conn.commit()


@asynccontextmanager
async def transaction() -> AsyncIterator[None]:
    """Run the enclosed reads and writes as one atomic unit.

    Commits when the block exits normally and rolls back on any exception.
    Nested use joins the outer transaction. Statements from other coroutines
    wait until the block finishes.

    Usage:
        async with db_client.transaction():
            await db_client.create_record(...)
            await db_client.update_record(...)
    """
    if _in_transaction.get():
        yield
        return

    conn = await get_connection()
    async with _get_write_lock():
        await conn.execute("BEGIN IMMEDIATE")
        token = _in_transaction.set(True)
        try:
            yield
        except BaseException:
            await conn.rollback()
            logger.warning("Transaction rolled back")
            raise
        else:
            await conn.commit()
        finally:
            _in_transaction.reset(token)


async def create_record(*, collection: str, data: dict[str, Any]) -> dict[str, Any]:
    """Insert a new record and return it with its assigned id.

    Raises:
        UniqueConstraintError: If the row duplicates a UNIQUE key
        DatabaseError: For any other driver failure
    """
    _validate_collection_name(collection)
    try:
        conn = await get_connection()

        columns = list(data.keys())
        columns_str = ", ".join(columns)
        placeholders_str = ", ".join("?" for _ in columns)
        values = [_to_db_value(data[key]) for key in columns]

        query = f"INSERT INTO {collection} ({columns_str}) VALUES ({placeholders_str})"  # noqa: S608 - collection is validated
        async with _exclusive():
            cursor = await conn.execute(query, values)
            await _commit(conn)
        record_id = cursor.lastrowid
    except aiosqlite.IntegrityError as e:
        if "UNIQUE" in str(e):
            logger.warning("create_record_duplicate", extra={"collection": collection, "error": str(e)})
            raise UniqueConstraintError(f"Duplicate record in {collection}: {e}") from e
        logger.error("create_record_failed", extra={"collection": collection, "error": str(e)})
        raise DatabaseError(f"Failed to create record in {collection}: {e}") from e
    except aiosqlite.OperationalError as e:
        if "no such table" in str(e):
            logger.error("Table not found", extra={"collection": collection})
            msg = f"Table '{collection}' does not exist. Call init_db() first."
            raise DatabaseError(msg) from e
        logger.error("create_record_failed", extra={"collection": collection, "error": str(e)})
        raise DatabaseError(f"Failed to create record in {collection}: {e}") from e
    except aiosqlite.Error as e:
        logger.error("create_record_failed", extra={"collection": collection, "error": str(e)})
        raise DatabaseError(f"Failed to create record in {collection}: {e}") from e

    logger.info("Created record", extra={"collection": collection, "record_id": record_id})
    return await get_record(collection=collection, record_id=str(record_id))


async def get_record(*, collection: str, record_id: str) -> dict[str, Any]:
    """Fetch a single record by ID, raising RecordNotFoundError if not found."""
    _validate_collection_name(collection)
    try:
        conn = await get_connection()
        query = f"SELECT * FROM {collection} WHERE id = ?"  # noqa: S608 - collection is validated
        async with _exclusive():
            cursor = await conn.execute(query, (_record_key(collection, record_id),))
            row = await cursor.fetchone()
    except aiosqlite.Error as e:
        logger.error("get_record_failed", extra={"collection": collection, "record_id": record_id, "error": str(e)})
        raise DatabaseError(f"Failed to get record from {collection}: {e}") from e

    if row is None:
        raise RecordNotFoundError(f"Record not found in {collection}: {record_id}")

    return _rows_to_records(cursor, [row])[0]


async def update_record(*, collection: str, record_id: str, data: dict[str, Any]) -> dict[str, Any]:
    """Update a record by ID and return the updated record."""
    if not data:
        msg = "Empty update payload"
        raise ValueError(msg)

    _validate_collection_name(collection)
    try:
        conn = await get_connection()

        set_clause = ", ".join(f"{key} = ?" for key in data)
        values = [_to_db_value(val) for val in data.values()]
        values.append(_record_key(collection, record_id))

        query = f"UPDATE {collection} SET {set_clause}, updated = datetime('now') WHERE id = ?"  # noqa: S608 - collection is validated
        async with _exclusive():
            cursor = await conn.execute(query, values)
            await _commit(conn)
    except aiosqlite.Error as e:
        logger.error("update_record_failed", extra={"collection": collection, "record_id": record_id, "error": str(e)})
        raise DatabaseError(f"Failed to update record in {collection}: {e}") from e

    if cursor.rowcount == 0:
        raise RecordNotFoundError(f"Record not found in {collection}: {record_id}")

    logger.info("Updated record", extra={"collection": collection, "record_id": record_id})
    return await get_record(collection=collection, record_id=record_id)


async def delete_record(*, collection: str, record_id: str) -> None:
    """Delete a record by ID, raising RecordNotFoundError if not found."""
    _validate_collection_name(collection)
    try:
        conn = await get_connection()
        query = f"DELETE FROM {collection} WHERE id = ?"  # noqa: S608 - collection is validated
        async with _exclusive():
            cursor = await conn.execute(query, (_record_key(collection, record_id),))
            await _commit(conn)
    except aiosqlite.Error as e:
        logger.error("delete_record_failed", extra={"collection": collection, "record_id": record_id, "error": str(e)})
        raise DatabaseError(f"Failed to delete record from {collection}: {e}") from e

    if cursor.rowcount == 0:
        raise RecordNotFoundError(f"Record not found in {collection}: {record_id}")

    logger.info("Deleted record", extra={"collection": collection, "record_id": record_id})


async def list_records(
    *,
    collection: str,
    page: int = 1,
    per_page: int = 50,
    filter_query: str = "",
    sort: str = "",
) -> list[dict[str, Any]]:
    """List records with optional filtering, sorting, and pagination.

    Sort accepts ``column [ASC|DESC]`` or ``-column`` for descending order.
    """
    _validate_collection_name(collection)

    where_clause, params = parse_filter(filter_query)
    if where_clause:
        where_clause = f"WHERE {where_clause}"

    # Only allow: column_name [ASC|DESC]
    safe_sort = "id ASC"
    if sort:
        sort = sort.strip()
        if sort.startswith("-"):
            sort = f"{sort[1:]} DESC"
        if re.match(r"^[A-Za-z_][A-Za-z0-9_]*(\s+(ASC|DESC))?$", sort, re.IGNORECASE):
            safe_sort = sort
        else:
            logger.warning("Invalid sort parameter, using default", extra={"sort": sort})

    offset = (page - 1) * per_page
    query = f"SELECT * FROM {collection} {where_clause} ORDER BY {safe_sort} LIMIT ? OFFSET ?"  # noqa: S608 - collection is validated

    try:
        conn = await get_connection()
        async with _exclusive():
            cursor = await conn.execute(query, [*params, per_page, offset])
            rows = await cursor.fetchall()
    except aiosqlite.Error as e:
        logger.error("list_records_failed", extra={"collection": collection, "error": str(e)})
        raise DatabaseError(f"Failed to list records from {collection}: {e}") from e

    records = _rows_to_records(cursor, list(rows))
    logger.debug("Listed records", extra={"collection": collection, "count": len(records)})
    return records


async def get_first_record(*, collection: str, filter_query: str) -> dict[str, Any] | None:
    """Return the first record matching the filter, or None."""
    records = await list_records(collection=collection, filter_query=filter_query, per_page=1)
    return records[0] if records else None


async def execute_script(sql: str, *, db_path: str | None = None) -> None:
    """Execute raw DDL statements (used by schema initialisation)."""
    conn = await get_connection(db_path=db_path)
    try:
        await conn.executescript(sql)
        await conn.commit()
    except aiosqlite.Error as e:
        logger.error("execute_script_failed", extra={"error": str(e)})
        raise DatabaseError(f"Failed to execute schema script: {e}") from e
