"""SQLite database client wrapper with CRUD operations."""

import asyncio
import json
import logging
import re
import threading
from collections.abc import Sequence
from datetime import datetime
from pathlib import Path
from typing import Any, NamedTuple

import aiosqlite

from src.core.config import settings
from src.core.errors import ConcurrencyConflict, InfrastructureFailure


logger = logging.getLogger(__name__)


class DatabaseError(InfrastructureFailure):
    """The durable store failed or could not be reached."""


class RecordNotFoundError(KeyError):
    """No row with the requested ID exists."""

    def __init__(self, message: str, record_id: str | None = None) -> None:
        super().__init__(message)
        self.record_id = record_id

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else "Record not found"


def _validate_collection_name(collection: str) -> None:
    """Validate that a collection name contains only alphanumeric characters and underscores."""
    if not re.match(r"^[a-zA-Z_][a-zA-Z0-9_]*$", collection):
        msg = f"Invalid collection name: {collection}. Only alphanumeric characters and underscores are allowed."
        raise ValueError(msg)


def _validate_column_names(columns: list[str]) -> None:
    for column in columns:
        if not re.match(r"^[a-zA-Z_][a-zA-Z0-9_]*$", column):
            msg = f"Invalid column name: {column}"
            raise ValueError(msg)


def sanitize_param(value: str | int | float | bool | None) -> str:
    """Escape a value for safe embedding in filter queries via json.dumps."""
    return json.dumps(str(value))[1:-1]


def get_db_path(db_path: str | None = None) -> Path:
    """Get the resolved SQLite database file path."""
    path_str = db_path or settings.sqlite_db_path
    return Path(path_str).resolve()


def _to_sql_value(value: Any) -> Any:  # noqa: ANN401
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict | list):
        return json.dumps(value)
    return value


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


def _get_sql_operator(op: str) -> str:
    """Map filter operator to SQL operator."""
    op_map = {
        "=": "=",
        "!=": "!=",
        ">": ">",
        "<": "<",
        ">=": ">=",
        "<=": "<=",
        "~": "LIKE",
    }
    sql_op = op_map.get(op)
    if not sql_op:
        msg = f"Unsupported operator: {op}"
        raise ValueError(msg)
    return sql_op


_COMPARISON = re.compile(r"""^(\w+)\s*(!=|>=|<=|=|>|<|~)\s*("(?:[^"\\]|\\.)*"|'(?:[^'\\]|\\.)*')$""")


def _unquote(token: str) -> str:
    if token.startswith('"'):
        return json.loads(token)
    return re.sub(r"\\(.)", r"\1", token[1:-1])


def _parse_single_comparison(comparison: str) -> tuple[str, str | int | float | bool | None]:
    """Parse ``field op "value"`` into a SQL condition and its parameter."""
    match = _COMPARISON.match(comparison.strip())
    if not match:
        msg = f"Invalid filter syntax: {comparison}"
        raise ValueError(msg)

    field, op, quoted = match.groups()
    sql_op = _get_sql_operator(op)
    is_like = sql_op == "LIKE"
    value = _parse_value(_unquote(quoted), is_like=is_like)

    if is_like:
        return f"{field} LIKE ? ESCAPE '\\'", f"%{value}%"
    return f"{field} {sql_op} ?", value


def _parse_or_group(or_group: str) -> tuple[str, list[str | int | float | bool | None]]:
    """Parse a parenthesized OR group into a SQL condition and parameters."""
    inner = or_group[1:-1]
    or_conditions = []
    or_params = []

    for part in inner.split("||"):
        cond, value = _parse_single_comparison(part)
        or_conditions.append(cond)
        or_params.append(value)

    return f"({' OR '.join(or_conditions)})", or_params


def _split_and_conditions(filter_query: str) -> list[str]:
    """Split filter query by && while preserving parenthesized groups."""
    parts = []
    current = ""
    paren_depth = 0

    for char in filter_query:
        if char == "(":
            paren_depth += 1
        elif char == ")":
            paren_depth -= 1

        current += char

        if paren_depth == 0 and current.endswith("&&"):
            parts.append(current[:-2].strip())
            current = ""

    if current.strip():
        parts.append(current.strip())

    return parts


def parse_filter(filter_query: str) -> tuple[str, list[str | int | float | bool | None]]:
    """Parse filter syntax into a SQL WHERE clause and parameter list.

    Supports ``field = "value"`` comparisons joined with ``&&`` and
    parenthesised ``||`` groups, e.g. ``project_id = "p1" && (status = "ToDo" || status = "InProgress")``.
    """
    if not filter_query:
        return "", []

    conditions = []
    params: list[str | int | float | bool | None] = []

    for raw_part in _split_and_conditions(filter_query):
        part = raw_part.strip()

        if part.startswith("(") and part.endswith(")"):
            cond, cond_params = _parse_or_group(part)
            conditions.append(cond)
            params.extend(cond_params)
        else:
            cond, value = _parse_single_comparison(part)
            conditions.append(cond)
            params.append(value)

    return " AND ".join(conditions), params


_db_connections: dict[tuple[int, int, str], aiosqlite.Connection] = {}
_db_lock = asyncio.Lock()
_write_locks: dict[tuple[int, int, str], asyncio.Lock] = {}


def _connection_key(db_path: str | None) -> tuple[int, int, str]:
    return threading.get_ident(), id(asyncio.get_event_loop()), str(get_db_path(db_path))


def _write_lock(db_path: str | None = None) -> asyncio.Lock:
    """One writing transaction at a time on the shared connection."""
    key = _connection_key(db_path)
    lock = _write_locks.get(key)
    if lock is None:
        lock = _write_locks[key] = asyncio.Lock()
    return lock


async def get_connection(*, db_path: str | None = None) -> aiosqlite.Connection:
    """Get or create a cached connection for the current thread, loop, and db path."""
    cache_key = _connection_key(db_path)
    thread_id, loop_id, path_str = cache_key

    if cache_key in _db_connections:
        return _db_connections[cache_key]

    async with _db_lock:
        if cache_key in _db_connections:
            return _db_connections[cache_key]

        path = Path(path_str)
        path.parent.mkdir(parents=True, exist_ok=True)

        try:
            conn = await aiosqlite.connect(path_str)
            await conn.execute("PRAGMA foreign_keys = ON")
            await conn.execute("PRAGMA journal_mode = WAL")
        except aiosqlite.Error as e:
            msg = f"Failed to open database at {path_str}: {e}"
            raise DatabaseError(msg) from e

        _db_connections[cache_key] = conn
        logger.info(
            "Created new SQLite connection",
            extra={"db_path": path_str, "thread_id": thread_id, "loop_id": loop_id},
        )
        return conn


async def close_connection(*, db_path: str | None = None) -> None:
    """Close the cached SQLite connection for the current thread, loop, and db path."""
    cache_key = _connection_key(db_path)
    conn = _db_connections.pop(cache_key, None)
    _write_locks.pop(cache_key, None)
    if conn is None:
        return

    try:
        await conn.close()
        logger.info("Closed SQLite connection", extra={"db_path": cache_key[2]})
    except aiosqlite.Error as e:
        logger.warning("Error closing SQLite connection", extra={"error": str(e), "db_path": cache_key[2]})


async def init_db(*, db_path: str | None = None) -> None:
    """Create every registered module's tables and indexes."""
    from src.core import schema

    await schema.init_db(db_path=db_path)


def _row_to_dict(cursor: aiosqlite.Cursor, row: Any) -> dict[str, Any]:  # noqa: ANN401
    columns = [description[0] for description in cursor.description]
    return dict(zip(columns, row, strict=True))


def _wrap_driver_error(action: str, collection: str, e: Exception, **context: str) -> DatabaseError:
    if isinstance(e, aiosqlite.OperationalError) and "no such table" in str(e):
        logger.error("Table not found", extra={"collection": collection})
        return DatabaseError(f"Table '{collection}' does not exist. Call init_db() first.")
    logger.error(f"{action}_failed", extra={"collection": collection, "error": str(e), **context})
    return DatabaseError(f"Failed to {action.replace('_', ' ')} in {collection}: {e}")


async def create_record(*, collection: str, data: dict[str, Any]) -> dict[str, Any]:
    """Insert a row whose ``id`` is supplied by the caller and return it."""
    _validate_collection_name(collection)
    columns = list(data.keys())
    _validate_column_names(columns)

    try:
        conn = await get_connection()
        placeholders = ", ".join("?" for _ in columns)
        query = f"INSERT INTO {collection} ({', '.join(columns)}) VALUES ({placeholders})"  # noqa: S608
        async with _write_lock():
            await conn.execute(query, [_to_sql_value(data[key]) for key in columns])
            await conn.commit()
    except aiosqlite.Error as e:
        raise _wrap_driver_error("create_record", collection, e) from e

    logger.info("Created record", extra={"collection": collection, "record_id": data.get("id")})
    return await get_record(collection=collection, record_id=str(data["id"]))


async def get_record(*, collection: str, record_id: str) -> dict[str, Any]:
    """Fetch a single record by ID, raising RecordNotFoundError if it does not exist."""
    _validate_collection_name(collection)

    try:
        conn = await get_connection()
        query = f"SELECT * FROM {collection} WHERE id = ?"  # noqa: S608 - collection is validated
        cursor = await conn.execute(query, (record_id,))
        row = await cursor.fetchone()
    except aiosqlite.Error as e:
        raise _wrap_driver_error("get_record", collection, e, record_id=record_id) from e

    if row is None:
        msg = f"Record not found in {collection}: {record_id}"
        raise RecordNotFoundError(msg, record_id)

    logger.debug("Retrieved record", extra={"collection": collection, "record_id": record_id})
    return _row_to_dict(cursor, row)


async def _raise_for_missed_write(
    conn: aiosqlite.Connection, collection: str, record_id: str, expected_version: int | None
) -> None:
    cursor = await conn.execute(f"SELECT version FROM {collection} WHERE id = ?", (record_id,))  # noqa: S608
    row = await cursor.fetchone()
    if row is None:
        msg = f"Record not found in {collection}: {record_id}"
        raise RecordNotFoundError(msg, record_id)
    logger.warning(
        "Version conflict",
        extra={
            "collection": collection,
            "record_id": record_id,
            "expected_version": expected_version,
            "stored_version": row[0],
        },
    )
    raise ConcurrencyConflict(collection, record_id, expected_version or 0)


async def update_record(
    *,
    collection: str,
    record_id: str,
    data: dict[str, Any],
    expected_version: int | None = None,
) -> dict[str, Any]:
    """Update a record by ID and return the stored row.

    When ``expected_version`` is given the row is only written if its current
    ``version`` matches, otherwise ConcurrencyConflict is raised and nothing changes.
    """
    _validate_collection_name(collection)
    query, values = _update_statement(collection, record_id, data, expected_version)

    try:
        conn = await get_connection()
        async with _write_lock():
            cursor = await conn.execute(query, values)
            await conn.commit()
            if cursor.rowcount == 0:
                await _raise_for_missed_write(conn, collection, record_id, expected_version)
    except aiosqlite.Error as e:
        raise _wrap_driver_error("update_record", collection, e, record_id=record_id) from e

    logger.info("Updated record", extra={"collection": collection, "record_id": record_id})
    return await get_record(collection=collection, record_id=record_id)


def _update_statement(
    collection: str, record_id: str, data: dict[str, Any], expected_version: int | None
) -> tuple[str, list[Any]]:
    if not data:
        msg = "Empty update payload"
        raise ValueError(msg)
    _validate_column_names(list(data))

    set_clause = ", ".join(f"{key} = ?" for key in data)
    values = [_to_sql_value(val) for val in data.values()]
    where_clause = "id = ?"
    values.append(record_id)
    if expected_version is not None:
        where_clause += " AND version = ?"
        values.append(expected_version)
    return f"UPDATE {collection} SET {set_clause} WHERE {where_clause}", values  # noqa: S608 - names are validated


class RowUpdate(NamedTuple):
    record_id: str
    data: dict[str, Any]
    expected_version: int | None = None


async def update_records(*, collection: str, updates: Sequence[RowUpdate]) -> None:
    """Apply several version-checked updates in one transaction.

    Either every row is written or none is: the first missing row or version
    mismatch rolls the whole transaction back and raises RecordNotFoundError
    or ConcurrencyConflict.
    """
    if not updates:
        return

    _validate_collection_name(collection)
    statements = [
        (update.record_id, *_update_statement(collection, update.record_id, update.data, update.expected_version))
        for update in updates
    ]

    try:
        conn = await get_connection()
        async with _write_lock():
            try:
                for position, (record_id, query, values) in enumerate(statements):
                    cursor = await conn.execute(query, values)
                    if cursor.rowcount == 0:
                        await conn.rollback()
                        logger.warning(
                            "Multi-row update aborted",
                            extra={"collection": collection, "record_id": record_id, "rows_before": position},
                        )
                        await _raise_for_missed_write(conn, collection, record_id, updates[position].expected_version)
                await conn.commit()
            except aiosqlite.Error:
                await conn.rollback()
                raise
    except aiosqlite.Error as e:
        raise _wrap_driver_error("update_records", collection, e) from e

    logger.info("Updated records", extra={"collection": collection, "count": len(statements)})


async def delete_record(*, collection: str, record_id: str, expected_version: int | None = None) -> None:
    """Delete a record by ID, raising RecordNotFoundError if it does not exist."""
    _validate_collection_name(collection)

    query = f"DELETE FROM {collection} WHERE id = ?"  # noqa: S608 - collection is validated
    params: list[Any] = [record_id]
    if expected_version is not None:
        query += " AND version = ?"
        params.append(expected_version)

    try:
        conn = await get_connection()
        async with _write_lock():
            cursor = await conn.execute(query, params)
            await conn.commit()
            if cursor.rowcount == 0:
                await _raise_for_missed_write(conn, collection, record_id, expected_version)
    except aiosqlite.Error as e:
        raise _wrap_driver_error("delete_record", collection, e, record_id=record_id) from e

    logger.info("Deleted record", extra={"collection": collection, "record_id": record_id})


async def list_records(
    *,
    collection: str,
    page: int = 1,
    per_page: int = 50,
    filter_query: str = "",
    sort: str = "",
) -> list[dict[str, Any]]:
    """List records with optional filtering, sorting, and pagination."""
    _validate_collection_name(collection)

    where_clause = ""
    params: list[Any] = []
    if filter_query:
        where_clause, params = parse_filter(filter_query)
        where_clause = f"WHERE {where_clause}"

    # Only allow: column_name [ASC|DESC]
    safe_sort = "created_at ASC, id ASC"
    if sort:
        if re.match(r"^[A-Za-z_][A-Za-z0-9_]*\s*(ASC|DESC)?$", sort.strip(), re.IGNORECASE):
            safe_sort = sort.strip()
        else:
            logger.warning("Invalid sort parameter, using default", extra={"sort": sort})

    query = f"SELECT * FROM {collection} {where_clause} ORDER BY {safe_sort} LIMIT ? OFFSET ?"  # noqa: S608
    params.extend([per_page, (page - 1) * per_page])

    try:
        conn = await get_connection()
        cursor = await conn.execute(query, params)
        rows = await cursor.fetchall()
    except aiosqlite.Error as e:
        raise _wrap_driver_error("list_records", collection, e) from e

    records = [_row_to_dict(cursor, row) for row in rows]
    logger.debug("Listed records", extra={"collection": collection, "count": len(records)})
    return records


async def get_first_record(*, collection: str, filter_query: str) -> dict[str, Any] | None:
    """Return the first record matching the filter, or None."""
    records = await list_records(collection=collection, filter_query=filter_query, per_page=1)
    return records[0] if records else None
