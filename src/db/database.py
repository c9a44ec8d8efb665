# key-value store over sqlite; every record family lives under one key as JSON text
import asyncio
import json
import os.path
import sqlite3
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

import aiosqlite

from db.errors import StorageError
from utils.logger import get_logger

_logger = get_logger(__name__)

DB_PATH = os.getenv("POS_DB_PATH", "data/pos.sqlite")

USERS_KEY = "pos_users"
PRODUCTS_KEY = "pos_products"
SALES_KEY = "pos_sales"
SETTINGS_KEY = "pos_settings"
CURRENT_USER_KEY = "pos_current_user"

_initialized = False
_init_lock = asyncio.Lock()
_write_lock = asyncio.Lock()


async def _init_db(conn: aiosqlite.Connection) -> None:
    await conn.execute(
        """
        CREATE TABLE IF NOT EXISTS kv (
            key   TEXT PRIMARY KEY,
            value TEXT NOT NULL
        );
        """
    )
    await conn.commit()


@asynccontextmanager
async def connect() -> aiosqlite.Connection:
    """Async context manager yielding an aiosqlite connection to the store.

    Creates the kv table on first use. Connection failures surface as StorageError.
    """
    global _initialized
    folder = os.path.dirname(DB_PATH)
    try:
        if folder:
            os.makedirs(folder, exist_ok=True)
        conn = await aiosqlite.connect(DB_PATH)
    except (sqlite3.Error, OSError) as e:
        raise StorageError(f"cannot open store at {DB_PATH}: {e}") from e

    try:
        if _initialized != DB_PATH:
            async with _init_lock:
                if _initialized != DB_PATH:
                    _logger.info(f"Initializing key-value store at {DB_PATH}...")
                    await _init_db(conn)
                    _initialized = DB_PATH
        yield conn
    finally:
        await conn.close()


@asynccontextmanager
async def write_lock():
    """Serialize read-modify-write cycles across asyncio tasks."""
    async with _write_lock:
        yield


def _encode(key: str, value: Any) -> str:
    try:
        return json.dumps(value)
    except (TypeError, ValueError) as e:
        raise StorageError(f"cannot serialize value for key {key!r}: {e}") from e


async def get(key: str) -> Optional[Any]:
    """Return the decoded value under key, or None if missing or not valid JSON."""
    try:
        async with connect() as conn:
            cur = await conn.execute("SELECT value FROM kv WHERE key = ?;", (key,))
            row = await cur.fetchone()
            await cur.close()
    except sqlite3.Error as e:
        raise StorageError(f"cannot read key {key!r}: {e}") from e
    if row is None:
        return None
    try:
        return json.loads(row[0])
    except ValueError:
        _logger.warning(f"Ignoring unreadable value stored under {key!r}")
        return None


async def set(key: str, value: Any) -> None:
    await set_many({key: value})


async def set_many(values: Dict[str, Any]) -> None:
    """Write several keys in a single transaction; either all land or none do."""
    encoded = [(key, _encode(key, value)) for key, value in values.items()]
    try:
        async with connect() as conn:
            await conn.executemany(
                "INSERT INTO kv(key, value) VALUES (?, ?) "
                "ON CONFLICT(key) DO UPDATE SET value = excluded.value;",
                encoded,
            )
            await conn.commit()
    except sqlite3.Error as e:
        raise StorageError(f"cannot write keys {list(values)}: {e}") from e
    _logger.debug(f"Wrote keys {list(values)}")


async def remove(key: str) -> None:
    try:
        async with connect() as conn:
            await conn.execute("DELETE FROM kv WHERE key = ?;", (key,))
            await conn.commit()
    except sqlite3.Error as e:
        raise StorageError(f"cannot remove key {key!r}: {e}") from e


async def clear() -> None:
    try:
        async with connect() as conn:
            await conn.execute("DELETE FROM kv;")
            await conn.commit()
    except sqlite3.Error as e:
        raise StorageError(f"cannot clear store: {e}") from e
    _logger.info("Cleared every key in the store")


async def size_info() -> Dict[str, int]:
    """Number of stored keys and the total size of their values in bytes."""
    try:
        async with connect() as conn:
            cur = await conn.execute(
                "SELECT COUNT(*), COALESCE(SUM(LENGTH(CAST(value AS BLOB))), 0) FROM kv;"
            )
            row = await cur.fetchone()
            await cur.close()
    except sqlite3.Error as e:
        raise StorageError(f"cannot measure store: {e}") from e
    return {"keys": int(row[0]), "bytes": int(row[1])}
