"""Database connection, schema, and migration internals.

Single module-level connection, initialized by init_database().

``_TABLES`` holds the current column list of each table.  New databases get
it through ``CREATE TABLE IF NOT EXISTS``; databases written by an older
release get missing columns added in place on startup.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime

import aiosqlite

from memberwatch.config import get_settings
from memberwatch.logger import logger

_db: aiosqlite.Connection | None = None

# One aiosqlite connection is shared by every coroutine, and sqlite3 opens
# its implicit transaction per connection, not per coroutine.  Two writers
# interleaving at await points would share a transaction, so a rollback in
# one undoes the other.  Multi-statement writes MUST go through
# atomic_write().
_write_lock: asyncio.Lock | None = None


@asynccontextmanager
async def atomic_write() -> AsyncIterator[aiosqlite.Connection]:
    """Context manager for multi-statement DB writes.

    Acquires the write lock, yields the connection, and commits on
    success or rolls back on failure.
    """
    global _write_lock
    if _write_lock is None:
        _write_lock = asyncio.Lock()

    db = _get_db()
    async with _write_lock:
        try:
            yield db
            await db.commit()
        except Exception:
            await db.rollback()
            raise


# Column definitions per table.  CREATE TABLE statements and the startup
# column backfill are both derived from this mapping.
_TABLES: dict[str, tuple[str, ...]] = {
    "groups": (
        "jid TEXT PRIMARY KEY",
        "name TEXT",
        "is_monitored INTEGER NOT NULL DEFAULT 1",
        "created_at TEXT NOT NULL",
        "updated_at TEXT NOT NULL",
    ),
    "memberships": (
        "phone_number TEXT NOT NULL",
        "group_jid TEXT NOT NULL",
        "is_active INTEGER NOT NULL DEFAULT 1",
        "created_at TEXT NOT NULL",
        "updated_at TEXT NOT NULL",
    ),
}

_TABLE_CONSTRAINTS: dict[str, tuple[str, ...]] = {
    "memberships": ("PRIMARY KEY (phone_number, group_jid)",),
}

_INDEXES = (
    "CREATE INDEX IF NOT EXISTS idx_groups_monitored ON groups(is_monitored)",
    "CREATE INDEX IF NOT EXISTS idx_memberships_group ON memberships(group_jid)",
)


def _create_table_sql(table: str) -> str:
    body = ",\n    ".join(_TABLES[table] + _TABLE_CONSTRAINTS.get(table, ()))
    return f"CREATE TABLE IF NOT EXISTS {table} (\n    {body}\n)"


def _now() -> str:
    return datetime.now(UTC).isoformat()


def _get_db() -> aiosqlite.Connection:
    if _db is None:
        raise RuntimeError("Database not initialized. Call init_database() first.")
    return _db


async def _ensure_columns(database: aiosqlite.Connection) -> None:
    """Backfill columns missing from tables created by an older release."""
    for table, columns in _TABLES.items():
        cursor = await database.execute(f"PRAGMA table_info({table})")
        present = {row[1] for row in await cursor.fetchall()}
        for column in columns:
            name = column.split(None, 1)[0]
            if name in present or "PRIMARY KEY" in column:
                continue
            # ALTER TABLE cannot add a NOT NULL column without a default
            definition = column.replace(" NOT NULL", "")
            await database.execute(f"ALTER TABLE {table} ADD COLUMN {definition}")
            logger.info("Added missing column", table=table, column=name)
    await database.commit()


async def _create_schema(database: aiosqlite.Connection) -> None:
    for table in _TABLES:
        await database.execute(_create_table_sql(table))
    await _ensure_columns(database)
    for statement in _INDEXES:
        await database.execute(statement)
    await database.commit()


async def init_database() -> None:
    """Open the store and create the schema. Errors propagate (startup is fatal)."""
    global _db
    db_path = get_settings().database_path
    db_path.parent.mkdir(parents=True, exist_ok=True)

    _db = await aiosqlite.connect(str(db_path))
    _db.row_factory = aiosqlite.Row
    await _create_schema(_db)
    logger.info("Database connected", path=str(db_path))


async def close_database() -> None:
    global _db
    if _db is None:
        return
    await _db.close()
    _db = None
    logger.info("Database disconnected")


async def _init_test_database() -> None:
    """Swap in a fresh in-memory database (one per test).

    Every test runs on its own event loop, and awaiting ``close()`` on a
    connection opened under a previous loop never returns.  The old
    worker thread is stopped and joined directly instead.
    """
    global _db, _write_lock
    _stop_test_database()
    _write_lock = None
    _db = await aiosqlite.connect(":memory:")
    _db.row_factory = aiosqlite.Row
    await _create_schema(_db)


def _stop_test_database() -> None:
    """Stop the test connection's worker thread without touching its event loop."""
    global _db
    if _db is None:
        return
    _db.stop()
    if _db._thread is not None and _db._thread.is_alive():
        _db._thread.join(timeout=2)
    _db = None
