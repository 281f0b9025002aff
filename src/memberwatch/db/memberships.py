"""Membership records, one row per (phone, group), never deleted.

Write helpers take an optional connection so callers inside
``atomic_write()`` can batch several statements into one commit.
"""

from __future__ import annotations

import aiosqlite

from memberwatch.db._connection import _get_db, _now, atomic_write
from memberwatch.types import Membership


def _row_to_membership(row) -> Membership:
    return Membership(
        phone_number=row["phone_number"],
        group_jid=row["group_jid"],
        is_active=bool(row["is_active"]),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


async def get_memberships(group_jid: str) -> list[Membership]:
    db = _get_db()
    cursor = await db.execute(
        "SELECT * FROM memberships WHERE group_jid = ? ORDER BY phone_number",
        (group_jid,),
    )
    rows = await cursor.fetchall()
    return [_row_to_membership(row) for row in rows]


async def get_membership(phone_number: str, group_jid: str) -> Membership | None:
    db = _get_db()
    cursor = await db.execute(
        "SELECT * FROM memberships WHERE phone_number = ? AND group_jid = ?",
        (phone_number, group_jid),
    )
    row = await cursor.fetchone()
    if row is None:
        return None
    return _row_to_membership(row)


_UPSERT_ACTIVE = """
    INSERT INTO memberships (phone_number, group_jid, is_active, created_at, updated_at)
    VALUES (?, ?, 1, ?, ?)
    ON CONFLICT(phone_number, group_jid) DO UPDATE SET
        is_active = 1,
        updated_at = excluded.updated_at
"""

_DEACTIVATE = (
    "UPDATE memberships SET is_active = 0, updated_at = ? "
    "WHERE phone_number = ? AND group_jid = ?"
)


async def upsert_active_membership(
    phone_number: str,
    group_jid: str,
    db: aiosqlite.Connection | None = None,
) -> None:
    """Create the record or mark it active again, refreshing ``updated_at``.

    Pass ``db`` from an enclosing ``atomic_write()`` to join its transaction;
    otherwise the write commits on its own.
    """
    now = _now()
    params = (phone_number, group_jid, now, now)
    if db is not None:
        await db.execute(_UPSERT_ACTIVE, params)
        return
    async with atomic_write() as conn:
        await conn.execute(_UPSERT_ACTIVE, params)


async def deactivate_membership(
    phone_number: str,
    group_jid: str,
    db: aiosqlite.Connection | None = None,
) -> None:
    """Mark an existing record inactive. Never creates a record."""
    params = (_now(), phone_number, group_jid)
    if db is not None:
        await db.execute(_DEACTIVATE, params)
        return
    async with atomic_write() as conn:
        await conn.execute(_DEACTIVATE, params)


async def count_memberships(group_jid: str, active: bool | None = None) -> int:
    """Count records for a group; ``active`` narrows to active/inactive rows."""
    db = _get_db()
    if active is None:
        cursor = await db.execute(
            "SELECT COUNT(*) FROM memberships WHERE group_jid = ?", (group_jid,)
        )
    else:
        cursor = await db.execute(
            "SELECT COUNT(*) FROM memberships WHERE group_jid = ? AND is_active = ?",
            (group_jid, 1 if active else 0),
        )
    (count,) = await cursor.fetchone()
    return count
