"""Group records."""

from __future__ import annotations

from memberwatch.db._connection import _get_db, _now, atomic_write
from memberwatch.types import Group


def _row_to_group(row) -> Group:
    return Group(
        jid=row["jid"],
        is_monitored=bool(row["is_monitored"]),
        name=row["name"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


async def upsert_group(jid: str, name: str | None = None) -> None:
    """Create or refresh a group as monitored.

    A ``None`` name keeps whatever name is already stored.
    """
    now = _now()
    async with atomic_write() as db:
        await db.execute(
            """
            INSERT INTO groups (jid, name, is_monitored, created_at, updated_at)
            VALUES (?, ?, 1, ?, ?)
            ON CONFLICT(jid) DO UPDATE SET
                name = COALESCE(excluded.name, groups.name),
                is_monitored = 1,
                updated_at = excluded.updated_at
            """,
            (jid, name, now, now),
        )


async def set_group_monitored(jid: str, monitored: bool) -> None:
    """Flip the monitored flag of an existing group. Unknown ids are a no-op."""
    async with atomic_write() as db:
        await db.execute(
            "UPDATE groups SET is_monitored = ?, updated_at = ? WHERE jid = ?",
            (1 if monitored else 0, _now(), jid),
        )


async def get_group(jid: str) -> Group | None:
    db = _get_db()
    cursor = await db.execute("SELECT * FROM groups WHERE jid = ?", (jid,))
    row = await cursor.fetchone()
    if row is None:
        return None
    return _row_to_group(row)


async def get_monitored_groups() -> list[Group]:
    """All groups with the monitored flag set, oldest first."""
    db = _get_db()
    cursor = await db.execute(
        "SELECT * FROM groups WHERE is_monitored = 1 ORDER BY created_at, jid"
    )
    rows = await cursor.fetchall()
    return [_row_to_group(row) for row in rows]
