"""Membership reconciliation against the store.

``sync_group_members`` takes a full roster snapshot; the ``handle_members_*``
variants take the delta carried by a participant event.  All three skip
groups missing from the in-memory monitored set and serialize per group.
"""

from __future__ import annotations

from collections.abc import Iterable

from memberwatch.db import (
    atomic_write,
    deactivate_membership,
    get_memberships,
    upsert_active_membership,
)
from memberwatch.group_locks import GroupLocks
from memberwatch.logger import logger
from memberwatch.monitored import MonitoredGroups


class MembershipReconciler:
    def __init__(self, monitored: MonitoredGroups, locks: GroupLocks | None = None) -> None:
        self._monitored = monitored
        self._locks = locks if locks is not None else GroupLocks()

    async def sync_group_members(self, group_jid: str, members: Iterable[str]) -> bool:
        """Make the stored active set equal *members*.

        Every current member is upserted active; previously active records
        missing from *members* are flipped inactive.  Records already
        inactive and still absent are not written.  Returns False when the
        group is not monitored.
        """
        if not self._monitored.contains(group_jid):
            logger.info("Skipping sync for non-monitored group", group_jid=group_jid)
            return False

        current = list(dict.fromkeys(members))
        async with self._locks.hold(group_jid):
            existing = await get_memberships(group_jid)
            current_set = set(current)
            stale = [
                m.phone_number
                for m in existing
                if m.is_active and m.phone_number not in current_set
            ]
            async with atomic_write() as db:
                for phone in current:
                    await upsert_active_membership(phone, group_jid, db=db)
                for phone in stale:
                    await deactivate_membership(phone, group_jid, db=db)

        logger.info(
            "Synced group members",
            group_jid=group_jid,
            members=len(current),
            deactivated=len(stale),
        )
        return True

    async def handle_members_added(self, group_jid: str, members: Iterable[str]) -> bool:
        if not self._monitored.contains(group_jid):
            return False
        members = list(members)
        async with self._locks.hold(group_jid):
            async with atomic_write() as db:
                for phone in members:
                    await upsert_active_membership(phone, group_jid, db=db)
        logger.info("Members added", group_jid=group_jid, count=len(members))
        return True

    async def handle_members_removed(self, group_jid: str, members: Iterable[str]) -> bool:
        """Mark *members* inactive without checking their prior state."""
        if not self._monitored.contains(group_jid):
            return False
        members = list(members)
        async with self._locks.hold(group_jid):
            async with atomic_write() as db:
                for phone in members:
                    await deactivate_membership(phone, group_jid, db=db)
        logger.info("Members marked inactive", group_jid=group_jid, count=len(members))
        return True
