"""Add and remove groups from monitoring (store record + in-memory set)."""

from __future__ import annotations

from memberwatch.db import set_group_monitored, upsert_group
from memberwatch.logger import logger
from memberwatch.monitored import MonitoredGroups


class GroupRegistrar:
    def __init__(self, monitored: MonitoredGroups) -> None:
        self._monitored = monitored

    async def add_group_to_monitored(self, group_jid: str, name: str | None = None) -> bool:
        """Upsert the group as monitored and cache its id.

        Idempotent apart from the refreshed timestamp. Returns True when the
        group was not in the in-memory set before. Store errors propagate and
        leave the cache untouched.
        """
        await upsert_group(group_jid, name)
        added = self._monitored.mark_monitored(group_jid)
        if added:
            logger.info("Group added to monitored list", group_jid=group_jid, name=name)
        else:
            logger.info(
                "Group already in monitored list, record refreshed",
                group_jid=group_jid,
                name=name,
            )
        return added

    async def remove_group_from_monitored(self, group_jid: str) -> bool:
        """Clear the monitored flag. The record and its memberships are kept."""
        await set_group_monitored(group_jid, False)
        removed = self._monitored.mark_unmonitored(group_jid)
        if removed:
            logger.info("Group removed from monitored list", group_jid=group_jid)
        return removed
