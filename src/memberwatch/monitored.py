"""In-memory set of monitored group ids.

Hydrated from the store by :meth:`MonitoredGroups.load` and then kept in
lockstep with registrar writes.  Lookups never touch the store, so another
process registering a group is not seen here until the next ``load()``.
"""

from __future__ import annotations

from memberwatch.db import get_monitored_groups
from memberwatch.logger import logger


class MonitoredGroups:
    def __init__(self, jids: set[str] | None = None) -> None:
        self._jids: set[str] = set(jids or ())

    async def load(self) -> None:
        """Replace the cache with every group flagged monitored in the store."""
        groups = await get_monitored_groups()
        self._jids = {group.jid for group in groups}
        logger.info("Loaded monitored groups", count=len(self._jids))

    def contains(self, group_jid: str) -> bool:
        return group_jid in self._jids

    __contains__ = contains

    def mark_monitored(self, group_jid: str) -> bool:
        """Add *group_jid*. Returns False if it was already present."""
        if group_jid in self._jids:
            return False
        self._jids.add(group_jid)
        return True

    def mark_unmonitored(self, group_jid: str) -> bool:
        """Remove *group_jid*. Returns False if it was not present."""
        if group_jid not in self._jids:
            return False
        self._jids.discard(group_jid)
        return True

    def __len__(self) -> int:
        return len(self._jids)
