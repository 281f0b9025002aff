"""Per-group mutual exclusion for membership writes.

Handlers for different groups interleave freely on the event loop; two
reconciliations of the *same* group must not, because each is a
read-then-write sequence over that group's membership rows.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field

from memberwatch.logger import logger


@dataclass
class _LockState:
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    waiters: int = 0


class GroupLocks:
    """Keyed ``asyncio.Lock`` registry. Entries are dropped once nobody holds or waits."""

    def __init__(self) -> None:
        self._locks: dict[str, _LockState] = {}

    @asynccontextmanager
    async def hold(self, group_jid: str) -> AsyncIterator[None]:
        state = self._locks.get(group_jid)
        if state is None:
            state = self._locks[group_jid] = _LockState()
        state.waiters += 1
        if state.lock.locked():
            logger.debug("Waiting for group lock", group_jid=group_jid)
        try:
            async with state.lock:
                yield
        finally:
            state.waiters -= 1
            if state.waiters == 0:
                self._locks.pop(group_jid, None)
