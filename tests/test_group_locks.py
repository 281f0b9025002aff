"""Tests for per-group locks."""

from __future__ import annotations

import asyncio

import pytest

from memberwatch.group_locks import GroupLocks


@pytest.fixture
def locks() -> GroupLocks:
    return GroupLocks()


class TestGroupLocks:
    async def test_serializes_same_group(self, locks: GroupLocks):
        order: list[str] = []

        async def work(tag: str) -> None:
            async with locks.hold("g1@g.us"):
                order.append(f"{tag}-start")
                await asyncio.sleep(0.01)
                order.append(f"{tag}-end")

        await asyncio.gather(work("a"), work("b"))

        assert order == ["a-start", "a-end", "b-start", "b-end"]

    async def test_different_groups_interleave(self, locks: GroupLocks):
        release = asyncio.Event()
        entered: list[str] = []

        async def work(group_jid: str) -> None:
            async with locks.hold(group_jid):
                entered.append(group_jid)
                await release.wait()

        tasks = [asyncio.ensure_future(work(j)) for j in ("g1@g.us", "g2@g.us")]
        await asyncio.sleep(0.01)
        assert sorted(entered) == ["g1@g.us", "g2@g.us"]
        assert locks._locks["g1@g.us"].lock.locked()
        assert locks._locks["g2@g.us"].lock.locked()

        release.set()
        await asyncio.gather(*tasks)

    async def test_entries_dropped_after_release(self, locks: GroupLocks):
        async with locks.hold("g1@g.us"):
            assert list(locks._locks) == ["g1@g.us"]
        assert locks._locks == {}

    async def test_released_on_error(self, locks: GroupLocks):
        with pytest.raises(ValueError):
            async with locks.hold("g1@g.us"):
                raise ValueError("boom")
        assert locks._locks == {}
        async with locks.hold("g1@g.us"):
            pass
