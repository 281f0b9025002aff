"""Tests for the database status report."""

from __future__ import annotations

import pytest

from memberwatch.db import (
    _init_test_database,
    deactivate_membership,
    upsert_active_membership,
    upsert_group,
)
from memberwatch.status import format_database_status, get_database_status
from memberwatch.types import DatabaseStatus, GroupStatus

NEOL = "111111@g.us"
FORCED = "222222@g.us"


@pytest.fixture(autouse=True)
async def _setup_db():
    await _init_test_database()


class TestGetDatabaseStatus:
    async def test_keyword_and_force_monitored_groups(self):
        await upsert_group(NEOL, "Neol Friends")
        for phone in ("a", "b", "c"):
            await upsert_active_membership(phone, NEOL)
        await deactivate_membership("c", NEOL)
        await upsert_group(FORCED, "Random Chat")

        status = await get_database_status()

        assert status.total_groups == 2
        assert status.target_groups == 1
        assert status.force_monitored_groups == 1
        details = {d.id: d for d in status.group_details}
        assert details[NEOL] == GroupStatus(
            name="Neol Friends",
            id=NEOL,
            contains_target_keyword=True,
            total_members=3,
            active_members=2,
            inactive_members=1,
        )
        assert details[FORCED] == GroupStatus(
            name="Random Chat",
            id=FORCED,
            contains_target_keyword=False,
            total_members=0,
            active_members=0,
            inactive_members=0,
        )

    async def test_empty_store(self):
        status = await get_database_status()
        assert status == DatabaseStatus(total_groups=0, target_groups=0, force_monitored_groups=0)

    async def test_unnamed_group_counts_as_force_monitored(self):
        await upsert_group(FORCED)
        status = await get_database_status()
        assert status.force_monitored_groups == 1
        assert status.group_details[0].name == "Unknown group name"

    async def test_custom_keyword(self):
        await upsert_group(NEOL, "Neol Friends")
        await upsert_group(FORCED, "Chess Club")
        status = await get_database_status(keyword="chess")
        assert status.target_groups == 1
        assert {d.id for d in status.group_details if d.contains_target_keyword} == {FORCED}


class TestFormatDatabaseStatus:
    def test_layout(self):
        status = DatabaseStatus(
            total_groups=2,
            target_groups=1,
            force_monitored_groups=1,
            group_details=[
                GroupStatus("Neol Friends", NEOL, True, 3, 2, 1),
                GroupStatus("Random Chat", FORCED, False, 0, 0, 0),
            ],
        )

        text = format_database_status(status)

        assert text == (
            "📊 *Database Status*\n"
            "\n"
            'Primary monitoring filter: groups with "neol" in their name\n'
            'Total Monitored Groups: 2 (1 with "neol", 1 force-monitored)\n'
            "\n"
            "*Group:* Neol Friends\n"
            f"ID: {NEOL}\n"
            'Contains "neol": ✅\n'
            "Total Members: 3\n"
            "Active Members: 2\n"
            "Inactive Members: 1\n"
            "\n"
            "*Group:* Random Chat\n"
            f"ID: {FORCED}\n"
            'Contains "neol": ❌\n'
            "Total Members: 0\n"
            "Active Members: 0\n"
            "Inactive Members: 0\n"
            "\n"
        )

    def test_no_groups(self):
        text = format_database_status(DatabaseStatus(0, 0, 0))
        assert text.endswith("Total Monitored Groups: 0 (0 with \"neol\", 0 force-monitored)\n\n")
