"""Database status report: the reply to the ``check`` command."""

from __future__ import annotations

from memberwatch.config import get_settings
from memberwatch.db import count_memberships, get_monitored_groups
from memberwatch.targeting import is_target_group
from memberwatch.types import DatabaseStatus, GroupStatus

UNKNOWN_GROUP_NAME = "Unknown group name"


async def get_database_status(keyword: str | None = None) -> DatabaseStatus:
    """Count members per monitored group and split keyword vs force-monitored.

    Classification re-applies the keyword predicate to the *stored* name,
    so a monitored group renamed away from the keyword counts as
    force-monitored.  Read-only.
    """
    groups = await get_monitored_groups()
    status = DatabaseStatus(total_groups=len(groups), target_groups=0, force_monitored_groups=0)

    for group in groups:
        total = await count_memberships(group.jid)
        active = await count_memberships(group.jid, active=True)
        matches = is_target_group(group.name, keyword)
        if matches:
            status.target_groups += 1
        else:
            status.force_monitored_groups += 1
        status.group_details.append(
            GroupStatus(
                name=group.name or UNKNOWN_GROUP_NAME,
                id=group.jid,
                contains_target_keyword=matches,
                total_members=total,
                active_members=active,
                inactive_members=total - active,
            )
        )

    return status


def format_database_status(status: DatabaseStatus, keyword: str | None = None) -> str:
    keyword = keyword or get_settings().TARGET_KEYWORD
    lines = [
        "📊 *Database Status*",
        "",
        f'Primary monitoring filter: groups with "{keyword}" in their name',
        (
            f"Total Monitored Groups: {status.total_groups} "
            f'({status.target_groups} with "{keyword}", '
            f"{status.force_monitored_groups} force-monitored)"
        ),
        "",
    ]
    for group in status.group_details:
        lines += [
            f"*Group:* {group.name}",
            f"ID: {group.id}",
            f'Contains "{keyword}": {"✅" if group.contains_target_keyword else "❌"}',
            f"Total Members: {group.total_members}",
            f"Active Members: {group.active_members}",
            f"Inactive Members: {group.inactive_members}",
            "",
        ]
    return "\n".join(lines) + "\n"
