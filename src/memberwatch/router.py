"""Event router: maps each inbound event to its membership handler.

Each event is handled on its own; the monitored set is the only state
shared between events.  Handler failures are logged and dropped here: the
triggering event is not retried.
"""

from __future__ import annotations

import sys
from typing import Protocol

from memberwatch.logger import logger
from memberwatch.monitored import MonitoredGroups
from memberwatch.reconciler import MembershipReconciler
from memberwatch.registrar import GroupRegistrar
from memberwatch.status import format_database_status, get_database_status
from memberwatch.targeting import is_target_group
from memberwatch.types import (
    ConnectionClosed,
    ConnectionOpened,
    Event,
    GroupMetadata,
    GroupRenamed,
    JoinedGroup,
    ParticipantsChanged,
    TextMessage,
)

# Self-sent command words. Exact, case-sensitive match on the text body.
HI_COMMAND = "Hi!"
SYNC_COMMAND = "sync"
CHECK_COMMAND = "check"


class RouterDeps(Protocol):
    """Transport operations the router needs."""

    async def get_joined_groups(self) -> list[GroupMetadata]: ...

    async def get_group_metadata(self, group_jid: str) -> GroupMetadata: ...

    async def send_message(self, jid: str, text: str) -> None: ...

    async def schedule_reconnect(self) -> None: ...

    async def clear_session(self) -> None: ...


class EventRouter:
    def __init__(
        self,
        deps: RouterDeps,
        monitored: MonitoredGroups,
        registrar: GroupRegistrar,
        reconciler: MembershipReconciler,
        keyword: str | None = None,
    ) -> None:
        self._deps = deps
        self._monitored = monitored
        self._registrar = registrar
        self._reconciler = reconciler
        self._keyword = keyword

    def _matches(self, name: str | None) -> bool:
        return is_target_group(name, self._keyword)

    async def dispatch(self, event: Event) -> None:
        try:
            match event:
                case ConnectionOpened():
                    await self._on_connection_opened()
                case ConnectionClosed(logged_out=True):
                    await self._on_logged_out()
                case ConnectionClosed():
                    await self._on_connection_lost(event)
                case ParticipantsChanged():
                    await self._on_participants_changed(event)
                case GroupRenamed():
                    await self._on_group_renamed(event)
                case JoinedGroup():
                    await self._on_joined_group(event)
                case TextMessage():
                    await self._on_text_message(event)
                case _:
                    logger.debug("Ignoring unknown event", event_type=type(event).__name__)
        except Exception:
            logger.exception(
                "Event handler failed",
                event_type=type(event).__name__,
                group_jid=getattr(event, "group_jid", None) or getattr(event, "chat_jid", None),
            )

    # --- Connection lifecycle ---

    async def _on_connection_opened(self) -> None:
        logger.info("Scanning for target groups")
        groups = await self._deps.get_joined_groups()
        logger.info("Fetched participating groups", count=len(groups))
        for metadata in groups:
            if not self._matches(metadata.name):
                continue
            try:
                await self._monitor_and_sync(metadata)
            except Exception:
                logger.exception("Failed to sync target group", group_jid=metadata.jid)

    async def _on_connection_lost(self, event: ConnectionClosed) -> None:
        logger.warning("Connection closed, scheduling reconnect", reason=event.reason)
        await self._deps.schedule_reconnect()

    async def _on_logged_out(self) -> None:
        logger.error("Connection closed: logged out. Clearing session, restart required.")
        await self._deps.clear_session()
        sys.exit(1)

    # --- Group events ---

    async def _on_participants_changed(self, event: ParticipantsChanged) -> None:
        group_jid = event.group_jid
        if not self._monitored.contains(group_jid):
            metadata = await self._deps.get_group_metadata(group_jid)
            if not self._matches(metadata.name):
                logger.info(
                    "Skipping unmonitored group without target keyword",
                    group_jid=group_jid,
                    name=metadata.name,
                )
                return
            logger.info(
                "Activity in unmonitored target group", group_jid=group_jid, name=metadata.name
            )
            await self._monitor_and_sync(metadata)
        else:
            logger.info(
                "Group participants changed",
                group_jid=group_jid,
                action=event.action,
                participants=event.participants,
            )

        if event.action == "add":
            await self._reconciler.handle_members_added(group_jid, event.participants)
        elif event.action == "remove":
            await self._reconciler.handle_members_removed(group_jid, event.participants)

    async def _on_group_renamed(self, event: GroupRenamed) -> None:
        group_jid = event.group_jid
        matches = self._matches(event.name)

        if self._monitored.contains(group_jid):
            await self._registrar.add_group_to_monitored(group_jid, event.name)
            logger.info("Updated monitored group name", group_jid=group_jid, name=event.name)
            if not matches:
                # Monitoring is sticky: keep tracking after a rename.
                logger.warning(
                    "Monitored group renamed away from target keyword",
                    group_jid=group_jid,
                    name=event.name,
                )
            return

        if matches:
            logger.info("Unmonitored group renamed to target name", group_jid=group_jid)
            metadata = await self._deps.get_group_metadata(group_jid)
            metadata.name = event.name
            await self._monitor_and_sync(metadata)

    async def _on_joined_group(self, event: JoinedGroup) -> None:
        logger.info("Added to new group", group_jid=event.group_jid, name=event.name)
        if not self._matches(event.name):
            logger.info("New group does not match target criteria", group_jid=event.group_jid)
            return
        await self._registrar.add_group_to_monitored(event.group_jid, event.name)
        if event.participants:
            await self._reconciler.sync_group_members(event.group_jid, event.participants)

    # --- Commands ---

    async def _on_text_message(self, event: TextMessage) -> None:
        if not event.is_from_me:
            return
        if event.text == HI_COMMAND and event.is_group:
            logger.info("Detected 'Hi!' command", group_jid=event.chat_jid)
            await self._handle_hi_command(event.chat_jid)
        elif event.text == SYNC_COMMAND and event.is_group:
            logger.info("Detected 'sync' command", group_jid=event.chat_jid)
            await self._handle_sync_command(event.chat_jid)
        elif event.text == CHECK_COMMAND:
            logger.info("Detected 'check' command", chat_jid=event.chat_jid)
            await self._handle_check_command(event.chat_jid)

    async def _handle_hi_command(self, group_jid: str) -> None:
        metadata = await self._deps.get_group_metadata(group_jid)
        if not self._matches(metadata.name):
            logger.info(
                "Group does not match target criteria, skipping",
                group_jid=group_jid,
                name=metadata.name,
            )
            return
        await self._monitor_and_sync(metadata)

    async def _handle_sync_command(self, group_jid: str) -> None:
        # Force-monitor: the keyword check is bypassed.
        metadata = await self._deps.get_group_metadata(group_jid)
        await self._monitor_and_sync(metadata)
        logger.info("Group force-monitored", group_jid=group_jid, name=metadata.name)

    async def _handle_check_command(self, chat_jid: str) -> None:
        status = await get_database_status(self._keyword)
        report = format_database_status(status, self._keyword)
        logger.info(
            "Database status",
            total_groups=status.total_groups,
            target_groups=status.target_groups,
            force_monitored_groups=status.force_monitored_groups,
            report=report,
        )
        if chat_jid:
            await self._deps.send_message(chat_jid, report)

    async def _monitor_and_sync(self, metadata: GroupMetadata) -> None:
        await self._registrar.add_group_to_monitored(metadata.jid, metadata.name)
        await self._reconciler.sync_group_members(metadata.jid, metadata.participants)
        logger.info(
            "Group synchronized",
            group_jid=metadata.jid,
            name=metadata.name,
            members=len(metadata.participants),
        )
