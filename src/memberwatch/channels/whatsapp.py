"""WhatsApp transport using neonize (whatsmeow Python bindings).

Translates neonize callbacks into :mod:`memberwatch.types` events and
implements the transport half of :class:`memberwatch.router.RouterDeps`.
"""

from __future__ import annotations

import asyncio
import contextlib
import sys
from collections.abc import Awaitable, Callable

from neonize.aioze import client as neonize_client
from neonize.aioze import events as neonize_events
from neonize.aioze.client import NewAClient
from neonize.events import (
    ConnectedEv,
    ConnectFailureEv,
    DisconnectedEv,
    GroupInfoEv,
    JoinedGroupEv,
    LoggedOutEv,
    MessageEv,
    PairStatusEv,
)
from neonize.proto.Neonize_pb2 import JID
from neonize.utils.jid import Jid2String, build_jid

from memberwatch.auth.whatsapp import (
    clear_auth_state,
    print_qr,
    prompt_phone_number,
    session_db_path,
)
from memberwatch.config import get_settings
from memberwatch.logger import logger
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

MAX_RECONNECT_ATTEMPTS = 10
RECONNECT_STEP: float = 1.0  # seconds added per attempt
RECONNECT_MAX_DELAY: float = 10.0


def reconnect_delay(attempt: int) -> float:
    return min(attempt * RECONNECT_STEP, RECONNECT_MAX_DELAY)


def group_info_to_metadata(info) -> GroupMetadata:
    """Convert a neonize ``GroupInfo`` protobuf into :class:`GroupMetadata`."""
    return GroupMetadata(
        jid=Jid2String(info.JID),
        name=info.GroupName.Name or None,
        participants=[Jid2String(p.JID) for p in info.Participants],
    )


def message_text(msg) -> str:
    """Plain-text body only; captions and other rich types are not commands."""
    return msg.conversation or msg.extendedTextMessage.text or ""


def to_jid(jid: str) -> JID:
    """``user@server`` string to a neonize JID; a bare user defaults to s.whatsapp.net."""
    user, _, server = jid.partition("@")
    return build_jid(user, server) if server else build_jid(user)


class WhatsAppChannel:
    """One linked-device session. Emits memberwatch events and serves RouterDeps."""

    name = "whatsapp"

    def __init__(
        self,
        on_event: Callable[[Event], Awaitable[None]],
        *,
        use_pairing_code: bool = False,
    ) -> None:
        self._on_event = on_event
        self._use_pairing_code = use_pairing_code
        self._connected = False
        self._closing = False
        self._reconnect_attempts = 0
        self._reconnect_task: asyncio.Task[None] | None = None
        self._lid_to_phone: dict[str, str] = {}
        self._idle_task: asyncio.Task[None] | None = None
        self._first_connect: asyncio.Event = asyncio.Event()

        # neonize binds a private loop at import; callbacks must run on ours.
        loop = asyncio.get_running_loop()
        neonize_events.event_global_loop = loop
        neonize_client.event_global_loop = loop

        self._auth_dir = get_settings().auth_dir
        self._auth_dir.mkdir(parents=True, exist_ok=True)
        self._client = NewAClient(str(session_db_path(self._auth_dir)))
        self._register_events()

    def _register_events(self) -> None:
        """Translate neonize callbacks into memberwatch events."""

        @self._client.event(ConnectedEv)
        async def on_connected(_client: NewAClient, _ev: ConnectedEv) -> None:
            self._connected = True
            self._reconnect_attempts = 0
            self._remember_own_lid()
            await self._announce_presence()
            self._first_connect.set()
            await self._on_event(ConnectionOpened())

        @self._client.event(DisconnectedEv)
        async def on_disconnected(_client: NewAClient, _ev: DisconnectedEv) -> None:
            self._connected = False
            if not self._closing:
                await self._on_event(ConnectionClosed(reason="disconnected"))

        @self._client.event(ConnectFailureEv)
        async def on_connect_failure(_client: NewAClient, ev: ConnectFailureEv) -> None:
            self._connected = False
            reason = str(getattr(ev, "Reason", "")) or "connect failure"
            await self._on_event(ConnectionClosed(reason=reason))

        @self._client.event(LoggedOutEv)
        async def on_logged_out(_client: NewAClient, _ev: LoggedOutEv) -> None:
            self._connected = False
            await self._on_event(ConnectionClosed(logged_out=True, reason="logged out"))

        @self._client.event(PairStatusEv)
        async def on_pair_status(_client: NewAClient, ev: PairStatusEv) -> None:
            logger.info("Device linked", account=ev.ID.User)

        @self._client.event(GroupInfoEv)
        async def on_group_info(_client: NewAClient, ev: GroupInfoEv) -> None:
            for event in self._group_info_events(ev):
                await self._on_event(event)

        @self._client.event(JoinedGroupEv)
        async def on_joined_group(_client: NewAClient, ev: JoinedGroupEv) -> None:
            metadata = group_info_to_metadata(ev.GroupInfo)
            await self._on_event(
                JoinedGroup(
                    group_jid=metadata.jid,
                    name=metadata.name,
                    participants=metadata.participants,
                )
            )

        @self._client.event(MessageEv)
        async def on_message(_client: NewAClient, message: MessageEv) -> None:
            try:
                event = self._message_event(message)
            except Exception:
                logger.exception(
                    "Unreadable message event",
                    message_id=getattr(getattr(message, "Info", None), "ID", "unknown"),
                )
                return
            if event is not None:
                await self._on_event(event)

    # --- Event translation ---

    def _group_info_events(self, ev: GroupInfoEv) -> list[Event]:
        """One GroupInfoEv can carry a rename plus joins and leaves."""
        group_jid = Jid2String(ev.JID)
        events: list[Event] = []
        if ev.HasField("Name") and ev.Name.Name:
            events.append(GroupRenamed(group_jid=group_jid, name=ev.Name.Name))
        joined = [Jid2String(jid) for jid in ev.Join]
        if joined:
            events.append(ParticipantsChanged(group_jid, joined, "add"))
        left = [Jid2String(jid) for jid in ev.Leave]
        if left:
            events.append(ParticipantsChanged(group_jid, left, "remove"))
        return events

    def _message_event(self, message: MessageEv) -> TextMessage | None:
        info = message.Info
        source = info.MessageSource
        raw_jid = Jid2String(source.Chat)
        if not raw_jid or raw_jid == "status@broadcast":
            return None
        text = message_text(message.Message)
        if not text:
            return None
        return TextMessage(
            chat_jid=self._translate_jid(raw_jid, source.Chat),
            text=text,
            is_from_me=source.IsFromMe,
            is_group=source.IsGroup,
        )

    def _remember_own_lid(self) -> None:
        # Self-chat messages arrive addressed to our LID; map it back to the phone JID.
        device = self._client.me
        if not device:
            return
        jid = getattr(device, "JID", None)
        lid = getattr(device, "LID", None)
        if jid:
            logger.info("Connected to WhatsApp", account=jid.User)
        if jid and lid and lid.User:
            self._lid_to_phone[lid.User] = f"{jid.User}@s.whatsapp.net"

    def _translate_jid(self, jid_str: str, jid: JID) -> str:
        """Translate a LID JID (self-chat) to the phone JID if we know it."""
        if jid.Server != "lid":
            return jid_str
        lid_user = jid.User.split(":")[0]
        return self._lid_to_phone.get(lid_user, jid_str)

    async def _announce_presence(self) -> None:
        if not get_settings().whatsapp.mark_online_on_connect:
            return
        try:
            from neonize.utils.enum import Presence

            await self._client.send_presence(Presence.AVAILABLE)
        except Exception as err:
            logger.warning("Failed to mark online", error=str(err))

    # --- Connection ---

    async def connect(self) -> None:
        """Connect to WhatsApp. Blocks until the first connection is established."""

        @self._client.event.qr
        async def on_qr(_client: NewAClient, qr_data: bytes) -> None:
            logger.info("QR code received, scan it with your phone")
            print_qr(qr_data)

        if self._use_pairing_code and not await self._client.is_logged_in:
            phone = await prompt_phone_number()
            # PairPhone links the device and opens the connection itself
            code = await self._client.PairPhone(phone, show_push_notification=True)
            if code:
                logger.info("Pairing code", code=code)
        else:
            await self._client.connect()

        # idle() keeps the event loop receiving events
        self._idle_task = asyncio.ensure_future(self._client.idle())
        await self._first_connect.wait()

    async def disconnect(self) -> None:
        self._closing = True
        self._connected = False
        if self._reconnect_task:
            self._reconnect_task.cancel()
        if self._idle_task:
            self._idle_task.cancel()
        with contextlib.suppress(Exception):
            await self._client.disconnect()

    async def reconnect(self) -> None:
        logger.info("WhatsApp reconnecting", attempt=self._reconnect_attempts)
        if self._idle_task:
            self._idle_task.cancel()
        with contextlib.suppress(Exception):
            await self._client.disconnect()
        await self._client.connect()
        self._idle_task = asyncio.ensure_future(self._client.idle())

    async def schedule_reconnect(self) -> None:
        if self._closing:
            return
        if self._reconnect_task is not None and not self._reconnect_task.done():
            logger.debug("Reconnect already scheduled")
            return
        if self._reconnect_attempts >= MAX_RECONNECT_ATTEMPTS:
            logger.error("Failed to reconnect", attempts=self._reconnect_attempts)
            sys.exit(1)
        self._reconnect_attempts += 1
        delay = reconnect_delay(self._reconnect_attempts)
        logger.warning(
            "Connection lost, reconnecting", attempt=self._reconnect_attempts, delay=delay
        )
        self._reconnect_task = asyncio.ensure_future(self._reconnect_after(delay))

    async def _reconnect_after(self, delay: float) -> None:
        await asyncio.sleep(delay)
        if self._connected or self._closing:
            # whatsmeow may have restored the link on its own meanwhile
            return
        try:
            await self.reconnect()
        except Exception as err:
            logger.error("Reconnect attempt failed", error=str(err))
            self._reconnect_task = None
            await self.schedule_reconnect()

    async def clear_session(self) -> None:
        self._closing = True
        with contextlib.suppress(Exception):
            await self._client.disconnect()
        clear_auth_state(self._auth_dir)

    # --- Group queries & sending ---

    async def get_joined_groups(self) -> list[GroupMetadata]:
        groups = await self._client.get_joined_groups()
        return [group_info_to_metadata(group) for group in groups]

    async def get_group_metadata(self, group_jid: str) -> GroupMetadata:
        info = await self._client.get_group_info(to_jid(group_jid))
        return group_info_to_metadata(info)

    async def send_message(self, jid: str, text: str) -> None:
        await self._client.send_message(to_jid(jid), text)
        logger.info("Reply sent", jid=jid, chars=len(text))
