"""Process wiring: store, monitored set, WhatsApp channel and event router."""

from __future__ import annotations

import asyncio
import os
import signal

from memberwatch.db import close_database, init_database
from memberwatch.group_locks import GroupLocks
from memberwatch.logger import logger
from memberwatch.monitored import MonitoredGroups
from memberwatch.reconciler import MembershipReconciler
from memberwatch.registrar import GroupRegistrar
from memberwatch.router import EventRouter
from memberwatch.types import Event

SHUTDOWN_WATCHDOG_SECONDS = 12


class MemberWatchApp:
    def __init__(self, *, use_pairing_code: bool = False) -> None:
        self.use_pairing_code = use_pairing_code
        self.monitored = MonitoredGroups()
        self.locks = GroupLocks()
        self.registrar = GroupRegistrar(self.monitored)
        self.reconciler = MembershipReconciler(self.monitored, self.locks)
        self.router: EventRouter | None = None
        self.channel = None
        self._shutting_down = False
        self._stopped = asyncio.Event()

    async def _on_event(self, event: Event) -> None:
        if self.router is None:
            logger.debug("Event before router ready, dropped", event_type=type(event).__name__)
            return
        await self.router.dispatch(event)

    async def _shutdown(self, sig_name: str) -> None:
        """Graceful shutdown handler. Second signal force-exits."""
        if self._shutting_down:
            logger.info("Force shutdown")
            os._exit(1)
        self._shutting_down = True
        logger.info("Shutdown signal received", signal=sig_name)

        # If a disconnect hangs, let the supervisor restart us anyway
        loop = asyncio.get_running_loop()
        loop.call_later(SHUTDOWN_WATCHDOG_SECONDS, lambda: os._exit(1))

        if self.channel is not None:
            await self.channel.disconnect()
        await close_database()
        self._stopped.set()

    async def run(self) -> None:
        """Startup sequence. Store failures propagate and end the process."""
        logger.info("Starting memberwatch")
        await init_database()
        await self.monitored.load()

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(
                sig,
                lambda s=sig: asyncio.ensure_future(self._shutdown(s.name)),
            )

        from memberwatch.channels.whatsapp import WhatsAppChannel

        self.channel = WhatsAppChannel(self._on_event, use_pairing_code=self.use_pairing_code)
        self.router = EventRouter(self.channel, self.monitored, self.registrar, self.reconciler)

        await self.channel.connect()
        logger.info("Connection established, bot is ready", monitored_groups=len(self.monitored))
        await self._stopped.wait()
