"""WhatsApp session helpers: QR rendering, pairing prompt, credential wipe.

neonize persists the session in ``<auth_dir>/neonize.db``; clearing the
directory forces a fresh link on the next start.
"""

from __future__ import annotations

import asyncio
import io
from pathlib import Path

import qrcode

from memberwatch.logger import logger

SESSION_DB_NAME = "neonize.db"


def session_db_path(auth_dir: Path) -> Path:
    return auth_dir / SESSION_DB_NAME


def render_qr(qr_data: bytes | str) -> str:
    """Render *qr_data* as terminal ASCII art."""
    qr = qrcode.QRCode(border=1)
    qr.add_data(qr_data)
    qr.make()
    buf = io.StringIO()
    qr.print_ascii(out=buf, invert=True)
    return buf.getvalue()


def print_qr(qr_data: bytes | str) -> None:
    print("Scan the QR code with WhatsApp:")
    print("  1. Open WhatsApp on your phone")
    print("  2. Tap Settings -> Linked Devices -> Link a Device")
    print("  3. Point your camera at the QR code below")
    print()
    print(render_qr(qr_data), flush=True)


async def prompt_phone_number() -> str:
    """Ask for the phone number to pair with, without blocking the event loop."""
    answer = await asyncio.to_thread(
        input,
        "Please enter your phone number (with country code, e.g., 905xxxxxxxxxx):\n",
    )
    return "".join(ch for ch in answer if ch.isdigit())


def clear_auth_state(auth_dir: Path) -> int:
    """Delete every file in *auth_dir*. Returns how many were removed."""
    if not auth_dir.is_dir():
        return 0
    removed = 0
    for path in auth_dir.iterdir():
        if path.is_file():
            path.unlink()
            removed += 1
    logger.info("Authentication files cleared", auth_dir=str(auth_dir), count=removed)
    return removed
