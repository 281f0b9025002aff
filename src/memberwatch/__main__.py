"""Entry point for `python -m memberwatch` / `memberwatch`.

    memberwatch                      Link via QR code (default)
    memberwatch --use-pairing-code   Link via phone-number pairing code
"""

from __future__ import annotations

import argparse
import asyncio


def _run(use_pairing_code: bool) -> None:
    from memberwatch.app import MemberWatchApp

    app = MemberWatchApp(use_pairing_code=use_pairing_code)
    asyncio.run(app.run())


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="memberwatch",
        description="Track membership of keyword-matched WhatsApp groups",
    )
    parser.add_argument(
        "--use-pairing-code",
        action="store_true",
        help="Authenticate with a pairing code instead of scanning a QR code",
    )
    args = parser.parse_args()
    _run(use_pairing_code=args.use_pairing_code)


if __name__ == "__main__":
    main()
