"""Keyword predicate: which groups are monitored by default."""

from __future__ import annotations

from memberwatch.config import get_settings


def is_target_group(name: str | None, keyword: str | None = None) -> bool:
    """True when *name* contains the target keyword, ignoring case.

    ``keyword`` defaults to ``Settings.TARGET_KEYWORD``. Absent or empty
    names never match.
    """
    if not name:
        return False
    if keyword is None:
        keyword = get_settings().TARGET_KEYWORD
    return keyword.lower() in name.lower()
