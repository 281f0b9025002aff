"""Shared test fixtures for memberwatch."""

from __future__ import annotations

import pytest

# ---------------------------------------------------------------------------
# Shared helpers (plain functions, not fixtures, importable by test files)
# ---------------------------------------------------------------------------

# Cached property names that must be set via __dict__ (not model_construct).
_CACHED_PROPERTY_NAMES = frozenset({"project_root", "database_path", "auth_dir"})


def make_settings(**overrides):
    """Create a Settings object with sensible defaults for testing.

    Accepts both model fields (database, whatsapp) and cached property
    overrides (project_root, database_path, auth_dir).

    Usage::

        s = make_settings(auth_dir=tmp_path / "store")
        s = make_settings(whatsapp=WhatsAppConfig(mark_online_on_connect=True))
    """
    from memberwatch.config import DatabaseConfig, Settings, WhatsAppConfig

    cached = {k: overrides.pop(k) for k in list(overrides) if k in _CACHED_PROPERTY_NAMES}

    defaults = {
        "database": DatabaseConfig(),
        "whatsapp": WhatsAppConfig(),
    }
    defaults.update(overrides)
    s = Settings.model_construct(**defaults)

    for key, value in cached.items():
        s.__dict__[key] = value

    return s


@pytest.fixture(autouse=True)
def _isolated_settings():
    """Never let one test's cached Settings leak into the next."""
    from memberwatch.config import reset_settings

    reset_settings()
    yield
    reset_settings()


@pytest.fixture(autouse=True, scope="session")
def _stop_last_test_database():
    """Stop the final in-memory connection so its worker thread lets pytest exit."""
    yield
    from memberwatch.db._connection import _stop_test_database

    _stop_test_database()
