"""SQLite database layer.

All functions are async using aiosqlite.
Module-level connection, initialized by init_database().

This package is split into domain-specific submodules:
  _connection  : schema, init, migration, atomic writes
  groups       : group records and the monitored flag
  memberships  : per-(phone, group) membership records
"""

# Re-export every public symbol so that `from memberwatch.db import X` works.

from memberwatch.db._connection import (
    _get_db,
    _init_test_database,
    atomic_write,
    close_database,
    init_database,
)
from memberwatch.db.groups import (
    get_group,
    get_monitored_groups,
    set_group_monitored,
    upsert_group,
)
from memberwatch.db.memberships import (
    count_memberships,
    deactivate_membership,
    get_membership,
    get_memberships,
    upsert_active_membership,
)

__all__ = [
    # connection
    "_get_db",
    "_init_test_database",
    "atomic_write",
    "close_database",
    "init_database",
    # groups
    "get_group",
    "get_monitored_groups",
    "set_group_monitored",
    "upsert_group",
    # memberships
    "count_memberships",
    "deactivate_membership",
    "get_membership",
    "get_memberships",
    "upsert_active_membership",
]
