"""Data models for memberwatch."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

# --- Persisted records ---


@dataclass
class Group:
    jid: str
    is_monitored: bool = True
    name: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


@dataclass
class Membership:
    """One (phone, group) pair. Never deleted; ``is_active`` flips instead."""

    phone_number: str
    group_jid: str
    is_active: bool = True
    created_at: str | None = None
    updated_at: str | None = None


@dataclass
class GroupMetadata:
    """Transport-side view of a group: id, subject and current roster."""

    jid: str
    name: str | None
    participants: list[str] = field(default_factory=list)


# --- Status report ---


@dataclass
class GroupStatus:
    name: str
    id: str
    contains_target_keyword: bool
    total_members: int
    active_members: int
    inactive_members: int


@dataclass
class DatabaseStatus:
    total_groups: int
    target_groups: int
    force_monitored_groups: int
    group_details: list[GroupStatus] = field(default_factory=list)


# --- Inbound events ---


@dataclass
class ConnectionOpened:
    """The transport finished connecting (first time or after a reconnect)."""


@dataclass
class ConnectionClosed:
    logged_out: bool = False
    reason: str | None = None


@dataclass
class ParticipantsChanged:
    group_jid: str
    participants: list[str]
    action: Literal["add", "remove"]


@dataclass
class GroupRenamed:
    group_jid: str
    name: str


@dataclass
class JoinedGroup:
    """This account was added to a group. ``participants`` may be empty."""

    group_jid: str
    name: str | None
    participants: list[str] = field(default_factory=list)


@dataclass
class TextMessage:
    chat_jid: str
    text: str
    is_from_me: bool
    is_group: bool


type Event = (
    ConnectionOpened
    | ConnectionClosed
    | ParticipantsChanged
    | GroupRenamed
    | JoinedGroup
    | TextMessage
)
