"""
Data models for captured communication records.

This module contains dataclasses representing text messages, call log
entries and contacts as they travel between the device stores and a
snapshot file.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Optional


class MessageType(IntEnum):
    """Box a message belongs to, using the message store's values."""

    INBOX = 1
    SENT = 2
    DRAFT = 3
    OUTBOX = 4
    FAILED = 5
    QUEUED = 6


class CallType(IntEnum):
    """Kind of call, using the call log store's values."""

    INCOMING = 1
    OUTGOING = 2
    MISSED = 3
    VOICEMAIL = 4
    REJECTED = 5
    BLOCKED = 6


@dataclass
class Message:
    """
    A text message.

    Attributes:
        id: Store-assigned identifier (0 for a record not yet stored).
        address: Phone number or sender id; may be blank in raw data.
        body: Message text.
        date: Timestamp in epoch milliseconds.
        type: Message box, see MessageType.
        read: 1 if read, 0 otherwise.
        status: Delivery status as reported by the store.
        thread_id: Store-specific conversation id, not portable.
    """

    id: int = 0
    address: str = ""
    body: Optional[str] = None
    date: int = 0
    type: int = MessageType.INBOX
    read: int = 0
    status: int = 0
    thread_id: int = 0

    def to_values(self, thread_id: Optional[int] = None) -> dict[str, Any]:
        """
        Build the column values used to insert this message.

        The store assigns a new id. A thread id is only included when one
        is given, otherwise the store picks the conversation.
        """
        values: dict[str, Any] = {
            "address": self.address,
            "body": self.body,
            "date": self.date,
            "type": int(self.type),
            "read": self.read,
            "status": self.status,
        }
        if thread_id:
            values["thread_id"] = thread_id
        return values


@dataclass
class CallLogEntry:
    """
    A call history entry.

    Attributes:
        id: Store-assigned identifier.
        number: Remote party number; may be empty.
        type: Kind of call, see CallType.
        date: Timestamp in epoch milliseconds.
        duration: Call length in seconds.
        cached_name: Contact name joined at capture time.
    """

    id: int = 0
    number: str = ""
    type: int = CallType.INCOMING
    date: int = 0
    duration: int = 0
    cached_name: Optional[str] = None

    def __post_init__(self) -> None:
        if self.duration < 0:
            self.duration = 0

    def to_values(self, cached_name: Optional[str] = None) -> dict[str, Any]:
        """Build the column values used to insert this entry."""
        values: dict[str, Any] = {
            "number": self.number,
            "type": int(self.type),
            "date": self.date,
            "duration": self.duration,
            # Restored entries are not new missed calls
            "new": 0,
        }
        name = cached_name or self.cached_name
        if name:
            values["name"] = name
        return values


@dataclass
class LabeledValue:
    """A typed value such as a postal address or a social profile."""

    type: str = ""
    value: str = ""


@dataclass
class ContactEvent:
    """A dated event such as a birthday or anniversary."""

    type: str = ""
    date: str = ""


@dataclass
class ContactRelationship:
    """A named relation such as a spouse or child."""

    type: str = ""
    name: str = ""


@dataclass
class ContactRecord:
    """
    A contact from the device directory.

    Optional attributes are None when the contact has none, which keeps
    them out of the way in the snapshot rather than writing empty lists.
    """

    id: int = 0
    name: str = ""
    phone_numbers: list[str] = field(default_factory=list)
    emails: Optional[list[str]] = None
    addresses: Optional[list[LabeledValue]] = None
    note: Optional[str] = None
    groups: Optional[list[str]] = None
    websites: Optional[list[str]] = None
    events: Optional[list[ContactEvent]] = None
    relationships: Optional[list[ContactRelationship]] = None
    social_profiles: Optional[list[LabeledValue]] = None

    @property
    def has_identity(self) -> bool:
        """Whether the contact carries a name, a phone number or an email."""
        if self.name and self.name.strip():
            return True
        if any(p and p.strip() for p in self.phone_numbers):
            return True
        return any(e and e.strip() for e in (self.emails or []))

    @property
    def display_name(self) -> str:
        """Get a display-friendly name."""
        if self.name and self.name.strip():
            return self.name.strip()
        if self.phone_numbers:
            return self.phone_numbers[0]
        if self.emails:
            return self.emails[0]
        return "Unknown"
