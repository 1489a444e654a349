"""
Protocols for the device record stores.

The backup and restore engines never touch a database directly; they
go through these three store protocols. Query methods return plain
dicts keyed by column name so that a store may omit columns it does not
have, and readers must cope with missing keys.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Protocol, runtime_checkable

# Contact data kinds, one satellite query per kind
KIND_CONTACT = "contact"
KIND_NAME = "name"
KIND_PHONE = "phone"
KIND_EMAIL = "email"
KIND_POSTAL = "postal"
KIND_NOTE = "note"
KIND_WEBSITE = "website"
KIND_EVENT = "event"
KIND_GROUP = "group_membership"
KIND_RELATION = "relation"
KIND_SOCIAL = "social"

SATELLITE_KINDS = (
    KIND_PHONE,
    KIND_EMAIL,
    KIND_POSTAL,
    KIND_NOTE,
    KIND_WEBSITE,
    KIND_EVENT,
    KIND_GROUP,
    KIND_RELATION,
    KIND_SOCIAL,
)


@dataclass
class ContactOperation:
    """
    One step of an atomic contact write.

    The first operation of a batch creates the base record (kind
    ``contact``); every following operation attaches a data row to it.
    """

    kind: str
    value: Optional[str] = None
    label: Optional[str] = None


@runtime_checkable
class MessageStore(Protocol):
    """Store holding text messages grouped into threads."""

    def can_read(self) -> bool:
        """Whether the process may read messages."""
        ...

    def can_write(self) -> bool:
        """Whether the store accepts inserts at all."""
        ...

    def query_messages(self) -> list[dict[str, Any]]:
        """Rows with id, address, body, date, type, read, status, thread_id."""
        ...

    def insert_message(self, values: dict[str, Any]) -> Optional[int]:
        """Insert a message; the store assigns a thread if none is given."""
        ...

    def get_thread_id(self, message_id: int) -> Optional[int]:
        """Get the thread a stored message was placed in."""
        ...

    def default_handler(self) -> Optional[str]:
        """Get the app id currently holding the exclusive write role."""
        ...


@runtime_checkable
class CallLogStore(Protocol):
    """Store holding call history."""

    def can_read(self) -> bool:
        ...

    def can_write(self) -> bool:
        ...

    def query_calls(
        self,
        start: Optional[int] = None,
        end: Optional[int] = None,
    ) -> list[dict[str, Any]]:
        """Rows with id, number, type, date, duration, name in [start, end)."""
        ...

    def insert_call(self, values: dict[str, Any]) -> Optional[int]:
        ...


@runtime_checkable
class ContactStore(Protocol):
    """Contact directory."""

    def can_read(self) -> bool:
        ...

    def can_write(self) -> bool:
        ...

    def query_roster(self) -> list[dict[str, Any]]:
        """Base rows with id and display_name."""
        ...

    def query_data(self, contact_id: int, kind: str) -> list[dict[str, Any]]:
        """Satellite rows with value and label for one contact and kind."""
        ...

    def apply_batch(self, operations: list[ContactOperation]) -> list[int]:
        """Apply all operations or none; returns the created row ids."""
        ...

    def lookup_name(self, number: str) -> Optional[str]:
        """Get the display name of the contact owning a number."""
        ...
