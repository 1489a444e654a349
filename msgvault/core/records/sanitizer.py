"""
Record sanitization before serialization and restore.

Raw store data is loosely typed: messages arrive without an address,
call numbers come in every format, and contact fields can carry control
characters that corrupt the snapshot or its later re-import. The
sanitizer fixes these in a pure, idempotent way and never drops a
record.
"""

from __future__ import annotations

import logging
import unicodedata
from dataclasses import replace
from typing import Optional

from msgvault.constants import UNKNOWN_ADDRESS_PREFIX
from msgvault.core.records import phone
from msgvault.core.records.models import (
    CallLogEntry,
    ContactEvent,
    ContactRecord,
    ContactRelationship,
    LabeledValue,
    Message,
)

logger = logging.getLogger(__name__)

# Whitespace controls that carry meaning in notes and postal addresses
_KEPT_CONTROLS = {"\n", "\t"}


def placeholder(record_id: int) -> str:
    """Get the synthesized address for a record without one."""
    return f"{UNKNOWN_ADDRESS_PREFIX}{record_id}"


def is_placeholder(value: Optional[str]) -> bool:
    """Check whether an address was synthesized by the sanitizer."""
    return bool(value) and value.startswith(UNKNOWN_ADDRESS_PREFIX)


def strip_non_printable(value: Optional[str]) -> Optional[str]:
    """
    Remove control and other non-printable characters from text.

    Letters in any script are kept; only Unicode "Other" categories
    (controls, format characters, surrogates, unassigned) are dropped,
    except newlines and tabs.
    """
    if value is None:
        return None
    return "".join(
        ch for ch in value
        if ch in _KEPT_CONTROLS or not unicodedata.category(ch).startswith("C")
    )


def _clean_list(values: Optional[list[str]]) -> Optional[list[str]]:
    if values is None:
        return None
    return [strip_non_printable(v) or "" for v in values]


class RecordSanitizer:
    """
    Validates and repairs records before they are written anywhere.

    Example:
        sanitizer = RecordSanitizer()
        messages = sanitizer.sanitize_messages(messages)
        calls = sanitizer.sanitize_call_logs(calls)
        contacts = sanitizer.sanitize_contacts(contacts)
    """

    def sanitize_messages(self, messages: list[Message]) -> list[Message]:
        """
        Give every message a usable address.

        Blank addresses become ``unknown_<id>`` so that downstream
        grouping never merges unrelated no-contact messages into one
        conversation. Other fields are never touched.
        """
        result: list[Message] = []
        fixed = 0
        for message in messages:
            if not message.address or not message.address.strip():
                result.append(replace(message, address=placeholder(message.id)))
                fixed += 1
            else:
                result.append(message)

        if fixed:
            logger.warning(f"{fixed} message(s) had no address, using placeholders")
        return result

    def sanitize_call_logs(self, call_logs: list[CallLogEntry]) -> list[CallLogEntry]:
        """
        Normalize call numbers, using placeholders for blank ones.

        A number with no digits at all (for example "Private") is treated
        as blank. Placeholders are left untouched so the operation is
        idempotent.
        """
        result: list[CallLogEntry] = []
        for entry in call_logs:
            number = entry.number
            if is_placeholder(number):
                result.append(entry)
                continue

            normalized = phone.normalize(number)
            if not normalized:
                normalized = placeholder(entry.id)

            if normalized != number:
                logger.debug(f"Call number normalized: {number!r} -> {normalized}")
                entry = replace(entry, number=normalized)
            result.append(entry)
        return result

    def sanitize_contacts(self, contacts: list[ContactRecord]) -> list[ContactRecord]:
        """Strip non-printable characters from every free-text contact field."""
        return [self._sanitize_contact(contact) for contact in contacts]

    def _sanitize_contact(self, contact: ContactRecord) -> ContactRecord:
        """Return a cleaned copy of a single contact."""
        return replace(
            contact,
            name=strip_non_printable(contact.name) or "",
            phone_numbers=_clean_list(contact.phone_numbers) or [],
            emails=_clean_list(contact.emails),
            note=strip_non_printable(contact.note),
            groups=_clean_list(contact.groups),
            websites=_clean_list(contact.websites),
            addresses=None if contact.addresses is None else [
                LabeledValue(
                    type=strip_non_printable(a.type) or "",
                    value=strip_non_printable(a.value) or "",
                )
                for a in contact.addresses
            ],
            events=None if contact.events is None else [
                ContactEvent(
                    type=strip_non_printable(e.type) or "",
                    date=strip_non_printable(e.date) or "",
                )
                for e in contact.events
            ],
            relationships=None if contact.relationships is None else [
                ContactRelationship(
                    type=strip_non_printable(r.type) or "",
                    name=strip_non_printable(r.name) or "",
                )
                for r in contact.relationships
            ],
            social_profiles=None if contact.social_profiles is None else [
                LabeledValue(
                    type=strip_non_printable(s.type) or "",
                    value=strip_non_printable(s.value) or "",
                )
                for s in contact.social_profiles
            ],
        )
