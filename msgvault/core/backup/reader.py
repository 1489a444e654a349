"""
Source reader for capturing records from the device stores.

Each category is read independently: a store the process may not read,
or one that fails unexpectedly, yields None for its category while the
other categories are still captured. Rows are loosely typed and may lack
columns, so conversion tolerates missing keys and skips (with a log
line) any single row it cannot make sense of.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Optional

from msgvault.constants import (
    DEFAULT_CALL_LOG_LOOKBACK_DAYS,
    DEFAULT_CALL_LOG_WINDOWS,
    MILLIS_PER_DAY,
)
from msgvault.core.records.models import (
    CallLogEntry,
    ContactEvent,
    ContactRecord,
    ContactRelationship,
    LabeledValue,
    Message,
)
from msgvault.core.stores.base import (
    KIND_EMAIL,
    KIND_EVENT,
    KIND_GROUP,
    KIND_NOTE,
    KIND_PHONE,
    KIND_POSTAL,
    KIND_RELATION,
    KIND_SOCIAL,
    KIND_WEBSITE,
    CallLogStore,
    ContactStore,
    MessageStore,
)
from msgvault.exceptions import MsgVaultError

logger = logging.getLogger(__name__)

Window = tuple[Optional[int], Optional[int]]


def _now_ms() -> int:
    return int(time.time() * 1000)


def _int(value: Any) -> int:
    try:
        return int(value) if value is not None else 0
    except (TypeError, ValueError):
        return 0


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def call_log_windows(count: int, lookback_days: int, now: int) -> list[Window]:
    """
    Split the call history into bounded read windows.

    The look-back period ending at ``now`` is cut into ``count`` equal
    slices. The first window has no lower bound and the last has no
    upper bound, so together they cover every possible timestamp.

    Args:
        count: Number of windows, at least 1.
        lookback_days: Length of the bounded period in days.
        now: Current time in epoch milliseconds.

    Returns:
        Half-open (start, end) pairs in chronological order.
    """
    count = max(1, count)
    span = max(0, lookback_days) * MILLIS_PER_DAY
    origin = now - span
    step = span // count

    windows: list[Window] = []
    for index in range(count):
        start: Optional[int] = origin + index * step if index > 0 else None
        end: Optional[int] = origin + (index + 1) * step if index < count - 1 else None
        windows.append((start, end))
    return windows


class SourceReader:
    """
    Reads the three record categories from their stores.

    Example:
        stores = DeviceStores.open(device_dir)
        reader = SourceReader(stores.messages, stores.call_logs, stores.contacts)

        messages = reader.read_messages()
        if messages is None:
            print("No access to messages")
    """

    def __init__(
        self,
        message_store: MessageStore,
        call_log_store: CallLogStore,
        contact_store: ContactStore,
        window_count: int = DEFAULT_CALL_LOG_WINDOWS,
        lookback_days: int = DEFAULT_CALL_LOG_LOOKBACK_DAYS,
        clock: Callable[[], int] = _now_ms,
    ):
        """
        Initialize the reader.

        Args:
            message_store: Store to read messages from.
            call_log_store: Store to read call history from.
            contact_store: Contact directory.
            window_count: Number of call log read windows.
            lookback_days: Period covered by the bounded windows.
            clock: Returns the current time in epoch milliseconds.
        """
        self._messages = message_store
        self._call_logs = call_log_store
        self._contacts = contact_store
        self._window_count = window_count
        self._lookback_days = lookback_days
        self._clock = clock

    def read_messages(self) -> Optional[list[Message]]:
        """
        Read every text message.

        Returns:
            Messages, or None if the store is not readable.
        """
        if not self._messages.can_read():
            logger.warning("No read access to messages, skipping category")
            return None

        try:
            rows = self._messages.query_messages()
        except MsgVaultError as e:
            logger.error(f"Failed to read messages: {e}")
            return None
        except Exception as e:
            logger.error(f"Unexpected error reading messages: {e}", exc_info=True)
            return None

        messages: list[Message] = []
        for row in rows:
            try:
                messages.append(Message(
                    id=_int(row.get("id")),
                    address=_text(row.get("address")),
                    body=row.get("body"),
                    date=_int(row.get("date")),
                    type=_int(row.get("type")),
                    read=_int(row.get("read")),
                    status=_int(row.get("status")),
                    thread_id=_int(row.get("thread_id")),
                ))
            except (TypeError, ValueError, AttributeError) as e:
                logger.warning(f"Skipping unreadable message row: {e}")

        logger.info(f"Read {len(messages)} messages")
        return messages

    def read_call_logs(self) -> Optional[list[CallLogEntry]]:
        """
        Read the call history window by window.

        Returns:
            Entries in chronological order, or None if not readable.
        """
        if not self._call_logs.can_read():
            logger.warning("No read access to call logs, skipping category")
            return None

        windows = call_log_windows(
            self._window_count, self._lookback_days, self._clock()
        )

        entries: list[CallLogEntry] = []
        seen: set[int] = set()
        try:
            for start, end in windows:
                rows = self._call_logs.query_calls(start=start, end=end)
                logger.debug(f"Call log window {start}..{end}: {len(rows)} rows")
                for row in rows:
                    entry = self._convert_call(row)
                    if entry is None:
                        continue
                    if entry.id and entry.id in seen:
                        continue
                    seen.add(entry.id)
                    entries.append(entry)
        except MsgVaultError as e:
            logger.error(f"Failed to read call logs: {e}")
            return None
        except Exception as e:
            logger.error(f"Unexpected error reading call logs: {e}", exc_info=True)
            return None

        logger.info(f"Read {len(entries)} call log entries in {len(windows)} windows")
        return entries

    def _convert_call(self, row: dict[str, Any]) -> Optional[CallLogEntry]:
        try:
            return CallLogEntry(
                id=_int(row.get("id")),
                number=_text(row.get("number")),
                type=_int(row.get("type")),
                date=_int(row.get("date")),
                duration=_int(row.get("duration")),
                cached_name=row.get("name") or None,
            )
        except (TypeError, ValueError, AttributeError) as e:
            logger.warning(f"Skipping unreadable call log row: {e}")
            return None

    def read_contacts(self) -> Optional[list[ContactRecord]]:
        """
        Read the contact directory.

        One roster query is followed by one query per contact and
        attribute. Contacts without a name, a phone number or an email
        are left out.

        Returns:
            Contacts, or None if the directory is not readable.
        """
        if not self._contacts.can_read():
            logger.warning("No read access to contacts, skipping category")
            return None

        try:
            roster = self._contacts.query_roster()
            contacts: list[ContactRecord] = []
            dropped = 0
            for row in roster:
                contact = self._read_contact(row)
                if contact is None:
                    continue
                if not contact.has_identity:
                    dropped += 1
                    continue
                contacts.append(contact)
        except MsgVaultError as e:
            logger.error(f"Failed to read contacts: {e}")
            return None
        except Exception as e:
            logger.error(f"Unexpected error reading contacts: {e}", exc_info=True)
            return None

        if dropped:
            logger.info(f"Dropped {dropped} contact(s) without name, phone or email")
        logger.info(f"Read {len(contacts)} contacts")
        return contacts

    def _read_contact(self, row: dict[str, Any]) -> Optional[ContactRecord]:
        """Assemble one contact from its roster row and data rows."""
        try:
            contact_id = _int(row.get("id"))
        except AttributeError as e:
            logger.warning(f"Skipping unreadable contact row: {e}")
            return None

        def values(kind: str) -> list[str]:
            return [
                _text(r.get("value")) for r in self._contacts.query_data(contact_id, kind)
                if r.get("value")
            ]

        def labeled(kind: str) -> list[tuple[str, str]]:
            return [
                (_text(r.get("label")), _text(r.get("value")))
                for r in self._contacts.query_data(contact_id, kind)
                if r.get("value")
            ]

        notes = values(KIND_NOTE)
        addresses = labeled(KIND_POSTAL)
        events = labeled(KIND_EVENT)
        relations = labeled(KIND_RELATION)
        socials = labeled(KIND_SOCIAL)

        return ContactRecord(
            id=contact_id,
            name=_text(row.get("display_name")),
            phone_numbers=values(KIND_PHONE),
            emails=values(KIND_EMAIL) or None,
            addresses=[LabeledValue(type=t, value=v) for t, v in addresses] or None,
            note="\n".join(notes) if notes else None,
            groups=values(KIND_GROUP) or None,
            websites=values(KIND_WEBSITE) or None,
            events=[ContactEvent(type=t, date=v) for t, v in events] or None,
            relationships=[
                ContactRelationship(type=t, name=v) for t, v in relations
            ] or None,
            social_profiles=[LabeledValue(type=t, value=v) for t, v in socials] or None,
        )
