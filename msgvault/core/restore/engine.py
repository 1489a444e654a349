"""
Restore engine replaying a snapshot into the device stores.

A restore moves through fixed states: the snapshot is parsed, the
message write role is checked, then messages, call logs and contacts are
written in that order. Only a parse failure or a missing write role
stop the restore before any write. After that, restore is best effort:
a record that fails is logged and skipped, and a phase that fails keeps
the counts of the phases before it.

Messages are regrouped into conversations on restore because thread ids
are not portable between stores. The first message of each conversation
lets the store pick a thread, and the rest of the conversation is
inserted into that same thread.
"""

from __future__ import annotations

import logging
import re
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Union

from msgvault.config import Config, RestoreConfig
from msgvault.constants import (
    CATEGORY_CALL_LOGS,
    CATEGORY_CONTACTS,
    CATEGORY_MESSAGES,
    PHASE_CALL_LOGS,
    PHASE_COMPLETE,
    PHASE_CONTACTS,
    PHASE_MESSAGES,
    PHASE_PREPARE,
    PHONE_TAIL_MATCH_DIGITS,
)
from msgvault.core.progress import ProgressCallback, percent_of, progress_step, report
from msgvault.core.records import phone
from msgvault.core.records.models import CallLogEntry, ContactRecord, Message
from msgvault.core.records.sanitizer import RecordSanitizer, is_placeholder
from msgvault.core.restore.role import (
    OverrideRoleOracle,
    StoreRoleOracle,
    WriteRoleOracle,
)
from msgvault.core.snapshot.catalog import SnapshotCatalog
from msgvault.core.snapshot.codec import SnapshotCodec
from msgvault.core.snapshot.models import RestoreResult, RestoreState, SnapshotFile
from msgvault.core.stores.base import (
    KIND_CONTACT,
    KIND_EMAIL,
    KIND_EVENT,
    KIND_GROUP,
    KIND_NAME,
    KIND_NOTE,
    KIND_PHONE,
    KIND_POSTAL,
    KIND_RELATION,
    KIND_SOCIAL,
    KIND_WEBSITE,
    CallLogStore,
    ContactOperation,
    ContactStore,
    MessageStore,
)
from msgvault.core.stores.sqlite import DeviceStores
from msgvault.exceptions import MsgVaultError, SnapshotError, WriteRoleRequiredError

logger = logging.getLogger(__name__)

# Addresses made only of dialable characters are compared as numbers
_DIALABLE = re.compile(r"^\+?[\d\s().\-/]+$")


def party_key(address: str) -> str:
    """
    Get the grouping key of a message address.

    Dialable addresses are normalized; placeholders and alphanumeric
    sender ids (``BANK``, ``Mom``) are kept as written.
    """
    value = (address or "").strip()
    if is_placeholder(value) or not _DIALABLE.match(value):
        return value
    return phone.normalize(value) or value


class ConversationGrouper:
    """
    Groups messages into conversations by party.

    A message joins the first conversation, in first-seen order, whose
    key matches its own under the phone number matching rules. Exact and
    eight-digit tail hits are found through indexes; only numbers shorter
    than the tail length need a linear scan.

    Example:
        grouper = ConversationGrouper()
        for message in messages:
            grouper.add(message)
        for key, conversation in grouper.groups():
            ...
    """

    def __init__(self):
        self._groups: list[tuple[str, list[Message]]] = []
        self._exact: dict[str, int] = {}
        self._tails: dict[str, int] = {}
        self._numeric: list[int] = []
        self._short: list[int] = []

    def add(self, message: Message) -> None:
        key = party_key(message.address)
        index = self._find(key)
        if index is None:
            index = len(self._groups)
            self._groups.append((key, []))
            self._index(key, index)
        self._groups[index][1].append(message)

    def groups(self) -> list[tuple[str, list[Message]]]:
        """Get (key, messages) pairs, each sorted oldest first."""
        return [
            (key, sorted(messages, key=lambda m: m.date))
            for key, messages in self._groups
        ]

    def _is_numeric(self, key: str) -> bool:
        return bool(key) and not is_placeholder(key) and phone.normalize(key) == key

    def _find(self, key: str) -> Optional[int]:
        if key in self._exact:
            return self._exact[key]
        if not self._is_numeric(key):
            return None

        digits = key.lstrip("+")
        tail = PHONE_TAIL_MATCH_DIGITS
        if len(digits) >= tail:
            # A long number can only match a long group via the tail index
            candidates = [self._tails[digits[-tail:]]] if digits[-tail:] in self._tails else []
            candidates += [i for i in self._short if phone.matches(key, self._groups[i][0])]
        else:
            candidates = [i for i in self._numeric if phone.matches(key, self._groups[i][0])]

        return min(candidates) if candidates else None

    def _index(self, key: str, index: int) -> None:
        self._exact.setdefault(key, index)
        if not self._is_numeric(key):
            return

        self._numeric.append(index)
        digits = key.lstrip("+")
        if len(digits) >= PHONE_TAIL_MATCH_DIGITS:
            self._tails.setdefault(digits[-PHONE_TAIL_MATCH_DIGITS:], index)
        else:
            self._short.append(index)


def group_by_party(messages: list[Message]) -> list[tuple[str, list[Message]]]:
    """Group messages into conversations in first-seen order."""
    grouper = ConversationGrouper()
    for message in messages:
        grouper.add(message)
    return grouper.groups()


def contact_operations(contact: ContactRecord) -> list[ContactOperation]:
    """
    Build the atomic write batch for one contact.

    The batch starts with the base record, then the name, the phone
    numbers and every other attribute the contact carries.
    """
    operations = [ContactOperation(KIND_CONTACT, contact.display_name)]

    if contact.name and contact.name.strip():
        operations.append(ContactOperation(KIND_NAME, contact.name))
    for number in contact.phone_numbers:
        if number:
            operations.append(ContactOperation(KIND_PHONE, number))
    for email in contact.emails or []:
        if email:
            operations.append(ContactOperation(KIND_EMAIL, email))
    for address in contact.addresses or []:
        operations.append(ContactOperation(KIND_POSTAL, address.value, address.type))
    if contact.note:
        operations.append(ContactOperation(KIND_NOTE, contact.note))
    for group in contact.groups or []:
        operations.append(ContactOperation(KIND_GROUP, group))
    for website in contact.websites or []:
        operations.append(ContactOperation(KIND_WEBSITE, website))
    for event in contact.events or []:
        operations.append(ContactOperation(KIND_EVENT, event.date, event.type))
    for relation in contact.relationships or []:
        operations.append(ContactOperation(KIND_RELATION, relation.name, relation.type))
    for profile in contact.social_profiles or []:
        operations.append(ContactOperation(KIND_SOCIAL, profile.value, profile.type))

    return operations


@dataclass
class _Tally:
    """Records restored so far, per category."""

    messages: int = 0
    call_logs: int = 0
    contacts: int = 0

    @property
    def total(self) -> int:
        return self.messages + self.call_logs + self.contacts


class RestoreEngine:
    """
    Restores a snapshot into the device stores.

    An engine runs one restore at a time; callers serialize concurrent
    requests.

    Example:
        engine = RestoreEngine.from_config(get_config())

        def show(phase, percent, detail):
            print(f"{phase}: {percent}% {detail}")

        result = engine.restore(snapshot_path, progress=show)
        print(result.message)
    """

    def __init__(
        self,
        catalog: SnapshotCatalog,
        message_store: MessageStore,
        call_log_store: CallLogStore,
        contact_store: ContactStore,
        role_oracle: WriteRoleOracle,
        sanitizer: Optional[RecordSanitizer] = None,
        config: Optional[RestoreConfig] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize the restore engine.

        Args:
            catalog: Catalog used to load snapshot files.
            message_store: Destination for messages.
            call_log_store: Destination for call history.
            contact_store: Destination for contacts, also used for
                call log name lookups.
            role_oracle: Decides whether messages may be written.
            sanitizer: Sanitizer applied to records before writing.
            config: Progress and pacing settings.
            sleep: Function used for pacing pauses, in seconds.
        """
        self._catalog = catalog
        self._messages = message_store
        self._call_logs = call_log_store
        self._contacts = contact_store
        self._role_oracle = role_oracle
        self._sanitizer = sanitizer or RecordSanitizer()
        self._config = config or RestoreConfig()
        self._sleep = sleep

        self._state = RestoreState.IDLE
        self._progress: Optional[ProgressCallback] = None
        self._cancel: Optional[threading.Event] = None

    @classmethod
    def from_config(
        cls,
        config: Config,
        stores: Optional[DeviceStores] = None,
        force_role: Optional[bool] = None,
    ) -> RestoreEngine:
        """
        Create an engine for the configured directories.

        Args:
            config: Loaded configuration.
            stores: Stores to restore into; opened from the device
                directory when omitted.
            force_role: Skip the live write-role check and use this
                answer instead.
        """
        stores = stores or DeviceStores.open(config.device_dir)
        if force_role is None:
            oracle: WriteRoleOracle = StoreRoleOracle(stores.messages, config.backup.app_id)
        else:
            oracle = OverrideRoleOracle(force_role)

        return cls(
            SnapshotCatalog(config.backup_dir, SnapshotCodec()),
            stores.messages,
            stores.call_logs,
            stores.contacts,
            oracle,
            config=config.restore,
        )

    @property
    def state(self) -> RestoreState:
        """Get the current state of the engine."""
        return self._state

    def restore(
        self,
        snapshot_file: Union[SnapshotFile, Path, str],
        progress: Optional[ProgressCallback] = None,
        cancel: Optional[threading.Event] = None,
    ) -> RestoreResult:
        """
        Restore every captured category of a snapshot.

        Never raises; failures are reported in the result.

        Args:
            snapshot_file: Catalog entry or path of the snapshot.
            progress: Optional reporter called with (phase, percent, detail).
            cancel: Optional event; when set, the restore stops between
                records and reports what it restored.

        Returns:
            RestoreResult. Success means at least one record restored.
        """
        path = snapshot_file.path if isinstance(snapshot_file, SnapshotFile) else Path(snapshot_file)
        self._progress = progress
        self._cancel = cancel
        tally = _Tally()

        self._set_state(RestoreState.PREPARING)
        report(progress, PHASE_PREPARE, 0, f"Reading {path.name}")
        try:
            snapshot = self._catalog.load(path)
        except SnapshotError as e:
            return self._fail(f"Cannot parse snapshot file: {e}")

        report(
            progress, PHASE_PREPARE, 50,
            f"Snapshot holds {snapshot.message_count} messages, "
            f"{snapshot.call_log_count} call logs and {snapshot.contact_count} contacts",
        )

        self._set_state(RestoreState.PERMISSION_GATE)
        if snapshot.messages and not self._role_held():
            return self._fail(f"Cannot restore messages. {WriteRoleRequiredError()}")
        report(progress, PHASE_PREPARE, 100, "Ready to restore")

        phases = [
            (RestoreState.RESTORING_MESSAGES, CATEGORY_MESSAGES,
             snapshot.messages, self._restore_messages),
            (RestoreState.RESTORING_CALL_LOGS, CATEGORY_CALL_LOGS,
             snapshot.call_logs, self._restore_call_logs),
            (RestoreState.RESTORING_CONTACTS, CATEGORY_CONTACTS,
             snapshot.contacts, self._restore_contacts),
        ]
        for state, category, records, handler in phases:
            if self._is_cancelled():
                break
            if records is None:
                logger.info(f"Snapshot has no {category} category, skipping")
                continue

            self._set_state(state)
            try:
                handler(records, tally)
            except Exception as e:
                logger.error(f"Restoring {category} stopped unexpectedly: {e}", exc_info=True)

        return self._finish(tally)

    # Phases

    def _restore_messages(self, messages: list[Message], tally: _Tally) -> None:
        messages = self._sanitizer.sanitize_messages(messages)
        total = len(messages)
        if total == 0:
            report(self._progress, PHASE_MESSAGES, 100, "No messages to restore")
            return

        conversations = group_by_party(messages)
        logger.info(f"Restoring {total} messages in {len(conversations)} conversations")
        step = progress_step(total, self._config.progress_updates)

        done = 0
        for number, (key, conversation) in enumerate(conversations, 1):
            thread_id: Optional[int] = None
            for message in conversation:
                if self._is_cancelled():
                    return
                row_id = self._insert_message(message, thread_id)
                if row_id is not None:
                    tally.messages += 1
                    if thread_id is None:
                        thread_id = self._thread_of(row_id)
                done += 1
                self._after_record(PHASE_MESSAGES, "messages", done, total, step)

            logger.debug(f"Conversation {key} restored into thread {thread_id}")
            report(
                self._progress, PHASE_MESSAGES, percent_of(done, total),
                f"Conversation {number}/{len(conversations)} restored",
            )
            self._pause(self._config.group_pause_ms)

    def _insert_message(self, message: Message, thread_id: Optional[int]) -> Optional[int]:
        try:
            row_id = self._messages.insert_message(message.to_values(thread_id))
        except MsgVaultError as e:
            logger.warning(f"Failed to restore message {message.id}: {e}")
            return None
        if row_id is None:
            logger.warning(f"Message store rejected message {message.id}")
        return row_id

    def _thread_of(self, row_id: int) -> Optional[int]:
        try:
            return self._messages.get_thread_id(row_id)
        except MsgVaultError as e:
            logger.warning(f"Could not read thread of message {row_id}: {e}")
            return None

    def _restore_call_logs(self, entries: list[CallLogEntry], tally: _Tally) -> None:
        if not self._call_logs.can_write():
            logger.warning("No write access to call logs, skipping category")
            report(self._progress, PHASE_CALL_LOGS, 100, "Skipped: no write access")
            return

        entries = self._sanitizer.sanitize_call_logs(entries)
        total = len(entries)
        if total == 0:
            report(self._progress, PHASE_CALL_LOGS, 100, "No call logs to restore")
            return

        logger.info(f"Restoring {total} call log entries")
        step = progress_step(total, self._config.progress_updates)

        for done, entry in enumerate(entries, 1):
            if self._is_cancelled():
                return
            name = entry.cached_name or self._lookup_name(entry.number)
            try:
                row_id = self._call_logs.insert_call(entry.to_values(cached_name=name))
            except MsgVaultError as e:
                logger.warning(f"Failed to restore call log entry {entry.id}: {e}")
                row_id = None
            if row_id is not None:
                tally.call_logs += 1
            self._after_record(PHASE_CALL_LOGS, "call logs", done, total, step)

    def _lookup_name(self, number: str) -> Optional[str]:
        """Find a contact name for a number, trying its raw form first."""
        if not number or is_placeholder(number):
            return None

        candidates = [number] + [v for v in phone.variants(number) if v != number]
        for candidate in candidates:
            try:
                name = self._contacts.lookup_name(candidate)
            except MsgVaultError as e:
                logger.debug(f"Name lookup failed for {candidate}: {e}")
                continue
            if name:
                return name
        return None

    def _restore_contacts(self, contacts: list[ContactRecord], tally: _Tally) -> None:
        if not self._contacts.can_write():
            logger.warning("No write access to contacts, skipping category")
            report(self._progress, PHASE_CONTACTS, 100, "Skipped: no write access")
            return

        contacts = self._sanitizer.sanitize_contacts(contacts)
        total = len(contacts)
        if total == 0:
            report(self._progress, PHASE_CONTACTS, 100, "No contacts to restore")
            return

        logger.info(f"Restoring {total} contacts")
        step = progress_step(total, self._config.progress_updates)

        for done, contact in enumerate(contacts, 1):
            if self._is_cancelled():
                return
            try:
                if self._contacts.apply_batch(contact_operations(contact)):
                    tally.contacts += 1
            except MsgVaultError as e:
                logger.warning(f"Failed to restore contact {contact.display_name}: {e}")
            self._after_record(PHASE_CONTACTS, "contacts", done, total, step)

    # Helpers

    def _after_record(self, phase: str, label: str, done: int, total: int, step: int) -> None:
        if done % step == 0 or done == total:
            report(
                self._progress, phase, percent_of(done, total),
                f"Restoring {label}: {done}/{total}",
            )
        pause_every = self._config.pause_every
        if pause_every > 0 and done % pause_every == 0:
            self._pause(self._config.record_pause_ms)

    def _pause(self, milliseconds: int) -> None:
        if milliseconds > 0:
            self._sleep(milliseconds / 1000)

    def _role_held(self) -> bool:
        try:
            return self._role_oracle.is_role_held()
        except Exception as e:
            logger.error(f"Write role check failed: {e}", exc_info=True)
            return False

    def _is_cancelled(self) -> bool:
        return self._cancel is not None and self._cancel.is_set()

    def _set_state(self, state: RestoreState) -> None:
        logger.debug(f"Restore state: {self._state.value} -> {state.value}")
        self._state = state

    def _fail(self, message: str) -> RestoreResult:
        self._set_state(RestoreState.FAILED)
        logger.error(message)
        report(self._progress, PHASE_COMPLETE, 100, message)
        return RestoreResult(success=False, message=message, state=RestoreState.FAILED)

    def _finish(self, tally: _Tally) -> RestoreResult:
        cancelled = self._is_cancelled()
        success = tally.total > 0
        summary = (
            f"Restored {tally.messages} messages, {tally.call_logs} call logs "
            f"and {tally.contacts} contacts"
        )
        if cancelled:
            message = f"Restore cancelled. {summary}"
        elif success:
            message = summary
        else:
            message = f"Nothing was restored. {summary}"

        self._set_state(RestoreState.COMPLETED if success else RestoreState.FAILED)
        if success:
            logger.info(message)
        else:
            logger.warning(message)
        report(self._progress, PHASE_COMPLETE, 100, message)

        return RestoreResult(
            success=success,
            message=message,
            messages_restored=tally.messages,
            call_logs_restored=tally.call_logs,
            contacts_restored=tally.contacts,
            state=self._state,
            cancelled=cancelled,
        )
