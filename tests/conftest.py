"""
Pytest configuration and fixtures for MsgVault tests.

This module provides common fixtures used across the test suite,
including in-memory device stores, sample records and a temporary
configuration.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

import pytest

from msgvault.config import Config, RestoreConfig
from msgvault.core.records.models import (
    CallLogEntry,
    ContactEvent,
    ContactRecord,
    LabeledValue,
    Message,
    MessageType,
)
from msgvault.core.snapshot.codec import SnapshotCodec
from msgvault.core.snapshot.models import Snapshot
from msgvault.core.stores.base import ContactOperation
from msgvault.exceptions import RecordWriteError

TEST_APP_ID = "io.msgvault.test"
TEST_NOW = 1_700_000_000_000


class FakeMessageStore:
    """In-memory message store assigning one thread per exact address."""

    def __init__(
        self,
        rows: Optional[list[dict[str, Any]]] = None,
        readable: bool = True,
        writable: bool = True,
        handler: Optional[str] = None,
        fail_bodies: Optional[set[str]] = None,
    ):
        self.rows = list(rows or [])
        self.readable = readable
        self.writable = writable
        self.handler = handler
        self.fail_bodies = set(fail_bodies or [])
        self.inserted: list[dict[str, Any]] = []
        self.calls: list[str] = []
        self._threads: dict[str, int] = {}
        self._thread_of: dict[int, int] = {}
        self._next_id = 0

    def can_read(self) -> bool:
        return self.readable

    def can_write(self) -> bool:
        return self.writable

    def query_messages(self) -> list[dict[str, Any]]:
        self.calls.append("query_messages")
        return [dict(row) for row in self.rows]

    def insert_message(self, values: dict[str, Any]) -> Optional[int]:
        self.calls.append("insert_message")
        if values.get("body") in self.fail_bodies:
            raise RecordWriteError("messages", reason="rejected by fake store")

        thread_id = values.get("thread_id")
        if not thread_id:
            address = values.get("address", "")
            thread_id = self._threads.setdefault(address, len(self._threads) + 1)

        self._next_id += 1
        self.inserted.append(dict(values, thread_id=thread_id, id=self._next_id))
        self._thread_of[self._next_id] = thread_id
        return self._next_id

    def get_thread_id(self, message_id: int) -> Optional[int]:
        self.calls.append("get_thread_id")
        return self._thread_of.get(message_id)

    def default_handler(self) -> Optional[str]:
        return self.handler

    @property
    def thread_ids(self) -> set[int]:
        return {row["thread_id"] for row in self.inserted}


class FakeCallLogStore:
    """In-memory call log store."""

    def __init__(
        self,
        rows: Optional[list[dict[str, Any]]] = None,
        readable: bool = True,
        writable: bool = True,
    ):
        self.rows = list(rows or [])
        self.readable = readable
        self.writable = writable
        self.inserted: list[dict[str, Any]] = []
        self.queries: list[tuple[Optional[int], Optional[int]]] = []

    def can_read(self) -> bool:
        return self.readable

    def can_write(self) -> bool:
        return self.writable

    def query_calls(
        self,
        start: Optional[int] = None,
        end: Optional[int] = None,
    ) -> list[dict[str, Any]]:
        self.queries.append((start, end))
        return [
            dict(row) for row in self.rows
            if (start is None or row["date"] >= start) and (end is None or row["date"] < end)
        ]

    def insert_call(self, values: dict[str, Any]) -> Optional[int]:
        self.inserted.append(dict(values))
        return len(self.inserted)


class FakeContactStore:
    """In-memory contact directory."""

    def __init__(
        self,
        roster: Optional[list[dict[str, Any]]] = None,
        data: Optional[dict[tuple[int, str], list[dict[str, Any]]]] = None,
        names: Optional[dict[str, str]] = None,
        readable: bool = True,
        writable: bool = True,
        fail_names: Optional[set[str]] = None,
    ):
        self.roster = list(roster or [])
        self.data = dict(data or {})
        self.names = dict(names or {})
        self.readable = readable
        self.writable = writable
        self.fail_names = set(fail_names or [])
        self.batches: list[list[ContactOperation]] = []
        self.lookups: list[str] = []

    def can_read(self) -> bool:
        return self.readable

    def can_write(self) -> bool:
        return self.writable

    def query_roster(self) -> list[dict[str, Any]]:
        return [dict(row) for row in self.roster]

    def query_data(self, contact_id: int, kind: str) -> list[dict[str, Any]]:
        return [dict(row) for row in self.data.get((contact_id, kind), [])]

    def apply_batch(self, operations: list[ContactOperation]) -> list[int]:
        if operations and operations[0].value in self.fail_names:
            raise RecordWriteError("contacts", reason="rejected by fake store")
        self.batches.append(list(operations))
        return list(range(1, len(operations) + 1))

    def lookup_name(self, number: str) -> Optional[str]:
        self.lookups.append(number)
        return self.names.get(number)


@pytest.fixture
def message_store() -> FakeMessageStore:
    """Create an empty writable message store."""
    return FakeMessageStore()


@pytest.fixture
def call_log_store() -> FakeCallLogStore:
    """Create an empty writable call log store."""
    return FakeCallLogStore()


@pytest.fixture
def contact_store() -> FakeContactStore:
    """Create an empty writable contact store."""
    return FakeContactStore()


@pytest.fixture
def no_pause_config() -> RestoreConfig:
    """Create a restore configuration without pacing pauses."""
    return RestoreConfig(record_pause_ms=0, group_pause_ms=0)


@pytest.fixture
def sample_messages() -> list[Message]:
    """Create messages from three parties, one written two ways."""
    return [
        Message(id=1, address="+15551234567", body="Hi", date=3000, type=MessageType.INBOX),
        Message(id=2, address="5551234567", body="Hello back", date=1000, type=MessageType.SENT),
        Message(id=3, address="BANK", body="Your code is 1234", date=2000),
        Message(id=4, address="+447700900123", body="Cheers", date=4000),
        Message(id=5, address="", body="No sender", date=5000),
    ]


@pytest.fixture
def sample_call_logs() -> list[CallLogEntry]:
    """Create call log entries."""
    return [
        CallLogEntry(id=1, number="+1 (555) 123-4567", type=1, date=1000, duration=60),
        CallLogEntry(id=2, number="", type=3, date=2000, duration=0),
        CallLogEntry(id=3, number="+447700900123", type=2, date=3000, duration=125,
                     cached_name="Alice"),
    ]


@pytest.fixture
def sample_contacts() -> list[ContactRecord]:
    """Create contacts, one with every attribute."""
    return [
        ContactRecord(
            id=1,
            name="Alice Smith",
            phone_numbers=["+447700900123"],
            emails=["alice@example.com"],
            addresses=[LabeledValue(type="home", value="1 High St\nLondon")],
            note="Met at the conference",
            groups=["Friends"],
            websites=["https://alice.example.com"],
            events=[ContactEvent(type="birthday", date="1990-04-01")],
            social_profiles=[LabeledValue(type="mastodon", value="@alice")],
        ),
        ContactRecord(id=2, name="Bob", phone_numbers=["5551234567"]),
    ]


@pytest.fixture
def sample_snapshot(
    sample_messages: list[Message],
    sample_call_logs: list[CallLogEntry],
    sample_contacts: list[ContactRecord],
) -> Snapshot:
    """Create a snapshot holding every sample record."""
    return Snapshot(
        messages=sample_messages,
        call_logs=sample_call_logs,
        contacts=sample_contacts,
        timestamp=TEST_NOW,
        device_info="Test Phone (Linux; MsgVault 0.1.0)",
    )


@pytest.fixture
def write_snapshot(tmp_path: Path):
    """Return a helper that writes a snapshot file and returns its path."""
    def _write(snapshot: Snapshot, name: str = "snapshot.json") -> Path:
        path = tmp_path / "backups" / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(SnapshotCodec().encode(snapshot))
        return path

    return _write


@pytest.fixture
def test_config(tmp_path: Path) -> Config:
    """Create a test configuration with temporary directories."""
    config = Config(
        config_dir=tmp_path / "config",
        backup_dir=tmp_path / "backups",
        device_dir=tmp_path / "device",
        log_dir=tmp_path / "logs",
    )
    config.backup.device_label = "Test Phone"
    config.backup.app_id = TEST_APP_ID
    config.restore.record_pause_ms = 0
    config.restore.group_pause_ms = 0
    return config


@pytest.fixture
def make_message_store():
    """Return the in-memory message store class for custom setups."""
    return FakeMessageStore


@pytest.fixture
def make_call_log_store():
    """Return the in-memory call log store class for custom setups."""
    return FakeCallLogStore


@pytest.fixture
def make_contact_store():
    """Return the in-memory contact store class for custom setups."""
    return FakeContactStore
