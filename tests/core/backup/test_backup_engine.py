"""Tests for the backup engine."""

from datetime import datetime
from pathlib import Path
from unittest.mock import patch

import pytest

from msgvault.core.backup.engine import BackupEngine, snapshot_file_name
from msgvault.core.backup.reader import SourceReader
from msgvault.core.snapshot.catalog import SnapshotCatalog
from msgvault.core.snapshot.codec import SnapshotCodec
from msgvault.core.stores.sqlite import DeviceStores

NOW = 1_700_000_000_000


@pytest.fixture
def populated_reader(make_message_store, make_call_log_store, make_contact_store) -> SourceReader:
    """Create a reader over stores holding a few records."""
    messages = make_message_store(rows=[
        {"id": 1, "address": "+15551234567", "body": "hi", "date": 10, "type": 1},
        {"id": 2, "address": None, "body": "who?", "date": 20, "type": 1},
    ])
    calls = make_call_log_store(rows=[
        {"id": 1, "number": "+1 555 123 4567", "type": 2, "date": NOW - 1000, "duration": 30},
    ])
    contacts = make_contact_store(readable=False)
    return SourceReader(messages, calls, contacts, clock=lambda: NOW)


class TestSnapshotFileName:
    """Tests for snapshot_file_name."""

    def test_format(self) -> None:
        stamp = datetime.fromtimestamp(NOW / 1000).strftime("%Y-%m-%d_%H-%M")
        assert snapshot_file_name("MsgVault", "Pixel 7", NOW) == f"MsgVault_Pixel_7_{stamp}.json"

    def test_unsafe_label(self) -> None:
        """Path separators should not leak into the file name."""
        name = snapshot_file_name("MsgVault", "../evil/phone", NOW)
        assert "/" not in name
        assert name.startswith("MsgVault_.._evil_phone_")


class TestBackup:
    """Tests for BackupEngine.backup."""

    def test_writes_snapshot(self, tmp_path: Path, populated_reader: SourceReader) -> None:
        engine = BackupEngine(
            populated_reader, tmp_path / "backups", device_label="Test Phone", clock=lambda: NOW
        )

        result = engine.backup()

        assert result.success
        assert result.file_path.parent == tmp_path / "backups"
        assert (result.message_count, result.call_log_count, result.contact_count) == (2, 1, 0)

        snapshot = SnapshotCatalog(tmp_path / "backups").load(result.file_path)
        assert snapshot.contacts is None
        assert snapshot.timestamp == NOW
        assert "Test Phone" in snapshot.device_info

    def test_records_sanitized(self, tmp_path: Path, populated_reader: SourceReader) -> None:
        engine = BackupEngine(populated_reader, tmp_path, clock=lambda: NOW)

        snapshot = SnapshotCodec().decode(engine.backup().file_path.read_bytes())

        assert snapshot.messages[1].address == "unknown_2"
        assert snapshot.call_logs[0].number == "+15551234567"

    def test_no_overwrite(self, tmp_path: Path, populated_reader: SourceReader) -> None:
        """A second backup in the same minute should get a new name."""
        engine = BackupEngine(populated_reader, tmp_path, clock=lambda: NOW)

        first = engine.backup()
        second = engine.backup()

        assert first.file_path != second.file_path
        assert first.file_path.exists() and second.file_path.exists()
        assert len(SnapshotCatalog(tmp_path).list_snapshots()) == 2

    def test_nothing_readable(
        self, tmp_path: Path, make_message_store, make_call_log_store, make_contact_store
    ) -> None:
        """With every category unreadable or empty the backup should fail cleanly."""
        reader = SourceReader(
            make_message_store(readable=False),
            make_call_log_store(),
            make_contact_store(readable=False),
        )

        result = BackupEngine(reader, tmp_path / "backups").backup()

        assert not result.success
        assert "Nothing to back up" in result.error_message
        assert not (tmp_path / "backups").exists()

    def test_crashing_store_leaves_category_missing(
        self, tmp_path: Path, make_message_store, make_call_log_store, make_contact_store
    ) -> None:
        """A store raising an unexpected error should not abort the backup."""
        def crashed():
            raise RuntimeError("provider crashed")

        messages = make_message_store()
        messages.query_messages = crashed
        calls = make_call_log_store(rows=[{"id": 1, "number": "+1555", "date": NOW, "duration": 3}])
        reader = SourceReader(messages, calls, make_contact_store(readable=False), clock=lambda: NOW)

        result = BackupEngine(reader, tmp_path, clock=lambda: NOW).backup()

        assert result.success
        snapshot = SnapshotCodec().decode(result.file_path.read_bytes())
        assert snapshot.messages is None
        assert len(snapshot.call_logs) == 1

    def test_self_test_failure(self, tmp_path: Path, populated_reader: SourceReader) -> None:
        with patch.object(SnapshotCodec, "self_test", return_value=False):
            result = BackupEngine(populated_reader, tmp_path).backup()

        assert not result.success
        assert list(tmp_path.iterdir()) == []

    def test_too_small_file_removed(self, tmp_path: Path, populated_reader: SourceReader) -> None:
        """A written file no larger than an empty snapshot should be deleted."""
        with patch.object(SnapshotCodec, "empty_size", return_value=10**9):
            result = BackupEngine(populated_reader, tmp_path).backup()

        assert not result.success
        assert list(tmp_path.glob("*.json")) == []

    def test_write_failure(self, tmp_path: Path, populated_reader: SourceReader) -> None:
        """An unwritable destination should become an error result."""
        blocker = tmp_path / "file"
        blocker.write_text("x")

        result = BackupEngine(populated_reader, blocker / "backups").backup()

        assert not result.success
        assert "Failed to write snapshot" in result.error_message

    def test_progress_reported(self, tmp_path: Path, populated_reader: SourceReader) -> None:
        updates = []
        BackupEngine(populated_reader, tmp_path).backup(
            progress=lambda phase, percent, detail: updates.append((phase, percent))
        )

        assert updates[0] == ("prepare", 0)
        assert updates[-1] == ("complete", 100)


class TestFromConfig:
    """Tests for BackupEngine.from_config against SQLite stores."""

    def test_backup_device_directory(self, test_config) -> None:
        stores = DeviceStores.open(test_config.device_dir)
        stores.messages.insert_message({"address": "+1555", "body": "hello", "date": 5, "type": 1})

        result = BackupEngine.from_config(test_config).backup()

        assert result.success
        assert result.message_count == 1
        assert result.file_path.name.startswith("MsgVault_Test_Phone_")
