"""
Backup engine producing snapshot files.

A backup reads every category it may read, sanitizes the records, wraps
them in a snapshot and writes it to the backup directory. The file is
written to a temporary name and renamed into place, then checked to be
larger than an empty snapshot, so a listed snapshot is always complete.
"""

from __future__ import annotations

import logging
import os
import platform
import re
import time
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

from msgvault.config import Config
from msgvault.constants import (
    APP_NAME,
    PHASE_CALL_LOGS,
    PHASE_COMPLETE,
    PHASE_CONTACTS,
    PHASE_MESSAGES,
    PHASE_PREPARE,
    SNAPSHOT_DATE_FORMAT,
    SNAPSHOT_EXTENSION,
    VERSION,
)
from msgvault.core.backup.reader import SourceReader
from msgvault.core.progress import ProgressCallback, report
from msgvault.core.records.sanitizer import RecordSanitizer
from msgvault.core.snapshot.codec import SnapshotCodec
from msgvault.core.snapshot.models import BackupResult, Snapshot
from msgvault.core.stores.sqlite import DeviceStores

logger = logging.getLogger(__name__)

_UNSAFE_LABEL_CHARS = re.compile(r"[^\w.-]+")


def _now_ms() -> int:
    return int(time.time() * 1000)


def snapshot_file_name(product: str, device_label: str, timestamp: int) -> str:
    """
    Build the file name of a snapshot.

    Example:
        >>> snapshot_file_name("MsgVault", "Pixel 7", 1700000000000)
        'MsgVault_Pixel_7_2023-11-14_22-13.json'  # local time
    """
    label = _UNSAFE_LABEL_CHARS.sub("_", device_label.strip()).strip("_") or "device"
    stamp = datetime.fromtimestamp(timestamp / 1000).strftime(SNAPSHOT_DATE_FORMAT)
    return f"{product}_{label}_{stamp}{SNAPSHOT_EXTENSION}"


def _unique_path(path: Path) -> Path:
    """Add a numeric suffix until the path does not exist."""
    if not path.exists():
        return path
    counter = 1
    while True:
        candidate = path.with_name(f"{path.stem}_{counter}{path.suffix}")
        if not candidate.exists():
            return candidate
        counter += 1


class BackupEngine:
    """
    Creates snapshot files from the device stores.

    Example:
        engine = BackupEngine.from_config(get_config())
        result = engine.backup()
        if result.success:
            print(f"Saved {result.message_count} messages to {result.file_path}")
        else:
            print(result.error_message)
    """

    def __init__(
        self,
        reader: SourceReader,
        backup_dir: Path,
        codec: Optional[SnapshotCodec] = None,
        sanitizer: Optional[RecordSanitizer] = None,
        product_name: str = APP_NAME,
        device_label: str = "device",
        clock: Callable[[], int] = _now_ms,
    ):
        """
        Initialize the backup engine.

        Args:
            reader: Reader for the device stores.
            backup_dir: Directory snapshots are written to.
            codec: Codec used to encode snapshots.
            sanitizer: Sanitizer applied before encoding.
            product_name: First part of snapshot file names.
            device_label: Device part of file names and device info.
            clock: Returns the current time in epoch milliseconds.
        """
        self._reader = reader
        self._backup_dir = Path(backup_dir).expanduser()
        self._codec = codec or SnapshotCodec()
        self._sanitizer = sanitizer or RecordSanitizer()
        self._product_name = product_name
        self._device_label = device_label
        self._clock = clock

    @classmethod
    def from_config(
        cls,
        config: Config,
        stores: Optional[DeviceStores] = None,
    ) -> BackupEngine:
        """Create an engine for the configured device and backup directories."""
        stores = stores or DeviceStores.open(config.device_dir)
        reader = SourceReader(
            stores.messages,
            stores.call_logs,
            stores.contacts,
            window_count=config.backup.call_log_windows,
            lookback_days=config.backup.call_log_lookback_days,
        )
        return cls(
            reader,
            config.backup_dir,
            codec=SnapshotCodec(indent=config.backup.json_indent),
            product_name=config.backup.product_name,
            device_label=config.backup.device_label,
        )

    @property
    def backup_dir(self) -> Path:
        """Get the directory snapshots are written to."""
        return self._backup_dir

    def device_info(self) -> str:
        """Describe the device, OS and app for the snapshot header."""
        return (
            f"{self._device_label} ({platform.system()} {platform.release()}; "
            f"{APP_NAME} {VERSION})"
        )

    def backup(self, progress: Optional[ProgressCallback] = None) -> BackupResult:
        """
        Capture all readable categories into a new snapshot file.

        Never raises; failures are reported in the result.

        Args:
            progress: Optional reporter called with (phase, percent, detail).

        Returns:
            BackupResult with the file path or an error message.
        """
        timestamp = self._clock()
        report(progress, PHASE_PREPARE, 0, "Reading device stores")

        report(progress, PHASE_MESSAGES, 0, "Reading messages")
        messages = self._reader.read_messages()
        report(progress, PHASE_CALL_LOGS, 0, "Reading call logs")
        call_logs = self._reader.read_call_logs()
        report(progress, PHASE_CONTACTS, 0, "Reading contacts")
        contacts = self._reader.read_contacts()

        if not messages and not call_logs and not contacts:
            error = (
                "Nothing to back up: no readable messages, call logs or contacts. "
                "Check store permissions."
            )
            logger.error(error)
            report(progress, PHASE_COMPLETE, 100, error)
            return BackupResult(timestamp=timestamp, error_message=error)

        snapshot = Snapshot(
            messages=None if messages is None else self._sanitizer.sanitize_messages(messages),
            call_logs=None if call_logs is None else self._sanitizer.sanitize_call_logs(call_logs),
            contacts=None if contacts is None else self._sanitizer.sanitize_contacts(contacts),
            timestamp=timestamp,
            device_info=self.device_info(),
        )
        result = BackupResult(
            timestamp=timestamp,
            message_count=snapshot.message_count,
            call_log_count=snapshot.call_log_count,
            contact_count=snapshot.contact_count,
        )

        if not self._codec.self_test(snapshot):
            result.error_message = "Snapshot failed its serialization self-test"
            logger.error(result.error_message)
            report(progress, PHASE_COMPLETE, 100, result.error_message)
            return result

        try:
            result.file_path = self._write(snapshot)
        except OSError as e:
            result.error_message = f"Failed to write snapshot: {e}"
            logger.error(result.error_message)
        except ValueError as e:
            result.error_message = str(e)
            logger.error(result.error_message)

        if result.success:
            logger.info(
                f"Backup complete: {result.message_count} messages, "
                f"{result.call_log_count} call logs, {result.contact_count} contacts "
                f"-> {result.file_path}"
            )
            report(progress, PHASE_COMPLETE, 100, f"Saved {result.file_path.name}")
        else:
            report(progress, PHASE_COMPLETE, 100, result.error_message or "Backup failed")
        return result

    def _write(self, snapshot: Snapshot) -> Path:
        """
        Write a snapshot atomically and verify it.

        Raises:
            OSError: If the directory or file cannot be written.
            ValueError: If the written file fails verification.
        """
        data = self._codec.encode(snapshot)

        self._backup_dir.mkdir(parents=True, exist_ok=True)
        name = snapshot_file_name(self._product_name, self._device_label, snapshot.timestamp)
        target = _unique_path(self._backup_dir / name)
        temp = target.with_name(f".{target.name}.tmp")

        try:
            with open(temp, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(temp, target)
        finally:
            if temp.exists():
                temp.unlink()

        size = target.stat().st_size
        if size <= self._codec.empty_size():
            target.unlink()
            raise ValueError(f"Written snapshot is too small ({size} bytes), removed")

        logger.debug(f"Wrote {size} bytes to {target}")
        return target
