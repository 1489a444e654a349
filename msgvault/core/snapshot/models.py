"""
Data models for snapshots and operation results.

This module contains dataclasses representing a snapshot, its catalog
entry on disk, and the results returned by backup and restore.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from msgvault.constants import SNAPSHOT_FORMAT_VERSION
from msgvault.core.records.models import CallLogEntry, ContactRecord, Message


@dataclass
class Snapshot:
    """
    A complete capture of the three record categories.

    A category that is None was not captured (no read access), which is
    different from an empty list (captured, zero records).
    """

    messages: Optional[list[Message]] = None
    call_logs: Optional[list[CallLogEntry]] = None
    contacts: Optional[list[ContactRecord]] = None
    timestamp: int = 0
    device_info: str = ""
    format_version: int = SNAPSHOT_FORMAT_VERSION

    @property
    def message_count(self) -> int:
        return len(self.messages or [])

    @property
    def call_log_count(self) -> int:
        return len(self.call_logs or [])

    @property
    def contact_count(self) -> int:
        return len(self.contacts or [])

    @property
    def captured_at(self) -> datetime:
        """Get the capture time as a datetime."""
        return datetime.fromtimestamp(self.timestamp / 1000)


@dataclass
class SnapshotFile:
    """
    Catalog entry for a snapshot file on storage.

    Attributes:
        path: Full path to the file.
        file_name: File name only.
        file_size: Size in bytes.
        created_at: File modification time.
        device_label: Device description recorded in the snapshot.
        sms_count: Number of messages in the snapshot.
        call_log_count: Number of call log entries in the snapshot.
        contact_count: Number of contacts in the snapshot.
    """

    path: Path
    file_name: str
    file_size: int
    created_at: datetime
    device_label: str = ""
    sms_count: int = 0
    call_log_count: int = 0
    contact_count: int = 0

    @property
    def display_name(self) -> str:
        """Get a display-friendly name for the snapshot."""
        date_str = self.created_at.strftime("%Y-%m-%d %H:%M")
        return f"{self.device_label or 'Unknown device'} - {date_str}"

    @property
    def size_human(self) -> str:
        """Get human-readable size string."""
        size = float(self.file_size)
        for unit in ["B", "KB", "MB", "GB"]:
            if abs(size) < 1024:
                return f"{size:.1f} {unit}"
            size /= 1024
        return f"{size:.1f} TB"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "path": str(self.path),
            "file_name": self.file_name,
            "file_size": self.file_size,
            "size_human": self.size_human,
            "created_at": self.created_at.isoformat(),
            "device_label": self.device_label,
            "sms_count": self.sms_count,
            "call_log_count": self.call_log_count,
            "contact_count": self.contact_count,
        }


@dataclass
class BackupResult:
    """Summary of a backup run."""

    timestamp: int
    message_count: int = 0
    call_log_count: int = 0
    contact_count: int = 0
    file_path: Optional[Path] = None
    error_message: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.error_message is None and self.file_path is not None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "success": self.success,
            "timestamp": self.timestamp,
            "message_count": self.message_count,
            "call_log_count": self.call_log_count,
            "contact_count": self.contact_count,
            "file_path": str(self.file_path) if self.file_path else None,
            "error_message": self.error_message,
        }


class RestoreState(Enum):
    """State of a restore operation."""

    IDLE = "idle"
    PREPARING = "preparing"
    PERMISSION_GATE = "permission_gate"
    RESTORING_MESSAGES = "restoring_messages"
    RESTORING_CALL_LOGS = "restoring_call_logs"
    RESTORING_CONTACTS = "restoring_contacts"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class RestoreResult:
    """Outcome of a restore operation."""

    success: bool
    message: str
    messages_restored: int = 0
    call_logs_restored: int = 0
    contacts_restored: int = 0
    state: RestoreState = RestoreState.IDLE
    cancelled: bool = False

    @property
    def total_restored(self) -> int:
        return self.messages_restored + self.call_logs_restored + self.contacts_restored
