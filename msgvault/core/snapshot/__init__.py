"""
Snapshot module for MsgVault.

This module provides the snapshot data model, its JSON codec, and the
catalog of snapshot files found on storage.

Example:
    from msgvault.core.snapshot import SnapshotCatalog, SnapshotCodec

    catalog = SnapshotCatalog(backup_dir)
    for entry in catalog.list_snapshots():
        print(entry.file_name, entry.sms_count)
"""

from msgvault.core.snapshot.models import (
    BackupResult,
    RestoreResult,
    RestoreState,
    Snapshot,
    SnapshotFile,
)
from msgvault.core.snapshot.codec import SnapshotCodec
from msgvault.core.snapshot.catalog import SnapshotCatalog

__all__ = [
    "BackupResult",
    "RestoreResult",
    "RestoreState",
    "Snapshot",
    "SnapshotCatalog",
    "SnapshotCodec",
    "SnapshotFile",
]
