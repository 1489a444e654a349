"""
MsgVault - Backup and restore of text messages, call history and contacts.

This package captures the device's message, call log and contact stores
into a single portable snapshot file and replays snapshots back into
the stores.
"""

__version__ = "0.1.0"
__author__ = "MsgVault Contributors"

from msgvault.core import (
    BackupEngine,
    RestoreEngine,
    SnapshotCatalog,
    SnapshotCodec,
    SourceReader,
)

__all__ = [
    "BackupEngine",
    "RestoreEngine",
    "SnapshotCatalog",
    "SnapshotCodec",
    "SourceReader",
    "__version__",
]
