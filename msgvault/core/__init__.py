"""
MsgVault core library modules.

This package contains the record models, the snapshot format, the
device stores and the backup and restore engines.
"""

from msgvault.core.backup import BackupEngine, SourceReader
from msgvault.core.restore import RestoreEngine
from msgvault.core.snapshot import SnapshotCatalog, SnapshotCodec

__all__ = [
    "BackupEngine",
    "RestoreEngine",
    "SnapshotCatalog",
    "SnapshotCodec",
    "SourceReader",
]
