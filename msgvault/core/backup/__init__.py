"""
Backup module for MsgVault.

This module reads the device stores and writes snapshot files.

Example:
    from msgvault.core.backup import BackupEngine

    engine = BackupEngine.from_config(config)
    result = engine.backup()
"""

from msgvault.core.backup.reader import SourceReader, call_log_windows
from msgvault.core.backup.engine import BackupEngine, snapshot_file_name

__all__ = [
    "BackupEngine",
    "SourceReader",
    "call_log_windows",
    "snapshot_file_name",
]
