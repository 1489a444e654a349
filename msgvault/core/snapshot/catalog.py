"""
Snapshot catalog for listing and validating snapshot files.

The catalog scans the backup directory, decodes every candidate file
and indexes the ones that are valid snapshots. Files that fail to
decode are left out of the listing without being reported, since they
are usually leftovers from an interrupted backup.
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

from msgvault.constants import SNAPSHOT_EXTENSION
from msgvault.core.snapshot.codec import SnapshotCodec
from msgvault.core.snapshot.models import Snapshot, SnapshotFile
from msgvault.exceptions import SnapshotError, SnapshotIOError, SnapshotParseError

logger = logging.getLogger(__name__)


class SnapshotCatalog:
    """
    Enumerates, validates and indexes snapshot files.

    Example:
        catalog = SnapshotCatalog(Path("~/.msgvault/backups"))

        for entry in catalog.list_snapshots():
            print(f"{entry.display_name}: {entry.sms_count} messages")

        snapshot = catalog.load(entry.path)
    """

    def __init__(self, backup_dir: Path, codec: Optional[SnapshotCodec] = None):
        """
        Initialize the catalog.

        Args:
            backup_dir: Directory holding snapshot files.
            codec: Codec used to decode candidates.
        """
        self._backup_dir = Path(backup_dir).expanduser()
        self._codec = codec or SnapshotCodec()

    @property
    def backup_dir(self) -> Path:
        """Get the directory scanned for snapshots."""
        return self._backup_dir

    def list_snapshots(self) -> list[SnapshotFile]:
        """
        List every valid snapshot in the backup directory.

        Returns:
            Catalog entries sorted newest first.
        """
        if not self._backup_dir.exists():
            logger.debug(f"Backup directory does not exist: {self._backup_dir}")
            return []

        candidates = [
            item for item in self._backup_dir.iterdir()
            if item.is_file() and item.suffix.lower() == SNAPSHOT_EXTENSION
        ]

        entries: list[SnapshotFile] = []
        for candidate in candidates:
            try:
                entries.append(self.get(candidate))
            except SnapshotError as e:
                logger.debug(f"Skipping invalid snapshot {candidate.name}: {e}")

        entries.sort(key=lambda e: e.created_at, reverse=True)
        logger.info(
            f"Found {len(entries)} valid snapshot(s) out of {len(candidates)} file(s)"
        )
        return entries

    def get(self, path: Union[Path, str]) -> SnapshotFile:
        """
        Build the catalog entry for a single snapshot file.

        Raises:
            SnapshotIOError: If the file cannot be read.
            SnapshotParseError: If the file is not a valid snapshot.
        """
        path = Path(path)
        snapshot = self.load(path)
        stat = path.stat()

        return SnapshotFile(
            path=path,
            file_name=path.name,
            file_size=stat.st_size,
            created_at=datetime.fromtimestamp(stat.st_mtime),
            device_label=snapshot.device_info,
            sms_count=snapshot.message_count,
            call_log_count=snapshot.call_log_count,
            contact_count=snapshot.contact_count,
        )

    def load(self, path: Union[Path, str]) -> Snapshot:
        """
        Read and decode a snapshot file.

        Raises:
            SnapshotIOError: If the file cannot be read.
            SnapshotParseError: If the file is not a valid snapshot.
        """
        path = Path(path)
        try:
            data = path.read_bytes()
        except OSError as e:
            raise SnapshotIOError(str(path), str(e)) from e

        return self._codec.decode(data, source=path.name)

    def validate(self, path: Union[Path, str]) -> bool:
        """Check whether a file decodes as a snapshot, without side effects."""
        path = Path(path)
        if not path.is_file():
            return False
        try:
            self.load(path)
            return True
        except (SnapshotIOError, SnapshotParseError):
            return False

    def delete(self, path: Union[Path, str]) -> bool:
        """
        Delete a snapshot file.

        Returns:
            True if deleted successfully.
        """
        path = Path(path)
        if not path.exists():
            return False

        try:
            path.unlink()
            logger.info(f"Deleted snapshot {path}")
            return True
        except OSError as e:
            logger.error(f"Failed to delete snapshot: {e}")
            return False
