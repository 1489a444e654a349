"""
Custom exceptions for the MsgVault package.

All MsgVault-specific exceptions inherit from MsgVaultError to allow
catching all package exceptions with a single except clause.
"""

from typing import Optional


class MsgVaultError(Exception):
    """Base exception for all MsgVault errors."""

    def __init__(self, message: str, details: Optional[str] = None):
        self.message = message
        self.details = details
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message}: {self.details}"
        return self.message


# Store errors
class StoreError(MsgVaultError):
    """A device store could not be queried or written."""

    def __init__(self, store: str, reason: Optional[str] = None):
        self.store = store
        details = f"Store: {store}"
        if reason:
            details += f", Reason: {reason}"
        super().__init__("Store error", details)


class PermissionDeniedError(MsgVaultError):
    """The process is not authorized to access a record category."""

    def __init__(self, category: str, access: str = "read"):
        self.category = category
        self.access = access
        super().__init__(
            "Permission denied",
            f"No {access} access to {category}"
        )


class WriteRoleRequiredError(MsgVaultError):
    """Restoring messages requires the exclusive message write role."""

    def __init__(self, app_id: Optional[str] = None):
        self.app_id = app_id
        super().__init__(
            "Write role required",
            "must become default message handler before messages can be restored"
        )


class RecordWriteError(MsgVaultError):
    """A single record could not be written back to its store."""

    def __init__(
        self,
        category: str,
        record_id: Optional[int] = None,
        reason: Optional[str] = None,
    ):
        self.category = category
        self.record_id = record_id
        details = f"Category: {category}"
        if record_id is not None:
            details += f", Record: {record_id}"
        if reason:
            details += f", Reason: {reason}"
        super().__init__("Record write failed", details)


# Snapshot errors
class SnapshotError(MsgVaultError):
    """Base class for snapshot file errors."""

    pass


class SnapshotParseError(SnapshotError):
    """Snapshot content is not a valid snapshot."""

    def __init__(self, source: str, reason: Optional[str] = None):
        self.source = source
        details = f"Source: {source}"
        if reason:
            details += f", Reason: {reason}"
        super().__init__("Cannot parse snapshot", details)


class SnapshotIOError(SnapshotError):
    """Snapshot file could not be read, written or removed."""

    def __init__(self, path: str, reason: Optional[str] = None):
        self.path = path
        details = f"Path: {path}"
        if reason:
            details += f", Reason: {reason}"
        super().__init__("Snapshot I/O error", details)
