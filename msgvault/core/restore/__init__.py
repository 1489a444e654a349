"""
Restore module for MsgVault.

This module replays snapshot files into the device stores.

Example:
    from msgvault.core.restore import RestoreEngine

    engine = RestoreEngine.from_config(config)
    result = engine.restore(snapshot_path, progress=print_progress)
"""

from msgvault.core.restore.role import (
    OverrideRoleOracle,
    StoreRoleOracle,
    WriteRoleOracle,
)
from msgvault.core.restore.engine import (
    ConversationGrouper,
    RestoreEngine,
    contact_operations,
    group_by_party,
)

__all__ = [
    "ConversationGrouper",
    "OverrideRoleOracle",
    "RestoreEngine",
    "StoreRoleOracle",
    "WriteRoleOracle",
    "contact_operations",
    "group_by_party",
]
