"""
Device record stores.

This module provides the store protocols the engines depend on and the
SQLite implementations used for a device directory.

Example:
    from msgvault.core.stores import DeviceStores

    stores = DeviceStores.open(Path("~/.msgvault/device"))
    if stores.messages.can_read():
        rows = stores.messages.query_messages()
"""

from msgvault.core.stores.base import (
    CallLogStore,
    ContactOperation,
    ContactStore,
    MessageStore,
)
from msgvault.core.stores.sqlite import (
    DeviceStores,
    SqliteCallLogStore,
    SqliteContactStore,
    SqliteMessageStore,
)

__all__ = [
    "CallLogStore",
    "ContactOperation",
    "ContactStore",
    "DeviceStores",
    "MessageStore",
    "SqliteCallLogStore",
    "SqliteContactStore",
    "SqliteMessageStore",
]
