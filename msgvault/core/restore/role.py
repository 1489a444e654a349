"""
Write-role checks for the message store.

Only the app holding the default message handler role may insert into
the message store. The restore engine asks an oracle before touching any
store; the live oracle reads the store's own setting, and the override
oracle lets a caller force the answer (tests, or a user who has granted
the role outside of MsgVault).
"""

from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable

from msgvault.core.stores.base import MessageStore
from msgvault.exceptions import MsgVaultError

logger = logging.getLogger(__name__)


@runtime_checkable
class WriteRoleOracle(Protocol):
    """Answers whether this app currently holds the message write role."""

    def is_role_held(self) -> bool:
        ...


class StoreRoleOracle:
    """Compares the message store's default handler to our app id."""

    def __init__(self, message_store: MessageStore, app_id: str):
        self._store = message_store
        self._app_id = app_id

    def is_role_held(self) -> bool:
        try:
            holder = self._store.default_handler()
        except MsgVaultError as e:
            logger.warning(f"Could not read the default message handler: {e}")
            return False

        held = holder == self._app_id
        logger.debug(f"Default message handler is {holder!r}, role held: {held}")
        return held


class OverrideRoleOracle:
    """Reports a fixed answer chosen by the caller."""

    def __init__(self, held: bool):
        self._held = held

    def is_role_held(self) -> bool:
        return self._held
