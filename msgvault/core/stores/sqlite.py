"""
SQLite-backed device stores.

Each store is a single database file in the device directory, laid out
like the phone's own provider databases: ``mmssms.db`` for messages and
threads, ``calllog.db`` for call history and ``contacts2.db`` for the
contact directory. A missing database is unreadable but writable; it is
created on the first insert, which is how a fresh device is restored.
"""

from __future__ import annotations

import logging
import os
import sqlite3
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from msgvault.constants import (
    CALL_LOG_DB_NAME,
    CATEGORY_CALL_LOGS,
    CATEGORY_CONTACTS,
    CATEGORY_MESSAGES,
    CONTACTS_DB_NAME,
    DEFAULT_SMS_SETTING,
    MESSAGE_DB_NAME,
)
from msgvault.core.records import phone
from msgvault.core.stores.base import (
    KIND_CONTACT,
    KIND_NAME,
    KIND_PHONE,
    ContactOperation,
)
from msgvault.exceptions import PermissionDeniedError, RecordWriteError, StoreError

logger = logging.getLogger(__name__)

MESSAGE_SCHEMA = """
CREATE TABLE IF NOT EXISTS threads (
    _id INTEGER PRIMARY KEY AUTOINCREMENT,
    recipient TEXT,
    date INTEGER DEFAULT 0,
    message_count INTEGER DEFAULT 0
);
CREATE TABLE IF NOT EXISTS sms (
    _id INTEGER PRIMARY KEY AUTOINCREMENT,
    thread_id INTEGER,
    address TEXT,
    body TEXT,
    date INTEGER,
    type INTEGER,
    read INTEGER DEFAULT 0,
    status INTEGER DEFAULT -1
);
CREATE TABLE IF NOT EXISTS settings (
    name TEXT PRIMARY KEY,
    value TEXT
);
"""

CALL_LOG_SCHEMA = """
CREATE TABLE IF NOT EXISTS calls (
    _id INTEGER PRIMARY KEY AUTOINCREMENT,
    number TEXT,
    type INTEGER,
    date INTEGER,
    duration INTEGER DEFAULT 0,
    name TEXT,
    new INTEGER DEFAULT 1
);
"""

CONTACTS_SCHEMA = """
CREATE TABLE IF NOT EXISTS contacts (
    _id INTEGER PRIMARY KEY AUTOINCREMENT,
    display_name TEXT
);
CREATE TABLE IF NOT EXISTS data (
    _id INTEGER PRIMARY KEY AUTOINCREMENT,
    contact_id INTEGER NOT NULL REFERENCES contacts(_id),
    kind TEXT NOT NULL,
    value TEXT,
    label TEXT,
    normalized TEXT
);
"""


class SqliteStore:
    """
    Common plumbing for a store kept in one SQLite file.

    Subclasses set the schema and the category name used in errors.
    """

    schema = ""
    category = ""

    def __init__(self, db_path: Path):
        self._path = Path(db_path)

    @property
    def path(self) -> Path:
        """Get the database file path."""
        return self._path

    def can_read(self) -> bool:
        return self._path.is_file() and os.access(self._path, os.R_OK)

    def can_write(self) -> bool:
        if self._path.exists():
            return os.access(self._path, os.W_OK)

        # Nearest existing ancestor decides whether the file can be created
        parent = self._path.parent
        while not parent.exists() and parent != parent.parent:
            parent = parent.parent
        return os.access(parent, os.W_OK)

    def _connect(self, create: bool = False) -> sqlite3.Connection:
        """
        Open the database.

        Args:
            create: Create the file and its tables if missing.

        Raises:
            PermissionDeniedError: If the file cannot be read or created.
            StoreError: If SQLite fails to open it.
        """
        if create:
            if not self.can_write():
                raise PermissionDeniedError(self.category, access="write")
            self._path.parent.mkdir(parents=True, exist_ok=True)
        elif not self.can_read():
            raise PermissionDeniedError(self.category, access="read")

        try:
            conn = sqlite3.connect(str(self._path))
            conn.row_factory = sqlite3.Row
            if create:
                conn.executescript(self.schema)
            return conn
        except sqlite3.Error as e:
            raise StoreError(self._path.name, str(e)) from e

    def _query(self, sql: str, params: tuple = ()) -> list[dict[str, Any]]:
        """Run a read query and return rows as dicts."""
        conn = self._connect()
        try:
            cursor = conn.execute(sql, params)
            return [dict(row) for row in cursor.fetchall()]
        except sqlite3.Error as e:
            raise StoreError(self._path.name, str(e)) from e
        finally:
            conn.close()

    def initialize(self) -> None:
        """Create the database file and its tables if missing."""
        conn = self._connect(create=True)
        conn.close()
        logger.debug(f"Initialized store {self._path}")


class SqliteMessageStore(SqliteStore):
    """
    Message store with thread assignment.

    Inserting a message without a thread id places it in the thread
    whose recipient equals the message address exactly, creating one if
    none exists.
    """

    schema = MESSAGE_SCHEMA
    category = CATEGORY_MESSAGES

    def query_messages(self) -> list[dict[str, Any]]:
        return self._query("""
            SELECT _id AS id, address, body, date, type, read, status, thread_id
            FROM sms
            ORDER BY date
        """)

    def insert_message(self, values: dict[str, Any]) -> Optional[int]:
        conn = self._connect(create=True)
        try:
            with conn:
                thread_id = values.get("thread_id")
                if not thread_id:
                    thread_id = self._thread_for(conn, values.get("address") or "")

                cursor = conn.execute(
                    """
                    INSERT INTO sms (thread_id, address, body, date, type, read, status)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        thread_id,
                        values.get("address"),
                        values.get("body"),
                        values.get("date", 0),
                        values.get("type", 1),
                        values.get("read", 0),
                        values.get("status", -1),
                    ),
                )
                conn.execute(
                    """
                    UPDATE threads
                    SET message_count = message_count + 1, date = MAX(date, ?)
                    WHERE _id = ?
                    """,
                    (values.get("date", 0), thread_id),
                )
                return cursor.lastrowid
        except sqlite3.Error as e:
            raise RecordWriteError(CATEGORY_MESSAGES, reason=str(e)) from e
        finally:
            conn.close()

    def _thread_for(self, conn: sqlite3.Connection, address: str) -> int:
        """Get or create the thread for an address."""
        row = conn.execute(
            "SELECT _id FROM threads WHERE recipient = ? ORDER BY _id LIMIT 1",
            (address,),
        ).fetchone()
        if row is not None:
            return row["_id"]

        cursor = conn.execute("INSERT INTO threads (recipient) VALUES (?)", (address,))
        logger.debug(f"Created thread {cursor.lastrowid} for {address}")
        return cursor.lastrowid

    def get_thread_id(self, message_id: int) -> Optional[int]:
        rows = self._query("SELECT thread_id FROM sms WHERE _id = ?", (message_id,))
        if not rows:
            return None
        return rows[0]["thread_id"]

    def count_threads(self) -> int:
        """Get the number of threads that hold at least one message."""
        rows = self._query(
            "SELECT COUNT(DISTINCT thread_id) AS n FROM sms WHERE thread_id IS NOT NULL"
        )
        return rows[0]["n"]

    def default_handler(self) -> Optional[str]:
        if not self.can_read():
            return None
        rows = self._query(
            "SELECT value FROM settings WHERE name = ?", (DEFAULT_SMS_SETTING,)
        )
        return rows[0]["value"] if rows else None

    def set_default_handler(self, app_id: Optional[str]) -> None:
        """Hand the exclusive write role to an app, or clear it."""
        conn = self._connect(create=True)
        try:
            with conn:
                conn.execute(
                    "INSERT OR REPLACE INTO settings (name, value) VALUES (?, ?)",
                    (DEFAULT_SMS_SETTING, app_id),
                )
        except sqlite3.Error as e:
            raise StoreError(self._path.name, str(e)) from e
        finally:
            conn.close()
        logger.info(f"Default message handler set to {app_id}")


class SqliteCallLogStore(SqliteStore):
    """Call history store."""

    schema = CALL_LOG_SCHEMA
    category = CATEGORY_CALL_LOGS

    def query_calls(
        self,
        start: Optional[int] = None,
        end: Optional[int] = None,
    ) -> list[dict[str, Any]]:
        clauses: list[str] = []
        params: list[int] = []
        if start is not None:
            clauses.append("date >= ?")
            params.append(start)
        if end is not None:
            clauses.append("date < ?")
            params.append(end)

        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        return self._query(
            f"""
            SELECT _id AS id, number, type, date, duration, name
            FROM calls
            {where}
            ORDER BY date
            """,
            tuple(params),
        )

    def insert_call(self, values: dict[str, Any]) -> Optional[int]:
        conn = self._connect(create=True)
        try:
            with conn:
                cursor = conn.execute(
                    """
                    INSERT INTO calls (number, type, date, duration, name, new)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (
                        values.get("number"),
                        values.get("type", 1),
                        values.get("date", 0),
                        values.get("duration", 0),
                        values.get("name"),
                        values.get("new", 0),
                    ),
                )
                return cursor.lastrowid
        except sqlite3.Error as e:
            raise RecordWriteError(CATEGORY_CALL_LOGS, reason=str(e)) from e
        finally:
            conn.close()


class SqliteContactStore(SqliteStore):
    """
    Contact directory with one base row per contact and typed data rows.

    Phone data rows also keep their normalized form so lookups match
    numbers regardless of formatting.
    """

    schema = CONTACTS_SCHEMA
    category = CATEGORY_CONTACTS

    def query_roster(self) -> list[dict[str, Any]]:
        return self._query(
            "SELECT _id AS id, display_name FROM contacts ORDER BY display_name"
        )

    def query_data(self, contact_id: int, kind: str) -> list[dict[str, Any]]:
        return self._query(
            "SELECT value, label FROM data WHERE contact_id = ? AND kind = ? ORDER BY _id",
            (contact_id, kind),
        )

    def apply_batch(self, operations: list[ContactOperation]) -> list[int]:
        """
        Write a contact and its data rows in a single transaction.

        Raises:
            RecordWriteError: If the batch is malformed or SQLite fails;
                nothing is written in that case.
        """
        if not operations or operations[0].kind != KIND_CONTACT:
            raise RecordWriteError(
                CATEGORY_CONTACTS, reason="batch must start with a contact operation"
            )

        conn = self._connect(create=True)
        try:
            with conn:
                ids: list[int] = []
                cursor = conn.execute(
                    "INSERT INTO contacts (display_name) VALUES (?)",
                    (operations[0].value,),
                )
                contact_id = cursor.lastrowid
                ids.append(contact_id)

                for op in operations[1:]:
                    if op.kind == KIND_CONTACT:
                        raise RecordWriteError(
                            CATEGORY_CONTACTS, reason="nested contact operation"
                        )
                    if op.kind == KIND_NAME:
                        conn.execute(
                            "UPDATE contacts SET display_name = ? WHERE _id = ?",
                            (op.value, contact_id),
                        )
                    normalized = phone.normalize(op.value) if op.kind == KIND_PHONE else None
                    cursor = conn.execute(
                        """
                        INSERT INTO data (contact_id, kind, value, label, normalized)
                        VALUES (?, ?, ?, ?, ?)
                        """,
                        (contact_id, op.kind, op.value, op.label, normalized),
                    )
                    ids.append(cursor.lastrowid)
                return ids
        except sqlite3.Error as e:
            raise RecordWriteError(CATEGORY_CONTACTS, reason=str(e)) from e
        finally:
            conn.close()

    def lookup_name(self, number: str) -> Optional[str]:
        if not number or not self.can_read():
            return None
        rows = self._query(
            """
            SELECT c.display_name
            FROM data d
            JOIN contacts c ON c._id = d.contact_id
            WHERE d.kind = ? AND (d.value = ? OR d.normalized = ?)
            ORDER BY d._id
            LIMIT 1
            """,
            (KIND_PHONE, number, number),
        )
        return rows[0]["display_name"] if rows else None


@dataclass
class DeviceStores:
    """The three stores of one device directory."""

    messages: SqliteMessageStore
    call_logs: SqliteCallLogStore
    contacts: SqliteContactStore

    @classmethod
    def open(cls, device_dir: Path) -> DeviceStores:
        """
        Bind stores to the databases in a device directory.

        Nothing is created until a store is first written.
        """
        device_dir = Path(device_dir).expanduser()
        logger.debug(f"Opening device stores in {device_dir}")
        return cls(
            messages=SqliteMessageStore(device_dir / MESSAGE_DB_NAME),
            call_logs=SqliteCallLogStore(device_dir / CALL_LOG_DB_NAME),
            contacts=SqliteContactStore(device_dir / CONTACTS_DB_NAME),
        )
