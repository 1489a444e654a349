"""
Snapshot serialization.

Snapshots are UTF-8 JSON documents. Record fields are written under
short aliases (``addr``, ``num``, ``dur``) to keep files small; the
decoder accepts both the aliases and the long field names, ignores
unknown fields, and fills absent numeric fields with zero so that files
written by older or newer versions still load.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Callable, Optional, TypeVar, Union

from msgvault.constants import SNAPSHOT_FORMAT_VERSION
from msgvault.core.records.models import (
    CallLogEntry,
    ContactEvent,
    ContactRecord,
    ContactRelationship,
    LabeledValue,
    Message,
)
from msgvault.core.snapshot.models import Snapshot
from msgvault.exceptions import SnapshotParseError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Top-level keys accepted for each category, canonical name first
CATEGORY_KEYS = {
    "messages": ("messages",),
    "call_logs": ("call_logs", "callLogs"),
    "contacts": ("contacts",),
}

# Top-level keys at least one of which every snapshot document carries
_SNAPSHOT_KEYS = tuple(key for keys in CATEGORY_KEYS.values() for key in keys) + (
    "timestamp", "device_info", "deviceInfo", "format_version", "version",
)

# Keywords whose presence with records signals data for a category
_CATEGORY_MARKERS = {
    "messages": ("messages", "sms"),
    "call_logs": ("call_logs", "callLogs", "calls"),
    "contacts": ("contacts",),
}


def _records_marker(names: tuple[str, ...]) -> re.Pattern:
    alternatives = "|".join(re.escape(n) for n in names)
    return re.compile(rf'"(?:{alternatives})"\s*:\s*\[\s*\{{')


_MARKER_PATTERNS = {
    category: _records_marker(names) for category, names in _CATEGORY_MARKERS.items()
}


def _pick(data: dict[str, Any], *names: str) -> Any:
    """Get the first present field among several accepted names."""
    for name in names:
        if name in data:
            return data[name]
    return None


def _int(value: Any) -> int:
    """Coerce a loosely typed numeric field, defaulting to 0."""
    if value is None or isinstance(value, bool):
        return int(value or 0)
    if isinstance(value, int):
        return value
    try:
        return int(float(value))
    except (TypeError, ValueError, OverflowError):
        return 0


def _str(value: Any, default: str = "") -> str:
    if value is None:
        return default
    return str(value)


def _opt_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)


def _str_list(value: Any) -> Optional[list[str]]:
    if value is None:
        return None
    if not isinstance(value, list):
        return [str(value)]
    return [str(v) for v in value if v is not None]


def _object_list(
    value: Any,
    factory: Callable[[dict[str, Any]], T],
) -> Optional[list[T]]:
    if value is None:
        return None
    if not isinstance(value, list):
        return []
    return [factory(item) for item in value if isinstance(item, dict)]


# Record encoders

def _encode_message(message: Message) -> dict[str, Any]:
    return {
        "id": message.id,
        "addr": message.address,
        "body": message.body,
        "date": message.date,
        "type": int(message.type),
        "read": message.read,
        "status": message.status,
        "thread_id": message.thread_id,
    }


def _encode_call_log(entry: CallLogEntry) -> dict[str, Any]:
    return {
        "id": entry.id,
        "num": entry.number,
        "type": int(entry.type),
        "date": entry.date,
        "dur": entry.duration,
        "name": entry.cached_name,
    }


def _encode_contact(contact: ContactRecord) -> dict[str, Any]:
    def pairs(items, first: str, second: str):
        if items is None:
            return None
        return [{first: getattr(i, first), second: getattr(i, second)} for i in items]

    return {
        "id": contact.id,
        "name": contact.name,
        "phones": list(contact.phone_numbers),
        "emails": contact.emails,
        "addresses": pairs(contact.addresses, "type", "value"),
        "note": contact.note,
        "groups": contact.groups,
        "websites": contact.websites,
        "events": pairs(contact.events, "type", "date"),
        "relationships": pairs(contact.relationships, "type", "name"),
        "social_profiles": pairs(contact.social_profiles, "type", "value"),
    }


# Record decoders

def _decode_message(data: dict[str, Any]) -> Message:
    return Message(
        id=_int(data.get("id")),
        address=_str(_pick(data, "addr", "address")),
        body=_opt_str(data.get("body")),
        date=_int(_pick(data, "date", "timestamp")),
        type=_int(data.get("type")),
        read=_int(_pick(data, "read", "read_state", "readState")),
        status=_int(_pick(data, "status", "message_status", "messageStatus")),
        thread_id=_int(_pick(data, "thread_id", "threadId")),
    )


def _decode_call_log(data: dict[str, Any]) -> CallLogEntry:
    return CallLogEntry(
        id=_int(data.get("id")),
        number=_str(_pick(data, "num", "number")),
        type=_int(data.get("type")),
        date=_int(_pick(data, "date", "timestamp")),
        duration=_int(_pick(data, "dur", "duration")),
        cached_name=_opt_str(_pick(data, "name", "cached_name", "contact")),
    )


def _decode_contact(data: dict[str, Any]) -> ContactRecord:
    return ContactRecord(
        id=_int(data.get("id")),
        name=_str(data.get("name")),
        phone_numbers=_str_list(_pick(data, "phones", "phone_numbers", "phoneNumbers")) or [],
        emails=_str_list(data.get("emails")),
        addresses=_object_list(
            data.get("addresses"),
            lambda d: LabeledValue(type=_str(d.get("type")), value=_str(d.get("value"))),
        ),
        note=_opt_str(data.get("note")),
        groups=_str_list(data.get("groups")),
        websites=_str_list(data.get("websites")),
        events=_object_list(
            data.get("events"),
            lambda d: ContactEvent(type=_str(d.get("type")), date=_str(d.get("date"))),
        ),
        relationships=_object_list(
            data.get("relationships"),
            lambda d: ContactRelationship(type=_str(d.get("type")), name=_str(d.get("name"))),
        ),
        social_profiles=_object_list(
            _pick(data, "social_profiles", "socialProfiles"),
            lambda d: LabeledValue(type=_str(d.get("type")), value=_str(d.get("value"))),
        ),
    )


class SnapshotCodec:
    """
    Encodes and decodes snapshot files.

    Example:
        codec = SnapshotCodec(indent=2)
        data = codec.encode(snapshot)
        restored = codec.decode(data)
    """

    def __init__(self, indent: Optional[int] = None):
        """
        Initialize the codec.

        Args:
            indent: JSON indentation for encoded output; None for compact.
        """
        self._indent = indent

    def encode(self, snapshot: Snapshot) -> bytes:
        """
        Serialize a snapshot to UTF-8 JSON.

        Categories that were not captured are written as null.
        """
        document = {
            "messages": (
                None if snapshot.messages is None
                else [_encode_message(m) for m in snapshot.messages]
            ),
            "call_logs": (
                None if snapshot.call_logs is None
                else [_encode_call_log(c) for c in snapshot.call_logs]
            ),
            "contacts": (
                None if snapshot.contacts is None
                else [_encode_contact(c) for c in snapshot.contacts]
            ),
            "timestamp": snapshot.timestamp,
            "device_info": snapshot.device_info,
            "format_version": snapshot.format_version,
        }
        text = json.dumps(document, indent=self._indent, ensure_ascii=False)
        return text.encode("utf-8")

    def decode(self, data: Union[bytes, str], source: str = "<bytes>") -> Snapshot:
        """
        Parse snapshot content.

        Args:
            data: Raw file content.
            source: Name used in error and log messages.

        Returns:
            Decoded Snapshot.

        Raises:
            SnapshotParseError: If the content is not a snapshot document.
        """
        try:
            text = data.decode("utf-8") if isinstance(data, bytes) else data
            document = json.loads(text)
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise SnapshotParseError(source, str(e)) from e
        except RecursionError as e:
            raise SnapshotParseError(source, "document is nested too deeply") from e

        if not isinstance(document, dict):
            raise SnapshotParseError(source, "top-level value is not an object")
        if not any(key in document for key in _SNAPSHOT_KEYS):
            raise SnapshotParseError(source, "no snapshot fields found")

        categories: dict[str, Any] = {}
        for category, keys in CATEGORY_KEYS.items():
            value = _pick(document, *keys)
            if value is not None and not isinstance(value, list):
                raise SnapshotParseError(source, f"'{category}' is not a list")
            categories[category] = value

        snapshot = Snapshot(
            messages=_object_list(categories["messages"], _decode_message),
            call_logs=_object_list(categories["call_logs"], _decode_call_log),
            contacts=_object_list(categories["contacts"], _decode_contact),
            timestamp=_int(document.get("timestamp")),
            device_info=_str(_pick(document, "device_info", "deviceInfo")),
            format_version=_int(
                _pick(document, "format_version", "version")
            ) or SNAPSHOT_FORMAT_VERSION,
        )

        self._check_anomalies(text, snapshot, source)
        return snapshot

    def _check_anomalies(self, text: str, snapshot: Snapshot, source: str) -> None:
        """Warn when the raw text holds records that did not decode."""
        counts = {
            "messages": snapshot.message_count,
            "call_logs": snapshot.call_log_count,
            "contacts": snapshot.contact_count,
        }
        for category, pattern in _MARKER_PATTERNS.items():
            if counts[category] == 0 and pattern.search(text):
                logger.warning(
                    f"{source} mentions {category} records but none were decoded; "
                    f"the file may use field names this version does not read"
                )

    def self_test(self, snapshot: Snapshot) -> bool:
        """
        Check that a snapshot survives an encode/decode round trip.

        Compares per-category presence and record counts, which catches
        alias mismatches between the encoder and the decoder.
        """
        try:
            decoded = self.decode(self.encode(snapshot), source="<self-test>")
        except (SnapshotParseError, TypeError, ValueError) as e:
            logger.error(f"Snapshot self-test failed: {e}")
            return False

        for name in ("messages", "call_logs", "contacts"):
            original = getattr(snapshot, name)
            restored = getattr(decoded, name)
            if (original is None) != (restored is None):
                logger.error(f"Snapshot self-test: {name} presence changed")
                return False
            if original is not None and len(original) != len(restored):
                logger.error(
                    f"Snapshot self-test: {name} count {len(original)} -> {len(restored)}"
                )
                return False
        return True

    def empty_size(self) -> int:
        """Get the encoded size of a snapshot with nothing captured."""
        return len(self.encode(Snapshot(timestamp=0, device_info="")))
