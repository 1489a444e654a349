"""Tests for the snapshot codec."""

import json
import logging

import pytest

from msgvault.core.records.models import CallLogEntry, Message
from msgvault.core.snapshot.codec import SnapshotCodec
from msgvault.core.snapshot.models import Snapshot
from msgvault.exceptions import SnapshotParseError


class TestEncode:
    """Tests for SnapshotCodec.encode."""

    def test_uses_short_aliases(self, sample_snapshot: Snapshot) -> None:
        """Records should be written with their short field names."""
        document = json.loads(SnapshotCodec().encode(sample_snapshot))

        assert set(document["messages"][0]) == {
            "id", "addr", "body", "date", "type", "read", "status", "thread_id"
        }
        assert set(document["call_logs"][0]) == {"id", "num", "type", "date", "dur", "name"}
        assert document["contacts"][0]["phones"] == ["+447700900123"]
        assert document["format_version"] == 1

    def test_missing_categories_written_as_null(self) -> None:
        """Uncaptured categories should be null, not empty lists."""
        snapshot = Snapshot(messages=[], call_logs=None, contacts=None, timestamp=1)
        document = json.loads(SnapshotCodec().encode(snapshot))

        assert document["messages"] == []
        assert document["call_logs"] is None
        assert document["contacts"] is None

    def test_non_ascii_kept_readable(self) -> None:
        """Text should be stored as UTF-8 rather than escaped."""
        snapshot = Snapshot(messages=[Message(id=1, address="a", body="你好")])
        assert "你好".encode("utf-8") in SnapshotCodec().encode(snapshot)


class TestDecode:
    """Tests for SnapshotCodec.decode."""

    def test_round_trip(self, sample_snapshot: Snapshot) -> None:
        """Decoding an encoded snapshot should give the same snapshot."""
        codec = SnapshotCodec(indent=2)
        assert codec.decode(codec.encode(sample_snapshot)) == sample_snapshot

    def test_round_trip_keeps_null_versus_empty(self) -> None:
        """None and [] should survive a round trip unchanged."""
        codec = SnapshotCodec()
        snapshot = Snapshot(messages=None, call_logs=[], contacts=None, timestamp=5)

        decoded = codec.decode(codec.encode(snapshot))

        assert decoded.messages is None
        assert decoded.call_logs == []
        assert decoded.contacts is None

    def test_long_field_names(self) -> None:
        """Long field names and camelCase category keys should be accepted."""
        data = json.dumps({
            "messages": [{"id": 1, "address": "+1555", "body": "hi", "date": 9}],
            "callLogs": [{"id": 2, "number": "+1555", "duration": 30}],
            "contacts": None,
            "timestamp": 7,
            "deviceInfo": "Phone",
        })

        snapshot = SnapshotCodec().decode(data)

        assert snapshot.messages == [Message(id=1, address="+1555", body="hi", date=9, type=0)]
        assert snapshot.call_logs == [CallLogEntry(id=2, number="+1555", type=0, duration=30)]
        assert snapshot.device_info == "Phone"

    def test_lenient_fields(self) -> None:
        """Unknown fields should be ignored and missing numbers default to 0."""
        data = b'{"messages": [{"addr": "x", "extra": true}], "timestamp": 1}'

        message = SnapshotCodec().decode(data).messages[0]

        assert message.id == 0
        assert message.date == 0
        assert message.read == 0

    @pytest.mark.parametrize("data", [
        b"not json",
        b"[1, 2, 3]",
        b'{"messages": {"id": 1}}',
        b'{"contacts": "nope"}',
        b"\xff\xfe",
        b'{"hello": "world"}',
        b"{}",
    ])
    def test_malformed_input(self, data: bytes) -> None:
        """Malformed content should raise SnapshotParseError."""
        with pytest.raises(SnapshotParseError):
            SnapshotCodec().decode(data, source="bad.json")

    def test_out_of_range_number(self) -> None:
        """A number too large for an int should fall back to 0."""
        data = b'{"messages": [{"id": 1, "addr": "+1555", "date": 1e999}], "timestamp": 1}'

        assert SnapshotCodec().decode(data).messages[0].date == 0

    def test_deeply_nested_document(self) -> None:
        """Nesting too deep for the parser should be a parse error."""
        data = b'{"messages": [{"body": ' + b"[" * 100_000 + b"]" * 100_000 + b"}]}"

        with pytest.raises(SnapshotParseError):
            SnapshotCodec().decode(data, source="deep.json")

    def test_anomaly_warning(self, caplog: pytest.LogCaptureFixture) -> None:
        """Records that do not decode should be reported as an anomaly."""
        data = b'{"messages": null, "sms": [{"id": 1}], "timestamp": 1}'

        with caplog.at_level(logging.WARNING):
            SnapshotCodec().decode(data, source="odd.json")

        assert "mentions messages records" in caplog.text

    def test_no_warning_for_empty_list(self, caplog: pytest.LogCaptureFixture) -> None:
        """An empty category should not be reported."""
        with caplog.at_level(logging.WARNING):
            SnapshotCodec().decode(b'{"messages": [], "timestamp": 1}')

        assert caplog.text == ""


class TestSelfTest:
    """Tests for SnapshotCodec.self_test and empty_size."""

    def test_passes_for_valid_snapshot(self, sample_snapshot: Snapshot) -> None:
        assert SnapshotCodec().self_test(sample_snapshot)

    def test_empty_size_is_smallest(self, sample_snapshot: Snapshot) -> None:
        """Any snapshot with records should be larger than the empty one."""
        codec = SnapshotCodec()
        assert len(codec.encode(sample_snapshot)) > codec.empty_size()
