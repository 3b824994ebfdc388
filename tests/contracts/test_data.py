"""Tests for Record and Batch contracts."""

from datetime import UTC

import pytest

from copysink.contracts import (
    Batch,
    ConfigurationError,
    ErrorKind,
    MalformedRecordError,
    Record,
    ReleaseReason,
)


class TestRecordToLine:
    """Rendering a payload as one line of COPY input."""

    def test_string_payload_unchanged(self) -> None:
        assert Record("a,b,c").to_line() == "a,b,c"

    def test_non_string_uses_str(self) -> None:
        assert Record(42).to_line() == "42"
        assert Record(1.5).to_line() == "1.5"

    def test_utf8_bytes_decoded(self) -> None:
        assert Record("é,1".encode()).to_line() == "é,1"
        assert Record(bytearray(b"x")).to_line() == "x"

    def test_none_payload_is_malformed(self) -> None:
        with pytest.raises(MalformedRecordError, match="None"):
            Record(None).to_line()

    def test_invalid_utf8_is_malformed(self) -> None:
        with pytest.raises(MalformedRecordError, match="UTF-8"):
            Record(b"\xff").to_line()


class TestRecord:
    def test_received_at_is_utc(self) -> None:
        assert Record("a").received_at.tzinfo is UTC

    def test_is_frozen(self) -> None:
        record = Record("a", tag="events")

        with pytest.raises(AttributeError):
            record.tag = "other"  # type: ignore[misc]


class TestBatch:
    """Batches are ordered, sized snapshots."""

    def test_len_and_iteration_follow_records(self) -> None:
        records = (Record("a"), Record("b"))
        batch = Batch(key="k", records=records, reason=ReleaseReason.IDLE, created_at=0.0)

        assert len(batch) == 2
        assert list(batch) == list(records)


class TestErrors:
    """Exceptions carry their error kind."""

    def test_kinds(self) -> None:
        assert ConfigurationError.kind is ErrorKind.CONFIGURATION
        assert MalformedRecordError.kind is ErrorKind.MALFORMED_INPUT

    def test_enums_are_strings(self) -> None:
        """(str, Enum) members serialize as their value."""
        assert ReleaseReason.IDLE == "idle"
        assert ErrorKind.STORE_WRITE_FAILURE.value == "store_write_failure"
