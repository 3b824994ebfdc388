"""Record and batch contracts.

A Record is what the transport hands us; a Batch is what the sink receives.
Both are immutable.
"""

from collections.abc import Hashable, Iterator
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from copysink.contracts.enums import ReleaseReason
from copysink.contracts.errors import MalformedRecordError


@dataclass(frozen=True)
class Record:
    """A single inbound record.

    Attributes:
        payload: Opaque, text-convertible payload
        tag: Structural correlation tag supplied by the transport
        received_at: Arrival time (UTC), stamped at construction
    """

    payload: Any
    tag: str | None = None
    received_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_line(self) -> str:
        """Render the payload as one line of bulk-load input (without newline).

        Raises:
            MalformedRecordError: If the payload is None or is bytes that
                are not valid UTF-8.
        """
        payload = self.payload
        if payload is None:
            raise MalformedRecordError("record payload is None")
        if isinstance(payload, bytes | bytearray):
            try:
                return bytes(payload).decode("utf-8")
            except UnicodeDecodeError as e:
                raise MalformedRecordError(
                    f"record payload is not valid UTF-8: {e}"
                ) from e
        return str(payload)


@dataclass(frozen=True)
class Batch:
    """Immutable, ordered snapshot of a released group.

    Records keep their arrival order. A batch always holds at least one
    record; partial batches (idle or shutdown release) look the same as full
    ones.
    """

    key: Hashable
    records: tuple[Record, ...]
    reason: ReleaseReason
    created_at: float

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self) -> Iterator[Record]:
        return iter(self.records)
