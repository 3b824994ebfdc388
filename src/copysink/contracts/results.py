"""Operation outcomes and results.

These types answer: "What did an operation produce?"

IMPORTANT:
- status fields use Literal strings, NOT enums
- Failures carry an ErrorKind tag plus a human-readable message
- Use the factory methods; do not build instances by hand
"""

from collections.abc import Hashable
from dataclasses import dataclass
from typing import Literal

from copysink.contracts.enums import ErrorKind, ReleaseReason


@dataclass(frozen=True)
class WriteResult:
    """Result of a bulk-load write of one batch."""

    status: Literal["success", "error"]
    rows_written: int | None
    error_kind: ErrorKind | None = None
    message: str | None = None
    reason: ReleaseReason | None = None
    batch_size: int = 0

    @classmethod
    def success(
        cls,
        rows_written: int,
        *,
        batch_size: int = 0,
        reason: ReleaseReason | None = None,
    ) -> "WriteResult":
        """Create successful result with the store's row count."""
        return cls(
            status="success",
            rows_written=rows_written,
            reason=reason,
            batch_size=batch_size,
        )

    @classmethod
    def error(
        cls,
        kind: ErrorKind,
        message: str,
        *,
        batch_size: int = 0,
        reason: ReleaseReason | None = None,
    ) -> "WriteResult":
        """Create error result. The batch is considered dropped."""
        return cls(
            status="error",
            rows_written=None,
            error_kind=kind,
            message=message,
            reason=reason,
            batch_size=batch_size,
        )

    @property
    def ok(self) -> bool:
        return self.status == "success"


@dataclass(frozen=True)
class SubmitResult:
    """Result of submitting one record to the aggregation engine.

    Status values:
        accepted: Record appended, group still pending
        flushed: Record completed its group, which was written
        failed: Record completed its group, but the write failed
        rejected: Record was malformed and never joined a group
    """

    status: Literal["accepted", "flushed", "failed", "rejected"]
    key: Hashable | None
    group_size: int = 0
    write: WriteResult | None = None
    error_kind: ErrorKind | None = None
    message: str | None = None

    @classmethod
    def accepted(cls, key: Hashable, group_size: int) -> "SubmitResult":
        return cls(status="accepted", key=key, group_size=group_size)

    @classmethod
    def flushed(cls, key: Hashable, write: WriteResult) -> "SubmitResult":
        return cls(status="flushed", key=key, group_size=0, write=write)

    @classmethod
    def failed(cls, key: Hashable, write: WriteResult) -> "SubmitResult":
        """Inline flush failed; the store error is surfaced to the caller."""
        return cls(
            status="failed",
            key=key,
            group_size=0,
            write=write,
            error_kind=write.error_kind,
            message=write.message,
        )

    @classmethod
    def rejected(cls, message: str, key: Hashable | None = None) -> "SubmitResult":
        """Record could not be correlated or rendered."""
        return cls(
            status="rejected",
            key=key,
            error_kind=ErrorKind.MALFORMED_INPUT,
            message=message,
        )
