# src/copysink/plugins/protocols.py
"""Plugin protocols defining the contracts for each plugin type.

These protocols define what methods plugins must implement. They are used
for type checking and for isinstance() checks in tests.

Plugin Types:
- Sink: Bulk-loads released batches into a store
"""

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from copysink.contracts import Batch, WriteResult


@runtime_checkable
class SinkProtocol(Protocol):
    """Protocol for sink plugins.

    A sink receives one batch at a time and writes it as a single atomic
    bulk-load operation. Store failures are returned as WriteResult.error,
    never raised.

    Lifecycle:
    1. __init__(config) - Plugin instantiation
    2. write(batch) - Called once per released batch, possibly from
       several threads
    3. flush() - Push any buffered output
    4. close() - Release the store connection
    """

    name: str

    def write(self, batch: "Batch") -> "WriteResult":
        """Write a batch. Must accept any batch of one or more records."""
        ...

    def flush(self) -> None:
        """Flush buffered data."""
        ...

    def close(self) -> None:
        """Close and release resources. Must be idempotent."""
        ...
