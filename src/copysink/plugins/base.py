# src/copysink/plugins/base.py
"""Base classes for plugin implementations.

These provide common functionality and ensure proper interface compliance.
Plugins can subclass these for convenience, or implement protocols directly.
"""

from abc import ABC, abstractmethod
from typing import Any

from copysink.contracts import Batch, WriteResult


class BaseSink(ABC):
    """Base class for sink plugins.

    Subclass and implement write(), flush(), close().

    Example:
        class ListSink(BaseSink):
            name = "list"

            def __init__(self, config):
                super().__init__(config)
                self.batches = []

            def write(self, batch: Batch) -> WriteResult:
                self.batches.append([r.to_line() for r in batch])
                return WriteResult.success(len(batch), batch_size=len(batch))

            def flush(self) -> None:
                pass

            def close(self) -> None:
                pass
    """

    name: str
    plugin_version: str = "0.0.0"

    def __init__(self, config: dict[str, Any]) -> None:
        """Initialize with configuration."""
        self.config = config

    @abstractmethod
    def write(self, batch: Batch) -> WriteResult:
        """Write a batch to the sink.

        Args:
            batch: Released batch, records in arrival order

        Returns:
            WriteResult with the row count, or an error result on store failure
        """
        ...

    @abstractmethod
    def flush(self) -> None:
        """Flush buffered data."""
        ...

    @abstractmethod
    def close(self) -> None:
        """Close and release resources."""
        ...
