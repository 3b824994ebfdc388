# src/copysink/engine/strategies.py
"""Correlation and release strategies.

Both are pure functions of their input:
- CorrelationStrategy: record -> correlation key
- ReleaseStrategy: current group size -> release now?
"""

from __future__ import annotations

from collections.abc import Hashable
from typing import Protocol, runtime_checkable

from copysink.contracts.data import Record
from copysink.contracts.errors import ConfigurationError, MalformedRecordError


@runtime_checkable
class CorrelationStrategy(Protocol):
    """Derives the correlation key of a record.

    Raises MalformedRecordError when no key can be derived.
    """

    def __call__(self, record: Record) -> Hashable: ...


@runtime_checkable
class ReleaseStrategy(Protocol):
    """Decides whether a group of the given size is complete."""

    def __call__(self, current_size: int) -> bool: ...


class TagCorrelationStrategy:
    """Key records by the structural tag supplied with each record."""

    def __call__(self, record: Record) -> Hashable:
        if not record.tag:
            raise MalformedRecordError("record has no correlation tag")
        return record.tag


class PayloadTypeCorrelationStrategy:
    """Key records by payload type.

    Every record of the same kind joins one rolling group, regardless of
    which source sent it.
    """

    def __call__(self, record: Record) -> Hashable:
        if record.payload is None:
            raise MalformedRecordError("record payload is None")
        payload_type = type(record.payload)
        return f"{payload_type.__module__}.{payload_type.__qualname__}"


class CountReleaseStrategy:
    """Release once the group holds batch_size records.

    A batch_size of 1 releases every record on its own.
    """

    def __init__(self, batch_size: int) -> None:
        if batch_size < 1:
            raise ConfigurationError(f"batch_size must be >= 1, got {batch_size}")
        self.batch_size = batch_size

    def __call__(self, current_size: int) -> bool:
        return current_size >= self.batch_size


def correlation_strategy_for(name: str) -> CorrelationStrategy:
    """Resolve a configured correlation mode to its strategy.

    Raises:
        ConfigurationError: If the mode is unknown.
    """
    if name == "tag":
        return TagCorrelationStrategy()
    if name == "payload_type":
        return PayloadTypeCorrelationStrategy()
    raise ConfigurationError(f"Unknown correlation mode: {name!r}")
