# tests/conftest.py
"""Shared test fixtures and helpers.

Provides in-memory sinks for engine tests, a mock clock, and a fake
SQLAlchemy engine whose raw DBAPI connection captures COPY input.

Hypothesis Configuration:
- "ci" profile: Fast tests for CI (100 examples) - default
- "nightly" profile: Thorough tests (1000 examples)
- "debug" profile: Minimal tests with verbose output (10 examples)

Set profile via environment variable:
    HYPOTHESIS_PROFILE=nightly pytest tests/engine/
"""

import os
import threading
from dataclasses import dataclass, field
from typing import Any
from unittest.mock import MagicMock

import pytest
from hypothesis import Phase, Verbosity, settings

from copysink.contracts import Batch, ErrorKind, WriteResult
from copysink.engine.clock import MockClock

# =============================================================================
# Hypothesis Configuration
# =============================================================================

settings.register_profile(
    "ci",
    max_examples=100,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,  # Disable deadline for CI (timing varies)
)

settings.register_profile(
    "nightly",
    max_examples=1000,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "ci"))


# =============================================================================
# In-memory sinks
# =============================================================================


class RecordingSink:
    """Sink that remembers every batch it was given. Thread-safe."""

    name = "recording"

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.batches: list[Batch] = []
        self.closed = False

    def write(self, batch: Batch) -> WriteResult:
        with self._lock:
            self.batches.append(batch)
        return WriteResult.success(len(batch), batch_size=len(batch), reason=batch.reason)

    def flush(self) -> None:
        pass

    def close(self) -> None:
        self.closed = True

    @property
    def lines(self) -> list[list[str]]:
        """Rendered lines of each batch, in write order."""
        with self._lock:
            return [[record.to_line() for record in batch] for batch in self.batches]


class FailingSink(RecordingSink):
    """Sink whose every write fails like a broken store connection."""

    name = "failing"

    def write(self, batch: Batch) -> WriteResult:
        with self._lock:
            self.batches.append(batch)
        return WriteResult.error(
            ErrorKind.STORE_WRITE_FAILURE,
            "connection refused",
            batch_size=len(batch),
            reason=batch.reason,
        )


@pytest.fixture
def recording_sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def failing_sink() -> FailingSink:
    return FailingSink()


@pytest.fixture
def clock() -> MockClock:
    return MockClock(start=1000.0)


# =============================================================================
# Fake database
# =============================================================================


@dataclass
class FakeDatabase:
    """Fake SQLAlchemy engine plus the DBAPI connection it hands out.

    Every copy_expert call is recorded as (sql, text). Set ``copy_error`` to
    make the next COPY raise, ``rowcount`` to control the reported count.
    """

    engine: MagicMock
    connection: MagicMock
    cursor: MagicMock
    copies: list[tuple[str, str]] = field(default_factory=list)
    copy_error: Exception | None = None
    rowcount: int | None = None


@pytest.fixture
def fake_db() -> FakeDatabase:
    cursor = MagicMock(name="cursor")
    connection = MagicMock(name="connection")
    connection.cursor.return_value = cursor
    engine = MagicMock(name="engine")
    engine.raw_connection.return_value = connection

    db = FakeDatabase(engine=engine, connection=connection, cursor=cursor)

    def _copy_expert(sql: str, stream: Any) -> None:
        if db.copy_error is not None:
            raise db.copy_error
        text = stream.read()
        db.copies.append((sql, text))
        cursor.rowcount = db.rowcount if db.rowcount is not None else text.count("\n")

    cursor.copy_expert.side_effect = _copy_expert
    return db
