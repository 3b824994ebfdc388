# src/copysink/engine/aggregator.py
"""AggregationEngine: correlates records into groups and flushes them.

Flush always means detach-then-act: only the caller that detached a group
from the GroupStore may hand it to the sink, so no group is written twice.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from copysink.contracts import (
    MalformedRecordError,
    Record,
    ReleaseReason,
    SubmitResult,
    WriteResult,
)
from copysink.engine.group_store import Group, GroupStore
from copysink.engine.strategies import TagCorrelationStrategy

if TYPE_CHECKING:
    from copysink.engine.clock import Clock
    from copysink.engine.strategies import CorrelationStrategy, ReleaseStrategy
    from copysink.plugins.protocols import SinkProtocol

slog = structlog.get_logger(__name__)


class AggregationEngine:
    """Groups inbound records and bulk-loads each completed group.

    submit() may be called concurrently from many transport threads. A
    size-triggered flush runs synchronously on the submitting thread, which
    blocks until the bulk load completes or fails.

    Example:
        engine = AggregationEngine(
            sink,
            release_strategy=CountReleaseStrategy(1000),
        )
        result = engine.submit(Record("a,b,c", tag="events"))
        if result.status == "failed":
            handle_store_failure(result.write)
    """

    def __init__(
        self,
        sink: SinkProtocol,
        *,
        release_strategy: ReleaseStrategy,
        correlation_strategy: CorrelationStrategy | None = None,
        store: GroupStore | None = None,
        clock: Clock | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            sink: Destination for released batches
            release_strategy: Decides when a group is complete
            correlation_strategy: Derives a record's key (default: by tag)
            store: Group store to share (default: a new store on ``clock``)
            clock: Clock for the default store. Ignored when store is given.
        """
        self._sink = sink
        self._release = release_strategy
        self._correlate = (
            correlation_strategy
            if correlation_strategy is not None
            else TagCorrelationStrategy()
        )
        self._store = store if store is not None else GroupStore(clock=clock)

    @property
    def store(self) -> GroupStore:
        return self._store

    @property
    def sink(self) -> SinkProtocol:
        return self._sink

    def submit(self, record: Record) -> SubmitResult:
        """Add a record to its group, flushing the group if it is complete.

        A malformed record is rejected on its own and never joins a group.
        If this record completes its group, the group is detached and written
        before returning; a store failure is reported in the result.

        Args:
            record: Inbound record

        Returns:
            SubmitResult describing what happened to the record
        """
        try:
            record.to_line()
            key = self._correlate(record)
        except MalformedRecordError as e:
            slog.warning(
                "Record rejected",
                kind=e.kind.value,
                error=str(e),
            )
            return SubmitResult.rejected(str(e))

        appended = self._store.append(key, record, release=self._release)
        if appended.released is None:
            return SubmitResult.accepted(key, appended.count)

        write = self.flush(appended.released, ReleaseReason.COUNT)
        if write.ok:
            return SubmitResult.flushed(key, write)
        return SubmitResult.failed(key, write)

    def flush(self, group: Group, reason: ReleaseReason) -> WriteResult:
        """Hand a detached group to the sink.

        The caller must own the group (it was returned by the store's
        remove_if_present or released by append). On failure the batch is
        dropped after logging; it is not retried or requeued.
        """
        batch = group.to_batch(reason)
        result = self._sink.write(batch)
        if result.ok:
            slog.debug(
                "Batch written",
                key=str(batch.key),
                reason=reason.value,
                batch_size=len(batch),
                rows=result.rows_written,
            )
        else:
            slog.error(
                "Bulk load failed, batch dropped",
                kind=result.error_kind.value if result.error_kind else None,
                key=str(batch.key),
                reason=reason.value,
                batch_size=len(batch),
                error=result.message,
            )
        return result

    def flush_all(self, reason: ReleaseReason = ReleaseReason.SHUTDOWN) -> list[WriteResult]:
        """Detach and flush every live group, regardless of size or age.

        A group whose flush raises is logged and dropped; the sweep carries
        on with the remaining groups.
        """
        results: list[WriteResult] = []
        for key in self._store.keys():
            group = self._store.remove_if_present(key)
            if group is None:
                continue
            try:
                results.append(self.flush(group, reason))
            except Exception as e:
                slog.error(
                    "Flush raised, batch dropped",
                    key=str(key),
                    reason=reason.value,
                    batch_size=len(group),
                    error=str(e),
                    exc_info=True,
                )
        return results
