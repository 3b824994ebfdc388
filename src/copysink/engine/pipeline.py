# src/copysink/engine/pipeline.py
"""CopyPipeline: owns the sink, engine and reaper for one process lifetime.

The pipeline is a context manager. Leaving the ``with`` block, normally or
through an exception, stops the reaper, performs the final sweep and only
then releases the store connection.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import structlog

from copysink.core.config import CopySinkSettings, load_settings
from copysink.core.logging import configure_logging
from copysink.engine.aggregator import AggregationEngine
from copysink.engine.group_store import GroupStore
from copysink.engine.reaper import IdleReaper
from copysink.engine.strategies import CountReleaseStrategy, correlation_strategy_for
from copysink.plugins.sinks.copy_sink import CopySink

if TYPE_CHECKING:
    from types import TracebackType

    from sqlalchemy.engine import Engine

    from copysink.contracts import Record, SubmitResult, WriteResult
    from copysink.engine.clock import Clock
    from copysink.plugins.protocols import SinkProtocol

slog = structlog.get_logger(__name__)


class CopyPipeline:
    """Embedded batching pipeline: submit records, get bulk loads.

    Example:
        settings = load_settings(Path("settings.yaml"))
        with CopyPipeline.from_settings(settings) as pipeline:
            for payload in transport:
                pipeline.submit(Record(payload, tag="events"))
    """

    def __init__(
        self,
        sink: SinkProtocol,
        engine: AggregationEngine,
        reaper: IdleReaper,
    ) -> None:
        self._sink = sink
        self._engine = engine
        self._reaper = reaper
        self._closed = False

    @classmethod
    def from_settings(
        cls,
        settings: CopySinkSettings,
        *,
        clock: Clock | None = None,
        db_engine: Engine | None = None,
    ) -> CopyPipeline:
        """Wire sink, engine and reaper from validated settings.

        Args:
            settings: Validated settings
            clock: Optional clock for group ages (tests inject MockClock)
            db_engine: Optional pre-built SQLAlchemy engine for the sink
        """
        sink = CopySink(
            {
                "url": settings.database.url,
                "table": settings.table_name,
                "delimiter": settings.delimiter,
                "ignore_first": settings.ignore_first,
                "pool_size": settings.database.pool_size,
                "echo": settings.database.echo,
            },
            engine=db_engine,
        )
        engine = AggregationEngine(
            sink,
            release_strategy=CountReleaseStrategy(settings.batch_size),
            correlation_strategy=correlation_strategy_for(settings.correlation),
            store=GroupStore(clock=clock),
        )
        reaper = IdleReaper(
            engine,
            idle_timeout_seconds=settings.idle_timeout_seconds,
            interval_seconds=settings.reap_interval_seconds,
        )
        return cls(sink, engine, reaper)

    @classmethod
    def from_config_file(cls, config_path: Path) -> CopyPipeline:
        """Load settings, configure logging and build the pipeline.

        Raises:
            ConfigurationError: If configuration is invalid
            FileNotFoundError: If the config file doesn't exist
        """
        settings = load_settings(config_path)
        configure_logging(
            json_output=settings.logging.json_output,
            level=settings.logging.level,
        )
        slog.info(
            "Configuration loaded",
            table=settings.table_name,
            batch_size=settings.batch_size,
            idle_timeout_ms=settings.idle_timeout_ms,
            reap_interval_ms=settings.reap_interval_ms,
            correlation=settings.correlation,
        )
        return cls.from_settings(settings)

    @property
    def engine(self) -> AggregationEngine:
        return self._engine

    @property
    def reaper(self) -> IdleReaper:
        return self._reaper

    def start(self) -> None:
        """Start the idle reaper."""
        if self._closed:
            raise RuntimeError("CopyPipeline is closed")
        self._reaper.start()
        slog.info("Pipeline started", sink=self._sink.name)

    def submit(self, record: Record) -> SubmitResult:
        """Submit one record. See AggregationEngine.submit.

        Raises:
            RuntimeError: If the pipeline has been closed.
        """
        if self._closed:
            raise RuntimeError("CopyPipeline is closed")
        return self._engine.submit(record)

    def close(self) -> list[WriteResult]:
        """Stop the reaper, flush every remaining group, close the sink.

        The sink is closed even if the final sweep raises. Idempotent.

        Returns:
            WriteResults of the final sweep.
        """
        if self._closed:
            return []
        self._closed = True
        try:
            results = self._reaper.stop(final_sweep=True)
        finally:
            self._sink.close()
        slog.info("Pipeline closed", final_batches=len(results))
        return results

    def __enter__(self) -> CopyPipeline:
        self.start()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()
