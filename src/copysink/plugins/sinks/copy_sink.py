# src/copysink/plugins/sinks/copy_sink.py
"""PostgreSQL COPY sink plugin.

Loads each batch with a single ``COPY <table> FROM STDIN WITH DELIMITER <d>
CSV`` statement, streamed through psycopg2's copy_expert on a raw DBAPI
connection borrowed from a SQLAlchemy engine.
"""

import io
import threading
from typing import Any

import psycopg2
import structlog
from pydantic import Field, field_validator
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from copysink.contracts import Batch, ErrorKind, WriteResult
from copysink.core.config import validate_delimiter, validate_table_name
from copysink.plugins.base import BaseSink
from copysink.plugins.config_base import PluginConfig

slog = structlog.get_logger(__name__)


class CopySinkConfig(PluginConfig):
    """Configuration for the COPY sink plugin."""

    url: str
    table: str
    delimiter: str = ","
    ignore_first: bool = False
    pool_size: int = Field(default=5, gt=0)
    echo: bool = False

    @field_validator("delimiter")
    @classmethod
    def check_delimiter(cls, v: str) -> str:
        return validate_delimiter(v)

    @field_validator("table")
    @classmethod
    def check_table(cls, v: str) -> str:
        return validate_table_name(v)


def delimiter_literal(delimiter: str) -> str:
    """Render a delimiter as a SQL literal for the COPY statement.

    Tab needs the escape-string form; everything else is a quoted literal.
    """
    if delimiter == "\t":
        return "E'\\t'"
    return "'" + delimiter.replace("'", "''") + "'"


def build_copy_statement(table: str, delimiter: str) -> str:
    """Build the COPY statement for a table and delimiter."""
    return f"COPY {table} FROM STDIN WITH DELIMITER {delimiter_literal(delimiter)} CSV"


class CopySink(BaseSink):
    """Bulk-load batches into a PostgreSQL table with COPY.

    Each batch is one COPY statement followed by a commit, so either every
    record of the batch lands or none does. Store errors come back as
    WriteResult.error and are never raised.

    Config options:
        url: SQLAlchemy database URL (required)
        table: Target table, optionally schema.table (required)
        delimiter: Single field delimiter character (default: ",")
        ignore_first: Drop the first record of multi-record batches (default: False)
        pool_size: Connection pool size (default: 5)
        echo: Echo SQL statements (default: False)
    """

    name = "pgcopy"
    plugin_version = "1.0.0"

    def __init__(self, config: dict[str, Any], *, engine: Engine | None = None) -> None:
        """Initialize the sink.

        Args:
            config: Plugin configuration (see CopySinkConfig)
            engine: Optional pre-built SQLAlchemy engine. When omitted, one is
                created lazily from ``url`` on the first write.
        """
        super().__init__(config)
        cfg = CopySinkConfig.from_dict(config)
        self._url = cfg.url
        self._table = cfg.table
        self._delimiter = cfg.delimiter
        self._ignore_first = cfg.ignore_first
        self._pool_size = cfg.pool_size
        self._echo = cfg.echo
        self._sql = build_copy_statement(cfg.table, cfg.delimiter)

        self._engine: Engine | None = engine
        self._engine_lock = threading.Lock()
        self._closed = False

    @property
    def copy_statement(self) -> str:
        return self._sql

    @property
    def table(self) -> str:
        return self._table

    def _get_engine(self) -> Engine:
        # Concurrent first writes must share one engine
        with self._engine_lock:
            if self._closed:
                raise RuntimeError("CopySink is closed")
            if self._engine is None:
                self._engine = create_engine(
                    self._url,
                    pool_size=self._pool_size,
                    echo=self._echo,
                    pool_pre_ping=True,
                )
            return self._engine

    def write(self, batch: Batch) -> WriteResult:
        """Write one batch with a single COPY statement.

        When ignore_first is set the first record is treated as a header and
        skipped, unless it is the only record in the batch.

        Args:
            batch: Released batch, records in arrival order

        Returns:
            WriteResult.success with the row count reported by the store, or
            WriteResult.error(STORE_WRITE_FAILURE) if the COPY failed.

        Raises:
            RuntimeError: If the sink has been closed.
        """
        records = list(batch.records)
        if self._ignore_first and len(records) > 1:
            records = records[1:]

        if not records:
            return WriteResult.success(0, batch_size=0, reason=batch.reason)

        payload = "".join(f"{record.to_line()}\n" for record in records)
        slog.debug(
            "Executing batch",
            batch_size=len(records),
            statement=self._sql,
        )

        try:
            connection = self._get_engine().raw_connection()
        except SQLAlchemyError as e:
            return self._failure(e, len(records), batch)

        try:
            cursor = connection.cursor()
            try:
                cursor.copy_expert(self._sql, io.StringIO(payload))
                rows = cursor.rowcount
            finally:
                cursor.close()
            connection.commit()
        except (psycopg2.Error, SQLAlchemyError) as e:
            self._rollback(connection)
            return self._failure(e, len(records), batch)
        finally:
            connection.close()

        # psycopg2 reports -1 when the server did not return a row count
        rows_written = rows if rows is not None and rows >= 0 else len(records)
        slog.debug("Wrote rows", rows=rows_written, table=self._table)
        return WriteResult.success(
            rows_written,
            batch_size=len(records),
            reason=batch.reason,
        )

    def _failure(self, error: Exception, batch_size: int, batch: Batch) -> WriteResult:
        return WriteResult.error(
            ErrorKind.STORE_WRITE_FAILURE,
            f"Error while copying data into {self._table}: {error}",
            batch_size=batch_size,
            reason=batch.reason,
        )

    def _rollback(self, connection: Any) -> None:
        try:
            connection.rollback()
        except psycopg2.Error as e:
            # Connection is already broken; the pool discards it on close
            slog.warning("Rollback failed", table=self._table, error=str(e))

    def flush(self) -> None:
        """Flush any pending operations.

        No-op for CopySink - every write is committed immediately.
        """

    def close(self) -> None:
        """Dispose the engine and its pooled connections. Idempotent."""
        with self._engine_lock:
            self._closed = True
            engine, self._engine = self._engine, None
        if engine is not None:
            engine.dispose()
