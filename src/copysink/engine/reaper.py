# src/copysink/engine/reaper.py
"""IdleReaper: periodic forced release of idle groups.

The reaper runs on its own daemon thread at a fixed rate. Each tick takes an
idle snapshot from the GroupStore and detaches every listed group with a
generation-checked remove, so a group released by size in the meantime (or
replaced by a fresh successor) is left alone.
"""

from __future__ import annotations

import threading
import time
from typing import TYPE_CHECKING

import structlog

from copysink.contracts import ConfigurationError, ReleaseReason, WriteResult

if TYPE_CHECKING:
    from copysink.engine.aggregator import AggregationEngine

slog = structlog.get_logger(__name__)


class IdleReaper:
    """Flushes groups that have been idle for at least idle_timeout_seconds.

    Ticks and the shutdown sweep are serialized, so two sweeps never race
    over the same snapshot.

    Example:
        reaper = IdleReaper(engine, idle_timeout_seconds=5.0)
        reaper.start()
        ...
        reaper.stop()  # joins the thread, then flushes everything left
    """

    def __init__(
        self,
        engine: AggregationEngine,
        *,
        idle_timeout_seconds: float,
        interval_seconds: float = 1.0,
    ) -> None:
        """Initialize the reaper.

        Args:
            engine: Engine whose store is swept and whose flush() is used
            idle_timeout_seconds: Minimum idle time before a group is released
            interval_seconds: Period between ticks

        Raises:
            ConfigurationError: If the timeout is negative or the interval
                is not positive.
        """
        if idle_timeout_seconds < 0:
            raise ConfigurationError(
                f"idle_timeout_seconds must be >= 0, got {idle_timeout_seconds}"
            )
        if interval_seconds <= 0:
            raise ConfigurationError(
                f"interval_seconds must be > 0, got {interval_seconds}"
            )
        self._engine = engine
        self._idle_timeout = idle_timeout_seconds
        self._interval = interval_seconds
        self._tick_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def reap(self) -> list[WriteResult]:
        """Run one tick: release every group idle for at least the timeout.

        A failure while flushing one group is logged and does not stop the
        tick; store failures never reach any inbound caller.

        Returns:
            WriteResults of the groups flushed by this tick.
        """
        store = self._engine.store
        results: list[WriteResult] = []
        with self._tick_lock:
            for idle in store.idle_groups(self._idle_timeout):
                group = store.remove_if_present(idle.key, idle.generation)
                if group is None:
                    continue
                try:
                    results.append(self._engine.flush(group, ReleaseReason.IDLE))
                except Exception as e:
                    slog.error(
                        "Idle flush raised, batch dropped",
                        key=str(idle.key),
                        batch_size=len(group),
                        error=str(e),
                        exc_info=True,
                    )
        return results

    def start(self) -> None:
        """Start the background thread. No-op if it is already running."""
        if self.running:
            return
        self._stop_event = threading.Event()
        self._thread = threading.Thread(
            target=self._run,
            name="copysink-idle-reaper",
            daemon=True,
        )
        self._thread.start()
        slog.debug(
            "Idle reaper started",
            idle_timeout_seconds=self._idle_timeout,
            interval_seconds=self._interval,
        )

    def stop(self, *, final_sweep: bool = True) -> list[WriteResult]:
        """Stop the background thread and optionally run the shutdown sweep.

        The final sweep first reaps idle groups as a normal tick would, then
        flushes every remaining group so nothing is left un-flushed.

        Args:
            final_sweep: Flush all remaining groups after stopping

        Returns:
            WriteResults of the final sweep (empty if final_sweep is False).
        """
        self._stop_event.set()
        thread = self._thread
        if thread is not None:
            thread.join()
            self._thread = None

        if not final_sweep:
            return []

        results = self.reap()
        with self._tick_lock:
            results.extend(self._engine.flush_all(ReleaseReason.SHUTDOWN))
        slog.debug("Idle reaper stopped", flushed=len(results))
        return results

    def _run(self) -> None:
        # Fixed-rate schedule; ticks missed while a slow write blocked us are skipped
        next_tick = time.monotonic() + self._interval
        while not self._stop_event.wait(max(0.0, next_tick - time.monotonic())):
            self.reap()
            next_tick += self._interval
            now = time.monotonic()
            if next_tick < now:
                next_tick = now + self._interval
