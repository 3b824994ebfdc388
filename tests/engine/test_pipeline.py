"""Tests for CopyPipeline wiring and lifecycle."""

from pathlib import Path
from typing import Any

import pytest

from copysink.contracts import Record, ReleaseReason
from copysink.core.config import CopySinkSettings
from copysink.engine.clock import MockClock
from copysink.engine.pipeline import CopyPipeline


def make_settings(**overrides: Any) -> CopySinkSettings:
    config: dict[str, Any] = {
        "batch_size": 3,
        "table_name": "events",
        "idle_timeout_ms": 5000,
        "reap_interval_ms": 60000,
        "database": {"url": "postgresql://localhost/db"},
    }
    config.update(overrides)
    return CopySinkSettings.from_dict(config)


class TestFromSettings:
    """Settings are carried through to sink, engine and reaper."""

    def test_end_to_end_size_then_idle(self, fake_db: Any, clock: MockClock) -> None:
        """batch_size=3, a,b,c,d -> COPY [a,b,c] inline, COPY [d] after idle."""
        pipeline = CopyPipeline.from_settings(
            make_settings(), clock=clock, db_engine=fake_db.engine
        )

        results = [pipeline.submit(Record(p, tag="events")) for p in "abcd"]
        assert results[2].status == "flushed"
        assert [text for _, text in fake_db.copies] == ["a\nb\nc\n"]

        clock.advance(5.0)
        pipeline.reaper.reap()

        assert [text for _, text in fake_db.copies] == ["a\nb\nc\n", "d\n"]

    def test_delimiter_and_table_reach_statement(self, fake_db: Any) -> None:
        pipeline = CopyPipeline.from_settings(
            make_settings(batch_size=1, delimiter="\t", table_name="staging.events"),
            db_engine=fake_db.engine,
        )

        pipeline.submit(Record("a\tb", tag="events"))

        assert fake_db.copies[0][0] == (
            "COPY staging.events FROM STDIN WITH DELIMITER E'\\t' CSV"
        )

    def test_ignore_first(self, fake_db: Any) -> None:
        pipeline = CopyPipeline.from_settings(
            make_settings(ignore_first=True), db_engine=fake_db.engine
        )

        for p in ["id,name", "1,a", "2,b"]:
            pipeline.submit(Record(p, tag="events"))

        assert fake_db.copies[0][1] == "1,a\n2,b\n"

    def test_payload_type_correlation(self, fake_db: Any) -> None:
        pipeline = CopyPipeline.from_settings(
            make_settings(batch_size=2, correlation="payload_type"),
            db_engine=fake_db.engine,
        )

        pipeline.submit(Record("x"))
        pipeline.submit(Record(7))
        pipeline.submit(Record("y"))

        assert [text for _, text in fake_db.copies] == ["x\ny\n"]


class TestLifecycle:
    """Context manager start/close semantics."""

    def test_exit_flushes_pending_and_closes_sink(self, fake_db: Any) -> None:
        with CopyPipeline.from_settings(
            make_settings(batch_size=100), db_engine=fake_db.engine
        ) as pipeline:
            assert pipeline.reaper.running
            pipeline.submit(Record("a", tag="x"))
            pipeline.submit(Record("b", tag="y"))

        assert not pipeline.reaper.running
        assert sorted(text for _, text in fake_db.copies) == ["a\n", "b\n"]
        fake_db.engine.dispose.assert_called_once()

    def test_exit_on_exception_still_flushes(self, fake_db: Any) -> None:
        with pytest.raises(RuntimeError, match="transport died"):
            with CopyPipeline.from_settings(
                make_settings(batch_size=100), db_engine=fake_db.engine
            ) as pipeline:
                pipeline.submit(Record("a", tag="x"))
                raise RuntimeError("transport died")

        assert [text for _, text in fake_db.copies] == ["a\n"]
        fake_db.engine.dispose.assert_called_once()

    def test_close_returns_final_results_once(self, fake_db: Any) -> None:
        pipeline = CopyPipeline.from_settings(
            make_settings(batch_size=100), db_engine=fake_db.engine
        )
        pipeline.start()
        pipeline.submit(Record("a", tag="x"))

        first = pipeline.close()
        second = pipeline.close()

        assert len(first) == 1
        assert first[0].reason is ReleaseReason.SHUTDOWN
        assert second == []
        fake_db.engine.dispose.assert_called_once()

    def test_start_after_close_rejected(self, fake_db: Any) -> None:
        pipeline = CopyPipeline.from_settings(make_settings(), db_engine=fake_db.engine)
        pipeline.close()

        with pytest.raises(RuntimeError, match="closed"):
            pipeline.start()

    def test_submit_after_close_rejected(self, fake_db: Any) -> None:
        """A late record is refused instead of stranded in an unflushed group."""
        pipeline = CopyPipeline.from_settings(
            make_settings(batch_size=1), db_engine=fake_db.engine
        )
        pipeline.close()

        with pytest.raises(RuntimeError, match="closed"):
            pipeline.submit(Record("late", tag="k"))

        assert len(pipeline.engine.store) == 0
        assert fake_db.copies == []
        fake_db.engine.raw_connection.assert_not_called()

    def test_sink_closed_even_if_sweep_raises(self, recording_sink: Any) -> None:
        from copysink.engine.aggregator import AggregationEngine
        from copysink.engine.reaper import IdleReaper
        from copysink.engine.strategies import CountReleaseStrategy

        engine = AggregationEngine(
            recording_sink, release_strategy=CountReleaseStrategy(10)
        )
        reaper = IdleReaper(engine, idle_timeout_seconds=60.0)

        def broken_stop(*, final_sweep: bool = True) -> list[Any]:
            raise RuntimeError("sweep failed")

        reaper.stop = broken_stop  # type: ignore[method-assign]
        pipeline = CopyPipeline(recording_sink, engine, reaper)

        with pytest.raises(RuntimeError, match="sweep failed"):
            pipeline.close()
        assert recording_sink.closed


class TestFromConfigFile:
    """Loading a pipeline from a YAML file."""

    def test_builds_pipeline(self, tmp_path: Path) -> None:
        config_file = tmp_path / "settings.yaml"
        config_file.write_text(
            "batch_size: 50\n"
            "table_name: events\n"
            "delimiter: '|'\n"
            "database:\n"
            "  url: postgresql://localhost/db\n"
        )

        pipeline = CopyPipeline.from_config_file(config_file)

        assert not pipeline.reaper.running
        pipeline.close()

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            CopyPipeline.from_config_file(tmp_path / "missing.yaml")
