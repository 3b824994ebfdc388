"""Batching engine: GroupStore, strategies, AggregationEngine, IdleReaper."""

from copysink.engine.aggregator import AggregationEngine
from copysink.engine.clock import Clock, MockClock, SystemClock
from copysink.engine.group_store import AppendResult, Group, GroupStore, IdleGroup
from copysink.engine.pipeline import CopyPipeline
from copysink.engine.reaper import IdleReaper
from copysink.engine.strategies import (
    CorrelationStrategy,
    CountReleaseStrategy,
    PayloadTypeCorrelationStrategy,
    ReleaseStrategy,
    TagCorrelationStrategy,
    correlation_strategy_for,
)

__all__ = [
    "AggregationEngine",
    "AppendResult",
    "Clock",
    "CopyPipeline",
    "CorrelationStrategy",
    "CountReleaseStrategy",
    "Group",
    "GroupStore",
    "IdleGroup",
    "IdleReaper",
    "MockClock",
    "PayloadTypeCorrelationStrategy",
    "ReleaseStrategy",
    "SystemClock",
    "TagCorrelationStrategy",
    "correlation_strategy_for",
]
