# src/copysink/engine/group_store.py
"""In-memory store of groups pending release.

The store owns every live group. A group leaves the store exactly once,
either through remove_if_present() or through the append that completes it,
and from then on belongs to whoever detached it. All mutation happens
under one lock that is never held across a sink write, so slow bulk loads
do not stall appends.
"""

from __future__ import annotations

import itertools
import threading
from collections.abc import Hashable, Iterator
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, NamedTuple

from copysink.contracts.data import Batch, Record
from copysink.engine.clock import DEFAULT_CLOCK

if TYPE_CHECKING:
    from copysink.contracts.enums import ReleaseReason
    from copysink.engine.clock import Clock
    from copysink.engine.strategies import ReleaseStrategy


@dataclass
class Group:
    """Records accumulated for one correlation key.

    Mutated only by GroupStore.append while the store owns it.
    """

    key: Hashable
    generation: int
    created_at: float
    last_touched_at: float
    records: list[Record] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.records)

    def to_batch(self, reason: ReleaseReason) -> Batch:
        """Freeze the group into the batch handed to the sink."""
        return Batch(
            key=self.key,
            records=tuple(self.records),
            reason=reason,
            created_at=self.created_at,
        )


class AppendResult(NamedTuple):
    """Outcome of GroupStore.append.

    released is the detached group when the append completed it.
    """

    count: int
    created: bool
    released: Group | None = None


class IdleGroup(NamedTuple):
    """Snapshot of an idle group, as yielded by GroupStore.idle_groups."""

    key: Hashable
    generation: int
    size: int
    idle_seconds: float


class GroupStore:
    """Thread-safe mapping of correlation key to pending group.

    Invariant: a key maps to at most one live group, and a detached group is
    never visible to a second caller.

    Example:
        store = GroupStore()
        appended = store.append("events", record, release=CountReleaseStrategy(100))
        if appended.released is not None:
            sink.write(appended.released.to_batch(ReleaseReason.COUNT))
    """

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock = clock if clock is not None else DEFAULT_CLOCK
        self._lock = threading.Lock()
        self._groups: dict[Hashable, Group] = {}
        self._generations = itertools.count(1)

    def append(
        self,
        key: Hashable,
        record: Record,
        *,
        release: ReleaseStrategy | None = None,
    ) -> AppendResult:
        """Append a record to the group for key, creating the group if needed.

        When ``release`` is given it is evaluated under the store lock right
        after the append. If it says the group is complete, the group is
        detached in the same critical section, so a released group holds
        exactly the records that completed it and no concurrent append can
        slip in between the decision and the removal.

        Args:
            key: Correlation key
            record: Record to append (kept in arrival order)
            release: Optional release strategy to apply atomically

        Returns:
            AppendResult with the group's record count after the append,
            whether this call created the group, and the detached group if
            the append completed it.
        """
        with self._lock:
            now = self._clock.monotonic()
            group = self._groups.get(key)
            created = group is None
            if group is None:
                group = Group(
                    key=key,
                    generation=next(self._generations),
                    created_at=now,
                    last_touched_at=now,
                )
                self._groups[key] = group
            group.records.append(record)
            group.last_touched_at = now
            count = len(group.records)
            if release is not None and release(count):
                del self._groups[key]
                return AppendResult(count=count, created=created, released=group)
            return AppendResult(count=count, created=created)

    def remove_if_present(
        self,
        key: Hashable,
        generation: int | None = None,
    ) -> Group | None:
        """Atomically detach and return the live group for key.

        Args:
            key: Correlation key
            generation: If given, only detach when the live group is still the
                one observed by the caller. Records appended to that group
                since the observation are included.

        Returns:
            The detached group, or None if there is no matching live group.
        """
        with self._lock:
            group = self._groups.get(key)
            if group is None:
                return None
            if generation is not None and group.generation != generation:
                return None
            del self._groups[key]
            return group

    def idle_groups(self, older_than_seconds: float) -> Iterator[IdleGroup]:
        """Yield groups untouched for at least older_than_seconds.

        The snapshot is taken when iteration starts; nothing is removed.
        """
        with self._lock:
            now = self._clock.monotonic()
            snapshot = [
                IdleGroup(
                    key=group.key,
                    generation=group.generation,
                    size=len(group.records),
                    idle_seconds=now - group.last_touched_at,
                )
                for group in self._groups.values()
                if now - group.last_touched_at >= older_than_seconds
            ]
        yield from snapshot

    def keys(self) -> list[Hashable]:
        """Snapshot of the keys with a live group."""
        with self._lock:
            return list(self._groups)

    def size_of(self, key: Hashable) -> int:
        """Number of records pending for key (0 if no live group)."""
        with self._lock:
            group = self._groups.get(key)
            return 0 if group is None else len(group.records)

    def __len__(self) -> int:
        with self._lock:
            return len(self._groups)
