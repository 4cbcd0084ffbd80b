"""Thread-safe bookkeeping of retrieved fragments."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from threading import Lock
from typing import Protocol, Set

from .errors import DuplicateFragmentError


@dataclass(slots=True, frozen=True)
class ProgressState:
    """Immutable snapshot of tracker state handed to progress sinks."""

    present: frozenset[int] = field(default_factory=frozenset)
    max_index: int = 0
    count: int = 0
    total_bytes: int = 0
    started_at: float = 0.0

    @property
    def fragments(self) -> int:
        return len(self.present)

    @property
    def percentage(self) -> float:
        # Heuristic: the true length is unknown until the boundary is found.
        return min(100.0, len(self.present) / max(self.max_index, 1) * 100)

    @property
    def elapsed(self) -> float:
        return max(0.0, time.monotonic() - self.started_at)

    def covers(self, start: int, stop: int) -> bool:
        """Return True when every index in ``[start, stop)`` was retrieved."""

        return all(index in self.present for index in range(start, stop))


class ProgressSink(Protocol):
    def on_progress(self, state: ProgressState) -> None: ...


class NullProgressSink:
    """Discard every snapshot."""

    def on_progress(self, state: ProgressState) -> None:
        return


class ProgressTracker:
    """Record present fragments and notify a sink after each one."""

    def __init__(self, sink: ProgressSink | None = None) -> None:
        self.sink: ProgressSink = sink or NullProgressSink()
        self._present: Set[int] = set()
        self._max_index = 0
        self._count = 0
        self._bytes = 0
        self._started_at = time.monotonic()
        self._lock = Lock()

    def record_present(self, index: int, byte_count: int) -> ProgressState:
        with self._lock:
            if index in self._present:
                raise DuplicateFragmentError(index)
            self._present.add(index)
            if index > self._max_index:
                self._max_index = index
            self._count += 1
            self._bytes += byte_count
            state = self._snapshot_locked()
            # Sink calls are serialized by the tracker lock.
            self.sink.on_progress(state)
            return state

    def percentage(self) -> float:
        with self._lock:
            return min(100.0, len(self._present) / max(self._max_index, 1) * 100)

    def snapshot(self) -> ProgressState:
        with self._lock:
            return self._snapshot_locked()

    def _snapshot_locked(self) -> ProgressState:
        return ProgressState(
            present=frozenset(self._present),
            max_index=self._max_index,
            count=self._count,
            total_bytes=self._bytes,
            started_at=self._started_at,
        )


__all__ = ["NullProgressSink", "ProgressSink", "ProgressState", "ProgressTracker"]
