"""Concurrent retrieval of fragment ranges already vouched for by a probe."""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from threading import Event, Lock
from typing import Callable, Iterator

import structlog

from .errors import ConsistencyError
from .fetcher import FetchOutcome

FetchFn = Callable[[int], FetchOutcome]


@dataclass(slots=True, frozen=True)
class IndexRange:
    """Half-open span ``[start, stop)`` of fragment indices."""

    start: int
    stop: int

    def __post_init__(self) -> None:
        if self.start < 0 or self.stop < self.start:
            raise ValueError(f"invalid index range [{self.start}, {self.stop})")

    def __iter__(self) -> Iterator[int]:
        return iter(range(self.start, self.stop))

    def __len__(self) -> int:
        return self.stop - self.start

    def __str__(self) -> str:
        return f"[{self.start}, {self.stop})"


class CancellationToken:
    """Set-once signal carrying the first fatal error of a run."""

    def __init__(self) -> None:
        self._event = Event()
        self._lock = Lock()
        self._error: BaseException | None = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def error(self) -> BaseException | None:
        return self._error

    def cancel(self, error: BaseException) -> bool:
        """Record ``error`` and set the signal. Returns False if already set."""

        with self._lock:
            if self._event.is_set():
                return False
            self._error = error
            self._event.set()
            return True

    def raise_if_cancelled(self) -> None:
        if self._event.is_set() and self._error is not None:
            raise self._error


class ConcurrentRangeDispatcher:
    """Run one background job per range; each job fetches its indices in order."""

    def __init__(
        self,
        fetch: FetchFn,
        token: CancellationToken,
        *,
        max_workers: int = 16,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self._fetch = fetch
        self.token = token
        self.logger = logger or structlog.get_logger("stream2me.dispatcher")
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="stream2me-range")
        self._futures: list[Future] = []
        self._lock = Lock()

    def dispatch(self, span: IndexRange) -> Future | None:
        if not len(span):
            return None
        future = self._executor.submit(self._run_range, span)
        with self._lock:
            self._futures.append(future)
        self.logger.debug("range_dispatched", start=span.start, stop=span.stop)
        return future

    @property
    def pending(self) -> int:
        with self._lock:
            return sum(1 for future in self._futures if not future.done())

    def join(self) -> None:
        """Block until every dispatched job has finished."""

        with self._lock:
            futures = list(self._futures)
        wait(futures)
        self._executor.shutdown(wait=True)

    def _run_range(self, span: IndexRange) -> int:
        fetched = 0
        try:
            for index in span:
                if self.token.cancelled:
                    self.logger.debug("range_abandoned", start=span.start, stop=span.stop, at=index)
                    return fetched
                outcome = self._fetch(index)
                if outcome.is_fatal:
                    self._fail(outcome.error, span, index)
                    return fetched
                if not outcome.is_present:
                    self.logger.error(
                        "consistency_violation", index=index, start=span.start, stop=span.stop
                    )
                    self._fail(ConsistencyError(index, span.start, span.stop), span, index)
                    return fetched
                fetched += 1
        except Exception as exc:  # noqa: BLE001
            self._fail(exc, span, None)
            return fetched
        self.logger.debug("range_complete", start=span.start, stop=span.stop)
        return fetched

    def _fail(self, error: BaseException, span: IndexRange, index: int | None) -> None:
        first = self.token.cancel(error)
        self.logger.warning(
            "range_failed",
            start=span.start,
            stop=span.stop,
            index=index,
            error=str(error),
            first_error=first,
        )


__all__ = ["CancellationToken", "ConcurrentRangeDispatcher", "FetchFn", "IndexRange"]
