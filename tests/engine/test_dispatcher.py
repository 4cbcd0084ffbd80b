from __future__ import annotations

from threading import Lock

import pytest

from stream2me.engine import (
    CancellationToken,
    ConcurrentRangeDispatcher,
    ConsistencyError,
    FetchOutcome,
    IndexRange,
    ProtocolError,
)


def test_index_range_behaves_like_half_open_span() -> None:
    span = IndexRange(3, 7)
    assert list(span) == [3, 4, 5, 6]
    assert len(span) == 4
    assert str(span) == "[3, 7)"
    assert len(IndexRange(5, 5)) == 0
    with pytest.raises(ValueError):
        IndexRange(5, 4)
    with pytest.raises(ValueError):
        IndexRange(-1, 4)


def test_cancellation_token_keeps_first_error() -> None:
    token = CancellationToken()
    first = ProtocolError("http://example.test/1.ts", 500)
    assert token.cancel(first) is True
    assert token.cancel(ProtocolError("http://example.test/2.ts", 502)) is False
    assert token.error is first
    with pytest.raises(ProtocolError) as excinfo:
        token.raise_if_cancelled()
    assert excinfo.value is first


def test_dispatcher_fetches_every_index_of_each_range(sequence_fetch) -> None:
    calls: list[int] = []
    lock = Lock()
    fetch = sequence_fetch(1000)

    def recording_fetch(index: int) -> FetchOutcome:
        with lock:
            calls.append(index)
        return fetch(index)

    token = CancellationToken()
    dispatcher = ConcurrentRangeDispatcher(recording_fetch, token, max_workers=4)
    for start in range(0, 500, 50):
        dispatcher.dispatch(IndexRange(start, start + 49))
    dispatcher.join()

    assert not token.cancelled
    expected = [i for start in range(0, 500, 50) for i in range(start, start + 49)]
    assert sorted(calls) == expected
    assert dispatcher.pending == 0


def test_dispatcher_skips_empty_range(sequence_fetch) -> None:
    dispatcher = ConcurrentRangeDispatcher(sequence_fetch(10), CancellationToken())
    assert dispatcher.dispatch(IndexRange(4, 4)) is None
    dispatcher.join()


def test_dispatcher_flags_absent_index_as_consistency_violation(sequence_fetch) -> None:
    token = CancellationToken()
    fetch = sequence_fetch(1000)

    def gappy_fetch(index: int) -> FetchOutcome:
        if index == 17:
            return FetchOutcome.absent(index)
        return fetch(index)

    dispatcher = ConcurrentRangeDispatcher(gappy_fetch, token, max_workers=1)
    future = dispatcher.dispatch(IndexRange(10, 30))
    dispatcher.join()

    assert future.result() == 7
    assert isinstance(token.error, ConsistencyError)
    assert token.error.index == 17
    assert (token.error.start, token.error.stop) == (10, 30)


def test_dispatcher_fatal_outcome_cancels_other_ranges(sequence_fetch) -> None:
    token = CancellationToken()
    calls: list[int] = []
    dispatcher = ConcurrentRangeDispatcher(
        sequence_fetch(1000, fatal_at=5, calls=calls), token, max_workers=1
    )
    dispatcher.dispatch(IndexRange(0, 10))
    dispatcher.dispatch(IndexRange(10, 20))
    dispatcher.join()

    assert isinstance(token.error, ProtocolError)
    assert calls == [0, 1, 2, 3, 4, 5]


def test_dispatcher_does_nothing_after_cancellation(sequence_fetch) -> None:
    token = CancellationToken()
    token.cancel(ProtocolError("http://example.test/0.ts", 500))
    calls: list[int] = []
    dispatcher = ConcurrentRangeDispatcher(sequence_fetch(100, calls=calls), token)
    future = dispatcher.dispatch(IndexRange(0, 50))
    dispatcher.join()
    assert future.result() == 0
    assert calls == []


def test_dispatcher_turns_unexpected_exception_into_cancellation() -> None:
    token = CancellationToken()

    def broken_fetch(index: int) -> FetchOutcome:
        raise KeyError(index)

    dispatcher = ConcurrentRangeDispatcher(broken_fetch, token)
    dispatcher.dispatch(IndexRange(0, 3))
    dispatcher.join()
    assert isinstance(token.error, KeyError)
