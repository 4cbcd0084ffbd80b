from __future__ import annotations

import pytest

from stream2me.config import DownloadSettings
from stream2me.engine import ConsistencyError, MemoryFragmentStore, ProgressState, ProtocolError
from stream2me.orchestrator import Engine, EngineState


class CollectingSink:
    def __init__(self) -> None:
        self.states: list[ProgressState] = []

    def on_progress(self, state: ProgressState) -> None:
        self.states.append(state)


def _engine(server, store=None, **settings) -> Engine:
    return Engine(
        store if store is not None else MemoryFragmentStore(),
        DownloadSettings(**settings),
        transport=server.transport,
    )


def test_engine_retrieves_every_fragment(base_url, fragment_server) -> None:
    server = fragment_server(250, delay=0.001)
    store = MemoryFragmentStore()
    engine = _engine(server, store, max_workers=4)
    sink = CollectingSink()

    count = engine.run(base_url, "%d.ts", sink)

    assert count == 250
    assert engine.state is EngineState.DONE
    assert store.indices() == list(range(250))
    assert all(store.get(i) == f"<fragment {i}>".encode() for i in range(250))
    state = engine.tracker.snapshot()
    assert state.present == frozenset(range(250))
    assert state.count == 250
    assert len(sink.states) == 250
    assert sink.states[-1].fragments == 250
    # every present index requested exactly once
    present_requests = [i for i in server.requests if i < 250]
    assert sorted(present_requests) == list(range(250))


def test_engine_empty_stream_returns_zero(base_url, fragment_server) -> None:
    server = fragment_server(0)
    engine = _engine(server)
    assert engine.run(base_url) == 0
    assert engine.state is EngineState.DONE
    assert engine.tracker.snapshot().fragments == 0


@pytest.mark.parametrize("initial_step", [1, 2, 16, 100])
def test_engine_honours_initial_step(base_url, fragment_server, initial_step: int) -> None:
    server = fragment_server(137)
    engine = _engine(server, initial_step=initial_step, max_workers=3)
    assert engine.run(base_url) == 137
    assert engine.prober.initial_step == initial_step


def test_engine_is_idempotent_on_fixed_source(base_url, fragment_server) -> None:
    server = fragment_server(321)
    first = _engine(server).run(base_url)
    second = _engine(server).run(base_url)
    assert first == second == 321


def test_engine_surfaces_fatal_from_range_job(base_url, fragment_server) -> None:
    server = fragment_server(1000, errors={42: 500})
    store = MemoryFragmentStore()
    engine = _engine(server, store, max_workers=2)

    with pytest.raises(ProtocolError) as excinfo:
        engine.run(base_url)

    assert excinfo.value.status_code == 500
    assert excinfo.value.url.endswith("/42.ts")
    assert engine.state is EngineState.FAILED
    assert 42 not in store


def test_engine_surfaces_fatal_from_probe(base_url, fragment_server) -> None:
    server = fragment_server(1000, errors={199: 502})
    engine = _engine(server)
    with pytest.raises(ProtocolError) as excinfo:
        engine.run(base_url)
    assert excinfo.value.status_code == 502
    assert engine.prober.probes[-1] == 199
    assert engine.state is EngineState.FAILED


def test_engine_detects_gap_inside_certified_range(base_url, fragment_server) -> None:
    server = fragment_server(250, missing={57})
    engine = _engine(server)
    with pytest.raises(ConsistencyError) as excinfo:
        engine.run(base_url)
    assert excinfo.value.index == 57
    assert (excinfo.value.start, excinfo.value.stop) == (0, 99)


def test_engine_waits_for_slow_ranges_after_boundary(base_url, fragment_server) -> None:
    server = fragment_server(120, delay=0.005)
    store = MemoryFragmentStore()
    engine = _engine(server, store, max_workers=1)
    assert engine.run(base_url) == 120
    assert len(store) == 120
