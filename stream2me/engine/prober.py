"""Adaptive discovery of the first missing fragment index."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

import structlog

from .dispatcher import CancellationToken, FetchFn, IndexRange

DEFAULT_INITIAL_STEP = 100


@dataclass(slots=True)
class ProbeState:
    """Search position: everything below ``i`` is vouched for."""

    i: int = 0
    step: int = DEFAULT_INITIAL_STEP
    located: bool = False
    boundary: int | None = None


class BoundaryProber:
    """Find the fragment count with a stepping probe that halves on a miss.

    Index ``i + step - 1`` is probed. A hit vouches for the whole window, hands
    ``[i, i + step - 1)`` to ``dispatch`` and moves on with the same step. A
    miss halves the step and retries from the same ``i`` until a step of two,
    where ``i`` itself decides the boundary.
    """

    def __init__(
        self,
        fetch: FetchFn,
        dispatch: Callable[[IndexRange], object],
        token: CancellationToken,
        *,
        initial_step: int = DEFAULT_INITIAL_STEP,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        if initial_step < 1:
            raise ValueError("initial_step must be >= 1")
        self._fetch = fetch
        self._dispatch = dispatch
        self.token = token
        self.initial_step = initial_step
        self.logger = logger or structlog.get_logger("stream2me.prober")
        self.state = ProbeState(step=initial_step)
        self.probes: list[int] = []

    def locate(self) -> int:
        """Return the number of contiguous fragments starting at index 0.

        Raises the first fatal error seen by this prober or signalled through
        the cancellation token.
        """

        self.state = ProbeState(step=self.initial_step)
        self.probes = []
        state = self.state
        while True:
            index = state.i + state.step - 1
            if self._probe(index):
                self._dispatch(IndexRange(state.i, index))
                state.i += state.step
                continue
            if state.step > 2:
                state.step //= 2
                self.logger.debug("probe_step_halved", i=state.i, step=state.step)
                continue
            if state.step == 2 and self._probe(state.i):
                return self._located(state.i + 1)
            return self._located(state.i)

    def _probe(self, index: int) -> bool:
        self.token.raise_if_cancelled()
        self.probes.append(index)
        outcome = self._fetch(index)
        if outcome.is_fatal:
            self.token.cancel(outcome.error)
            self.logger.warning("probe_failed", index=index, error=str(outcome.error))
            raise outcome.error
        self.logger.debug("probe", index=index, present=outcome.is_present, step=self.state.step)
        return outcome.is_present

    def _located(self, boundary: int) -> int:
        self.state.located = True
        self.state.boundary = boundary
        self.logger.info("boundary_located", boundary=boundary, probes=len(self.probes))
        return boundary


__all__ = ["BoundaryProber", "DEFAULT_INITIAL_STEP", "ProbeState"]
