"""Engine driving boundary discovery and concurrent range retrieval."""

from __future__ import annotations

from enum import Enum

import httpx
import structlog

from .config import DownloadSettings
from .engine import (
    BoundaryProber,
    CancellationToken,
    ConcurrentRangeDispatcher,
    FetchOutcome,
    FragmentFetcher,
    FragmentStore,
    IndexRange,
    ProgressSink,
    ProgressTracker,
    Stream2MeError,
)


class EngineState(str, Enum):
    IDLE = "idle"
    PROBING = "probing"
    DISPATCHING = "dispatching"
    DRAINING = "draining"
    DONE = "done"
    FAILED = "failed"


class Engine:
    """Discover how many fragments exist and fetch all of them.

    Probing runs on the calling thread; every confirmed range is fetched by a
    background job. ``run`` only returns once all jobs have finished.
    """

    def __init__(
        self,
        store: FragmentStore,
        settings: DownloadSettings | None = None,
        *,
        transport: httpx.BaseTransport | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.store = store
        self.settings = settings or DownloadSettings()
        self.transport = transport
        self.logger = logger or structlog.get_logger("stream2me.engine")
        self.state = EngineState.IDLE
        self.tracker: ProgressTracker | None = None
        self.prober: BoundaryProber | None = None

    def run(
        self,
        base_url: str,
        filename_template: str | None = None,
        progress_sink: ProgressSink | None = None,
    ) -> int:
        """Return the number of fragments retrieved; raise the first fatal error."""

        template = filename_template or self.settings.filename_template
        log = self.logger.bind(base_url=base_url, template=template)
        tracker = ProgressTracker(progress_sink)
        token = CancellationToken()
        self.tracker = tracker

        with FragmentFetcher(
            base_url,
            template,
            self.store,
            timeout=self.settings.timeout,
            follow_redirects=self.settings.follow_redirects,
            user_agent=self.settings.user_agent,
            max_connections=self.settings.max_workers + 1,
            transport=self.transport,
            logger=log,
        ) as fetcher:

            def fetch(index: int) -> FetchOutcome:
                outcome = fetcher.fetch(index)
                if outcome.is_present:
                    tracker.record_present(index, outcome.byte_count)
                return outcome

            dispatcher = ConcurrentRangeDispatcher(
                fetch, token, max_workers=self.settings.max_workers, logger=log
            )

            def dispatch(span: IndexRange) -> None:
                self._transition(EngineState.DISPATCHING, log)
                dispatcher.dispatch(span)
                self._transition(EngineState.PROBING, log)

            self.prober = BoundaryProber(
                fetch, dispatch, token, initial_step=self.settings.initial_step, logger=log
            )
            self._transition(EngineState.PROBING, log)
            count: int | None = None
            try:
                count = self.prober.locate()
            except Exception as exc:  # noqa: BLE001
                token.cancel(exc)
            except BaseException:
                token.cancel(Stream2MeError("run interrupted"))
                raise
            finally:
                self._transition(EngineState.DRAINING, log)
                dispatcher.join()

        if token.cancelled:
            self._transition(EngineState.FAILED, log)
            log.error("run_failed", error=str(token.error), fragments=tracker.snapshot().fragments)
            raise token.error
        self._transition(EngineState.DONE, log)
        log.info("run_complete", fragments=count, probes=len(self.prober.probes))
        return count

    def _transition(self, state: EngineState, log: structlog.BoundLogger) -> None:
        if state is self.state:
            return
        log.debug("engine_state", previous=self.state.value, current=state.value)
        self.state = state


__all__ = ["Engine", "EngineState"]
