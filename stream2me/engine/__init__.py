"""Engine components: fetch → probe → dispatch → track."""

from .dispatcher import CancellationToken, ConcurrentRangeDispatcher, IndexRange
from .errors import (
    ConsistencyError,
    DuplicateFragmentError,
    FatalFetchError,
    ProtocolError,
    StoreError,
    Stream2MeError,
    TransportError,
)
from .fetcher import FetchOutcome, FragmentFetcher, OutcomeKind, fragment_url, validate_template
from .progress import NullProgressSink, ProgressSink, ProgressState, ProgressTracker
from .prober import DEFAULT_INITIAL_STEP, BoundaryProber, ProbeState
from .store import DirectoryFragmentStore, FragmentStore, MemoryFragmentStore

__all__ = [
    "BoundaryProber",
    "CancellationToken",
    "ConcurrentRangeDispatcher",
    "ConsistencyError",
    "DEFAULT_INITIAL_STEP",
    "DirectoryFragmentStore",
    "DuplicateFragmentError",
    "FatalFetchError",
    "FetchOutcome",
    "FragmentFetcher",
    "FragmentStore",
    "IndexRange",
    "MemoryFragmentStore",
    "NullProgressSink",
    "OutcomeKind",
    "ProbeState",
    "ProgressSink",
    "ProgressState",
    "ProgressTracker",
    "ProtocolError",
    "StoreError",
    "Stream2MeError",
    "TransportError",
    "fragment_url",
    "validate_template",
]
