"""Discover, fetch and merge numbered fragment streams over HTTP."""

from .engine import FragmentFetcher, ProgressTracker, Stream2MeError
from .orchestrator import Engine, EngineState

__all__ = ["Engine", "EngineState", "FragmentFetcher", "ProgressTracker", "Stream2MeError"]

__version__ = "0.1.0"
