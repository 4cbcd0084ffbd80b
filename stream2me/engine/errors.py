"""Error taxonomy for fragment discovery and retrieval."""

from __future__ import annotations


class Stream2MeError(RuntimeError):
    """Base class for every error raised by stream2me."""


class FatalFetchError(Stream2MeError):
    """A condition that aborts the whole run."""


class ProtocolError(FatalFetchError):
    """The server answered with a status other than 200 or 404."""

    def __init__(self, url: str, status_code: int) -> None:
        super().__init__(f"unexpected http status {status_code} for {url}")
        self.url = url
        self.status_code = status_code


class TransportError(FatalFetchError):
    """The request never produced a response (connect, DNS, timeout...)."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"transport failure for {url}: {reason}")
        self.url = url
        self.reason = reason


class ConsistencyError(FatalFetchError):
    """A fragment inside a range certified present turned out to be absent."""

    def __init__(self, index: int, start: int, stop: int) -> None:
        super().__init__(
            f"fragment {index} missing inside range [{start}, {stop}) certified present by probe"
        )
        self.index = index
        self.start = start
        self.stop = stop


class StoreError(FatalFetchError):
    """A fragment could not be written to or read from local storage."""


class DuplicateFragmentError(StoreError):
    """A fragment index was stored or recorded more than once."""

    def __init__(self, index: int) -> None:
        super().__init__(f"fragment {index} already stored")
        self.index = index


__all__ = [
    "ConsistencyError",
    "DuplicateFragmentError",
    "FatalFetchError",
    "ProtocolError",
    "StoreError",
    "Stream2MeError",
    "TransportError",
]
