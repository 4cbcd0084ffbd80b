"""Shared fixtures: isolated home directory and fake fragment servers."""

from __future__ import annotations

import time
from pathlib import PurePosixPath
from typing import Callable, Iterable

import httpx
import pytest

from stream2me.engine import FetchOutcome, MemoryFragmentStore, ProtocolError

BASE_URL = "http://cdn.example.test/live/stream"


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch: pytest.MonkeyPatch):
    home = tmp_path / "home"
    monkeypatch.setenv("STREAM2ME_HOME", str(home))
    return home


def fragment_body(index: int) -> bytes:
    return f"<fragment {index}>".encode()


def index_from_request(request: httpx.Request) -> int:
    return int(PurePosixPath(request.url.path).stem)


class FragmentServer:
    """Serve ``length`` fragments and count requests per index."""

    def __init__(
        self,
        length: int,
        *,
        missing: Iterable[int] = (),
        errors: dict[int, int] | None = None,
        delay: float = 0.0,
    ) -> None:
        self.length = length
        self.missing = set(missing)
        self.errors = dict(errors or {})
        self.delay = delay
        self.requests: list[int] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        index = index_from_request(request)
        self.requests.append(index)
        if self.delay:
            time.sleep(self.delay)
        if index in self.errors:
            return httpx.Response(self.errors[index], request=request)
        if index >= self.length or index in self.missing:
            return httpx.Response(404, request=request)
        return httpx.Response(200, request=request, content=fragment_body(index))

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


@pytest.fixture
def fragment_server() -> Callable[..., FragmentServer]:
    return FragmentServer


@pytest.fixture
def memory_store() -> MemoryFragmentStore:
    return MemoryFragmentStore()


def _sequence_fetch(length: int, fatal_at: int | None = None, calls: list[int] | None = None):
    """Fake ``fetch`` callable: indices below ``length`` are present."""

    def fetch(index: int) -> FetchOutcome:
        if calls is not None:
            calls.append(index)
        if fatal_at is not None and index == fatal_at:
            return FetchOutcome.fatal(index, ProtocolError(f"{BASE_URL}/{index}.ts", 503))
        if index < length:
            return FetchOutcome.present(index, 1)
        return FetchOutcome.absent(index)

    return fetch


@pytest.fixture
def sequence_fetch():
    return _sequence_fetch


@pytest.fixture
def base_url() -> str:
    return BASE_URL
