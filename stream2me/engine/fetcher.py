"""Single-fragment HTTP fetching with present/absent/fatal classification."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

import httpx
import structlog

from .errors import FatalFetchError, ProtocolError, StoreError, TransportError
from .store import FragmentStore

_CONVERSION = re.compile(r"%(?:%|[-+ 0#]*\d*(?:\.\d+)?[a-zA-Z])")


def validate_template(template: str) -> str:
    """Ensure ``template`` holds exactly one integer placeholder and return it."""

    conversions = [c for c in _CONVERSION.findall(template) if c != "%%"]
    if len(conversions) != 1 or conversions[0][-1] not in "di":
        raise ValueError(
            f"filename template must contain exactly one integer placeholder such as %d: {template!r}"
        )
    return template


def fragment_url(base_url: str, template: str, index: int) -> str:
    return f"{base_url.rstrip('/')}/{template % index}"


class OutcomeKind(str, Enum):
    """How a single fetch ended."""

    PRESENT = "present"
    ABSENT = "absent"
    FATAL = "fatal"


@dataclass(slots=True, frozen=True)
class FetchOutcome:
    """Result of fetching one fragment index."""

    index: int
    kind: OutcomeKind
    byte_count: int = 0
    error: FatalFetchError | None = None

    @classmethod
    def present(cls, index: int, byte_count: int) -> "FetchOutcome":
        if byte_count <= 0:
            return cls.absent(index)
        return cls(index, OutcomeKind.PRESENT, byte_count=byte_count)

    @classmethod
    def absent(cls, index: int) -> "FetchOutcome":
        return cls(index, OutcomeKind.ABSENT)

    @classmethod
    def fatal(cls, index: int, error: FatalFetchError) -> "FetchOutcome":
        return cls(index, OutcomeKind.FATAL, error=error)

    @property
    def is_present(self) -> bool:
        return self.kind is OutcomeKind.PRESENT

    @property
    def is_fatal(self) -> bool:
        return self.kind is OutcomeKind.FATAL


class FragmentFetcher:
    """Fetch numbered fragments below ``base_url`` and persist present ones.

    One GET per call, no retries. The underlying ``httpx.Client`` is shared
    by every worker thread.
    """

    def __init__(
        self,
        base_url: str,
        filename_template: str,
        store: FragmentStore,
        *,
        timeout: float | None = 15.0,
        follow_redirects: bool = True,
        user_agent: str | None = None,
        max_connections: int = 16,
        transport: httpx.BaseTransport | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.base_url = base_url
        self.filename_template = validate_template(filename_template)
        self.store = store
        self.logger = logger or structlog.get_logger("stream2me.fetcher")
        self._client = httpx.Client(
            follow_redirects=follow_redirects,
            timeout=timeout,
            headers={"User-Agent": user_agent} if user_agent else None,
            limits=httpx.Limits(max_connections=max_connections),
            transport=transport,
        )

    def __enter__(self) -> "FragmentFetcher":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def url_for(self, index: int) -> str:
        return fragment_url(self.base_url, self.filename_template, index)

    def fetch(self, index: int) -> FetchOutcome:
        url = self.url_for(index)
        try:
            response = self._client.get(url)
        except httpx.RequestError as exc:
            self.logger.warning("fetch_transport_error", index=index, url=url, error=str(exc))
            error = TransportError(url, str(exc) or type(exc).__name__)
            error.__cause__ = exc
            return FetchOutcome.fatal(index, error)

        if response.status_code == httpx.codes.NOT_FOUND:
            self.logger.debug("fetch_absent", index=index, url=url)
            return FetchOutcome.absent(index)
        if response.status_code != httpx.codes.OK:
            self.logger.warning("fetch_bad_status", index=index, url=url, status=response.status_code)
            return FetchOutcome.fatal(index, ProtocolError(url, response.status_code))

        body = response.content
        if not body:
            self.logger.debug("fetch_empty_body", index=index, url=url)
            return FetchOutcome.absent(index)
        try:
            self.store.put(index, body)
        except StoreError as exc:
            self.logger.error("fragment_store_failed", index=index, error=str(exc))
            return FetchOutcome.fatal(index, exc)
        return FetchOutcome.present(index, len(body))


__all__ = [
    "FetchOutcome",
    "FragmentFetcher",
    "OutcomeKind",
    "fragment_url",
    "validate_template",
]
