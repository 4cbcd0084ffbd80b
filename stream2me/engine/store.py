"""Write-once fragment storage keyed by fragment index."""

from __future__ import annotations

from pathlib import Path
from threading import Lock
from typing import Dict, Protocol, Set

from .errors import DuplicateFragmentError, StoreError


class FragmentStore(Protocol):
    """Anything able to persist and hand back fragment bytes by index."""

    def put(self, index: int, data: bytes) -> None: ...

    def get(self, index: int) -> bytes: ...


class DirectoryFragmentStore:
    """Store each fragment as its own file inside a directory.

    File names are rendered from the same template used for the remote
    fragments, so ``%d.ts`` yields ``0.ts``, ``1.ts`` and so on.
    """

    def __init__(self, root: Path, filename_template: str = "%d.ts") -> None:
        self.root = Path(root)
        self.filename_template = filename_template
        self._written: Set[int] = set()
        self._lock = Lock()
        self.root.mkdir(parents=True, exist_ok=True)

    def path_for(self, index: int) -> Path:
        return self.root / (self.filename_template % index)

    def put(self, index: int, data: bytes) -> None:
        with self._lock:
            if index in self._written:
                raise DuplicateFragmentError(index)
            self._written.add(index)
        try:
            self.path_for(index).write_bytes(data)
        except OSError as exc:
            raise StoreError(f"cannot write fragment {index}: {exc}") from exc

    def get(self, index: int) -> bytes:
        try:
            return self.path_for(index).read_bytes()
        except OSError as exc:
            raise StoreError(f"cannot read fragment {index}: {exc}") from exc

    def __contains__(self, index: int) -> bool:
        with self._lock:
            return index in self._written


class MemoryFragmentStore:
    """Keep fragments in a dict; handy for tests and small streams."""

    def __init__(self) -> None:
        self._fragments: Dict[int, bytes] = {}
        self._lock = Lock()

    def put(self, index: int, data: bytes) -> None:
        with self._lock:
            if index in self._fragments:
                raise DuplicateFragmentError(index)
            self._fragments[index] = bytes(data)

    def get(self, index: int) -> bytes:
        with self._lock:
            try:
                return self._fragments[index]
            except KeyError:
                raise StoreError(f"fragment {index} not stored") from None

    def __contains__(self, index: int) -> bool:
        with self._lock:
            return index in self._fragments

    def __len__(self) -> int:
        with self._lock:
            return len(self._fragments)

    def indices(self) -> list[int]:
        with self._lock:
            return sorted(self._fragments)


__all__ = ["DirectoryFragmentStore", "FragmentStore", "MemoryFragmentStore"]
