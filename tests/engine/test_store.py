from __future__ import annotations

import pytest

from stream2me.engine import DirectoryFragmentStore, DuplicateFragmentError, MemoryFragmentStore, StoreError


def test_directory_store_writes_one_file_per_fragment(tmp_path) -> None:
    store = DirectoryFragmentStore(tmp_path / "frags", "chunk-%d.ts")
    store.put(0, b"abc")
    store.put(12, b"xyz")
    assert (tmp_path / "frags" / "chunk-0.ts").read_bytes() == b"abc"
    assert store.get(12) == b"xyz"
    assert 12 in store
    assert 1 not in store


def test_directory_store_is_write_once(tmp_path) -> None:
    store = DirectoryFragmentStore(tmp_path)
    store.put(3, b"first")
    with pytest.raises(DuplicateFragmentError):
        store.put(3, b"second")
    assert store.get(3) == b"first"


def test_directory_store_missing_fragment_raises(tmp_path) -> None:
    store = DirectoryFragmentStore(tmp_path)
    with pytest.raises(StoreError):
        store.get(0)


def test_memory_store_roundtrip_and_duplicates() -> None:
    store = MemoryFragmentStore()
    store.put(2, b"b")
    store.put(0, b"a")
    assert store.indices() == [0, 2]
    assert len(store) == 2
    with pytest.raises(DuplicateFragmentError):
        store.put(0, b"again")
    with pytest.raises(StoreError):
        store.get(1)
