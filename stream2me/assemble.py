"""Fragment workspace lifecycle and final concatenation."""

from __future__ import annotations

import shutil
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

import structlog

from .engine import FragmentStore, StoreError

logger = structlog.get_logger("stream2me.assemble")


@contextmanager
def fragment_workspace(keep: bool = False, parent: Path | None = None) -> Iterator[Path]:
    """Yield a fresh temporary directory for fragments; remove it afterwards unless ``keep``."""

    workdir = Path(tempfile.mkdtemp(prefix="stream2me", dir=parent))
    logger.debug("workspace_created", path=str(workdir))
    try:
        yield workdir
    finally:
        if keep:
            logger.info("workspace_kept", path=str(workdir))
        else:
            shutil.rmtree(workdir, ignore_errors=True)


def concatenate(store: FragmentStore, count: int, output: Path, overwrite: bool = False) -> int:
    """Write fragments ``0..count-1`` to ``output`` in order and return bytes written."""

    output = Path(output)
    if output.exists() and not overwrite:
        raise FileExistsError(f"output file already exists: {output}")
    output.parent.mkdir(parents=True, exist_ok=True)
    written = 0
    try:
        with output.open("wb") as sink:
            for index in range(count):
                chunk = store.get(index)
                sink.write(chunk)
                written += len(chunk)
    except OSError as exc:
        raise StoreError(f"cannot write {output}: {exc}") from exc
    logger.info("output_written", path=str(output), fragments=count, bytes=written)
    return written


__all__ = ["concatenate", "fragment_workspace"]
