"""Terminal progress rendering with Rich."""

from __future__ import annotations

from rich.console import Console
from rich.errors import LiveError
from rich.progress import (
    BarColumn,
    Progress,
    ProgressColumn,
    Task,
    TaskID,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
    SpinnerColumn,
    filesize,
)
from rich.text import Text

from ..engine import ProgressState


class FragmentRateColumn(ProgressColumn):
    """Render fragments per second, e.g. ``12.5 frag/s``."""

    def render(self, task: Task) -> Text:
        elapsed = task.elapsed
        fragments = task.fields.get("fragments", 0)
        if not elapsed or not fragments:
            return Text("", style="progress.percentage")
        speed = fragments / elapsed
        if speed < 1000:
            return Text(f"{speed:.1f} frag/s", style="progress.percentage")
        unit, suffix = filesize.pick_unit_and_suffix(int(speed), ["", "K", "M", "G", "T"], 1000)
        return Text(f"{speed / unit:.1f}{suffix} frag/s", style="progress.percentage")


class ProgressReporter:
    """Progress sink drawing a percentage bar, elapsed time and fragment count.

    The percentage is the tracker's estimate and only settles once the
    boundary is known. Falls back to silence outside a terminal.
    """

    def __init__(self, enabled: bool = True, label: str = "stream2me", console: Console | None = None) -> None:
        self.enabled = enabled
        self._label = label
        self._console = console
        self._progress: Progress | None = None
        self._task_id: TaskID | None = None
        self.last_state: ProgressState | None = None

    def start(self) -> None:
        if not self.enabled:
            return
        if self._console is None:
            self._console = Console()
        if not self._console.is_terminal:
            self.enabled = False
            return
        self._progress = Progress(
            SpinnerColumn(style="cyan"),
            TextColumn("[bold blue]{task.fields[label]}", justify="left"),
            BarColumn(bar_width=40, complete_style="green", finished_style="green"),
            TaskProgressColumn(),
            TimeElapsedColumn(),
            FragmentRateColumn(),
            TextColumn("[green]chunks: {task.fields[fragments]}", justify="right"),
            TextColumn("[dim]{task.fields[size]}", justify="right"),
            console=self._console,
            refresh_per_second=12,
            transient=False,
        )
        try:
            self._progress.__enter__()
        except LiveError:
            self.enabled = False
            self._progress = None
            return
        self._task_id = self._progress.add_task(
            "download", total=100, label=self._label, fragments=0, size=filesize.decimal(0)
        )

    def on_progress(self, state: ProgressState) -> None:
        self.last_state = state
        if self._progress is None or self._task_id is None:
            return
        self._progress.update(
            self._task_id,
            completed=state.percentage,
            fragments=state.fragments,
            size=filesize.decimal(state.total_bytes),
        )

    def close(self, completed: bool = False) -> None:
        if self._progress is None:
            return
        if completed and self._task_id is not None:
            self._progress.update(self._task_id, completed=100)
        self._progress.stop()
        self._progress.__exit__(None, None, None)
        self._progress = None
        self._task_id = None

    def __enter__(self) -> "ProgressReporter":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close(completed=exc_type is None)


__all__ = ["FragmentRateColumn", "ProgressReporter"]
