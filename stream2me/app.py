"""Typer CLI entrypoint for stream2me."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Optional

import typer
import yaml
from rich.console import Console

from .assemble import concatenate, fragment_workspace
from .config import ConfigRepository, DownloadSettings
from .engine import DirectoryFragmentStore, FragmentStore, Stream2MeError
from .logging_conf import available_logs, configure_logging, tail_log
from .orchestrator import Engine
from .ui import ProgressReporter

app = typer.Typer(
    help="Download a numbered fragment stream and merge it into one file.",
    no_args_is_help=True,
    rich_markup_mode=None,
)
config_app = typer.Typer(name="config", help="Settings file commands.", no_args_is_help=True)
log_app = typer.Typer(name="log", help="Log viewing commands.", no_args_is_help=True)
app.add_typer(config_app)
app.add_typer(log_app)

console = Console()


def build_engine(store: FragmentStore, settings: DownloadSettings) -> Engine:
    return Engine(store, settings)


@app.command()
def download(
    output: Annotated[Path, typer.Argument(help="File receiving the merged fragments.")],
    base_url: Annotated[str, typer.Argument(help="URL the fragment file names are appended to.")],
    template: Annotated[Optional[str], typer.Option("--template", "-t", help="Fragment file name, e.g. %d.ts")] = None,
    step: Annotated[Optional[int], typer.Option("--step", min=1, help="Initial probe step.")] = None,
    workers: Annotated[Optional[int], typer.Option("--workers", "-w", min=1, help="Concurrent range jobs.")] = None,
    timeout: Annotated[Optional[float], typer.Option("--timeout", help="Per-request timeout in seconds.")] = None,
    keep_fragments: Annotated[bool, typer.Option("--keep-fragments", help="Keep the fragment directory.")] = False,
    overwrite: Annotated[bool, typer.Option("--overwrite", help="Replace an existing output file.")] = False,
    no_progress: Annotated[bool, typer.Option("--no-progress", help="Disable the progress bar.")] = False,
    settings_file: Annotated[Optional[Path], typer.Option("--config", "-c", help="Settings file to load.")] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Log debug output to the console.")] = False,
) -> None:
    """Fetch every fragment below BASE_URL and write them to OUTPUT."""

    logger = configure_logging(verbose).bind(component="cli")
    repository = ConfigRepository()
    try:
        settings = repository.load_settings(settings_file)
    except (FileNotFoundError, ValueError) as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1) from exc
    overrides = {
        "filename_template": template,
        "initial_step": step,
        "max_workers": workers,
        "timeout": timeout,
    }
    update = {key: value for key, value in overrides.items() if value is not None}
    if keep_fragments:
        update["keep_fragments"] = True
    if no_progress:
        update["enable_progress_bar"] = False
    try:
        settings = DownloadSettings.model_validate({**settings.model_dump(), **update})
    except ValueError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1) from exc

    if output.exists() and not overwrite:
        console.print(f"[red]Output file already exists: {output}[/red]")
        raise typer.Exit(code=1)

    with fragment_workspace(keep=settings.keep_fragments) as workdir:
        store = DirectoryFragmentStore(workdir, settings.filename_template)
        engine = build_engine(store, settings)
        reporter = ProgressReporter(enabled=settings.enable_progress_bar, label=output.name)
        try:
            with reporter:
                count = engine.run(base_url, settings.filename_template, reporter)
            console.print(f"writing {output}...")
            size = concatenate(store, count, output, overwrite=overwrite)
        except (Stream2MeError, OSError) as exc:
            logger.error("download_failed", base_url=base_url, error=str(exc))
            console.print(f"[red]{exc}[/red]")
            if settings.keep_fragments:
                console.print(f"fragments kept in {workdir}")
            raise typer.Exit(code=1) from exc
        if settings.keep_fragments:
            console.print(f"fragments kept in {workdir}")

    logger.info("download_complete", base_url=base_url, fragments=count, bytes=size)
    console.print(f"[green]{count} fragments, {size} bytes → {output}[/green]")


@config_app.command("show")
def config_show() -> None:
    """Print the effective settings."""

    settings = ConfigRepository().load_settings()
    console.print(yaml.safe_dump(settings.model_dump(mode="json"), sort_keys=False).rstrip())


@config_app.command("init")
def config_init(
    force: Annotated[bool, typer.Option("--force", help="Overwrite an existing settings file.")] = False,
) -> None:
    """Write a settings file populated with defaults."""

    repository = ConfigRepository()
    path = repository.locator.settings_path()
    if path.exists() and not force:
        console.print(f"[yellow]Settings already exist: {path}[/yellow]")
        raise typer.Exit(code=1)
    repository.save_settings(DownloadSettings())
    console.print(f"[green]Settings written to {path}[/green]")


@log_app.command("tail")
def log_tail(
    name: Annotated[str, typer.Argument(help="Log name, e.g. stream2me or error.")] = "stream2me",
    lines: Annotated[int, typer.Option("--lines", "-n", min=1)] = 50,
) -> None:
    """Show the last lines of a log file."""

    logs = {path.stem: path for path in available_logs()}
    path = logs.get(name)
    if path is None:
        console.print(f"[yellow]No log named {name!r}; available: {', '.join(sorted(logs)) or 'none'}[/yellow]")
        raise typer.Exit(code=1)
    for line in tail_log(path, lines):
        console.print(line.rstrip("\n"), markup=False, highlight=False)


def main() -> None:
    app()


__all__ = ["app", "build_engine", "main"]
