"""Timing Butler CLI entry point.

``timingbutler call`` times one subtitle line against the video's keyframes
and saves the script if the line changed.  ``timingbutler config`` shows and
edits the layered (project over local) configuration.
"""

import logging
from fractions import Fraction
from functools import partial
from pathlib import Path
from typing import Annotated, Optional

import typer
from pysubs2.time import ms_to_str
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from timingbutler.butler import call_butler
from timingbutler.config.resolver import resolve_config
from timingbutler.config.schema import CONFIG_KEYS, DEFAULTS, LABELS
from timingbutler.config.store import ConfigScope, open_local_store, open_project_store, project_config_path
from timingbutler.errors import ButlerError
from timingbutler.ingestion.subtitles import load_document
from timingbutler.ingestion.video import load_video, parse_frame_rate
from timingbutler.workspace import Workspace

app = typer.Typer(
    name="timingbutler",
    help="Timing Butler: snap, chain, or pad subtitle timing against video keyframes.",
    add_completion=False,
)
config_app = typer.Typer(help="Show or edit Timing Butler configuration.")
app.add_typer(config_app, name="config")

console = Console()
err_console = Console(stderr=True)

_VALID_SUBTITLE_EXTS = {".srt", ".ass", ".ssa"}


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def _input_error(message: str) -> None:
    err_console.print(Panel(message, title="[red]Input Error[/red]", border_style="red"))
    raise typer.Exit(1)


def _format_ms(ms: float) -> str:
    return ms_to_str(int(round(ms)), fractions=True)


@app.command("call")
def call(
    subtitle: Annotated[
        Path,
        typer.Argument(file_okay=True, dir_okay=False, resolve_path=True, help="Subtitle file (SRT or ASS)."),
    ],
    line: Annotated[
        int,
        typer.Option("--line", "-l", help="Line to time (1-based, in document order)."),
    ],
    video: Annotated[
        Optional[Path],
        typer.Option("--video", file_okay=True, dir_okay=False, resolve_path=True, help="Video to read frame rate and keyframes from."),
    ] = None,
    keyframes: Annotated[
        Optional[Path],
        typer.Option("--keyframes", "-k", file_okay=True, dir_okay=False, resolve_path=True, help="Keyframe file (Aegisub v1 or one frame per line)."),
    ] = None,
    fps: Annotated[
        Optional[str],
        typer.Option("--fps", help="Frame rate, e.g. 24000/1001 or 25. Probed from --video if omitted."),
    ] = None,
    project_config: Annotated[
        Optional[Path],
        typer.Option("--project-config", resolve_path=True, help="Project config file (default: <subtitle>.butler.json)."),
    ] = None,
    output: Annotated[
        Optional[Path],
        typer.Option("--output", "-o", resolve_path=True, help="Write the result here instead of overwriting the subtitle file."),
    ] = None,
    chronological: Annotated[
        bool,
        typer.Option("--chronological", help="Chain to the previous line by start time instead of document order."),
    ] = False,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Show the new timing without saving."),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", help="Log each timing decision."),
    ] = False,
) -> None:
    """Time one subtitle line against the video's keyframes."""
    _setup_logging(verbose)

    # --- Input validation ---
    if subtitle.suffix.lower() not in _VALID_SUBTITLE_EXTS:
        _input_error(
            f"Unsupported subtitle format: [bold]{subtitle.suffix}[/bold]\n"
            f"Supported formats: {', '.join(sorted(_VALID_SUBTITLE_EXTS))}"
        )
    if not subtitle.exists():
        _input_error(
            f"File not found: [bold]{subtitle}[/bold]\n"
            f"Check that the path is correct and the file is accessible."
        )
    if video is not None and not video.exists():
        _input_error(f"Video file not found: [bold]{video}[/bold]")
    if keyframes is not None and not keyframes.exists():
        _input_error(f"Keyframe file not found: [bold]{keyframes}[/bold]")
    if video is None and (keyframes is None or fps is None):
        _input_error("Pass --video, or both --keyframes and --fps.")

    frame_rate: Optional[Fraction] = None
    if fps is not None:
        try:
            frame_rate = parse_frame_rate(fps)
        except ValueError as e:
            _input_error(str(e))

    try:
        document = load_document(subtitle)
        if not 1 <= line <= len(document):
            _input_error(f"Line {line} is out of range: the script has {len(document)} events.")

        workspace = Workspace(
            document=document,
            video=load_video(video, keyframes, frame_rate),
        )
        active = workspace.select(line - 1)
        before = (active.start, active.end)

        project_store = open_project_store(project_config or project_config_path(subtitle))
        local_store = open_local_store()
        result = call_butler(
            workspace,
            partial(resolve_config, project_store, local_store),
            chronological=chronological,
        )

        if result.notice is not None:
            console.print(Panel(result.notice, title="[yellow]Timing Butler[/yellow]", border_style="yellow"))
            return

        if not result.changed:
            console.print(f"[dim]Line {line} already well timed, nothing to do.[/dim]")
            return

        console.print(Panel(
            f"[bold green]Line {line} retimed[/bold green]\n\n"
            f"  Text:   {escape(active.text)}\n"
            f"  Start:  {_format_ms(before[0])} → [bold]{_format_ms(active.start)}[/bold]\n"
            f"  End:    {_format_ms(before[1])} → [bold]{_format_ms(active.end)}[/bold]",
            title="[green]Timing Butler[/green]",
            border_style="green",
        ))

        if dry_run:
            console.print("[yellow]Dry run:[/] script not saved")
            return
        saved = document.save(output)
        console.print(f"Saved: [dim]{saved}[/dim]")

    except ButlerError as e:
        err_console.print(Panel(str(e), title="[red]Timing Butler Error[/red]", border_style="red"))
        raise typer.Exit(1)


@config_app.command("show")
def config_show(
    project_config: Annotated[
        Optional[Path],
        typer.Option("--project-config", resolve_path=True, help="Project config file to include."),
    ] = None,
) -> None:
    """Print effective settings with their project and local values."""
    try:
        local_store = open_local_store()
        project_store = open_project_store(project_config) if project_config is not None else None
        effective = resolve_config(project_store, local_store)
    except ButlerError as e:
        err_console.print(Panel(str(e), title="[red]Configuration Error[/red]", border_style="red"))
        raise typer.Exit(1)

    table = Table(title="Timing Butler Configuration")
    table.add_column("Key")
    table.add_column("Setting")
    table.add_column("Project", justify="right")
    table.add_column("Local", justify="right")
    table.add_column("Effective", justify="right", style="bold")
    for key, (field_name, _) in CONFIG_KEYS.items():
        project_raw = project_store.get_raw(key) if project_store is not None else None
        local_raw = local_store.get_raw(key)
        table.add_row(
            key,
            LABELS[key],
            "-" if project_raw is None else str(project_raw),
            "-" if local_raw is None else str(local_raw),
            str(getattr(effective, field_name)),
        )
    console.print(table)
    if project_store is not None:
        console.print("[dim]Project value -1 falls back to the local value.[/dim]")


@config_app.command("set")
def config_set(
    key: Annotated[str, typer.Argument(help=f"Setting name: {', '.join(DEFAULTS)}.")],
    value: Annotated[int, typer.Argument(help="New value. -1 clears a project override.")],
    scope: Annotated[
        ConfigScope,
        typer.Option("--scope", help="'local' (personal) or 'project'."),
    ] = ConfigScope.LOCAL,
    project_config: Annotated[
        Optional[Path],
        typer.Option("--project-config", resolve_path=True, help="Project config file (required for --scope project)."),
    ] = None,
) -> None:
    """Store one setting in the local or project scope."""
    if scope is ConfigScope.PROJECT and project_config is None:
        _input_error("--project-config is required for --scope project.")

    try:
        store = open_project_store(project_config) if scope is ConfigScope.PROJECT else open_local_store()
        store.set(key, value)
    except ButlerError as e:
        err_console.print(Panel(str(e), title="[red]Configuration Error[/red]", border_style="red"))
        raise typer.Exit(1)

    console.print(f"[green]{scope.value.capitalize()} config saved:[/] {key} = {value}")
