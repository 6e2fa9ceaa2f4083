"""
vidaudio.cli - Typer CLI entry point.

Provides the extract, doctor and init subcommands.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.progress import BarColumn, Progress, TaskProgressColumn, TextColumn
from rich.table import Table

from vidaudio import __version__
from vidaudio.config import (
    BUILTIN_PROFILES,
    CONFIG_FILENAME,
    VidAudioConfig,
    create_default_config,
    find_config,
    load_config,
    write_config,
)
from vidaudio.engine import Engine, FFmpegEngine
from vidaudio.exceptions import DependencyError, VidAudioError
from vidaudio.io import write_bytes
from vidaudio.logging import configure_logging
from vidaudio.utils import format_size

app = typer.Typer(
    name="vidaudio",
    help="Extract audio from video files.\n\n"
    "Converts one or more videos to MP3, optionally speeding them up, "
    "downsampling, merging them and splitting the result into segments.",
    add_completion=False,
)
console = Console()


def create_engine(config: VidAudioConfig) -> Engine:
    """Build the transcoding engine for a run."""
    return FFmpegEngine(binary=config.ffmpeg_binary)


def version_callback(value: bool) -> None:
    if value:
        console.print(f"vidaudio {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """vidaudio - Extract audio from video files."""
    pass


def print_error(e: BaseException) -> None:
    """One line for the failure, one for its underlying cause."""
    console.print(f"[red]Error: {e}[/red]")
    if isinstance(e, DependencyError) and e.install_hint:
        console.print(f"[dim]{e.install_hint}[/dim]")
    cause = e.__cause__
    if cause is not None and str(cause) and str(cause) not in str(e):
        console.print(f"[dim]Cause: {cause}[/dim]")


@app.command("extract")
def extract(
    videos: list[str] = typer.Argument(..., help="Video file(s), in playback order"),
    output_dir: str | None = typer.Option(
        None, "--output-dir", "-o", help="Directory for the audio files"
    ),
    speed: float | None = typer.Option(
        None, "--speed", "-s", help="Playback speed factor, e.g. 1.25"
    ),
    downsample: bool | None = typer.Option(
        None, "--downsample/--no-downsample", "-d", help="Resample audio to 22050 Hz"
    ),
    split: int | None = typer.Option(
        None, "--split", help="Split the output into segments of this many seconds"
    ),
    no_split: bool = typer.Option(
        False, "--no-split", help="Keep the output whole, ignoring any configured split"
    ),
    profile: str | None = typer.Option(
        None, "--profile", "-p", help="Profile: default, voice, podcast, or chapters"
    ),
    config_file: str | None = typer.Option(
        None, "--config", "-c", help=f"Config file (default: nearest {CONFIG_FILENAME})"
    ),
    ffmpeg: str | None = typer.Option(None, "--ffmpeg", help="FFmpeg executable to use"),
    verbose: bool = typer.Option(False, "--verbose", help="Show FFmpeg output and debug logs"),
) -> None:
    """Extract audio from video files.

    One video becomes <name>.mp3. Several videos, or any video with --split,
    are merged into output.mp3 or split into output_000.mp3, output_001.mp3, ...
    """
    from vidaudio.job import InputFile, make_job, split_mode
    from vidaudio.pipeline import Pipeline
    from vidaudio.validation import check_disk_space, estimate_required_mb, validate_video_file

    configure_logging(verbose)

    if split is not None and no_split:
        console.print("[red]Error: --split and --no-split cannot be used together[/red]")
        raise typer.Exit(1)

    try:
        config_path = Path(config_file).expanduser() if config_file else find_config()
        config = load_config(
            config_path,
            profile=profile,
            overrides={
                "speed": speed,
                "downsample": downsample,
                "split_seconds": split,
                "output_dir": Path(output_dir).expanduser() if output_dir else None,
                "ffmpeg_binary": ffmpeg,
            },
        )
        if no_split:
            config = config.model_copy(update={"split_seconds": None})
    except VidAudioError as e:
        print_error(e)
        raise typer.Exit(1)

    inputs = []
    for video in videos:
        path = Path(video).expanduser().resolve()
        try:
            validate_video_file(path)
            inputs.append(InputFile.from_path(path))
        except (VidAudioError, OSError) as e:
            console.print(f"[red]Error: {e}[/red]")
            raise typer.Exit(1)

    try:
        job = make_job(
            inputs,
            speed=config.speed,
            downsample=config.downsample,
            split=split_mode(config.split_seconds),
        )
        disk = check_disk_space(config.output_dir, estimate_required_mb([i.size for i in inputs]))
    except VidAudioError as e:
        print_error(e)
        raise typer.Exit(1)

    if not disk["sufficient"]:
        console.print(
            f"[red]Error: Insufficient disk space. "
            f"Need ~{disk['required_mb']}MB, have {disk['available_mb']}MB[/red]"
        )
        raise typer.Exit(1)

    console.print(
        f"[cyan]Extracting audio from {len(inputs)} file(s)[/cyan] "
        f"[dim](speed {config.speed:g}, "
        f"{'22050 Hz' if config.downsample else 'original rate'}, "
        f"{f'{config.split_seconds}s segments' if config.split_seconds else 'no split'})[/dim]\n"
    )

    progress = Progress(
        TextColumn("{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        console=console,
        transient=True,
    )
    task = progress.add_task("Preparing...", total=100)

    def on_progress(percent: int, label: str) -> None:
        progress.update(task, completed=percent, description=label or "Working...")

    try:
        with create_engine(config) as engine, progress:
            pipeline = Pipeline(engine, on_progress=on_progress)
            artifacts = pipeline.run(job)
    except VidAudioError as e:
        print_error(e)
        raise typer.Exit(1)

    table = Table(title="Audio Files")
    table.add_column("File", style="cyan")
    table.add_column("Size", style="green")

    for artifact in artifacts:
        destination = config.output_dir / artifact.name
        try:
            write_bytes(destination, artifact.data)
        except OSError as e:
            console.print(f"[red]Error writing {destination}: {e}[/red]")
            raise typer.Exit(1)
        table.add_row(str(destination), format_size(artifact.size))

    console.print(table)
    console.print(f"\n[green]✓[/green] Wrote {len(artifacts)} file(s) to {config.output_dir}")


@app.command("doctor")
def run_doctor(
    ffmpeg: str = typer.Option("ffmpeg", "--ffmpeg", help="FFmpeg executable to check"),
) -> None:
    """Check dependencies and environment setup."""
    console.print("[cyan]Running preflight checks...[/cyan]\n")

    from vidaudio.validation import check_ffmpeg

    table = Table(title="Dependency Status")
    table.add_column("Component", style="cyan")
    table.add_column("Status", style="green")
    table.add_column("Version/Details")

    all_passed = True

    try:
        info = check_ffmpeg(ffmpeg)
        table.add_row("FFmpeg", "✓ Installed", f"{info['ffmpeg_version']} ({info['ffmpeg_path']})")
    except DependencyError as e:
        table.add_row("FFmpeg", "✗ Missing", e.install_hint or "")
        all_passed = False

    config_path = find_config()
    if config_path:
        try:
            config = load_config(config_path)
            table.add_row("Config", "✓ Valid", f"{config_path} (profile '{config.profile}')")
        except VidAudioError as e:
            table.add_row("Config", "✗ Invalid", str(e))
            all_passed = False
    else:
        table.add_row("Config", "—", f"No {CONFIG_FILENAME} found, using defaults")

    console.print(table)

    if all_passed:
        console.print("\n[green]✓ All checks passed[/green]")
    else:
        console.print("\n[yellow]⚠ Some checks failed[/yellow]")
        raise typer.Exit(1)


@app.command("init")
def init_config(
    profile: str = typer.Option(
        "default",
        "--profile",
        "-p",
        help="Profile: default, voice, podcast, or chapters",
    ),
    path: str = typer.Option(".", "--path", "-d", help="Directory to write the config into"),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing config"),
) -> None:
    """Write a starter vidaudio.yaml."""
    config_path = Path(path) / CONFIG_FILENAME

    if config_path.exists() and not force:
        console.print(f"[red]Error: '{config_path}' already exists[/red]")
        raise typer.Exit(1)

    if profile not in BUILTIN_PROFILES:
        console.print(f"[red]Error: Unknown profile: {profile}[/red]")
        console.print(f"[dim]Valid profiles: {', '.join(BUILTIN_PROFILES)}[/dim]")
        raise typer.Exit(1)

    write_config(create_default_config(profile), config_path)
    console.print(f"[green]✓[/green] Created {config_path} with profile '{profile}'")


if __name__ == "__main__":
    app()
