"""CLI interface for storalyzer."""

import logging
from pathlib import Path
from typing import Callable, Optional, TypeVar

import typer
from rich.console import Console
from rich.logging import RichHandler

from storalyzer import __version__
from storalyzer.analyzer import StorageAnalyzer
from storalyzer.config import Settings, load_settings
from storalyzer.display import (
    console,
    scanning_status,
    show_drive_space,
    show_drives,
    show_empty_folders,
    show_error,
    show_file_types,
    show_files,
    show_folders,
    show_report,
    show_scan_summary,
)
from storalyzer.drives import get_drive_space, list_drives, normalize_drive
from storalyzer.exceptions import StoralyzerError
from storalyzer.report import save_empty_folders_report

T = TypeVar("T")

# Create Typer app
app = typer.Typer(
    name="storalyzer",
    help="Disk usage analyser - scan a drive once, query it many ways",
    add_completion=False,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"storalyzer version {__version__}")
        raise typer.Exit()


def configure_logging(verbose: bool) -> None:
    """Send log records to stderr through rich."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _settings(ctx: typer.Context) -> Settings:
    if isinstance(ctx.obj, Settings):
        return ctx.obj
    return Settings()


def _run(action: Callable[[], T]) -> T:
    """Run a command body; storalyzer errors become a red message and exit code 1."""
    try:
        return action()
    except StoralyzerError as e:
        show_error(str(e))
        raise typer.Exit(1)


def _scan(analyzer: StorageAnalyzer, drive: str) -> None:
    with scanning_status(drive):
        result = analyzer.scan(drive)
    show_scan_summary(result)


def _prepare(ctx: typer.Context, drive: str) -> tuple[StorageAnalyzer, str]:
    """Normalize the drive, then walk it once."""
    analyzer = StorageAnalyzer(settings=_settings(ctx))
    normalized = normalize_drive(drive)
    _scan(analyzer, normalized)
    return analyzer, normalized


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Show debug logging."),
    config: Optional[Path] = typer.Option(
        None, "--config", help="Config file (default: ~/.storalyzer/config.json)."
    ),
) -> None:
    """storalyzer - disk usage analyser."""
    configure_logging(verbose)
    ctx.obj = _run(lambda: load_settings(config))

    # If no command specified, launch the shell
    if ctx.invoked_subcommand is None:
        ctx.invoke(shell, ctx=ctx)


@app.command()
def drives() -> None:
    """List fixed drives."""
    show_drives(_run(list_drives))


@app.command()
def space(
    drive: str = typer.Argument(..., help="Drive letter (e.g. C) or absolute path"),
) -> None:
    """Show total, used and free space of a drive."""
    show_drive_space(_run(lambda: get_drive_space(normalize_drive(drive))))


@app.command()
def types(
    ctx: typer.Context,
    drive: str = typer.Argument(..., help="Drive letter (e.g. C) or absolute path"),
    top: int = typer.Option(10, "--top", "-n", help="Number of extensions to show."),
    min_size: Optional[int] = typer.Option(
        None, "--min-size", help="Minimum total bytes per extension."
    ),
) -> None:
    """Show file type size distribution."""

    def action():
        analyzer, normalized = _prepare(ctx, drive)
        return analyzer.file_type_distribution(normalized, min_size_bytes=min_size)[:top]

    show_file_types(_run(action), f"File Type Distribution (Top {top})")


@app.command("largest-files")
def largest_files(
    ctx: typer.Context,
    drive: str = typer.Argument(..., help="Drive letter (e.g. C) or absolute path"),
    top: int = typer.Option(10, "--top", "-n", help="Number of files to show."),
) -> None:
    """Show the largest files."""

    def action():
        analyzer, normalized = _prepare(ctx, drive)
        return analyzer.largest_files(normalized, limit=top)

    show_files(_run(action), "Largest Files")


@app.command("largest-folders")
def largest_folders(
    ctx: typer.Context,
    drive: str = typer.Argument(..., help="Drive letter (e.g. C) or absolute path"),
    top: int = typer.Option(10, "--top", "-n", help="Number of folders to show."),
    min_size: Optional[int] = typer.Option(None, "--min-size", help="Minimum folder bytes."),
) -> None:
    """Show the largest folders near the top of the drive."""

    def action():
        analyzer, normalized = _prepare(ctx, drive)
        return analyzer.largest_folders(normalized, limit=top, min_size_bytes=min_size)

    show_folders(_run(action), "Largest Folders")


@app.command()
def recent(
    ctx: typer.Context,
    drive: str = typer.Argument(..., help="Drive letter (e.g. C) or absolute path"),
    top: int = typer.Option(10, "--top", "-n", help="Number of files to show."),
) -> None:
    """Show the largest recently modified files."""

    def action():
        analyzer, normalized = _prepare(ctx, drive)
        return analyzer.recent_large_files(normalized, limit=top)

    show_files(_run(action), f"Recent Large Files (last {_settings(ctx).recent_days} days)")


@app.command()
def old(
    ctx: typer.Context,
    drive: str = typer.Argument(..., help="Drive letter (e.g. C) or absolute path"),
    top: int = typer.Option(10, "--top", "-n", help="Number of files to show."),
) -> None:
    """Show the largest files that have not been modified for a long time."""

    def action():
        analyzer, normalized = _prepare(ctx, drive)
        return analyzer.old_large_files(normalized, limit=top)

    show_files(_run(action), f"Old Large Files (>{_settings(ctx).old_days} days)")


@app.command("empty-folders")
def empty_folders(
    ctx: typer.Context,
    drive: str = typer.Argument(..., help="Drive letter (e.g. C) or absolute path"),
    save: bool = typer.Option(False, "--save", help="Write the empty folder report."),
    verify: bool = typer.Option(
        True, "--verify/--no-verify", help="Re-check each folder on disk before reporting it."
    ),
    output_dir: Optional[Path] = typer.Option(None, "--output-dir", help="Report directory."),
    delete: bool = typer.Option(False, "--delete", help="Delete the empty folders."),
) -> None:
    """List folders that hold no files."""
    if delete:
        console.print("[yellow]Deletion of empty folders is not implemented.[/yellow]")
        raise typer.Exit(0)

    settings = _settings(ctx)

    def action():
        analyzer, normalized = _prepare(ctx, drive)
        return analyzer.empty_folders(normalized, verify=verify)

    folders = _run(action)
    show_empty_folders(folders)

    if save:
        report_file = _run(
            lambda: save_empty_folders_report(folders, output_dir or settings.output_dir)
        )
        console.print(f"Saved empty folders report to: {report_file}", markup=False)


@app.command()
def analyze(
    ctx: typer.Context,
    drive: str = typer.Argument(..., help="Drive letter (e.g. C) or absolute path"),
) -> None:
    """Run every analysis on a drive from a single scan."""

    def action():
        analyzer, normalized = _prepare(ctx, drive)
        return analyzer.analyze_drive(normalized)

    show_report(_run(action))


@app.command()
def shell(ctx: typer.Context) -> None:
    """Interactive shell (default).

    This is the default command when running 'storalyzer' without arguments.
    Scans are cached for the whole session.
    """
    from storalyzer.shell import start_shell

    code = start_shell(console=console, settings=_settings(ctx))
    if code:
        raise typer.Exit(code)


if __name__ == "__main__":
    app()
