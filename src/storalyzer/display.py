"""Rich terminal display for storalyzer."""

from datetime import datetime
from typing import Optional

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from storalyzer.models import (
    DriveReport,
    DriveScanResult,
    DriveSpace,
    FileRecord,
    FolderAggregate,
    TypeStats,
    format_size,
)

console = Console()

DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def format_timestamp(value: Optional[datetime]) -> str:
    """Format a timestamp, or 'Unknown' when it could not be read."""
    if value is None:
        return "Unknown"
    return value.strftime(DATE_FORMAT)


def show_drive_space(space: DriveSpace) -> None:
    """Display total, used and free space of a drive."""
    free_percent = space.free_percent

    # Color based on free space left
    if free_percent <= 10:
        color = "red"
    elif free_percent <= 25:
        color = "yellow"
    else:
        color = "green"

    table = Table(title=f"Drive Space Overview ({space.mount_point})", header_style="bold")
    table.add_column("Total", justify="right")
    table.add_column("Used", justify="right")
    table.add_column("Free", justify="right")
    table.add_column("Free %", justify="right")

    table.add_row(
        f"{space.total_gb:.2f} GB",
        f"{space.used_gb:.2f} GB",
        f"[bold]{space.free_gb:.2f} GB[/bold]",
        f"[{color}]{free_percent:.2f}%[/{color}]",
    )

    console.print(table)


def show_file_types(distribution: list[TypeStats], title: str = "File Type Distribution") -> None:
    """Display extensions with their total size and file count."""
    if not distribution:
        console.print("[yellow]No file types above the size threshold.[/yellow]")
        return

    table = Table(title=title, header_style="bold")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Extension", style="cyan")
    table.add_column("Files", justify="right")
    table.add_column("Size", justify="right")

    for i, stats in enumerate(distribution, 1):
        table.add_row(str(i), stats.extension, str(stats.file_count), stats.size_human)

    console.print(table)


def show_files(files: list[FileRecord], title: str) -> None:
    """Display file records with size and timestamps."""
    if not files:
        console.print(f"[yellow]{title}: no files found.[/yellow]")
        return

    table = Table(title=title, header_style="bold")
    table.add_column("Size", justify="right")
    table.add_column("Last Modified")
    table.add_column("Last Accessed")
    table.add_column("Path", overflow="fold")

    for record in files:
        table.add_row(
            record.size_human,
            format_timestamp(record.last_modified),
            format_timestamp(record.last_accessed),
            escape(record.full_path),
        )

    console.print(table)


def show_folders(folders: list[FolderAggregate], title: str = "Largest Folders") -> None:
    """Display folder aggregates."""
    if not folders:
        console.print(f"[yellow]{title}: no folders above the size threshold.[/yellow]")
        return

    table = Table(title=title, header_style="bold")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Size", justify="right")
    table.add_column("Files", justify="right")
    table.add_column("Folder", overflow="fold")

    for i, folder in enumerate(folders, 1):
        table.add_row(str(i), folder.size_human, str(folder.file_count), escape(folder.folder_path))

    console.print(table)


def show_empty_folders(folders: list[str]) -> None:
    """Display the empty folder list in the report layout."""
    console.print("[bold]Empty Folders[/bold]")
    console.print(f"Found {len(folders)} empty folders.")
    for folder in folders:
        console.print(f" - {folder}", highlight=False, markup=False)


def show_scan_summary(result: DriveScanResult) -> None:
    """One line describing a finished walk."""
    console.print(
        f"[dim]Scanned {escape(result.drive)}: {result.file_count} files, "
        f"{len(result.folders)} folders, {format_size(result.total_size_bytes)} "
        f"in {result.duration_seconds:.1f}s"
        + (f" ({result.skipped_entries} unreadable entries skipped)" if result.skipped_entries else "")
        + "[/dim]"
    )


def show_drives(drives: list[str]) -> None:
    """Display fixed drives."""
    if not drives:
        console.print("[yellow]No fixed drives found.[/yellow]")
        return

    console.print("[bold]Fixed Drives[/bold]")
    for drive in drives:
        console.print(f"  • {escape(drive)}")


def show_report(report: DriveReport) -> None:
    """Display a full drive analysis."""
    console.print(
        Panel(
            f"[bold]Storage Distribution Analysis[/bold]\n"
            f"Date: {format_timestamp(report.generated_at)}\n"
            f"Drive: {escape(report.drive)}",
            border_style="blue",
            expand=False,
        )
    )

    if report.space is not None:
        show_drive_space(report.space)
    elif report.space_error:
        console.print(f"[red]{escape(report.space_error)}[/red]")
    console.print()

    show_folders(report.largest_folders, "Largest Folders")
    console.print()
    show_empty_folders(report.empty_folders)
    console.print()
    show_file_types(report.file_types)
    console.print()
    show_files(report.largest_files, "Largest Files")
    console.print()
    show_files(report.recent_files, "Recent Large Files")
    console.print()
    show_files(report.old_files, "Old Large Files")


def show_error(message: str) -> None:
    console.print(f"[red]Error: {escape(message)}[/red]", highlight=False)


def scanning_status(drive: str):
    """Spinner shown while a drive is walked."""
    return console.status(f"Scanning {escape(drive)}...", spinner="dots")
