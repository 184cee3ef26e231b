"""Interactive line-based shell for storalyzer."""

import getpass
import os
import socket
from dataclasses import dataclass, field
from typing import Callable, Optional

from rich.console import Console
from rich.markup import escape

from storalyzer import display
from storalyzer.analyzer import StorageAnalyzer
from storalyzer.config import Settings
from storalyzer.drives import list_drives, normalize_drive
from storalyzer.exceptions import StoralyzerError
from storalyzer.report import save_empty_folders_report


@dataclass(frozen=True)
class CommandInfo:
    """Help entry for one shell command."""

    title: str
    usage: str
    description: str


# Ordered: help lists commands in this order
COMMANDS: dict[str, CommandInfo] = {
    "help": CommandInfo(
        "Help",
        "help [command]",
        "Displays all command descriptions.\n"
        "With an argument, shows the description of that command.",
    ),
    "exit": CommandInfo("Exit", "exit [code]", "Leaves the shell with the given exit code (default 0)."),
    "echo": CommandInfo("Echo", "echo <words>", "Repeats what you say."),
    "type": CommandInfo("Type", "type <command>", "Tells you whether a command exists."),
    "pwd": CommandInfo("pwd", "pwd", "Shows the location the program is running in."),
    "drives": CommandInfo("Drives", "drives", "Lists the fixed drives of this machine."),
    "drive-space": CommandInfo(
        "Drive Space", "drive-space <drive>", "Shows total, used and free space of a drive."
    ),
    "file-type-dist": CommandInfo(
        "File Type Distribution",
        "file-type-dist <drive>",
        "Shows the 10 file extensions taking the most space.",
    ),
    "largest-files": CommandInfo("Largest Files", "largest-files <drive>", "Shows the 10 largest files."),
    "largest-folder": CommandInfo(
        "Largest Folders",
        "largest-folder <drive>",
        "Shows the 10 largest folders up to 3 levels deep.\n"
        "Excludes hidden folders (those starting with '.').",
    ),
    "recent-large-files": CommandInfo(
        "Recent Large Files",
        "recent-large-files <drive>",
        "Shows the largest files modified within the last 30 days.",
    ),
    "old-large-files": CommandInfo(
        "Old Large Files",
        "old-large-files <drive>",
        "Shows the largest files not modified for more than 6 months.",
    ),
    "full-drive-analysis": CommandInfo(
        "Full Drive Analysis",
        "full-drive-analysis <drive>",
        "Runs every analysis above on a drive from a single scan.",
    ),
    "empty-folders": CommandInfo(
        "Empty Folders",
        "empty-folders <drive> [-delete]",
        "Lists folders that hold no files and saves them to outputs/EmptyFolderReport.txt.\n"
        "Not every empty folder should be deleted; check a path before removing it.",
    ),
    "rescan": CommandInfo(
        "Rescan", "rescan <drive>", "Throws away the cached scan of a drive and scans it again."
    ),
}


@dataclass
class ShellSession:
    """Read commands, dispatch them to the analyzer, print results."""

    console: Console = field(default_factory=lambda: display.console)
    settings: Settings = field(default_factory=Settings)
    analyzer: Optional[StorageAnalyzer] = None
    exit_code: int = 0

    def __post_init__(self):
        if self.analyzer is None:
            self.analyzer = StorageAnalyzer(settings=self.settings)

        self._drive_commands: dict[str, Callable[[str], None]] = {
            "drive-space": self._do_drive_space,
            "file-type-dist": self._do_file_types,
            "largest-files": self._do_largest_files,
            "largest-folder": self._do_largest_folders,
            "recent-large-files": self._do_recent_files,
            "old-large-files": self._do_old_files,
            "full-drive-analysis": self._do_full_analysis,
            "empty-folders": self._do_empty_folders,
            "rescan": self._do_rescan,
        }

    def run(self) -> int:
        """Main loop; returns the exit code given to `exit`."""
        while True:
            try:
                line = self.console.input(self._prompt())
            except (EOFError, KeyboardInterrupt):
                self.console.print()
                break

            if not self.handle_line(line):
                break

        return self.exit_code

    def _prompt(self) -> str:
        try:
            user = getpass.getuser()
        except (KeyError, OSError):
            user = "user"
        host = socket.gethostname()
        return f"\n[green]{user}[/green]@[blue]{host}[/blue]\n[cyan]$[/cyan] "

    def handle_line(self, line: str) -> bool:
        """Run one command line, return False when the shell should stop."""
        words = line.split()
        if not words:
            return True

        # Drive paths keep their case
        command, args = words[0].lower(), words[1:]

        if command == "exit":
            return self._do_exit(args)
        elif command == "echo":
            self.console.print(" ".join(args), markup=False, highlight=False)
        elif command == "pwd":
            self._do_pwd()
        elif command == "help":
            self._do_help(args)
        elif command == "type":
            self._do_type(args)
        elif command == "drives":
            self._run(self._do_drives)
        elif command in self._drive_commands:
            self._dispatch_drive_command(command, args)
        else:
            self.console.print(f"{command}: not found", markup=False)

        return True

    def _dispatch_drive_command(self, command: str, args: list[str]) -> None:
        if command == "empty-folders" and "-delete" in (arg.lower() for arg in args):
            self.console.print(
                "[yellow]Deletion of empty folders is not implemented.[/yellow]"
            )
            return

        drive_args = [arg for arg in args if not arg.startswith("-")]
        if not drive_args:
            self.console.print(f"[red]No drive given. Usage: {escape(COMMANDS[command].usage)}[/red]")
            return

        def action() -> None:
            drive = normalize_drive(drive_args[0])
            self._drive_commands[command](drive)

        self._run(action)

    def _run(self, action: Callable[[], None]) -> None:
        """Run a command, reporting errors without leaving the shell."""
        try:
            action()
        except StoralyzerError as e:
            display.show_error(str(e))

    # ─────────────────────────────────────────────────────────────────────────
    # Built-in commands
    # ─────────────────────────────────────────────────────────────────────────

    def _do_exit(self, args: list[str]) -> bool:
        if args:
            try:
                self.exit_code = int(args[0])
            except ValueError:
                self.console.print(f"[red]exit: numeric argument required: {escape(args[0])}[/red]")
                return True
        return False

    def _do_pwd(self) -> None:
        try:
            self.console.print(os.getcwd(), markup=False, highlight=False)
        except OSError as e:
            self.console.print(f"pwd: error getting current directory: {e}", markup=False)

    def _do_help(self, args: list[str]) -> None:
        names = [args[0].lower()] if args else list(COMMANDS)
        for name in names:
            info = COMMANDS.get(name)
            if info is None:
                self.console.print(f"Command not found: {name}", markup=False)
                continue
            self.console.print(f"\n[bold]{info.title}[/bold]  [dim]{escape(info.usage)}[/dim]")
            self.console.print("-------------")
            self.console.print(info.description, markup=False, highlight=False)

    def _do_type(self, args: list[str]) -> None:
        if not args:
            self.console.print("type: missing command name")
            return
        name = args[0].lower()
        if name in COMMANDS:
            self.console.print(f"{name} is a shell builtin", markup=False)
        else:
            self.console.print(f"{name}: not found", markup=False)

    def _do_drives(self) -> None:
        display.show_drives(list_drives())

    # ─────────────────────────────────────────────────────────────────────────
    # Drive commands
    # ─────────────────────────────────────────────────────────────────────────

    def _ensure_scanned(self, drive: str) -> None:
        """Walk a drive behind a spinner if it is not cached yet."""
        if self.analyzer.is_cached(drive):
            self.console.print("[dim]Cached scan found, proceeding.[/dim]")
            return
        with display.scanning_status(drive):
            result = self.analyzer.scan(drive)
        display.show_scan_summary(result)

    def _do_drive_space(self, drive: str) -> None:
        display.show_drive_space(self.analyzer.drive_space(drive))

    def _do_file_types(self, drive: str) -> None:
        self._ensure_scanned(drive)
        distribution = self.analyzer.file_type_distribution(drive)
        display.show_file_types(
            distribution[: self.settings.top_n],
            f"File Type Distribution (Top {self.settings.top_n})",
        )

    def _do_largest_files(self, drive: str) -> None:
        self._ensure_scanned(drive)
        display.show_files(self.analyzer.largest_files(drive, limit=self.settings.top_n), "Largest Files")

    def _do_largest_folders(self, drive: str) -> None:
        self._ensure_scanned(drive)
        display.show_folders(
            self.analyzer.largest_folders(drive, limit=self.settings.top_n),
            f"Largest Folders (Top {self.settings.top_n})",
        )

    def _do_recent_files(self, drive: str) -> None:
        self._ensure_scanned(drive)
        display.show_files(
            self.analyzer.recent_large_files(drive, limit=self.settings.top_n),
            f"Recent Large Files (last {self.settings.recent_days} days)",
        )

    def _do_old_files(self, drive: str) -> None:
        self._ensure_scanned(drive)
        display.show_files(
            self.analyzer.old_large_files(drive, limit=self.settings.top_n),
            f"Old Large Files (>{self.settings.old_days} days)",
        )

    def _do_full_analysis(self, drive: str) -> None:
        self._ensure_scanned(drive)
        display.show_report(self.analyzer.analyze_drive(drive))

    def _do_empty_folders(self, drive: str) -> None:
        self._ensure_scanned(drive)
        folders = self.analyzer.empty_folders(drive)
        display.show_empty_folders(folders)
        report_file = save_empty_folders_report(folders, self.settings.output_dir)
        self.console.print(f"Saved empty folders report to: {report_file}", markup=False)

    def _do_rescan(self, drive: str) -> None:
        with display.scanning_status(drive):
            result = self.analyzer.rescan(drive)
        display.show_scan_summary(result)


def start_shell(
    console: Optional[Console] = None,
    settings: Optional[Settings] = None,
) -> int:
    """Start the interactive shell and return its exit code.

    Args:
        console: Rich console for output
        settings: Analyzer settings (defaults when None)
    """
    if console is None:
        console = display.console

    session = ShellSession(console=console, settings=settings or Settings())
    console.print("[bold blue]storalyzer[/bold blue] [dim]type 'help' for commands[/dim]")
    return session.run()
