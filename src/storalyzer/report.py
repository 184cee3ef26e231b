"""Plain-text empty folder report."""

import logging
from pathlib import Path
from typing import Iterable, Union

from storalyzer.exceptions import ReportError

logger = logging.getLogger(__name__)

REPORT_FILENAME = "EmptyFolderReport.txt"


def format_empty_folders_report(folders: list[str]) -> str:
    """Header, count line, then one ' - <path>' line per folder."""
    lines = ["Empty Folders Report:", f"Found {len(folders)} empty folders."]
    lines.extend(f" - {folder}" for folder in folders)
    return "\n".join(lines) + "\n"


def save_empty_folders_report(
    folders: Iterable[str],
    output_dir: Union[str, Path] = "outputs",
    filename: str = REPORT_FILENAME,
) -> Path:
    """
    Write the empty folder report, replacing any previous one.

    Args:
        folders: Folder paths to list
        output_dir: Directory for the report (created if missing)
        filename: Report file name

    Returns:
        Path of the written report

    Raises:
        ReportError: If the directory or file cannot be written
    """
    output_path = Path(output_dir)
    report_file = output_path / filename

    try:
        output_path.mkdir(parents=True, exist_ok=True)
        report_file.write_text(format_empty_folders_report(list(folders)), encoding="utf-8")
    except OSError as e:
        raise ReportError(f"Could not write report {report_file}: {e}") from e

    logger.info("Saved empty folders report to %s", report_file)
    return report_file
