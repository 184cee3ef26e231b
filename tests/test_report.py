"""Tests for the empty folder report."""

from unittest.mock import patch

import pytest

from storalyzer.exceptions import ReportError
from storalyzer.report import (
    REPORT_FILENAME,
    format_empty_folders_report,
    save_empty_folders_report,
)


class TestFormatReport:
    def test_layout(self):
        text = format_empty_folders_report(["/data/a", "/data/b"])

        assert text == (
            "Empty Folders Report:\n"
            "Found 2 empty folders.\n"
            " - /data/a\n"
            " - /data/b\n"
        )

    def test_no_folders(self):
        assert format_empty_folders_report([]) == "Empty Folders Report:\nFound 0 empty folders.\n"


class TestSaveReport:
    def test_creates_output_dir(self, tmp_path):
        output_dir = tmp_path / "outputs" / "nested"

        path = save_empty_folders_report(["/data/a"], output_dir)

        assert path == output_dir / REPORT_FILENAME
        assert path.read_text(encoding="utf-8").splitlines() == [
            "Empty Folders Report:",
            "Found 1 empty folders.",
            " - /data/a",
        ]

    def test_overwrites_previous_report(self, tmp_path):
        save_empty_folders_report(["/old/one", "/old/two"], tmp_path)
        path = save_empty_folders_report([], tmp_path)

        assert "/old" not in path.read_text(encoding="utf-8")

    def test_custom_filename(self, tmp_path):
        path = save_empty_folders_report(["/x"], tmp_path, filename="empty.txt")
        assert path.name == "empty.txt"

    def test_accepts_generator(self, tmp_path):
        path = save_empty_folders_report((p for p in ["/x", "/y"]), tmp_path)
        assert "Found 2 empty folders." in path.read_text(encoding="utf-8")

    def test_write_failure(self, tmp_path):
        with patch("storalyzer.report.Path.write_text", side_effect=PermissionError("read-only")):
            with pytest.raises(ReportError, match="read-only"):
                save_empty_folders_report(["/x"], tmp_path)

    def test_output_dir_is_a_file(self, tmp_path):
        blocker = tmp_path / "outputs"
        blocker.write_text("not a directory")

        with pytest.raises(ReportError, match="Could not write report"):
            save_empty_folders_report(["/x"], blocker)
