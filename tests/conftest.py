"""Shared fixtures for storalyzer tests."""

import os
from datetime import datetime, timezone
from pathlib import Path

import pytest
from rich.console import Console


def write_file(path: Path, size: int, modified: datetime | None = None) -> Path:
    """Create a file of `size` bytes, optionally with a given modification time."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"x" * size)
    if modified is not None:
        ts = modified.timestamp()
        os.utime(path, (ts, ts))
    return path


@pytest.fixture
def sample_tree(tmp_path):
    """
    root/
        notes            50 bytes, no extension
        A/file.txt       100 bytes
        A/sub/data.bin   1000 bytes
        B/               empty
        C/D/             empty
        .hidden/big.TXT  200 bytes
    """
    root = tmp_path / "root"
    root.mkdir()
    write_file(root / "notes", 50)
    write_file(root / "A" / "file.txt", 100)
    write_file(root / "A" / "sub" / "data.bin", 1000)
    (root / "B").mkdir()
    (root / "C" / "D").mkdir(parents=True)
    write_file(root / ".hidden" / "big.TXT", 200)
    return root


@pytest.fixture
def wide_console(monkeypatch):
    """Route display output to a wide recording console."""
    console = Console(record=True, width=300, force_terminal=False)
    monkeypatch.setattr("storalyzer.display.console", console)
    return console


@pytest.fixture
def fixed_now():
    return datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)
