"""Configuration for storalyzer."""

import json
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, ValidationError

from storalyzer.exceptions import ConfigError

CONFIG_DIR = Path(os.path.expanduser("~/.storalyzer"))
CONFIG_FILE = CONFIG_DIR / "config.json"

# Noisy system/vendor subtrees, matched case-insensitively on the directory name
DEFAULT_SKIP_NAMES = [
    "$Recycle.Bin",
    "$Extend",  # NTFS journal and metadata
    "System Volume Information",
    "WinSxS",
    "Package Cache",
    ".Trash",
    ".Trashes",
    ".Spotlight-V100",
    ".fseventsd",
    ".DocumentRevisions-V100",
    "lost+found",
]

# Virtual filesystems, matched as path prefixes
DEFAULT_SKIP_PATHS = [
    "/proc",
    "/sys",
    "/dev",
    "/run",
]

# Folders never reported as empty even when they hold no files
DEFAULT_RESERVED_FOLDER_NAMES = [
    "$Recycle.Bin",
    "System Volume Information",
    "Recovery",
    "PerfLogs",
    "Config.Msi",
    "lost+found",
    ".Trash",
]


class Settings(BaseModel):
    """Tunables for walking and querying."""

    skip_names: list[str] = Field(
        default_factory=lambda: list(DEFAULT_SKIP_NAMES),
        description="Directory names that are never descended into",
    )
    skip_paths: list[str] = Field(
        default_factory=lambda: list(DEFAULT_SKIP_PATHS),
        description="Path prefixes that are never descended into",
    )
    reserved_folder_names: list[str] = Field(
        default_factory=lambda: list(DEFAULT_RESERVED_FOLDER_NAMES),
        description="System folders excluded from the empty folder report",
    )
    max_folder_depth: int = Field(3, ge=1, description="Deepest folder level shown in largest folders")
    min_folder_size_bytes: int = Field(100 * 1000**2, ge=0)
    min_file_type_size_bytes: int = Field(100 * 1000**2, ge=0)
    recent_days: int = Field(30, ge=1, description="Window for recently modified files")
    old_days: int = Field(180, ge=1, description="Age after which a file counts as old")
    top_n: int = Field(10, ge=1, description="Rows shown per listing")
    max_workers: Optional[int] = Field(None, ge=1, description="Walker threads (None = CPU count)")
    output_dir: str = Field("outputs", description="Where the empty folder report is written")
    verify_empty_folders: bool = Field(True, description="Re-list empty folder candidates")


def load_settings(path: Optional[Path] = None) -> Settings:
    """
    Load settings from a JSON file.

    Args:
        path: Config file to read (default: ~/.storalyzer/config.json)

    Returns:
        Settings, with defaults for every key the file does not set

    Raises:
        ConfigError: If the file exists but cannot be read or validated
    """
    config_file = Path(path) if path is not None else CONFIG_FILE

    if not config_file.exists():
        if path is not None:
            raise ConfigError(f"Config file not found: {config_file}")
        return Settings()

    try:
        with open(config_file) as f:
            data = json.load(f)
    except (json.JSONDecodeError, OSError) as e:
        raise ConfigError(f"Could not read config file {config_file}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {config_file} must contain a JSON object")

    try:
        return Settings.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid config file {config_file}: {e}") from e
