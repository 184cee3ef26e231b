"""Data models for storalyzer."""

import os
from datetime import datetime
from types import MappingProxyType
from typing import Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

NO_EXTENSION = "(no extension)"


def format_size(size_bytes: int) -> str:
    """Format bytes to human-readable string (decimal units)."""
    if size_bytes >= 1000**4:
        return f"{size_bytes / (1000**4):.2f} TB"
    elif size_bytes >= 1000**3:
        return f"{size_bytes / (1000**3):.2f} GB"
    elif size_bytes >= 1000**2:
        return f"{size_bytes / (1000**2):.1f} MB"
    elif size_bytes >= 1000:
        return f"{size_bytes / 1000:.1f} KB"
    else:
        return f"{size_bytes} B"


class FileRecord(BaseModel):
    """Metadata of one regular file seen during a walk."""

    model_config = ConfigDict(frozen=True)

    full_path: str = Field(..., description="Absolute path of the file")
    size_bytes: int = Field(..., ge=0, description="Size in bytes at scan time")
    last_modified: Optional[datetime] = Field(None, description="Modification time (UTC)")
    last_accessed: Optional[datetime] = Field(None, description="Access time (UTC)")

    @property
    def name(self) -> str:
        return os.path.basename(self.full_path)

    @property
    def extension(self) -> str:
        """Lowercased extension including the dot, or '' when there is none."""
        return os.path.splitext(self.name)[1].lower()

    @property
    def size_human(self) -> str:
        return format_size(self.size_bytes)


class FolderAggregate(BaseModel):
    """Accumulated totals of one folder from every file beneath it."""

    model_config = ConfigDict(frozen=True)

    folder_path: str = Field(..., description="Absolute path of the folder")
    total_size_bytes: int = Field(0, ge=0, description="Bytes of all files transitively contained")
    file_count: int = Field(0, ge=0, description="Files transitively contained")
    direct_file_count: int = Field(0, ge=0, description="Files directly inside the folder")
    depth: int = Field(0, ge=0, description="Path components below the scan root")
    incomplete: bool = Field(
        False, description="Some entry at or below the folder was not walked"
    )

    @property
    def name(self) -> str:
        return os.path.basename(self.folder_path.rstrip("/\\")) or self.folder_path

    @property
    def is_hidden(self) -> bool:
        return self.name.startswith(".")

    @property
    def is_empty(self) -> bool:
        """True when no file exists anywhere beneath the folder and all of it was walked."""
        return self.file_count == 0 and not self.incomplete

    @property
    def size_gb(self) -> float:
        return self.total_size_bytes / (1000**3)

    @property
    def size_human(self) -> str:
        return format_size(self.total_size_bytes)


class DriveScanResult(BaseModel):
    """Output of one walk of a drive; the unit stored in the scan cache."""

    model_config = ConfigDict(frozen=True)

    drive: str = Field(..., description="Normalized scan root")
    files: tuple[FileRecord, ...] = Field(default_factory=tuple)
    folders: Mapping[str, FolderAggregate] = Field(default_factory=dict, validate_default=True)
    scanned_at: datetime = Field(default_factory=datetime.now)
    duration_seconds: float = Field(0.0, description="Wall time of the walk")
    skipped_entries: int = Field(0, description="Entries dropped because they could not be read")

    @field_validator("folders", mode="after")
    @classmethod
    def _read_only_folders(
        cls, value: Mapping[str, FolderAggregate]
    ) -> Mapping[str, FolderAggregate]:
        return MappingProxyType(dict(value))

    @property
    def file_count(self) -> int:
        return len(self.files)

    @property
    def total_size_bytes(self) -> int:
        return sum(f.size_bytes for f in self.files)

    def folder(self, path: str) -> Optional[FolderAggregate]:
        """Aggregate for a folder path, or None if the walk never visited it."""
        return self.folders.get(path)


class TypeStats(BaseModel):
    """Size and count totals of one file extension."""

    model_config = ConfigDict(frozen=True)

    extension: str = Field(..., description="Lowercased extension or the no-extension sentinel")
    total_size_bytes: int = Field(0, ge=0)
    file_count: int = Field(0, ge=0)

    @property
    def size_human(self) -> str:
        return format_size(self.total_size_bytes)


class DriveSpace(BaseModel):
    """Total, used and free space of a drive."""

    total_bytes: int = Field(..., description="Total drive size in bytes")
    used_bytes: int = Field(..., description="Used space in bytes")
    free_bytes: int = Field(..., description="Free space in bytes")
    mount_point: str = Field("/", description="Drive root")

    @property
    def total_gb(self) -> float:
        return self.total_bytes / (1000**3)

    @property
    def used_gb(self) -> float:
        return self.used_bytes / (1000**3)

    @property
    def free_gb(self) -> float:
        return self.free_bytes / (1000**3)

    @property
    def free_percent(self) -> float:
        """Percentage of the drive that is free."""
        return (self.free_bytes / self.total_bytes) * 100 if self.total_bytes > 0 else 0

    @property
    def used_percent(self) -> float:
        """Percentage of the drive that is used."""
        return (self.used_bytes / self.total_bytes) * 100 if self.total_bytes > 0 else 0


class DriveReport(BaseModel):
    """Everything a full drive analysis produces."""

    drive: str
    generated_at: datetime = Field(default_factory=datetime.now)
    space: Optional[DriveSpace] = None
    space_error: Optional[str] = Field(None, description="Why the space query failed")
    largest_folders: list[FolderAggregate] = Field(default_factory=list)
    empty_folders: list[str] = Field(default_factory=list)
    file_types: list[TypeStats] = Field(default_factory=list)
    largest_files: list[FileRecord] = Field(default_factory=list)
    recent_files: list[FileRecord] = Field(default_factory=list)
    old_files: list[FileRecord] = Field(default_factory=list)
