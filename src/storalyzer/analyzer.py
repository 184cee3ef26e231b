"""Queries over a drive scan, and the engine that serves them from the cache."""

import logging
import os
from datetime import datetime, timedelta, timezone
from pathlib import PurePath
from typing import Iterable, Optional

from storalyzer.cache import ScanCache
from storalyzer.config import Settings
from storalyzer.drives import get_drive_space
from storalyzer.exceptions import StoralyzerError
from storalyzer.models import (
    NO_EXTENSION,
    DriveReport,
    DriveScanResult,
    DriveSpace,
    FileRecord,
    FolderAggregate,
    TypeStats,
)
from storalyzer.walker import TreeWalker

logger = logging.getLogger(__name__)


def _take(items: list, limit: Optional[int]) -> list:
    return items if limit is None else items[:limit]


def _by_size(files: Iterable[FileRecord]) -> list[FileRecord]:
    return sorted(files, key=lambda f: f.size_bytes, reverse=True)


def file_type_distribution(result: DriveScanResult, min_size_bytes: int = 0) -> list[TypeStats]:
    """
    Group files by lowercased extension.

    Args:
        result: Scan to query
        min_size_bytes: Groups must total more than this to be kept

    Returns:
        TypeStats sorted by total size descending; equal totals keep first-seen order
    """
    groups: dict[str, list[int]] = {}
    for record in result.files:
        ext = record.extension or NO_EXTENSION
        stats = groups.setdefault(ext, [0, 0])
        stats[0] += record.size_bytes
        stats[1] += 1

    distribution = [
        TypeStats(extension=ext, total_size_bytes=size, file_count=count)
        for ext, (size, count) in groups.items()
        if size > min_size_bytes
    ]
    distribution.sort(key=lambda s: s.total_size_bytes, reverse=True)
    return distribution


def largest_files(result: DriveScanResult, limit: Optional[int] = None) -> list[FileRecord]:
    """Files sorted by size descending, optionally cut to the top `limit`."""
    return _take(_by_size(result.files), limit)


def largest_folders(
    result: DriveScanResult,
    max_depth: int = 3,
    min_size_bytes: int = 0,
    limit: Optional[int] = None,
    include_hidden: bool = False,
) -> list[FolderAggregate]:
    """
    Largest folders close to the scan root.

    Deeper folders are not listed on their own; their bytes are already part
    of their shallower ancestors.

    Args:
        result: Scan to query
        max_depth: Deepest level below the root that is listed
        min_size_bytes: Folders must total more than this
        limit: Keep only the top N
        include_hidden: Also list folders whose name starts with '.'

    Returns:
        Folder aggregates sorted by total size descending
    """
    folders = [
        folder
        for folder in result.folders.values()
        if 1 <= folder.depth <= max_depth
        and folder.total_size_bytes > min_size_bytes
        and (include_hidden or not folder.is_hidden)
    ]
    folders.sort(key=lambda f: f.total_size_bytes, reverse=True)
    return _take(folders, limit)


def recent_files(
    result: DriveScanResult,
    days: int = 30,
    now: Optional[datetime] = None,
    limit: Optional[int] = None,
) -> list[FileRecord]:
    """
    Files modified within the last `days` days, largest first.

    A file modified exactly `days` ago is not recent. Files without a
    modification time never match.
    """
    cutoff = (now or datetime.now(timezone.utc)) - timedelta(days=days)
    matches = [
        f for f in result.files if f.last_modified is not None and f.last_modified > cutoff
    ]
    return _take(_by_size(matches), limit)


def old_files(
    result: DriveScanResult,
    days: int = 180,
    now: Optional[datetime] = None,
    limit: Optional[int] = None,
) -> list[FileRecord]:
    """
    Files last modified more than `days` days ago, largest first.

    Files without a modification time never match.
    """
    cutoff = (now or datetime.now(timezone.utc)) - timedelta(days=days)
    matches = [
        f for f in result.files if f.last_modified is not None and f.last_modified < cutoff
    ]
    return _take(_by_size(matches), limit)


def is_still_empty(path: str) -> bool:
    """
    Re-list a folder and confirm it holds nothing but (empty) folders.

    Unreadable or vanished folders are not confirmed.
    """
    try:
        with os.scandir(path) as entries:
            for entry in entries:
                if not entry.is_dir(follow_symlinks=False):
                    return False
    except OSError:
        return False
    return True


def empty_folders(
    result: DriveScanResult,
    verify: bool = True,
    reserved_names: Iterable[str] = (),
) -> list[str]:
    """
    Folders with no file anywhere beneath them.

    Folders with a denylisted, other-device or unreadable part beneath them
    are never reported, with or without verification.

    Args:
        result: Scan to query
        verify: Re-list each candidate on disk and drop it if it now holds
            files or cannot be read
        reserved_names: System folder names never reported

    Returns:
        Folder paths sorted alphabetically (the scan root is never included)
    """
    reserved = {name.casefold() for name in reserved_names}

    candidates = []
    for folder in result.folders.values():
        if folder.depth == 0 or not folder.is_empty:
            continue
        relative = PurePath(os.path.relpath(folder.folder_path, result.drive))
        if any(part.casefold() in reserved for part in relative.parts):
            continue
        candidates.append(folder.folder_path)

    candidates.sort()
    if not verify:
        return candidates

    confirmed = [path for path in candidates if is_still_empty(path)]
    if len(confirmed) != len(candidates):
        logger.debug(
            "Dropped %d empty folder candidates that failed verification",
            len(candidates) - len(confirmed),
        )
    return confirmed


class StorageAnalyzer:
    """
    Disk usage engine: owns the scan cache and answers queries from it.

    Every query takes an already normalized drive (see
    storalyzer.drives.normalize_drive). The first query for a drive walks it;
    later queries reuse the cached walk until `rescan` is called.
    """

    def __init__(self, settings: Optional[Settings] = None, cache: Optional[ScanCache] = None):
        self.settings = settings or Settings()
        if cache is None:
            walker = TreeWalker(settings=self.settings)
            cache = ScanCache(walker=walker.walk)
        self.cache = cache

    def scan(self, drive: str) -> DriveScanResult:
        """Cached scan of a drive, walking it on a miss."""
        return self.cache.get_or_scan(drive)

    def rescan(self, drive: str) -> DriveScanResult:
        """Walk a drive again, replacing its cached scan once the walk succeeds."""
        return self.cache.refresh(drive)

    def is_cached(self, drive: str) -> bool:
        return drive in self.cache

    def drive_space(self, drive: str) -> DriveSpace:
        return get_drive_space(drive)

    def file_type_distribution(
        self, drive: str, min_size_bytes: Optional[int] = None
    ) -> list[TypeStats]:
        if min_size_bytes is None:
            min_size_bytes = self.settings.min_file_type_size_bytes
        return file_type_distribution(self.scan(drive), min_size_bytes)

    def largest_files(self, drive: str, limit: Optional[int] = None) -> list[FileRecord]:
        return largest_files(self.scan(drive), limit)

    def largest_folders(
        self,
        drive: str,
        limit: Optional[int] = None,
        min_size_bytes: Optional[int] = None,
    ) -> list[FolderAggregate]:
        if min_size_bytes is None:
            min_size_bytes = self.settings.min_folder_size_bytes
        return largest_folders(
            self.scan(drive),
            max_depth=self.settings.max_folder_depth,
            min_size_bytes=min_size_bytes,
            limit=limit,
        )

    def recent_large_files(
        self, drive: str, limit: Optional[int] = None, now: Optional[datetime] = None
    ) -> list[FileRecord]:
        return recent_files(self.scan(drive), self.settings.recent_days, now=now, limit=limit)

    def old_large_files(
        self, drive: str, limit: Optional[int] = None, now: Optional[datetime] = None
    ) -> list[FileRecord]:
        return old_files(self.scan(drive), self.settings.old_days, now=now, limit=limit)

    def empty_folders(self, drive: str, verify: Optional[bool] = None) -> list[str]:
        if verify is None:
            verify = self.settings.verify_empty_folders
        return empty_folders(
            self.scan(drive),
            verify=verify,
            reserved_names=self.settings.reserved_folder_names,
        )

    def analyze_drive(self, drive: str, now: Optional[datetime] = None) -> DriveReport:
        """
        Run every query for a drive from a single walk.

        A failed space query is recorded in the report instead of aborting it;
        scan errors propagate.
        """
        top_n = self.settings.top_n

        space = None
        space_error = None
        try:
            space = self.drive_space(drive)
        except StoralyzerError as e:
            logger.warning("%s", e)
            space_error = str(e)

        return DriveReport(
            drive=drive,
            space=space,
            space_error=space_error,
            largest_folders=self.largest_folders(drive, limit=top_n),
            empty_folders=self.empty_folders(drive),
            file_types=self.file_type_distribution(drive)[:top_n],
            largest_files=self.largest_files(drive, limit=top_n),
            recent_files=self.recent_large_files(drive, limit=top_n, now=now),
            old_files=self.old_large_files(drive, limit=top_n, now=now),
        )
