"""Parallel tree walk for storalyzer.

One walk lists every directory under a scan root exactly once. Each directory
is a task on a thread pool; a finished task fans its sub-directories out as
new tasks. Folder totals are built afterwards from the per-directory listings
by adding direct totals into every ancestor, so the order in which listings
arrive never changes the result.
"""

import logging
import os
import stat
import time
from concurrent.futures import FIRST_COMPLETED, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, Optional

from storalyzer.config import Settings
from storalyzer.exceptions import RootAccessError
from storalyzer.models import DriveScanResult, FileRecord, FolderAggregate

logger = logging.getLogger(__name__)


def timestamp_to_datetime(timestamp: float) -> Optional[datetime]:
    """Convert an st_*time value to an aware UTC datetime, None if out of range."""
    try:
        return datetime.fromtimestamp(timestamp, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None


@dataclass
class DirectoryListing:
    """What one directory task found: its files and the sub-directories to visit."""

    path: str
    parent: Optional[str]
    depth: int
    files: list[FileRecord] = field(default_factory=list)
    subdirs: list[str] = field(default_factory=list)
    skipped: int = 0
    # an entry was denylisted, on another device or unreadable
    incomplete: bool = False

    @property
    def direct_size(self) -> int:
        return sum(f.size_bytes for f in self.files)


def aggregate_listings(listings: Iterable[DirectoryListing]) -> dict[str, FolderAggregate]:
    """
    Build folder aggregates from directory listings.

    Direct totals are summed per folder, then rolled up deepest-first into each
    parent, which leaves every folder with the totals of its whole subtree. A
    folder is incomplete when it or any folder beneath it was not fully walked.

    Args:
        listings: Listings of one walk, in any order

    Returns:
        Mapping of folder path to FolderAggregate, one per listed directory
    """
    # path -> [total size, total count, direct count]
    totals: dict[str, list[int]] = {}
    parents: dict[str, Optional[str]] = {}
    depths: dict[str, int] = {}
    incomplete: set[str] = set()

    for listing in listings:
        entry = totals.setdefault(listing.path, [0, 0, 0])
        count = len(listing.files)
        entry[0] += listing.direct_size
        entry[1] += count
        entry[2] += count
        parents[listing.path] = listing.parent
        depths[listing.path] = listing.depth
        if listing.incomplete:
            incomplete.add(listing.path)

    for path in sorted(totals, key=lambda p: depths[p], reverse=True):
        parent = parents[path]
        if parent is None or parent not in totals:
            continue
        totals[parent][0] += totals[path][0]
        totals[parent][1] += totals[path][1]
        if path in incomplete:
            incomplete.add(parent)

    return {
        path: FolderAggregate(
            folder_path=path,
            total_size_bytes=size,
            file_count=count,
            direct_file_count=direct,
            depth=depths[path],
            incomplete=path in incomplete,
        )
        for path, (size, count, direct) in totals.items()
    }


class TreeWalker:
    """Walks one scan root on a fixed-size thread pool."""

    def __init__(self, settings: Optional[Settings] = None, max_workers: Optional[int] = None):
        self._settings = settings or Settings()
        self.max_workers = max_workers or self._settings.max_workers or os.cpu_count() or 4
        self._skip_names = frozenset(name.casefold() for name in self._settings.skip_names)
        self._skip_paths = tuple(
            os.path.normcase(os.path.normpath(p)) for p in self._settings.skip_paths
        )

    def is_skipped(self, path: str, name: str) -> bool:
        """Whether a directory is on the denylist and must not be descended into."""
        if name.casefold() in self._skip_names:
            return True

        normalized = os.path.normcase(os.path.normpath(path))
        for prefix in self._skip_paths:
            if normalized == prefix or normalized.startswith(prefix.rstrip(os.sep) + os.sep):
                return True
        return False

    def walk(self, root: str) -> DriveScanResult:
        """
        Walk a scan root.

        Args:
            root: Normalized drive root or absolute folder path

        Returns:
            DriveScanResult with every readable file and every visited folder

        Raises:
            RootAccessError: If the root is missing, not a directory or unreadable
        """
        tic = time.perf_counter()
        root_dev = self._check_root(root)
        logger.info("Scanning %s with %d workers", root, self.max_workers)

        listings: list[DirectoryListing] = []
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            pending = {executor.submit(self._list_directory, root, None, 0, root_dev, True)}
            while pending:
                done, pending = wait(pending, return_when=FIRST_COMPLETED)
                for future in done:
                    listing = future.result()
                    listings.append(listing)
                    for subdir in listing.subdirs:
                        pending.add(
                            executor.submit(
                                self._list_directory,
                                subdir,
                                listing.path,
                                listing.depth + 1,
                                root_dev,
                            )
                        )

        folders = aggregate_listings(listings)
        files = tuple(record for listing in listings for record in listing.files)
        skipped = sum(listing.skipped for listing in listings)
        toc = time.perf_counter()

        logger.info(
            "Scanned %s: %d files, %d folders, %d skipped entries in %.2fs",
            root,
            len(files),
            len(folders),
            skipped,
            toc - tic,
        )

        return DriveScanResult(
            drive=root,
            files=files,
            folders=folders,
            duration_seconds=toc - tic,
            skipped_entries=skipped,
        )

    def _check_root(self, root: str) -> int:
        """Validate the scan root and return its device id."""
        try:
            root_stat = os.stat(root)
        except OSError as e:
            raise RootAccessError(f"Cannot access scan root {root}: {e}") from e

        if not stat.S_ISDIR(root_stat.st_mode):
            raise RootAccessError(f"Scan root is not a directory: {root}")

        return root_stat.st_dev

    def _list_directory(
        self,
        path: str,
        parent: Optional[str],
        depth: int,
        root_dev: int,
        is_root: bool = False,
    ) -> DirectoryListing:
        listing = DirectoryListing(path=path, parent=parent, depth=depth)

        try:
            with os.scandir(path) as entries:
                for entry in entries:
                    try:
                        if entry.is_symlink():
                            continue

                        if entry.is_dir(follow_symlinks=False):
                            if self.is_skipped(entry.path, entry.name):
                                listing.incomplete = True
                                logger.debug("Skipping denylisted folder %s", entry.path)
                                continue
                            if os.lstat(entry.path).st_dev != root_dev:
                                listing.incomplete = True
                                logger.debug("Not crossing mount boundary at %s", entry.path)
                                continue
                            listing.subdirs.append(entry.path)

                        elif entry.is_file(follow_symlinks=False):
                            entry_stat = entry.stat(follow_symlinks=False)
                            listing.files.append(
                                FileRecord(
                                    full_path=entry.path,
                                    size_bytes=entry_stat.st_size,
                                    last_modified=timestamp_to_datetime(entry_stat.st_mtime),
                                    last_accessed=timestamp_to_datetime(entry_stat.st_atime),
                                )
                            )
                    except OSError as e:
                        listing.skipped += 1
                        listing.incomplete = True
                        logger.debug("Skipping unreadable entry %s: %s", entry.path, e)
        except OSError as e:
            if is_root:
                raise RootAccessError(f"Cannot read scan root {path}: {e}") from e
            listing.skipped += 1
            listing.incomplete = True
            logger.debug("Skipping unreadable folder %s: %s", path, e)

        return listing


def walk_drive(
    root: str,
    settings: Optional[Settings] = None,
    max_workers: Optional[int] = None,
) -> DriveScanResult:
    """Walk a scan root once and return its files and folder aggregates."""
    return TreeWalker(settings=settings, max_workers=max_workers).walk(root)
