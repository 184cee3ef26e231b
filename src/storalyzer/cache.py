"""Per-drive scan cache for storalyzer.

The cache is the only mutable shared state of the engine. A lock guards the
entry map and the map of walks in flight; walks themselves run outside the
lock. A second request for a drive that is already being walked waits for
that walk instead of starting another.
"""

import logging
import threading
from concurrent.futures import Future
from typing import Callable, Optional

from storalyzer.drives import drive_key
from storalyzer.models import DriveScanResult
from storalyzer.walker import walk_drive

logger = logging.getLogger(__name__)


class ScanCache:
    """Most recent DriveScanResult per drive."""

    def __init__(self, walker: Optional[Callable[[str], DriveScanResult]] = None):
        self._walker = walker or walk_drive
        self._lock = threading.Lock()
        self._entries: dict[str, DriveScanResult] = {}
        self._inflight: dict[str, Future] = {}
        self.walk_count = 0

    def __contains__(self, drive: str) -> bool:
        with self._lock:
            return drive_key(drive) in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def drives(self) -> list[str]:
        """Drives that currently have a cached scan."""
        with self._lock:
            return sorted(result.drive for result in self._entries.values())

    def get(self, drive: str) -> Optional[DriveScanResult]:
        """Cached result for a drive without triggering a walk."""
        with self._lock:
            return self._entries.get(drive_key(drive))

    def get_or_scan(self, drive: str) -> DriveScanResult:
        """
        Return the cached scan of a drive, walking it first on a miss.

        Args:
            drive: Normalized drive root

        Returns:
            DriveScanResult for the drive

        Raises:
            RootAccessError: If the walk cannot read the drive root; nothing is cached
        """
        return self._scan(drive, force=False)

    def refresh(self, drive: str) -> DriveScanResult:
        """
        Walk a drive again and replace its cached scan.

        The previous entry keeps serving until the new walk completes; if the
        walk fails it stays in place.
        """
        return self._scan(drive, force=True)

    def _scan(self, drive: str, force: bool) -> DriveScanResult:
        key = drive_key(drive)

        with self._lock:
            cached = self._entries.get(key)
            if cached is not None and not force:
                logger.debug("Cache hit for %s", drive)
                return cached

            inflight = self._inflight.get(key)
            if inflight is None:
                owner = True
                inflight = Future()
                self._inflight[key] = inflight
                self.walk_count += 1
            else:
                owner = False

        if not owner:
            logger.info("Waiting for the scan of %s already in progress", drive)
            return inflight.result()

        if force:
            logger.info("Rescanning %s", drive)
        else:
            logger.info("No cached scan for %s, scanning", drive)

        try:
            result = self._walker(drive)
        except BaseException as e:
            with self._lock:
                if self._inflight.get(key) is inflight:
                    del self._inflight[key]
            inflight.set_exception(e)
            raise

        with self._lock:
            # False when the walk was invalidated while running
            current = self._inflight.get(key) is inflight
            if current:
                self._entries[key] = result
                del self._inflight[key]
        inflight.set_result(result)

        if current:
            logger.info("Cached scan of %s", drive)
        else:
            logger.info("Discarded scan of %s invalidated while in progress", drive)
        return result

    def invalidate(self, drive: str) -> bool:
        """
        Drop the cached scan of a drive so the next request walks it again.

        A walk of the drive already in progress is detached: its callers still
        get its result, but it is not cached and later requests start a new walk.

        Returns:
            True if an entry was removed
        """
        key = drive_key(drive)
        with self._lock:
            removed = self._entries.pop(key, None)
            self._inflight.pop(key, None)

        if removed is not None:
            logger.info("Invalidated cached scan of %s", drive)
        return removed is not None

    def clear(self) -> None:
        """Drop every cached scan and detach walks in progress."""
        with self._lock:
            self._entries.clear()
            self._inflight.clear()
