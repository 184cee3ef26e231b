"""Tests for the per-drive scan cache."""

import os
import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from conftest import write_file
from storalyzer.cache import ScanCache
from storalyzer.config import Settings
from storalyzer.exceptions import RootAccessError
from storalyzer.models import DriveScanResult, FileRecord
from storalyzer.walker import walk_drive


class CountingWalker:
    """Fake walker returning a fresh result per call and recording each call."""

    def __init__(self):
        self.calls = []
        self._lock = threading.Lock()

    def __call__(self, drive: str) -> DriveScanResult:
        with self._lock:
            self.calls.append(drive)
            n = len(self.calls)
        return DriveScanResult(
            drive=drive,
            files=(FileRecord(full_path=f"{drive}/file{n}", size_bytes=n),),
        )


class TestScanCache:
    def test_miss_then_hit(self):
        walker = CountingWalker()
        cache = ScanCache(walker=walker)

        first = cache.get_or_scan("/data")
        second = cache.get_or_scan("/data")

        assert first is second
        assert walker.calls == ["/data"]
        assert cache.walk_count == 1
        assert "/data" in cache
        assert len(cache) == 1

    def test_trailing_separator_is_same_drive(self, tmp_path):
        walker = CountingWalker()
        cache = ScanCache(walker=walker)

        cache.get_or_scan(str(tmp_path))
        cache.get_or_scan(str(tmp_path) + os.sep)

        assert cache.walk_count == 1

    def test_get_does_not_walk(self):
        walker = CountingWalker()
        cache = ScanCache(walker=walker)

        assert cache.get("/data") is None
        assert walker.calls == []

    def test_invalidate(self):
        walker = CountingWalker()
        cache = ScanCache(walker=walker)
        first = cache.get_or_scan("/data")

        assert cache.invalidate("/data") is True
        assert cache.invalidate("/data") is False
        assert "/data" not in cache

        second = cache.get_or_scan("/data")
        assert second is not first
        assert cache.walk_count == 2

    def test_drives_and_clear(self):
        cache = ScanCache(walker=CountingWalker())
        cache.get_or_scan("/b")
        cache.get_or_scan("/a")

        assert cache.drives() == ["/a", "/b"]
        cache.clear()
        assert len(cache) == 0

    def test_failed_walk_caches_nothing(self):
        def failing(drive):
            raise RootAccessError(f"Cannot access scan root {drive}")

        cache = ScanCache(walker=failing)
        with pytest.raises(RootAccessError):
            cache.get_or_scan("/gone")

        assert "/gone" not in cache

    def test_refresh_replaces_entry(self):
        walker = CountingWalker()
        cache = ScanCache(walker=walker)
        first = cache.get_or_scan("/data")

        second = cache.refresh("/data")

        assert second is not first
        assert cache.get("/data") is second
        assert [f.full_path for f in second.files] == ["/data/file2"]
        assert cache.walk_count == 2

    def test_failed_refresh_keeps_previous_entry(self):
        attempts = []

        def flaky(drive):
            attempts.append(drive)
            if len(attempts) > 1:
                raise RootAccessError("Cannot read scan root")
            return DriveScanResult(drive=drive)

        cache = ScanCache(walker=flaky)
        first = cache.get_or_scan("/data")

        with pytest.raises(RootAccessError):
            cache.refresh("/data")

        assert cache.get("/data") is first

    def test_walk_after_failure_retries(self):
        attempts = []

        def flaky(drive):
            attempts.append(drive)
            if len(attempts) == 1:
                raise RootAccessError("Cannot read scan root")
            return DriveScanResult(drive=drive)

        cache = ScanCache(walker=flaky)
        with pytest.raises(RootAccessError):
            cache.get_or_scan("/data")

        assert cache.get_or_scan("/data").drive == "/data"
        assert len(attempts) == 2


class TestConcurrency:
    def test_same_drive_walks_once(self):
        started = threading.Event()
        release = threading.Event()
        calls = []

        def slow_walker(drive):
            calls.append(drive)
            started.set()
            assert release.wait(timeout=5)
            return DriveScanResult(drive=drive)

        cache = ScanCache(walker=slow_walker)

        with ThreadPoolExecutor(max_workers=4) as pool:
            futures = [pool.submit(cache.get_or_scan, "/data")]
            assert started.wait(timeout=5)
            futures += [pool.submit(cache.get_or_scan, "/data") for _ in range(3)]
            release.set()
            results = [f.result(timeout=5) for f in futures]

        assert calls == ["/data"]
        assert cache.walk_count == 1
        assert all(r is results[0] for r in results)

    def test_waiters_see_the_owner_failure(self):
        started = threading.Event()
        release = threading.Event()

        def failing(drive):
            started.set()
            assert release.wait(timeout=5)
            raise RootAccessError("Cannot read scan root")

        cache = ScanCache(walker=failing)

        with ThreadPoolExecutor(max_workers=2) as pool:
            owner = pool.submit(cache.get_or_scan, "/data")
            assert started.wait(timeout=5)
            waiter = pool.submit(cache.get_or_scan, "/data")
            release.set()

            with pytest.raises(RootAccessError):
                owner.result(timeout=5)
            with pytest.raises(RootAccessError):
                waiter.result(timeout=5)

        assert "/data" not in cache

    def test_invalidate_detaches_walk_in_progress(self):
        started = threading.Event()
        release = threading.Event()
        calls = []

        def walker(drive):
            calls.append(drive)
            n = len(calls)
            if n == 1:
                started.set()
                assert release.wait(timeout=5)
            return DriveScanResult(
                drive=drive,
                files=(FileRecord(full_path=f"{drive}/file{n}", size_bytes=n),),
            )

        cache = ScanCache(walker=walker)

        with ThreadPoolExecutor(max_workers=1) as pool:
            stale = pool.submit(cache.get_or_scan, "/data")
            assert started.wait(timeout=5)

            cache.invalidate("/data")
            fresh = cache.get_or_scan("/data")

            release.set()
            old = stale.result(timeout=5)

        assert cache.walk_count == 2
        assert [f.full_path for f in old.files] == ["/data/file1"]
        assert [f.full_path for f in fresh.files] == ["/data/file2"]
        assert cache.get("/data") is fresh

    def test_clear_detaches_walk_in_progress(self):
        started = threading.Event()
        release = threading.Event()

        def slow_walker(drive):
            started.set()
            assert release.wait(timeout=5)
            return DriveScanResult(drive=drive)

        cache = ScanCache(walker=slow_walker)

        with ThreadPoolExecutor(max_workers=1) as pool:
            owner = pool.submit(cache.get_or_scan, "/data")
            assert started.wait(timeout=5)
            cache.clear()
            release.set()
            assert owner.result(timeout=5).drive == "/data"

        assert "/data" not in cache
        assert len(cache) == 0

    def test_different_drives_walk_in_parallel(self):
        # both walks must be running at once to pass the barrier
        barrier = threading.Barrier(2, timeout=5)

        def walker(drive):
            barrier.wait()
            return DriveScanResult(drive=drive)

        cache = ScanCache(walker=walker)

        with ThreadPoolExecutor(max_workers=2) as pool:
            first = pool.submit(cache.get_or_scan, "/a")
            second = pool.submit(cache.get_or_scan, "/b")
            assert first.result(timeout=10).drive == "/a"
            assert second.result(timeout=10).drive == "/b"

        assert cache.walk_count == 2


class TestWithRealWalk:
    def test_rescan_sees_new_files(self, sample_tree):
        settings = Settings(skip_names=[], skip_paths=[])
        cache = ScanCache(walker=lambda drive: walk_drive(drive, settings=settings))
        drive = str(sample_tree)

        before = cache.get_or_scan(drive)
        write_file(sample_tree / "B" / "new.log", 500)

        assert cache.get_or_scan(drive) is before
        cache.invalidate(drive)
        after = cache.get_or_scan(drive)

        assert after.total_size_bytes == before.total_size_bytes + 500
        assert after.folder(str(sample_tree / "B")).file_count == 1
        assert before.folder(str(sample_tree / "B")).file_count == 0
        assert after.file_count == before.file_count + 1
