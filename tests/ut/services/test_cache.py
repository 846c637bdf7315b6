"""运行日志缓存测试"""

from __future__ import annotations

import threading
from pathlib import Path

import pytest

from pipelogs.core.exceptions import AuthenticationError, NotFoundError
from pipelogs.core.models import CacheKey
from pipelogs.services.cache import LogCache
from pipelogs.services.fetcher import LogFetcher

KEY = CacheKey("demo", 83, 12345)


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


def _cache(source, base: Path, clock: FakeClock, ttl: float = 900) -> LogCache:
    return LogCache(LogFetcher(source), base, ttl_seconds=ttl, clock=clock)


class TestResolve:
    def test_miss_downloads_then_hit_reuses(self, tmp_path: Path, fake_source, clock) -> None:
        cache = _cache(fake_source, tmp_path, clock)

        entry, cached = cache.resolve_entry(KEY)
        assert cached is False
        assert entry.directory == tmp_path / "demo" / "pipeline-83-run-12345"
        assert (entry.directory / "log-001.txt").is_file()

        clock.advance(60)
        again, cached = cache.resolve_entry(KEY)
        assert cached is True
        assert again.directory == entry.directory
        assert fake_source.list_calls == 1

    def test_expired_entry_redownloads(self, tmp_path: Path, fake_source, clock) -> None:
        cache = _cache(fake_source, tmp_path, clock)
        cache.resolve(KEY)
        clock.advance(900)
        _, cached = cache.resolve_entry(KEY)
        assert cached is False
        assert fake_source.list_calls == 2

    def test_deleted_directory_redownloads(self, tmp_path: Path, fake_source, clock) -> None:
        import shutil

        cache = _cache(fake_source, tmp_path, clock)
        directory = cache.resolve(KEY)
        shutil.rmtree(directory)
        _, cached = cache.resolve_entry(KEY)
        assert cached is False
        assert (directory / "log-001.txt").is_file()

    def test_refresh_replaces_stale_files(self, tmp_path: Path, make_source, clock) -> None:
        source = make_source({1: "one", 2: "two"})
        cache = _cache(source, tmp_path, clock)
        directory = cache.resolve(KEY)
        assert (directory / "log-002.txt").exists()

        del source.contents[2]
        clock.advance(901)
        cache.resolve(KEY)
        assert (directory / "log-001.txt").exists()
        assert not (directory / "log-002.txt").exists()
        leftovers = [p.name for p in directory.parent.iterdir() if p.name != directory.name]
        assert leftovers == []

    def test_partial_batch_is_cached(self, tmp_path: Path, fake_source, clock) -> None:
        cache = _cache(fake_source, tmp_path, clock)
        entry, _ = cache.resolve_entry(KEY)
        assert entry.report is not None
        assert entry.report.skipped_count == 1
        assert len(cache) == 1

    def test_not_found_creates_no_entry(self, tmp_path: Path, make_source, clock) -> None:
        cache = _cache(make_source({}), tmp_path, clock)
        with pytest.raises(NotFoundError):
            cache.resolve(KEY)
        assert cache.get(KEY) is None
        run_parent = tmp_path / "demo"
        assert not run_parent.exists() or list(run_parent.iterdir()) == []

    def test_auth_error_keeps_previous_entry(self, tmp_path: Path, make_source, clock) -> None:
        source = make_source({1: "one"})
        cache = _cache(source, tmp_path, clock)
        directory = cache.resolve(KEY)
        clock.advance(901)
        source.list_error = AuthenticationError("认证失败")
        with pytest.raises(AuthenticationError):
            cache.resolve(KEY)
        assert (directory / "log-001.txt").read_text(encoding="utf-8") == "one"

    def test_different_keys_separate_directories(self, tmp_path: Path, fake_source, clock) -> None:
        cache = _cache(fake_source, tmp_path, clock)
        a = cache.resolve(CacheKey("demo", 83, 1))
        b = cache.resolve(CacheKey("demo", 83, 2))
        assert a != b
        assert len(cache) == 2


class TestSingleFlight:
    def test_concurrent_resolve_downloads_once(self, tmp_path: Path, make_source) -> None:
        source = make_source({1: "one", 2: "two"}, delay=0.1)
        cache = LogCache(LogFetcher(source), tmp_path)
        results: list[tuple[Path, bool]] = []
        lock = threading.Lock()

        def worker() -> None:
            entry, cached = cache.resolve_entry(KEY)
            with lock:
                results.append((entry.directory, cached))

        threads = [threading.Thread(target=worker) for _ in range(5)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert source.list_calls == 1
        assert len({d for d, _ in results}) == 1
        assert sorted(c for _, c in results) == [False, True, True, True, True]


class TestEviction:
    def test_expired_entries_evicted_on_resolve(self, tmp_path: Path, fake_source, clock) -> None:
        cache = _cache(fake_source, tmp_path, clock)
        old = CacheKey("demo", 1, 1)
        cache.resolve(old)
        clock.advance(1000)
        cache.resolve(CacheKey("demo", 1, 2))
        assert cache.get(old) is None
        assert len(cache) == 1

    def test_eviction_keeps_files(self, tmp_path: Path, fake_source, clock) -> None:
        cache = _cache(fake_source, tmp_path, clock)
        directory = cache.resolve(KEY)
        clock.advance(1000)
        assert cache.evict_expired() == 1
        assert directory.is_dir()

    def test_invalidate(self, tmp_path: Path, fake_source, clock) -> None:
        cache = _cache(fake_source, tmp_path, clock)
        directory = cache.resolve(KEY)
        assert cache.invalidate(KEY, remove_files=True) is True
        assert not directory.exists()
        assert cache.invalidate(KEY) is False

    def test_clear(self, tmp_path: Path, fake_source, clock) -> None:
        cache = _cache(fake_source, tmp_path, clock)
        cache.resolve(CacheKey("demo", 1, 1))
        cache.resolve(CacheKey("demo", 1, 2))
        assert cache.clear() == 2
        assert len(cache) == 0

    def test_status(self, tmp_path: Path, fake_source, clock) -> None:
        cache = _cache(fake_source, tmp_path, clock)
        cache.resolve(KEY)
        clock.advance(30)
        [status] = cache.status()
        assert status["key"] == "demo:83:12345"
        assert status["ageSeconds"] == 30
        assert status["expired"] is False
        assert status["logsCount"] == 2


class TestKeyLocks:
    def test_locks_released_after_use(self, tmp_path: Path, fake_source, clock) -> None:
        cache = _cache(fake_source, tmp_path, clock)
        for run_id in range(1, 6):
            cache.resolve(CacheKey("demo", 83, run_id))
        cache.invalidate(CacheKey("demo", 83, 1))
        assert cache._key_locks == {}

    def test_locks_released_after_failure(self, tmp_path: Path, make_source, clock) -> None:
        cache = _cache(make_source({}), tmp_path, clock)
        with pytest.raises(NotFoundError):
            cache.resolve(KEY)
        assert cache._key_locks == {}

    def test_locks_released_after_concurrent_resolve(self, tmp_path: Path, make_source) -> None:
        source = make_source({1: "one"}, delay=0.05)
        cache = LogCache(LogFetcher(source), tmp_path)
        threads = [threading.Thread(target=cache.resolve, args=(KEY,)) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert source.list_calls == 1
        assert cache._key_locks == {}
