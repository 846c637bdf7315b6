"""运行日志目录缓存

职责:
- 维护 CacheKey → (本地目录, 创建时间) 的内存映射
- 判定命中 / 过期 / 未命中，未命中或过期时调用下载器重新拉取
- 每次 resolve 顺带清理所有过期条目（无后台清理线程）

缓存策略:
  - 以 (project, pipeline, run) 为缓存键，TTL 默认 15 分钟
  - 命中但目录已被删除时视为未命中
  - 新批次先下载到同级临时目录，完成后整体替换目标目录，
    旧批次的文件不会与新批次混在一起

并发:
  同一个键的 resolve 串行执行（单飞），并发调用者等待同一次下载；
  不同键互不阻塞。
"""

from __future__ import annotations

import logging
import shutil
import tempfile
import threading
import time
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Iterator

from pipelogs.core.models import CacheEntry, CacheKey
from pipelogs.core.paths import run_directory
from pipelogs.core.protocols import LogDownloader

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 15 * 60


class LogCache:
    """带 TTL 的运行日志目录缓存"""

    def __init__(
        self,
        downloader: LogDownloader,
        base_dir: str | Path,
        *,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.downloader = downloader
        self.base_dir = Path(base_dir)
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[CacheKey, CacheEntry] = {}
        self._entries_lock = threading.Lock()
        # 键 → [锁, 持有或等待者数量]；计数归零即移除，映射只含进行中的键
        self._key_locks: dict[CacheKey, list] = {}
        self._key_locks_guard = threading.Lock()

    def __len__(self) -> int:
        with self._entries_lock:
            return len(self._entries)

    @contextmanager
    def _lock_for(self, key: CacheKey) -> Iterator[None]:
        with self._key_locks_guard:
            slot = self._key_locks.setdefault(key, [threading.Lock(), 0])
            slot[1] += 1
        try:
            with slot[0]:
                yield
        finally:
            with self._key_locks_guard:
                slot[1] -= 1
                if slot[1] == 0:
                    del self._key_locks[key]

    # ---- 查询 ----

    def get(self, key: CacheKey) -> CacheEntry | None:
        """返回当前条目（不判断是否过期，不触发下载）"""
        with self._entries_lock:
            return self._entries.get(key)

    def entries(self) -> list[CacheEntry]:
        with self._entries_lock:
            return list(self._entries.values())

    def status(self) -> list[dict]:
        now = self._clock()
        return [
            {**e.to_dict(now), "expired": e.is_expired(now, self.ttl_seconds)}
            for e in sorted(self.entries(), key=lambda e: e.created_at)
        ]

    # ---- 解析 ----

    def resolve(self, key: CacheKey) -> Path:
        """返回可用的本地目录，必要时先下载"""
        entry, _ = self.resolve_entry(key)
        return entry.directory

    def resolve_entry(self, key: CacheKey) -> tuple[CacheEntry, bool]:
        """返回 (条目, 是否命中缓存)

        下载器抛出的异常（NotFoundError / AuthenticationError 等）原样传播，
        此时不会新建或更新条目。
        """
        self.evict_expired()

        with self._lock_for(key):
            entry = self.get(key)
            if entry is not None:
                if entry.is_expired(self._clock(), self.ttl_seconds):
                    logger.info("缓存已过期，重新下载: %s", key)
                elif not entry.directory.is_dir():
                    logger.info("缓存目录已被删除，重新下载: %s", entry.directory)
                else:
                    logger.info("使用缓存日志: %s", entry.directory)
                    return entry, True
            else:
                logger.info("缓存未命中，下载日志: %s", key)

            return self._populate(key), False

    def _populate(self, key: CacheKey) -> CacheEntry:
        target = run_directory(self.base_dir, key)
        target.parent.mkdir(parents=True, exist_ok=True)
        staging = Path(tempfile.mkdtemp(prefix=f".{target.name}-", dir=str(target.parent)))
        try:
            report = self.downloader.download(key, staging)
        except Exception:
            shutil.rmtree(staging, ignore_errors=True)
            raise

        self._swap(staging, target)
        report.directory = target
        entry = CacheEntry(key=key, directory=target, created_at=self._clock(), report=report)
        with self._entries_lock:
            self._entries[key] = entry
        return entry

    @staticmethod
    def _swap(staging: Path, target: Path) -> None:
        """用 staging 整体替换 target 目录"""
        if not target.exists():
            staging.rename(target)
            return
        trash = target.with_name(f".{target.name}.old-{uuid.uuid4().hex[:8]}")
        target.rename(trash)
        staging.rename(target)
        shutil.rmtree(trash, ignore_errors=True)

    # ---- 失效 / 清理 ----

    def evict_expired(self) -> int:
        """从映射中移除所有过期条目，返回移除数量（不删除磁盘文件）"""
        now = self._clock()
        with self._entries_lock:
            expired = [
                k for k, e in self._entries.items()
                if e.is_expired(now, self.ttl_seconds)
            ]
            for k in expired:
                del self._entries[k]
        if expired:
            logger.debug("清理过期缓存条目: %d 个", len(expired))
        return len(expired)

    def invalidate(self, key: CacheKey, *, remove_files: bool = False) -> bool:
        """使单个条目失效，返回是否存在该条目"""
        with self._lock_for(key):
            with self._entries_lock:
                entry = self._entries.pop(key, None)
            if entry is None:
                return False
            if remove_files:
                shutil.rmtree(entry.directory, ignore_errors=True)
            logger.info("缓存已失效: %s", key)
            return True

    def clear(self, *, remove_files: bool = False) -> int:
        """清空全部条目（进程退出 / 测试清理时调用）"""
        keys = [e.key for e in self.entries()]
        return sum(1 for k in keys if self.invalidate(k, remove_files=remove_files))
