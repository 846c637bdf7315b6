"""服务容器: 统一依赖注入，显式持有缓存

日志缓存是有状态对象，由容器显式构造和持有，而非模块级全局变量。
CLI 和 Web 层均应通过 get_container() 获取服务，而非直接 import 构造。

依赖关系图（→ 表示依赖）:
  logs    → cache, fetcher
  cache   → fetcher
  fetcher → source

生命周期:
  - 构造: 进程启动时（或测试 fixture 中）创建 ServiceContainer
  - 销毁: close() 清空缓存映射；reset_container() 丢弃全局实例

用法:
    container = ServiceContainer(config=Config.from_file("configs/pipelogs.yml"))
    container.logs.search_logs(83, 12345, "ERROR", project_id="demo")

    # 测试中注入替身数据源
    container = ServiceContainer(config=cfg, source=FakeSource())
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

from pipelogs.core.exceptions import ConfigError

if TYPE_CHECKING:
    from pipelogs.core.config import Config
    from pipelogs.core.protocols import LogSource
    from pipelogs.services.cache import LogCache
    from pipelogs.services.fetcher import LogFetcher
    from pipelogs.services.log_service import LogService

logger = logging.getLogger(__name__)


class ServiceContainer:
    """懒加载服务容器: 每个实例持有一份日志缓存"""

    def __init__(
        self, config: Config | None = None, source: LogSource | None = None,
    ) -> None:
        self._instances: dict[str, object] = {}
        self._lock = threading.RLock()
        if config is None:
            from pipelogs.core.config import get_config
            config = get_config()
        self._config = config
        if source is not None:
            self._instances["source"] = source

    @property
    def config(self) -> Config:
        return self._config

    def _get_or_create(self, name: str, factory):  # type: ignore[no-untyped-def]
        # Web 层多线程并发访问；RLock 允许 factory 内再取依赖服务
        with self._lock:
            if name not in self._instances:
                self._instances[name] = factory()
            return self._instances[name]

    @property
    def source(self) -> LogSource:
        def build() -> LogSource:
            from pipelogs.services.client import AzureDevOpsClient
            if not self._config.organization_url:
                raise ConfigError("未配置 organization_url，无法访问远端服务")
            return AzureDevOpsClient(
                self._config.organization_url,
                self._config.token,
                api_version=self._config.api_version,
                timeout=self._config.fetch_timeout,
            )
        return self._get_or_create("source", build)  # type: ignore[no-any-return]

    @property
    def fetcher(self) -> LogFetcher:
        def build() -> LogFetcher:
            from pipelogs.services.fetcher import LogFetcher
            return LogFetcher(
                self.source,
                max_workers=self._config.max_concurrent_downloads,
                timeout=self._config.fetch_timeout,
                write_summary=self._config.write_summary,
            )
        return self._get_or_create("fetcher", build)  # type: ignore[no-any-return]

    @property
    def cache(self) -> LogCache:
        def build() -> LogCache:
            from pipelogs.services.cache import LogCache
            return LogCache(
                self.fetcher,
                self._config.cache_dir,
                ttl_seconds=self._config.cache_ttl_seconds,
            )
        return self._get_or_create("cache", build)  # type: ignore[no-any-return]

    @property
    def logs(self) -> LogService:
        def build() -> LogService:
            from pipelogs.services.log_service import LogService
            return LogService(self.cache, self.fetcher, config=self._config)
        return self._get_or_create("logs", build)  # type: ignore[no-any-return]

    def close(self) -> None:
        """清空缓存映射（磁盘文件保留）"""
        cache = self._instances.get("cache")
        if cache is not None:
            cleared = cache.clear()  # type: ignore[attr-defined]
            logger.info("容器关闭，已清空 %d 个缓存条目", cleared)


# ---- 全局单例 ----

_global: ServiceContainer | None = None
_global_lock = threading.Lock()


def get_container() -> ServiceContainer:
    """获取全局 ServiceContainer 单例（线程安全）"""
    global _global  # noqa: PLW0603
    if _global is not None:
        return _global
    with _global_lock:
        if _global is None:
            _global = ServiceContainer()
        return _global


def set_container(container: ServiceContainer) -> None:
    """替换全局容器（入口显式构造后注册，或测试注入）"""
    global _global  # noqa: PLW0603
    with _global_lock:
        _global = container


def reset_container() -> None:
    """关闭并丢弃全局容器"""
    global _global  # noqa: PLW0603
    with _global_lock:
        if _global is not None:
            _global.close()
        _global = None
