"""日志服务: 对外操作门面

Web / CLI 层只通过 LogService 访问日志，不直接操作缓存与下载器。

操作:
  - get_or_download:      解析（必要时下载）运行日志目录
  - read_log:             按日志 ID 分页读取
  - search_logs:          多文件上下文检索
  - list_cached_files:    列出下载目录中的文件
  - list_run_logs:        远端日志元数据
  - download_run_logs:    显式下载到指定目录（不经过缓存）
  - read_downloaded_file: 按文件名读取显式下载的文件
"""

from __future__ import annotations

import logging
from pathlib import Path

from pipelogs.core import log_reader
from pipelogs.core.config import Config
from pipelogs.core.exceptions import NotFoundError, ValidationError
from pipelogs.core.log_search import LogSearcher, compile_pattern, validate_options
from pipelogs.core.models import (
    CacheKey,
    CachedListing,
    DownloadReport,
    LogSlice,
    RemoteLog,
    SearchOptions,
    SearchResult,
)
from pipelogs.core.paths import export_directory
from pipelogs.services.cache import LogCache
from pipelogs.services.fetcher import LogFetcher

logger = logging.getLogger(__name__)


class LogService:
    """流水线日志的读取 / 检索入口"""

    def __init__(
        self,
        cache: LogCache,
        fetcher: LogFetcher,
        config: Config | None = None,
        searcher: LogSearcher | None = None,
    ) -> None:
        if config is None:
            from pipelogs.core.config import get_config
            config = get_config()
        self.config = config
        self.cache = cache
        self.fetcher = fetcher
        self.searcher = searcher or LogSearcher(max_context=config.max_context_lines)

    def _key(self, pipeline_id: int, run_id: int, project_id: str | None) -> CacheKey:
        project = project_id or self.config.default_project
        if not project:
            raise ValidationError(
                "未指定 project，且配置中没有 default_project", details=["project_id"],
            )
        return CacheKey(project_id=project, pipeline_id=pipeline_id, run_id=run_id)

    # ---- 缓存 ----

    def get_or_download(
        self, pipeline_id: int, run_id: int, project_id: str | None = None,
    ) -> Path:
        return self.cache.resolve(self._key(pipeline_id, run_id, project_id))

    def invalidate(
        self, pipeline_id: int, run_id: int, project_id: str | None = None,
        *, remove_files: bool = False,
    ) -> bool:
        key = self._key(pipeline_id, run_id, project_id)
        return self.cache.invalidate(key, remove_files=remove_files)

    def cache_status(self) -> list[dict]:
        return self.cache.status()

    # ---- 读取 ----

    def read_log(
        self,
        pipeline_id: int,
        run_id: int,
        log_id: int,
        offset: int | None = None,
        limit: int | None = None,
        project_id: str | None = None,
        *,
        include_download_path: bool = False,
    ) -> LogSlice:
        """读取单条日志（自动下载 / 复用缓存）

        Raises:
            ValidationError: ID 或分页参数非法（不触发下载）
            NotFoundError: 远端没有日志，或该日志未下载成功
        """
        key = self._key(pipeline_id, run_id, project_id)
        if isinstance(log_id, bool) or not isinstance(log_id, int) or log_id <= 0:
            raise ValidationError(f"log_id 必须为正整数: {log_id!r}", details=["log_id"])
        log_reader.validate_page(offset, limit, self.config.max_read_limit)

        entry, cached = self.cache.resolve_entry(key)
        try:
            result = log_reader.read_log(
                entry.directory, log_id, offset, limit,
                default_limit=self.config.default_read_limit,
                max_limit=self.config.max_read_limit,
            )
        except NotFoundError as e:
            raise NotFoundError(
                f"日志 {log_id} 不存在 (pipeline {pipeline_id}, run {run_id})",
            ) from e

        result.cached = cached
        if include_download_path:
            result.download_path = str(entry.directory)
        return result

    def list_cached_files(self, directory: str | Path) -> CachedListing:
        return log_reader.list_cached_files(directory)

    def read_downloaded_file(
        self,
        download_path: str | Path,
        file_name: str,
        offset: int | None = None,
        limit: int | None = None,
    ) -> LogSlice:
        return log_reader.read_file(
            download_path, file_name, offset, limit,
            default_limit=self.config.default_read_limit,
            max_limit=self.config.max_read_limit,
        )

    # ---- 检索 ----

    def search_logs(
        self,
        pipeline_id: int,
        run_id: int,
        pattern: str,
        *,
        ignore_case: bool = False,
        invert_match: bool = False,
        before_context: int = 0,
        after_context: int = 0,
        max_matches: int | None = None,
        log_ids: list[int] | None = None,
        project_id: str | None = None,
    ) -> SearchResult:
        """检索运行的全部（或指定）日志

        max_matches 未指定时使用配置的 default_max_matches。
        """
        key = self._key(pipeline_id, run_id, project_id)
        options = SearchOptions(
            ignore_case=ignore_case,
            invert_match=invert_match,
            before_context=before_context,
            after_context=after_context,
            max_matches=max_matches if max_matches is not None else self.config.default_max_matches,
            log_ids=log_ids,
        )
        # 先校验，非法正则不触发下载
        compile_pattern(pattern, ignore_case)
        validate_options(options, self.config.max_context_lines)

        entry, cached = self.cache.resolve_entry(key)
        result = self.searcher.search(entry.directory, pattern, options)
        result.cached = cached
        logger.info(
            "检索 '%s' 完成: %s, %d 处命中", pattern, key, result.total_matches,
        )
        return result

    # ---- 远端 / 显式下载 ----

    def list_run_logs(
        self, pipeline_id: int, run_id: int, project_id: str | None = None,
    ) -> list[RemoteLog]:
        key = self._key(pipeline_id, run_id, project_id)
        return self.fetcher.list_logs(key)

    def download_run_logs(
        self,
        pipeline_id: int,
        run_id: int,
        output_dir: str | Path | None = None,
        project_id: str | None = None,
    ) -> DownloadReport:
        """下载到 <output_dir>/pipeline-<pid>-run-<rid>-logs，不写入缓存映射"""
        key = self._key(pipeline_id, run_id, project_id)
        target = export_directory(
            output_dir or self.config.export_dir, pipeline_id, run_id,
        )
        return self.fetcher.download(key, target)
