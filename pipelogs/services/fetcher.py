"""日志批量下载器

职责:
- 从远端获取运行的日志列表（唯一的硬失败点: 列表为空 → NotFoundError）
- 有界并发下载每条日志，单条失败只记录并跳过，批次总能完成
- 写入 <destination>/log-<id>.txt，行数与大小取自写入后的文件
- 可选写入 summary.json 记录批次元数据
"""

from __future__ import annotations

import json
import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from pathlib import Path

from pipelogs.core.exceptions import NotFoundError, TransientFetchError, ValidationError
from pipelogs.core.log_reader import count_lines
from pipelogs.core.models import CacheKey, DownloadedLog, DownloadReport, RemoteLog, SkippedLog
from pipelogs.core.paths import SUMMARY_FILE, log_file_name
from pipelogs.core.protocols import LogSource
from pipelogs.utils.yaml_io import atomic_write

logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 3


class LogFetcher:
    """有界并发的日志下载器"""

    def __init__(
        self,
        source: LogSource,
        *,
        max_workers: int = DEFAULT_MAX_WORKERS,
        timeout: float = 30.0,
        write_summary: bool = True,
    ) -> None:
        self.source = source
        self.max_workers = max(1, max_workers)
        self.timeout = timeout
        self.write_summary = write_summary

    def list_logs(self, key: CacheKey) -> list[RemoteLog]:
        """获取日志列表，为空时抛出 NotFoundError"""
        logs = self.source.list_logs(key.project_id, key.pipeline_id, key.run_id)
        if not logs:
            raise NotFoundError(
                f"未找到日志: pipeline {key.pipeline_id}, run {key.run_id}",
            )
        return logs

    def download(self, key: CacheKey, destination: Path) -> DownloadReport:
        """下载一次运行的全部日志到 destination

        Raises:
            NotFoundError: 远端报告该运行没有日志（此时不创建目录、不写文件）
            AuthenticationError: 远端拒绝认证，原样抛出
        """
        logs = self.list_logs(key)
        destination = Path(destination)
        destination.mkdir(parents=True, exist_ok=True)
        report = DownloadReport(directory=destination)

        candidates: list[RemoteLog] = []
        for log in logs:
            if log.id is None:
                report.skipped.append(SkippedLog(log_id=None, reason="缺少日志 ID"))
                continue
            if not log.download_url:
                logger.warning("日志 %s 没有可用的 URL，跳过", log.id)
                report.skipped.append(SkippedLog(log_id=log.id, reason="没有可用的 URL"))
                continue
            candidates.append(log)

        logger.info(
            "开始下载 %s: %d 条日志 (并发 %d)", key, len(candidates), self.max_workers,
        )
        if candidates:
            with ThreadPoolExecutor(
                max_workers=min(self.max_workers, len(candidates)),
                thread_name_prefix="log-fetch",
            ) as executor:
                futures = [
                    executor.submit(self._fetch_one, log, destination)
                    for log in candidates
                ]
                for future in futures:
                    outcome = future.result()
                    if isinstance(outcome, DownloadedLog):
                        report.files.append(outcome)
                    else:
                        report.skipped.append(outcome)

        report.files.sort(key=lambda f: f.log_id)

        if self.write_summary:
            self._write_summary(key, report)

        logger.info(
            "已下载 %d 条日志到 %s (共 %d 字节, 跳过 %d 条)",
            report.success_count, destination, report.total_size, report.skipped_count,
        )
        return report

    def _fetch_one(self, log: RemoteLog, destination: Path) -> DownloadedLog | SkippedLog:
        """下载单条日志；任何失败都转成 SkippedLog，不向外抛出"""
        log_id = int(log.id or 0)
        url = log.download_url or ""
        try:
            content = self.source.fetch_content(
                url,
                timeout=self.timeout,
                authenticated=log.signed_url is None,
            )
        except TransientFetchError as e:
            logger.warning("下载日志 %s 失败，跳过: %s", log_id, e)
            return SkippedLog(log_id=log_id, reason=str(e))
        except ValidationError as e:
            logger.warning("日志 %s 的 URL 不合法，跳过: %s", log_id, e)
            return SkippedLog(log_id=log_id, reason=str(e))
        except (OSError, ValueError) as e:
            logger.warning("下载日志 %s 时出错，跳过: %s", log_id, e)
            return SkippedLog(log_id=log_id, reason=str(e))
        except Exception as e:
            # 单条失败不能中断整个批次
            logger.warning("下载日志 %s 时发生意外错误，跳过: %r", log_id, e)
            return SkippedLog(log_id=log_id, reason=repr(e))

        file_name = log_file_name(log_id)
        path = destination / file_name
        try:
            path.write_bytes(content)
        except OSError as e:
            logger.warning("写入日志 %s 失败，跳过: %s", path, e)
            path.unlink(missing_ok=True)
            return SkippedLog(log_id=log_id, reason=f"写入失败: {e}")

        downloaded = DownloadedLog(
            log_id=log_id,
            file_name=file_name,
            line_count=count_lines(path),
            size=path.stat().st_size,
        )
        logger.debug(
            "已下载日志 %s -> %s (%d 行, %d 字节)",
            log_id, file_name, downloaded.line_count, downloaded.size,
        )
        return downloaded

    @staticmethod
    def _write_summary(key: CacheKey, report: DownloadReport) -> None:
        summary = {
            "projectId": key.project_id,
            "pipelineId": key.pipeline_id,
            "runId": key.run_id,
            "downloadedAt": datetime.now(timezone.utc).isoformat(),
            "logsCount": report.success_count,
            "totalSize": report.total_size,
            "files": [f.to_dict() for f in report.files],
            "skipped": [s.to_dict() for s in report.skipped],
        }
        atomic_write(
            report.directory / SUMMARY_FILE,
            json.dumps(summary, indent=2, ensure_ascii=False),
        )
